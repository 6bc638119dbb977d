"""
Calendar and event store contract and an in-memory implementation.

Versioning follows the meeting store: inserts store version 0, every
successful save increments it, and ``save``/``delete`` raise
``VersionMismatchError`` when the caller's version is not the stored one.
Deleting a calendar deletes its events.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Dict, List, Optional, Protocol

from pendulum import DateTime

from ..domain.exceptions import StoreError, VersionMismatchError
from ..domain.models import Calendar, Event

logger = logging.getLogger(__name__)


class CalendarStore(Protocol):
    """Protocol describing calendar and event persistence."""

    def list_calendars(self) -> List[Calendar]:
        """Return every calendar ordered by name."""

    def get_calendar(self, calendar_id: str) -> Optional[Calendar]:
        """Return a calendar or ``None``."""

    def insert_calendar(self, calendar: Calendar) -> Calendar:
        """Persist a new calendar at version 0."""

    def save_calendar(self, calendar: Calendar) -> Calendar:
        """Persist changes if ``calendar.version`` is current."""

    def delete_calendar(self, calendar: Calendar) -> None:
        """Delete a calendar and its events if ``calendar.version`` is current."""

    def list_events(self, calendar_id: str) -> List[Event]:
        """Return a calendar's events ordered by start time."""

    def find_events(self, calendar_id: str, range_start: DateTime, range_end: DateTime) -> List[Event]:
        """Return events lying fully inside the range, ordered by start time."""

    def get_event(self, event_id: str) -> Optional[Event]:
        """Return an event or ``None``."""

    def insert_event(self, event: Event) -> Event:
        """Persist a new event at version 0."""

    def save_event(self, event: Event) -> Event:
        """Persist changes if ``event.version`` is current."""

    def delete_event(self, event: Event) -> None:
        """Delete an event if ``event.version`` is current."""


class InMemoryCalendarStore:
    """Thread-safe dictionary-backed calendar store guarded by one lock."""

    def __init__(self, calendars: Optional[List[Calendar]] = None, events: Optional[List[Event]] = None):
        self._lock = threading.Lock()
        self._calendars: Dict[str, Calendar] = {c.id: c for c in calendars or []}
        self._events: Dict[str, Event] = {e.id: e for e in events or []}

    def list_calendars(self) -> List[Calendar]:
        with self._lock:
            calendars = list(self._calendars.values())
        return sorted(calendars, key=lambda c: (c.name, c.id))

    def get_calendar(self, calendar_id: str) -> Optional[Calendar]:
        with self._lock:
            return self._calendars.get(calendar_id)

    def insert_calendar(self, calendar: Calendar) -> Calendar:
        stored = dataclasses.replace(calendar, version=0)
        with self._lock:
            if calendar.id in self._calendars:
                raise StoreError(f"Calendar {calendar.id} already exists")
            self._calendars[calendar.id] = stored
        logger.debug("Inserted calendar %s", calendar.id)
        return stored

    def save_calendar(self, calendar: Calendar) -> Calendar:
        with self._lock:
            self._check_version(self._calendars.get(calendar.id), calendar.id, calendar.version)
            stored = dataclasses.replace(calendar, version=calendar.version + 1)
            self._calendars[calendar.id] = stored
        logger.debug("Saved calendar %s at version %s", calendar.id, stored.version)
        return stored

    def delete_calendar(self, calendar: Calendar) -> None:
        with self._lock:
            self._check_version(self._calendars.get(calendar.id), calendar.id, calendar.version)
            del self._calendars[calendar.id]
            orphaned = [e.id for e in self._events.values() if e.calendar_id == calendar.id]
            for event_id in orphaned:
                del self._events[event_id]
        logger.debug("Deleted calendar %s with %d event(s)", calendar.id, len(orphaned))

    def list_events(self, calendar_id: str) -> List[Event]:
        with self._lock:
            events = [e for e in self._events.values() if e.calendar_id == calendar_id]
        return sorted(events, key=lambda e: (e.start, e.end))

    def find_events(self, calendar_id: str, range_start: DateTime, range_end: DateTime) -> List[Event]:
        return [
            event for event in self.list_events(calendar_id)
            if event.start >= range_start and event.end <= range_end
        ]

    def get_event(self, event_id: str) -> Optional[Event]:
        with self._lock:
            return self._events.get(event_id)

    def insert_event(self, event: Event) -> Event:
        stored = dataclasses.replace(event, version=0)
        with self._lock:
            if event.calendar_id not in self._calendars:
                raise StoreError(f"Calendar {event.calendar_id} does not exist")
            if event.id in self._events:
                raise StoreError(f"Event {event.id} already exists")
            self._events[event.id] = stored
        logger.debug("Inserted event %s", event.id)
        return stored

    def save_event(self, event: Event) -> Event:
        with self._lock:
            self._check_version(self._events.get(event.id), event.id, event.version)
            stored = dataclasses.replace(event, version=event.version + 1)
            self._events[event.id] = stored
        logger.debug("Saved event %s at version %s", event.id, stored.version)
        return stored

    def delete_event(self, event: Event) -> None:
        with self._lock:
            self._check_version(self._events.get(event.id), event.id, event.version)
            del self._events[event.id]
        logger.debug("Deleted event %s", event.id)

    @staticmethod
    def _check_version(current, record_id: str, version: int) -> None:
        if current is None:
            raise VersionMismatchError(record_id, version, None)
        if current.version != version:
            raise VersionMismatchError(record_id, version, current.version)
