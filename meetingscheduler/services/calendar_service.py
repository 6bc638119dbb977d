"""
Application service for calendars and the events they hold.

Like meeting mutations, every create, update and delete runs as one
read-validate-write unit inside the retry policy.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional

from pendulum import DateTime

from ..adapters.calendar_store import CalendarStore
from ..domain.constraints import ConstraintValidator
from ..domain.exceptions import (
    CalendarNotFoundError,
    ConcurrencyConflictError,
    ConstraintViolationError,
    EventNotFoundError,
)
from ..domain.models import Calendar, Event, Page
from .retry import ConcurrencyRetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class CalendarService:
    """Create, update, delete and query calendars and events."""

    def __init__(
        self,
        store: CalendarStore,
        constraints: Optional[ConstraintValidator] = None,
        retry_policy: Optional[ConcurrencyRetryPolicy] = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._store = store
        self._constraints = constraints or ConstraintValidator()
        self._retry = retry_policy or ConcurrencyRetryPolicy()
        self._default_page_size = default_page_size

    def list_calendars(self, page: int = 0, size: Optional[int] = None) -> Page[Calendar]:
        size = self._default_page_size if size is None else size
        self._constraints.validate_page(page, size)

        calendars = self._store.list_calendars()
        offset = page * size
        return Page(items=calendars[offset:offset + size], page=page, size=size, total=len(calendars))

    def get_calendar(self, calendar_id: str) -> Calendar:
        return self._require_calendar(calendar_id)

    def create_calendar(self, name: str, owner_id: str, description: Optional[str] = None) -> Calendar:
        self._require_text(name, "Calendar name")
        self._require_text(owner_id, "Owner ID")

        def attempt() -> Calendar:
            return self._store.insert_calendar(
                Calendar.new(name=name, owner_id=owner_id, description=description)
            )

        created = self._retry.run(attempt, description="create calendar")
        logger.info("Calendar created: %s", created.id)
        return created

    def update_calendar(
        self,
        calendar_id: str,
        name: str,
        description: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Calendar:
        """
        Rename a calendar or change its description.

        Raises:
            CalendarNotFoundError: If the calendar does not exist
            ConstraintViolationError: If the name is blank
            ConcurrencyConflictError: On a stale ``expected_version`` or exhausted retries
        """
        self._require_text(name, "Calendar name")

        def attempt() -> Calendar:
            current = self._require_calendar(calendar_id)
            self._check_expected_version("calendar", calendar_id, current.version, expected_version)
            return self._store.save_calendar(
                dataclasses.replace(current, name=name, description=description)
            )

        saved = self._retry.run(attempt, description=f"update calendar {calendar_id}")
        logger.info("Calendar updated: %s (version %s)", saved.id, saved.version)
        return saved

    def delete_calendar(self, calendar_id: str) -> None:
        """Delete a calendar together with its events."""

        def attempt() -> None:
            self._store.delete_calendar(self._require_calendar(calendar_id))

        self._retry.run(attempt, description=f"delete calendar {calendar_id}")
        logger.info("Calendar deleted: %s", calendar_id)

    def list_events(self, calendar_id: str) -> List[Event]:
        self._require_calendar(calendar_id)
        return self._store.list_events(calendar_id)

    def find_events(self, calendar_id: str, range_from: DateTime, range_to: DateTime) -> List[Event]:
        """Events lying fully inside ``[range_from, range_to]``, ordered by start."""
        self._constraints.validate_ordered(range_from, range_to)
        self._require_calendar(calendar_id)
        return self._store.find_events(calendar_id, range_from, range_to)

    def get_event(self, event_id: str) -> Event:
        return self._require_event(event_id)

    def create_event(
        self,
        calendar_id: str,
        title: str,
        start: DateTime,
        end: DateTime,
        description: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Event:
        self._require_text(title, "Event title")
        self._constraints.validate_ordered(start, end)

        def attempt() -> Event:
            self._require_calendar(calendar_id)
            return self._store.insert_event(
                Event.new(
                    calendar_id=calendar_id,
                    title=title,
                    start=start,
                    end=end,
                    description=description,
                    location=location,
                )
            )

        created = self._retry.run(attempt, description="create event")
        logger.info("Event created: %s", created.id)
        return created

    def update_event(
        self,
        event_id: str,
        title: str,
        start: DateTime,
        end: DateTime,
        description: Optional[str] = None,
        location: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Event:
        """
        Replace an event's fields and time.

        Raises:
            EventNotFoundError: If the event does not exist
            ConstraintViolationError: If the title is blank or the times are inverted
            ConcurrencyConflictError: On a stale ``expected_version`` or exhausted retries
        """
        self._require_text(title, "Event title")
        self._constraints.validate_ordered(start, end)

        def attempt() -> Event:
            current = self._require_event(event_id)
            self._check_expected_version("event", event_id, current.version, expected_version)
            updated = dataclasses.replace(
                current,
                title=title,
                start=start,
                end=end,
                description=description,
                location=location,
            )
            return self._store.save_event(updated)

        saved = self._retry.run(attempt, description=f"update event {event_id}")
        logger.info("Event updated: %s (version %s)", saved.id, saved.version)
        return saved

    def delete_event(self, event_id: str) -> None:
        def attempt() -> None:
            self._store.delete_event(self._require_event(event_id))

        self._retry.run(attempt, description=f"delete event {event_id}")
        logger.info("Event deleted: %s", event_id)

    def _require_calendar(self, calendar_id: str) -> Calendar:
        calendar = self._store.get_calendar(calendar_id)
        if calendar is None:
            logger.warning("Calendar not found with id: %s", calendar_id)
            raise CalendarNotFoundError(calendar_id)
        return calendar

    def _require_event(self, event_id: str) -> Event:
        event = self._store.get_event(event_id)
        if event is None:
            logger.warning("Event not found with id: %s", event_id)
            raise EventNotFoundError(event_id)
        return event

    @staticmethod
    def _check_expected_version(
        kind: str, record_id: str, actual: int, expected: Optional[int]
    ) -> None:
        if expected is None or actual == expected:
            return
        logger.warning(
            "Version mismatch detected while updating %s %s. Expected: %s, Actual: %s",
            kind,
            record_id,
            expected,
            actual,
        )
        raise ConcurrencyConflictError(
            f"The {kind} was modified by another operation. Please refresh and try again."
        )

    @staticmethod
    def _require_text(value: str, field: str) -> None:
        if not value or not value.strip():
            raise ConstraintViolationError(f"{field} is required")
