"""
Local meeting store contract and an in-memory implementation.

Stores own the ``version`` counter: ``insert`` stores version 0 and every
successful ``save`` increments it. ``save`` and ``delete`` compare the
caller's version with the stored one atomically with the write and raise
``VersionMismatchError`` when they differ.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Dict, List, Optional, Protocol, Set, Tuple

from pendulum import DateTime

from ..domain.exceptions import StoreError, VersionMismatchError
from ..domain.models import Meeting, UserCalendarLink

logger = logging.getLogger(__name__)


class MeetingStore(Protocol):
    """Protocol describing the persistence behaviour needed by the services."""

    def find_link(self, user_id: str, calendar_id: str) -> Optional[UserCalendarLink]:
        """Return the user/calendar link or ``None``."""

    def add_link(self, link: UserCalendarLink) -> None:
        """Register a user/calendar link (idempotent)."""

    def find_overlapping(
        self, calendar_id: str, range_start: DateTime, range_end: DateTime
    ) -> List[Meeting]:
        """Return meetings overlapping or touching the closed range ``[range_start, range_end]``."""

    def find_within(
        self, calendar_id: str, range_start: DateTime, range_end: DateTime
    ) -> List[Meeting]:
        """Return meetings fully inside the range, ordered by start time."""

    def get(self, calendar_id: str, meeting_id: str) -> Optional[Meeting]:
        """Return a meeting scoped to its calendar or ``None``."""

    def insert(self, meeting: Meeting) -> Meeting:
        """Persist a new meeting and return it with its initial version."""

    def save(self, meeting: Meeting) -> Meeting:
        """Persist changes if ``meeting.version`` is current; return the new value."""

    def delete(self, meeting: Meeting) -> None:
        """Delete a meeting if ``meeting.version`` is current."""


class InMemoryMeetingStore:
    """
    Thread-safe dictionary-backed store.

    One lock guards every read and write, which makes the version comparison
    and the write a single atomic step.
    """

    def __init__(self, meetings: Optional[List[Meeting]] = None, links: Optional[List[UserCalendarLink]] = None):
        self._lock = threading.Lock()
        self._meetings: Dict[str, Meeting] = {}
        self._links: Set[Tuple[str, str]] = set()

        for link in links or []:
            self.add_link(link)
        for meeting in meetings or []:
            self._meetings[meeting.id] = meeting

    def find_link(self, user_id: str, calendar_id: str) -> Optional[UserCalendarLink]:
        with self._lock:
            if (user_id, calendar_id) in self._links:
                return UserCalendarLink(user_id=user_id, calendar_id=calendar_id)
        return None

    def add_link(self, link: UserCalendarLink) -> None:
        with self._lock:
            self._links.add((link.user_id, link.calendar_id))

    def find_overlapping(
        self, calendar_id: str, range_start: DateTime, range_end: DateTime
    ) -> List[Meeting]:
        with self._lock:
            return [
                meeting for meeting in self._meetings.values()
                if meeting.calendar_id == calendar_id
                and meeting.start <= range_end
                and meeting.end >= range_start
            ]

    def find_within(
        self, calendar_id: str, range_start: DateTime, range_end: DateTime
    ) -> List[Meeting]:
        with self._lock:
            matches = [
                meeting for meeting in self._meetings.values()
                if meeting.calendar_id == calendar_id
                and meeting.start >= range_start
                and meeting.end <= range_end
            ]
        return sorted(matches, key=lambda m: (m.start, m.end))

    def get(self, calendar_id: str, meeting_id: str) -> Optional[Meeting]:
        with self._lock:
            meeting = self._meetings.get(meeting_id)
        if meeting is None or meeting.calendar_id != calendar_id:
            return None
        return meeting

    def insert(self, meeting: Meeting) -> Meeting:
        stored = dataclasses.replace(meeting, version=0)
        with self._lock:
            if meeting.id in self._meetings:
                raise StoreError(f"Meeting {meeting.id} already exists")
            self._meetings[meeting.id] = stored
        logger.debug("Inserted meeting %s", meeting.id)
        return stored

    def save(self, meeting: Meeting) -> Meeting:
        with self._lock:
            current = self._meetings.get(meeting.id)
            if current is None:
                raise VersionMismatchError(meeting.id, meeting.version, None)
            if current.version != meeting.version:
                raise VersionMismatchError(meeting.id, meeting.version, current.version)

            stored = dataclasses.replace(meeting, version=current.version + 1)
            self._meetings[meeting.id] = stored

        logger.debug("Saved meeting %s at version %s", meeting.id, stored.version)
        return stored

    def delete(self, meeting: Meeting) -> None:
        with self._lock:
            current = self._meetings.get(meeting.id)
            if current is None:
                raise VersionMismatchError(meeting.id, meeting.version, None)
            if current.version != meeting.version:
                raise VersionMismatchError(meeting.id, meeting.version, current.version)
            del self._meetings[meeting.id]

        logger.debug("Deleted meeting %s", meeting.id)
