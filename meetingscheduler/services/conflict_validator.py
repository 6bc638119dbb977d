"""
Conflict detection for candidate meeting times.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..adapters.meeting_store import MeetingStore
from ..domain.exceptions import ScheduleConflictError
from ..domain.models import TimeSlot
from .busy_intervals import BusyIntervalSource

logger = logging.getLogger(__name__)


class ConflictValidator:
    """
    Checks a candidate interval against local meetings and external events.

    A busy interval conflicts unless the candidate ends strictly before it
    starts or starts strictly after it ends, so sharing a boundary counts as a
    conflict. The rule is the same for local meetings and external events; the
    meeting being updated can be excluded by id.

    Every call performs fresh lookups. Never feed it a busy set computed for
    an earlier read.
    """

    def __init__(self, store: MeetingStore, external_source: BusyIntervalSource) -> None:
        self._store = store
        self._external_source = external_source

    def has_conflict(
        self,
        candidate: TimeSlot,
        calendar_id: str,
        exclude_meeting_id: Optional[str] = None,
    ) -> bool:
        return self.find_conflict(candidate, calendar_id, exclude_meeting_id) is not None

    def ensure_no_conflict(
        self,
        candidate: TimeSlot,
        calendar_id: str,
        exclude_meeting_id: Optional[str] = None,
    ) -> None:
        """
        Raise if the candidate conflicts with anything.

        Raises:
            ScheduleConflictError: With the conflicting source and interval
        """
        conflict = self.find_conflict(candidate, calendar_id, exclude_meeting_id)
        if conflict is None:
            return

        source, busy = conflict
        logger.info(
            "Rejected %s for calendar %s: conflicts with %s interval %s",
            candidate,
            calendar_id,
            source,
            busy,
        )
        raise ScheduleConflictError(candidate, calendar_id, source, busy)

    def find_conflict(
        self,
        candidate: TimeSlot,
        calendar_id: str,
        exclude_meeting_id: Optional[str] = None,
    ) -> Optional[Tuple[str, TimeSlot]]:
        """Return ``(source, interval)`` of the first conflict, or ``None``."""
        local = [
            meeting
            for meeting in self._store.find_overlapping(calendar_id, candidate.start, candidate.end)
            if meeting.id != exclude_meeting_id and candidate.touches(meeting.slot)
        ]

        if local:
            first = min(local, key=lambda m: (m.start, m.end))
            return "meeting", first.slot

        external = self._external_source.busy_intervals(calendar_id, candidate.start, candidate.end)

        for event in sorted(external, key=TimeSlot.sort_key):
            if candidate.touches(event):
                return "external", event

        return None
