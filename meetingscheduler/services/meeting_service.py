"""
Application service for finding free slots and managing meetings.

Every operation first resolves the user's link to the calendar, then checks
input constraints, and only then touches busy-interval sources. Mutations run
as a single read-validate-write unit inside the retry policy, so each attempt
re-reads the meeting and re-aggregates busy time.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional

from pendulum import DateTime

from ..adapters.meeting_store import MeetingStore
from ..domain.constraints import ConstraintValidator
from ..domain.exceptions import (
    CalendarNotFoundError,
    ConcurrencyConflictError,
    ConstraintViolationError,
    MeetingNotFoundError,
)
from ..domain.models import Meeting, Page, TimeSlot, UserCalendarLink
from ..domain.slot_generator import AvailabilitySlotGenerator
from .busy_intervals import (
    BusyIntervalAggregator,
    LocalMeetingSource,
    ProviderClientProtocol,
    ProviderEventSource,
)
from .conflict_validator import ConflictValidator
from .retry import ConcurrencyRetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class MeetingService:
    """
    Orchestrates constraint checks, busy-time aggregation, slot generation,
    conflict validation and retried persistence.
    """

    def __init__(
        self,
        store: MeetingStore,
        provider_client: ProviderClientProtocol,
        constraints: Optional[ConstraintValidator] = None,
        retry_policy: Optional[ConcurrencyRetryPolicy] = None,
        slot_generator: Optional[AvailabilitySlotGenerator] = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._store = store
        external_source = ProviderEventSource(provider_client)
        self._aggregator = BusyIntervalAggregator(
            [LocalMeetingSource(store), external_source]
        )
        self._conflicts = ConflictValidator(store, external_source)
        self._constraints = constraints or ConstraintValidator()
        self._retry = retry_policy or ConcurrencyRetryPolicy()
        self._slot_generator = slot_generator or AvailabilitySlotGenerator()
        self._default_page_size = default_page_size

    @property
    def aggregator(self) -> BusyIntervalAggregator:
        return self._aggregator

    @property
    def conflicts(self) -> ConflictValidator:
        return self._conflicts

    def link_calendar(self, user_id: str, calendar_id: str) -> UserCalendarLink:
        """Register that a user may schedule in a calendar."""
        link = UserCalendarLink(user_id=user_id, calendar_id=calendar_id)
        self._store.add_link(link)
        logger.info("Linked user %s to calendar %s", user_id, calendar_id)
        return link

    def find_available_slots(
        self,
        user_id: str,
        calendar_id: str,
        range_from: DateTime,
        range_to: DateTime,
        slot_duration_minutes: int,
        page: int = 0,
        size: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Find free slots of a fixed duration in a calendar.

        Args:
            user_id: Requesting user
            calendar_id: Calendar to search
            range_from: Start of the search range
            range_to: End of the search range
            slot_duration_minutes: Length of each slot
            page: Zero-based page number
            size: Page size, defaults to the configured page size

        Returns:
            One page of free slots ordered by start time

        Raises:
            CalendarNotFoundError: If the user has no link to the calendar
            InvalidRangeError: If the range is inverted or too wide
            InvalidDurationError: If the slot duration is out of bounds
            InvalidPaginationError: If page or size are out of bounds
        """
        size = self._default_page_size if size is None else size

        self._resolve_link(user_id, calendar_id)
        self._constraints.validate_range(range_from, range_to)
        self._constraints.validate_slot_duration(slot_duration_minutes)
        self._constraints.validate_page(page, size)

        busy = self._aggregator.aggregate(calendar_id, range_from, range_to)

        return self._slot_generator.generate(
            range_start=range_from,
            range_end=range_to,
            slot_duration_minutes=slot_duration_minutes,
            busy_slots=busy,
            page=page,
            size=size,
        )

    def find_meetings(
        self,
        user_id: str,
        calendar_id: str,
        range_from: DateTime,
        range_to: DateTime,
        page: int = 0,
        size: Optional[int] = None,
    ) -> Page[Meeting]:
        """List meetings lying fully inside a range, ordered by start time."""
        size = self._default_page_size if size is None else size

        self._resolve_link(user_id, calendar_id)
        self._constraints.validate_range(range_from, range_to)
        self._constraints.validate_page(page, size)

        meetings = self._store.find_within(calendar_id, range_from, range_to)
        offset = page * size

        return Page(
            items=meetings[offset:offset + size],
            page=page,
            size=size,
            total=len(meetings),
        )

    def find_meeting(self, meeting_id: str, user_id: str, calendar_id: str) -> Meeting:
        self._resolve_link(user_id, calendar_id)
        return self._require_meeting(meeting_id, calendar_id, user_id)

    def create_meeting(
        self,
        calendar_id: str,
        title: str,
        description: Optional[str],
        start: DateTime,
        end: DateTime,
        location: Optional[str],
        user_id: str,
    ) -> Meeting:
        """
        Create a meeting after checking it against current busy time.

        Raises:
            CalendarNotFoundError: If the user has no link to the calendar
            ConstraintViolationError: If the title or times are invalid
            ScheduleConflictError: If the time overlaps a meeting or external event
            ConcurrencyConflictError: If store races exhausted the retries
        """
        self._resolve_link(user_id, calendar_id)
        self._validate_meeting_fields(title, start, end)
        candidate = TimeSlot(start=start, end=end)

        def attempt() -> Meeting:
            self._conflicts.ensure_no_conflict(candidate, calendar_id)
            meeting = Meeting.new(
                calendar_id=calendar_id,
                title=title,
                description=description,
                start=start,
                end=end,
                location=location,
            )
            return self._store.insert(meeting)

        created = self._retry.run(attempt, description="create meeting")
        logger.info("Meeting created: %s", created.id)
        return created

    def update_meeting(
        self,
        meeting_id: str,
        calendar_id: str,
        title: str,
        description: Optional[str],
        start: DateTime,
        end: DateTime,
        location: Optional[str],
        user_id: str,
        expected_version: Optional[int] = None,
    ) -> Meeting:
        """
        Update a meeting's fields and time.

        When ``expected_version`` is given and differs from the stored
        version, the update is rejected at once without retrying.

        Raises:
            CalendarNotFoundError: If the user has no link to the calendar
            MeetingNotFoundError: If the meeting is not in the calendar
            ConstraintViolationError: If the title or times are invalid
            ScheduleConflictError: If the new time overlaps other busy time
            ConcurrencyConflictError: On a stale ``expected_version`` or exhausted retries
        """
        self._resolve_link(user_id, calendar_id)
        self._validate_meeting_fields(title, start, end)
        candidate = TimeSlot(start=start, end=end)

        def attempt() -> Meeting:
            current = self._require_meeting(meeting_id, calendar_id, user_id)

            if expected_version is not None and current.version != expected_version:
                logger.warning(
                    "Version mismatch detected while updating meeting %s. Expected: %s, Actual: %s",
                    meeting_id,
                    expected_version,
                    current.version,
                )
                raise ConcurrencyConflictError(
                    "The meeting was modified by another operation. Please refresh and try again."
                )

            self._conflicts.ensure_no_conflict(candidate, calendar_id, exclude_meeting_id=meeting_id)

            updated = dataclasses.replace(
                current,
                title=title,
                description=description,
                start=start,
                end=end,
                location=location,
            )
            return self._store.save(updated)

        saved = self._retry.run(attempt, description=f"update meeting {meeting_id}")
        logger.info("Meeting updated: %s (version %s)", saved.id, saved.version)
        return saved

    def delete_meeting(self, meeting_id: str, user_id: str, calendar_id: str) -> None:
        self._resolve_link(user_id, calendar_id)

        def attempt() -> None:
            current = self._require_meeting(meeting_id, calendar_id, user_id)
            self._store.delete(current)

        self._retry.run(attempt, description=f"delete meeting {meeting_id}")
        logger.info("Meeting deleted: %s", meeting_id)

    def _resolve_link(self, user_id: str, calendar_id: str) -> UserCalendarLink:
        link = self._store.find_link(user_id, calendar_id)
        if link is None:
            logger.warning("Calendar %s not found for user %s", calendar_id, user_id)
            raise CalendarNotFoundError(calendar_id, user_id)
        return link

    def _require_meeting(self, meeting_id: str, calendar_id: str, user_id: str) -> Meeting:
        meeting = self._store.get(calendar_id, meeting_id)
        if meeting is None:
            logger.warning("Meeting not found with id: %s", meeting_id)
            raise MeetingNotFoundError(meeting_id, calendar_id, user_id)
        return meeting

    def _validate_meeting_fields(self, title: str, start: DateTime, end: DateTime) -> None:
        if not title or not title.strip():
            raise ConstraintViolationError("Meeting title is required")
        self._constraints.validate_meeting_time(start, end)
