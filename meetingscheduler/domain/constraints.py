"""
Input constraints for scheduling requests.

These checks are pure: no I/O, no clock. They run before any aggregation so a
bad request never reaches the stores and the cost of slot generation stays
bounded by ``max_range_days``.
"""

from __future__ import annotations

from datetime import timedelta

from pendulum import DateTime

from .exceptions import InvalidDurationError, InvalidPaginationError, InvalidRangeError

DEFAULT_MAX_RANGE_DAYS = 7
DEFAULT_MIN_SLOT_MINUTES = 15
DEFAULT_MAX_SLOT_MINUTES = 8 * 60
DEFAULT_MAX_MEETING_MINUTES = 8 * 60


class ConstraintValidator:
    """Validates time ranges, durations and pagination parameters."""

    def __init__(
        self,
        max_range_days: int = DEFAULT_MAX_RANGE_DAYS,
        min_slot_minutes: int = DEFAULT_MIN_SLOT_MINUTES,
        max_slot_minutes: int = DEFAULT_MAX_SLOT_MINUTES,
        max_meeting_minutes: int = DEFAULT_MAX_MEETING_MINUTES,
    ):
        self.max_range_days = max_range_days
        self.min_slot_minutes = min_slot_minutes
        self.max_slot_minutes = max_slot_minutes
        self.max_meeting_minutes = max_meeting_minutes

    def validate_ordered(self, start: DateTime, end: DateTime) -> None:
        if start >= end:
            raise InvalidRangeError("Start time must be before end time")

    def validate_range(self, range_start: DateTime, range_end: DateTime) -> None:
        """
        Ensure the range is ordered and no wider than ``max_range_days``.

        Raises:
            InvalidRangeError: If start is not before end or the span is too wide
        """
        self.validate_ordered(range_start, range_end)

        span = (range_end - range_start).total_seconds()
        if span > timedelta(days=self.max_range_days).total_seconds():
            raise InvalidRangeError(
                f"Time range cannot exceed {self.max_range_days} days"
            )

    def validate_slot_duration(self, slot_duration_minutes: int) -> None:
        """
        Ensure a requested availability slot size is within bounds.

        Raises:
            InvalidDurationError: If the duration is outside the configured bounds
        """
        if slot_duration_minutes < self.min_slot_minutes:
            raise InvalidDurationError(
                f"Slot duration must be at least {self.min_slot_minutes} minutes"
            )
        if slot_duration_minutes > self.max_slot_minutes:
            raise InvalidDurationError(
                f"Slot duration cannot exceed {self.max_slot_minutes} minutes"
            )

    def validate_meeting_time(self, start: DateTime, end: DateTime) -> None:
        """
        Ensure a meeting is ordered and not longer than ``max_meeting_minutes``.

        Raises:
            InvalidRangeError: If start is not before end
            InvalidDurationError: If the meeting is too long
        """
        self.validate_ordered(start, end)

        length = (end - start).total_seconds()
        if length > timedelta(minutes=self.max_meeting_minutes).total_seconds():
            raise InvalidDurationError(
                f"Meeting duration cannot exceed {self.max_meeting_minutes} minutes"
            )

    def validate_page(self, page: int, size: int) -> None:
        if page < 0:
            raise InvalidPaginationError(f"Page must not be negative, got {page}")
        if size < 1:
            raise InvalidPaginationError(f"Page size must be at least 1, got {size}")
