"""
Domain-specific exception hierarchy for the meeting scheduler.

Every class carries a ``status_code`` so outer surfaces (CLI, HTTP) can map
errors without inspecting messages.
"""

from __future__ import annotations

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for all application-level errors."""

    status_code = 500


class NotFoundError(SchedulingError):
    """Raised when a calendar, calendar link, meeting or event cannot be resolved."""

    status_code = 404


class CalendarNotFoundError(NotFoundError):
    """Raised when a calendar does not exist or the user has no link to it."""

    def __init__(self, calendar_id: Any, user_id: Any = None):
        self.calendar_id = calendar_id
        self.user_id = user_id
        if user_id is None:
            message = f"Calendar not found: {calendar_id}"
        else:
            message = f"Calendar {calendar_id} not found for user {user_id}"
        super().__init__(message)


class MeetingNotFoundError(NotFoundError):
    """Raised when a meeting does not exist in the given calendar."""

    def __init__(self, meeting_id: Any, calendar_id: Any, user_id: Any = None):
        self.meeting_id = meeting_id
        self.calendar_id = calendar_id
        self.user_id = user_id
        super().__init__(f"Meeting {meeting_id} not found in calendar {calendar_id}")


class EventNotFoundError(NotFoundError):
    """Raised when an event does not exist."""

    def __init__(self, event_id: Any):
        self.event_id = event_id
        super().__init__(f"Event not found with id: {event_id}")


class ConstraintViolationError(SchedulingError):
    """Base class for input constraint violations. Never retried."""

    status_code = 400


class InvalidRangeError(ConstraintViolationError):
    """Raised when a time range is inverted or too wide."""


class InvalidDurationError(ConstraintViolationError):
    """Raised when a slot or meeting duration is out of bounds."""


class InvalidPaginationError(ConstraintViolationError):
    """Raised when page or page size is out of bounds."""


class ScheduleConflictError(SchedulingError):
    """
    Raised when a candidate meeting overlaps an existing busy interval.

    ``source`` is ``"meeting"`` for local meetings and ``"external"`` for
    provider events.
    """

    status_code = 409

    def __init__(self, candidate: Any, calendar_id: Any, source: str, busy: Any = None):
        self.candidate = candidate
        self.calendar_id = calendar_id
        self.source = source
        self.busy = busy
        if source == "external":
            message = "The meeting conflicts with external events"
        else:
            message = "The meeting conflicts with existing meetings"
        if busy is not None:
            message = f"{message} ({busy})"
        super().__init__(message)


class VersionMismatchError(SchedulingError):
    """
    Raised by a store when a save or delete carries a stale version.

    This is the signal the retry policy reacts to; callers outside the
    write path should only ever see ``ConcurrencyConflictError``.
    """

    status_code = 409

    def __init__(self, record_id: Any, expected: Optional[int], actual: Optional[int]):
        self.record_id = record_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version mismatch for {record_id}: expected {expected}, found {actual}"
        )


class ConcurrencyConflictError(SchedulingError):
    """Raised when a record was modified by another writer."""

    status_code = 409


class ProviderUnavailableError(SchedulingError):
    """Raised when the remote calendar provider cannot be reached or decoded."""

    status_code = 503


class StoreError(SchedulingError):
    """Raised when the local meeting store fails for reasons other than versioning."""
