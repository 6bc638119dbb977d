"""
Domain models for busy intervals, slots, meetings, calendars and events.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Generic, List, Optional, TypeVar

from pendulum import DateTime

T = TypeVar("T")


@dataclass(frozen=True)
class TimeSlot:
    """
    Represents an immutable time interval with start and end datetime.

    Invariant: start must be before end. Duration is always derived.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def duration_minutes(self) -> int:
        """Return the duration in whole minutes."""
        return int(self.duration.total_seconds() // 60)

    def overlaps(self, other: "TimeSlot") -> bool:
        """Check if this slot shares any time with another (touching ends do not count)."""
        return self.start < other.end and self.end > other.start

    def touches(self, other: "TimeSlot") -> bool:
        """
        Check if this slot overlaps or shares a boundary with another.

        ``09:00-10:00`` touches ``10:00-11:00``; it does not overlap it.
        """
        return not (self.end < other.start or self.start > other.end)

    def sort_key(self):
        return (self.start, self.end)

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class UserCalendarLink:
    """Ownership link between a user and a calendar."""
    user_id: str
    calendar_id: str


@dataclass(frozen=True)
class Meeting:
    """
    A locally stored meeting.

    ``calendar_id`` references the owning calendar by key. ``version`` is
    maintained by the store and is only ever compared for equality.
    """
    id: str
    calendar_id: str
    title: str
    start: DateTime
    end: DateTime
    description: Optional[str] = None
    location: Optional[str] = None
    version: int = 0

    @classmethod
    def new(
        cls,
        *,
        calendar_id: str,
        title: str,
        start: DateTime,
        end: DateTime,
        description: Optional[str] = None,
        location: Optional[str] = None,
    ) -> "Meeting":
        """Build an unsaved meeting with a fresh identifier."""
        return cls(
            id=str(uuid.uuid4()),
            calendar_id=calendar_id,
            title=title,
            start=start,
            end=end,
            description=description,
            location=location,
        )

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(start=self.start, end=self.end)


@dataclass
class Page(Generic[T]):
    """A slice of a larger ordered result."""
    items: List[T] = field(default_factory=list)
    page: int = 0
    size: int = 10
    total: int = 0

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return (self.total + self.size - 1) // self.size


@dataclass(frozen=True)
class Calendar:
    """A calendar owned by a user. ``version`` follows the same rules as for meetings."""
    id: str
    name: str
    owner_id: str
    description: Optional[str] = None
    version: int = 0

    @classmethod
    def new(cls, *, name: str, owner_id: str, description: Optional[str] = None) -> "Calendar":
        return cls(id=str(uuid.uuid4()), name=name, owner_id=owner_id, description=description)


@dataclass(frozen=True)
class Event:
    """
    An event held in a calendar.

    Events are what the calendar provider serves as external busy time.
    Like meetings, they reference their calendar by key only.
    """
    id: str
    calendar_id: str
    title: str
    start: DateTime
    end: DateTime
    description: Optional[str] = None
    location: Optional[str] = None
    version: int = 0

    @classmethod
    def new(
        cls,
        *,
        calendar_id: str,
        title: str,
        start: DateTime,
        end: DateTime,
        description: Optional[str] = None,
        location: Optional[str] = None,
    ) -> "Event":
        return cls(
            id=str(uuid.uuid4()),
            calendar_id=calendar_id,
            title=title,
            start=start,
            end=end,
            description=description,
            location=location,
        )

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(start=self.start, end=self.end)
