"""
Domain layer - Pure business logic without external dependencies.
"""

from .constraints import ConstraintValidator
from .models import Calendar, Event, Meeting, Page, TimeSlot, UserCalendarLink
from .slot_generator import AvailabilitySlotGenerator

__all__ = [
    "AvailabilitySlotGenerator",
    "Calendar",
    "ConstraintValidator",
    "Event",
    "Meeting",
    "Page",
    "TimeSlot",
    "UserCalendarLink",
]
