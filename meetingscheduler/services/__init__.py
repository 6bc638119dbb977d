"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .busy_intervals import (
    BusyIntervalAggregator,
    BusyIntervalSource,
    LocalMeetingSource,
    ProviderClientProtocol,
    ProviderEventSource,
)
from .calendar_service import CalendarService
from .conflict_validator import ConflictValidator
from .meeting_service import MeetingService
from .retry import ConcurrencyRetryPolicy

__all__ = [
    "BusyIntervalAggregator",
    "BusyIntervalSource",
    "CalendarService",
    "ConcurrencyRetryPolicy",
    "ConflictValidator",
    "LocalMeetingSource",
    "MeetingService",
    "ProviderClientProtocol",
    "ProviderEventSource",
]
