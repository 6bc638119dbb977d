"""
Adapters layer - Persistence and the external calendar provider.
"""

from .calendar_store import CalendarStore, InMemoryCalendarStore
from .meeting_store import InMemoryMeetingStore, MeetingStore
from .mock_provider_client import MockProviderClient
from .provider_client import ProviderClient
from .sqlite_store import SqliteCalendarStore, SqliteMeetingStore

__all__ = [
    "CalendarStore",
    "InMemoryCalendarStore",
    "InMemoryMeetingStore",
    "MeetingStore",
    "MockProviderClient",
    "ProviderClient",
    "SqliteCalendarStore",
    "SqliteMeetingStore",
]
