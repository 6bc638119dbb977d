"""
Shared fixtures.
"""

import pytest

from meetingscheduler.adapters.meeting_store import InMemoryMeetingStore
from meetingscheduler.domain.models import UserCalendarLink
from meetingscheduler.services.meeting_service import MeetingService
from meetingscheduler.services.retry import ConcurrencyRetryPolicy

from tests.helpers import CALENDAR, USER, StubProviderClient


@pytest.fixture
def store():
    return InMemoryMeetingStore(links=[UserCalendarLink(user_id=USER, calendar_id=CALENDAR)])


@pytest.fixture
def provider():
    return StubProviderClient()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def service(store, provider, sleeps):
    return MeetingService(
        store=store,
        provider_client=provider,
        retry_policy=ConcurrencyRetryPolicy(max_attempts=3, initial_delay=0.5, multiplier=2, sleep=sleeps.append),
    )
