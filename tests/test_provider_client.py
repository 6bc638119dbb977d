"""
Tests for the provider HTTP client.
"""

import pendulum
import pytest
import requests

from meetingscheduler.adapters.mock_provider_client import MockProviderClient
from meetingscheduler.adapters.provider_client import ProviderClient
from meetingscheduler.domain.exceptions import ProviderUnavailableError
from meetingscheduler.domain.models import TimeSlot


def _at(clock: str, day: str = "2024-11-25"):
    return pendulum.parse(f"{day} {clock}", tz="UTC")


class FakeResponse:
    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    """Replays queued responses or exceptions and records requests."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _client(session, sleeps):
    return ProviderClient(
        base_url="http://provider:8083/",
        timeout_seconds=5,
        max_attempts=3,
        initial_delay_seconds=1.0,
        multiplier=2.0,
        session=session,
        sleep=sleeps.append,
    )


class TestProviderClient:
    """Tests for ProviderClient."""

    def test_fetches_and_decodes_events(self):
        session = FakeSession(
            FakeResponse(
                [
                    {"id": "e1", "startTime": "2024-11-25T10:00:00", "endTime": "2024-11-25T11:00:00"},
                    {"id": "e2", "startTime": "2024-11-25T13:00:00+01:00", "endTime": "2024-11-25T13:30:00+01:00"},
                ]
            )
        )
        sleeps = []

        events = _client(session, sleeps).list_busy_events("cal-1", _at("09:00"), _at("17:00"))

        assert events == [
            TimeSlot(start=_at("10:00"), end=_at("11:00")),
            TimeSlot(start=_at("12:00"), end=_at("12:30")),
        ]
        request = session.requests[0]
        assert request["url"] == "http://provider:8083/api/events/calendar/cal-1/timerange"
        assert request["params"]["start"].startswith("2024-11-25T09:00:00")
        assert request["timeout"] == 5
        assert sleeps == []

    def test_skips_undecodable_events(self):
        session = FakeSession(
            FakeResponse(
                [
                    {"startTime": "2024-11-25T10:00:00"},
                    {"startTime": "not a date", "endTime": "2024-11-25T11:00:00"},
                    {"startTime": "2024-11-25T12:00:00", "endTime": "2024-11-25T11:00:00"},
                    {"startTime": "2024-11-25T15:00:00", "endTime": "2024-11-25T16:00:00"},
                ]
            )
        )

        events = _client(session, []).list_busy_events("cal-1", _at("09:00"), _at("17:00"))

        assert events == [TimeSlot(start=_at("15:00"), end=_at("16:00"))]

    def test_null_body_means_no_events(self):
        session = FakeSession(FakeResponse(None))

        assert _client(session, []).list_busy_events("cal-1", _at("09:00"), _at("17:00")) == []

    def test_retries_transient_failures_with_backoff(self):
        session = FakeSession(
            requests.exceptions.ConnectionError("refused"),
            FakeResponse(status_code=503),
            FakeResponse([{"startTime": "2024-11-25T10:00:00", "endTime": "2024-11-25T11:00:00"}]),
        )
        sleeps = []

        events = _client(session, sleeps).list_busy_events("cal-1", _at("09:00"), _at("17:00"))

        assert len(events) == 1
        assert len(session.requests) == 3
        assert sleeps == [1.0, 2.0]

    def test_raises_provider_unavailable_after_exhausting_attempts(self):
        session = FakeSession(
            requests.exceptions.Timeout("read timed out"),
            requests.exceptions.Timeout("read timed out"),
            FakeResponse(invalid_json=True),
        )
        sleeps = []

        with pytest.raises(ProviderUnavailableError) as excinfo:
            _client(session, sleeps).list_busy_events("cal-1", _at("09:00"), _at("17:00"))

        assert excinfo.value.status_code == 503
        assert sleeps == [1.0, 2.0]

    def test_unexpected_payload_shape_is_unavailable(self):
        session = FakeSession(FakeResponse({"error": "nope"}))

        with pytest.raises(ProviderUnavailableError):
            _client(session, []).list_busy_events("cal-1", _at("09:00"), _at("17:00"))


class TestMockProviderClient:
    """Tests for the JSON-backed mock client."""

    def test_filters_by_calendar_and_window(self):
        client = MockProviderClient(
            events=[
                {"calendarId": "cal-1", "startTime": "2024-11-25T10:00:00", "endTime": "2024-11-25T11:00:00"},
                {"calendarId": "cal-1", "startTime": "2024-11-26T10:00:00", "endTime": "2024-11-26T11:00:00"},
                {"calendarId": "cal-2", "startTime": "2024-11-25T10:00:00", "endTime": "2024-11-25T11:00:00"},
                {"calendarId": "cal-1", "startTime": "broken"},
            ]
        )

        events = client.list_busy_events("cal-1", _at("09:00"), _at("17:00"))

        assert events == [TimeSlot(start=_at("10:00"), end=_at("11:00"))]

    def test_bundled_fixture_loads(self):
        client = MockProviderClient()

        events = client.list_busy_events("team-calendar", _at("00:00"), _at("23:59"))

        assert TimeSlot(start=_at("09:00"), end=_at("10:30")) in events
