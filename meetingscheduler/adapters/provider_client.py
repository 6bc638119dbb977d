"""
HTTP client for the external calendar provider.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, List

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import ProviderUnavailableError
from ..domain.models import TimeSlot

logger = logging.getLogger(__name__)


class ProviderClient:
    """
    Client for the provider's event time-range endpoint.

    Uses ``GET /api/events/calendar/{calendar_id}/timerange`` which returns a
    JSON array of events with ISO-8601 ``startTime``/``endTime`` fields.
    Transport errors, HTTP errors and undecodable bodies are retried with
    exponential backoff; when attempts run out ``ProviderUnavailableError``
    is raised.
    """

    EVENTS_PATH = "/api/events/calendar/{calendar_id}/timerange"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        initial_delay_seconds: float = 1.0,
        multiplier: float = 2.0,
        timezone: str = "UTC",
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the provider client.

        Args:
            base_url: Provider service root, e.g. ``http://localhost:8083``
            timeout_seconds: Per-request timeout
            max_attempts: Total attempts per call, including the first
            initial_delay_seconds: Wait before the second attempt
            multiplier: Growth factor of the wait between attempts
            timezone: Reference timezone for naive timestamps in responses
            session: Optional pre-configured requests session
            sleep: Injected for tests
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.initial_delay_seconds = initial_delay_seconds
        self.multiplier = multiplier
        self.timezone = timezone
        self.session = session or requests.Session()
        self._sleep = sleep

    def list_busy_events(
        self,
        calendar_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeSlot]:
        """
        Fetch external events of a calendar in a time range.

        Returns:
            Busy intervals decoded from the provider response

        Raises:
            ProviderUnavailableError: If every attempt failed
        """
        url = self.base_url + self.EVENTS_PATH.format(calendar_id=calendar_id)
        params = {
            "start": range_start.to_iso8601_string(),
            "end": range_end.to_iso8601_string(),
        }

        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self.session.get(url, params=params, timeout=self.timeout_seconds)
                response.raise_for_status()
                data = response.json()
            except (requests.exceptions.RequestException, ValueError) as exc:
                last_error = exc
                logger.warning(
                    "Provider request for calendar %s failed (attempt %d/%d): %s",
                    calendar_id,
                    attempt,
                    self.max_attempts,
                    exc,
                )
                if attempt < self.max_attempts:
                    self._sleep(self.initial_delay_seconds * self.multiplier ** (attempt - 1))
                continue

            return self._parse_events_response(data)

        raise ProviderUnavailableError(
            f"Failed to fetch events from provider for calendar {calendar_id}: {last_error}"
        ) from last_error

    def _parse_events_response(self, response_data: Any) -> List[TimeSlot]:
        """
        Parse the provider response into busy intervals.

        Response format:
        [
            {"id": "...", "title": "...", "startTime": "2024-11-25T10:00:00",
             "endTime": "2024-11-25T11:00:00", ...}
        ]

        A null body is treated as no events.
        """
        if response_data is None:
            return []

        if not isinstance(response_data, list):
            raise ProviderUnavailableError(
                f"Unexpected provider response type: {type(response_data).__name__}"
            )

        busy: List[TimeSlot] = []

        for item in response_data:
            try:
                start = self._parse_datetime(item["startTime"])
                end = self._parse_datetime(item["endTime"])
                busy.append(TimeSlot(start=start, end=end))

            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Could not parse provider event %r: %s", item, e)
                continue

        return busy

    def _parse_datetime(self, datetime_str: str) -> DateTime:
        """
        Parse an ISO 8601 string into a DateTime in the reference timezone.

        Naive timestamps are interpreted in the reference timezone.
        """
        dt = pendulum.parse(datetime_str, tz=self.timezone)

        if isinstance(dt, DateTime):
            return dt.in_timezone(self.timezone)

        raise ValueError(f"Could not parse datetime: {datetime_str}")
