"""
Mock provider client for running without the external provider service.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.models import TimeSlot

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_provider_events.json"


class MockProviderClient:
    """
    Mock client that serves provider events from a JSON file.

    Each entry carries ``calendarId``, ``startTime`` and ``endTime``. Only
    events overlapping the requested window are returned, mirroring the
    real provider's time-range endpoint.
    """

    def __init__(
        self,
        events: Optional[List[Dict[str, Any]]] = None,
        data_file: Path = DEFAULT_DATA_FILE,
        timezone: str = "UTC",
    ):
        self.timezone = timezone
        if events is not None:
            self.calendar_events = events
        else:
            self.calendar_events = self._load_calendar_data(data_file)

    @staticmethod
    def _load_calendar_data(data_file: Path) -> List[Dict[str, Any]]:
        """Load mock events from JSON file."""
        if data_file.exists():
            with open(data_file, "r", encoding="utf-8") as f:
                return json.load(f)

        # Fallback to empty if file doesn't exist
        return []

    def list_busy_events(
        self,
        calendar_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeSlot]:
        busy: List[TimeSlot] = []

        for event in self.calendar_events:
            if event.get("calendarId") != calendar_id:
                continue

            try:
                event_start = pendulum.parse(event["startTime"], tz=self.timezone)
                event_end = pendulum.parse(event["endTime"], tz=self.timezone)

                if event_start < range_end and event_end > range_start:
                    busy.append(TimeSlot(start=event_start, end=event_end))

            except (KeyError, ValueError):
                # Skip invalid events
                continue

        return busy
