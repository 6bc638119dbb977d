"""
Time helpers and stub collaborators shared by the test modules.
"""

from typing import Dict, List, Optional, Tuple

import pendulum

from meetingscheduler.domain.exceptions import ProviderUnavailableError
from meetingscheduler.domain.models import TimeSlot

USER = "alice"
CALENDAR = "team-calendar"


def at(clock: str, day: str = "2024-11-25"):
    return pendulum.parse(f"{day} {clock}", tz="UTC")


def slot(start: str, end: str) -> TimeSlot:
    return TimeSlot(start=at(start), end=at(end))


class StubProviderClient:
    """Minimal stub matching ProviderClientProtocol."""

    def __init__(self, events: Optional[Dict[str, List[TimeSlot]]] = None, fail: bool = False):
        self.events = events or {}
        self.fail = fail
        self.calls: List[Tuple[str, str, str]] = []

    def list_busy_events(self, calendar_id, range_start, range_end):
        self.calls.append(
            (calendar_id, range_start.to_datetime_string(), range_end.to_datetime_string())
        )
        if self.fail:
            raise ProviderUnavailableError("provider down")
        return list(self.events.get(calendar_id, []))
