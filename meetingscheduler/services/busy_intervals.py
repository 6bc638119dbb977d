"""
Busy-interval sources and their aggregation.

Two independent sources contribute busy time for a calendar: locally stored
meetings and events held by the external provider. Provider failures degrade
to an empty contribution; store failures propagate.
"""

from __future__ import annotations

import logging
from typing import List, Protocol, Sequence

import requests
from pendulum import DateTime

from ..adapters.meeting_store import MeetingStore
from ..domain.exceptions import ProviderUnavailableError
from ..domain.models import TimeSlot

logger = logging.getLogger(__name__)


class ProviderClientProtocol(Protocol):
    """Protocol describing the provider client behaviour needed by the sources."""

    def list_busy_events(
        self,
        calendar_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeSlot]:
        """Return external busy intervals for a calendar."""


class BusyIntervalSource(Protocol):
    """A capability that yields busy intervals for a calendar and range."""

    def busy_intervals(
        self,
        calendar_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeSlot]:
        """Return busy intervals overlapping the range, in any order."""


class LocalMeetingSource:
    """Busy intervals from meetings in the local store."""

    def __init__(self, store: MeetingStore) -> None:
        self._store = store

    def busy_intervals(
        self,
        calendar_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeSlot]:
        meetings = self._store.find_overlapping(calendar_id, range_start, range_end)
        return [meeting.slot for meeting in meetings]


class ProviderEventSource:
    """
    Busy intervals from the external provider.

    Transport, HTTP and decode failures are logged and reported as "no
    events", so results under an outage under-count busy time. Other errors
    raised by a client propagate.
    """

    def __init__(self, client: ProviderClientProtocol) -> None:
        self._client = client

    def busy_intervals(
        self,
        calendar_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeSlot]:
        try:
            return list(self._client.list_busy_events(calendar_id, range_start, range_end))
        except ProviderUnavailableError as exc:
            logger.error("Error getting external events for calendar %s: %s", calendar_id, exc)
        except (requests.RequestException, OSError, ValueError):
            logger.exception("Failed to get external events for calendar %s", calendar_id)

        return []


class BusyIntervalAggregator:
    """
    Combines busy intervals from every source into one ordered list.

    Intervals are sorted by start, then end. Overlapping or adjacent
    intervals are kept as they are; consumers walk the list directly.
    """

    def __init__(self, sources: Sequence[BusyIntervalSource]) -> None:
        self._sources = list(sources)

    def aggregate(
        self,
        calendar_id: str,
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[TimeSlot]:
        busy: List[TimeSlot] = []

        for source in self._sources:
            busy.extend(source.busy_intervals(calendar_id, range_start, range_end))

        busy.sort(key=TimeSlot.sort_key)

        logger.debug(
            "Aggregated %d busy interval(s) for calendar %s between %s and %s",
            len(busy),
            calendar_id,
            range_start,
            range_end,
        )
        return busy
