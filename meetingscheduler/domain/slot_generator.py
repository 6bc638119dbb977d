"""
Core business logic for generating available meeting slots.

Pure domain logic: no API calls, no database, no I/O. The same inputs always
produce the same output.
"""

from typing import List, Optional, Sequence

from pendulum import DateTime

from .models import TimeSlot


class AvailabilitySlotGenerator:
    """
    Generates fixed-duration free slots around an ordered list of busy intervals.

    Algorithm:
    1. Start a cursor at the beginning of the range
    2. For each busy interval (in order), emit back-to-back slots from the
       cursor while a whole slot still ends at or before the interval's start
    3. Jump the cursor to the end of the busy interval (never backwards)
    4. After the last busy interval, emit slots up to the end of the range
    5. Slice the complete result for the requested page

    Busy intervals are not merged; overlapping ones simply move the cursor
    several times.
    """

    def generate(
        self,
        range_start: DateTime,
        range_end: DateTime,
        slot_duration_minutes: int,
        busy_slots: Sequence[TimeSlot],
        page: int = 0,
        size: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Generate available slots and return one page of them.

        Args:
            range_start: Start of the search range
            range_end: End of the search range (a slot may end exactly here)
            slot_duration_minutes: Length of every generated slot
            busy_slots: Busy intervals ordered by start time
            page: Zero-based page number
            size: Page size; ``None`` returns every slot

        Returns:
            Slots ordered by start time, each exactly ``slot_duration_minutes`` long
        """
        slots = self.generate_all(
            range_start=range_start,
            range_end=range_end,
            slot_duration_minutes=slot_duration_minutes,
            busy_slots=busy_slots,
        )
        return self.paginate(slots, page=page, size=size)

    def generate_all(
        self,
        range_start: DateTime,
        range_end: DateTime,
        slot_duration_minutes: int,
        busy_slots: Sequence[TimeSlot],
    ) -> List[TimeSlot]:
        """Generate every available slot in the range, unpaginated."""
        if slot_duration_minutes <= 0:
            raise ValueError(
                f"Slot duration must be positive, got {slot_duration_minutes}"
            )

        available: List[TimeSlot] = []
        cursor = range_start

        for busy in busy_slots:
            cursor = self._fill_until(available, cursor, busy.start, slot_duration_minutes)

            # Jump past the busy interval, even if it started before the cursor
            if busy.end > cursor:
                cursor = busy.end

        self._fill_until(available, cursor, range_end, slot_duration_minutes)

        return available

    @staticmethod
    def paginate(
        slots: List[TimeSlot],
        page: int = 0,
        size: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Slice an already generated list.

        Example: 25 slots, page=2, size=10 -> slots[20:25]
        """
        if size is None:
            return list(slots)

        offset = page * size
        return slots[offset:offset + size]

    @staticmethod
    def _fill_until(
        available: List[TimeSlot],
        cursor: DateTime,
        limit: DateTime,
        slot_duration_minutes: int,
    ) -> DateTime:
        """
        Append back-to-back slots from ``cursor`` that end at or before ``limit``.

        Returns the advanced cursor.
        """
        slot_end = cursor.add(minutes=slot_duration_minutes)

        while slot_end <= limit:
            available.append(TimeSlot(start=cursor, end=slot_end))
            cursor = slot_end
            slot_end = cursor.add(minutes=slot_duration_minutes)

        return cursor
