"""
Tests for domain models.
"""

import dataclasses

import pendulum
import pytest

from meetingscheduler.domain.models import Meeting, Page, TimeSlot


def _at(clock: str, day: str = "2024-11-25"):
    return pendulum.parse(f"{day} {clock}", tz="UTC")


class TestTimeSlot:
    """Tests for TimeSlot model."""

    def test_create_valid_time_slot(self):
        """Test creating a valid slot derives its duration."""
        slot = TimeSlot(start=_at("09:00"), end=_at("17:00"))

        assert slot.start == _at("09:00")
        assert slot.end == _at("17:00")
        assert slot.duration_minutes() == 480
        assert slot.duration.total_seconds() == 8 * 3600

    def test_invalid_time_slot_raises_error(self):
        """Test that an inverted slot raises ValueError."""
        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeSlot(start=_at("17:00"), end=_at("09:00"))

    def test_empty_time_slot_raises_error(self):
        """Test that a zero-length slot is rejected."""
        with pytest.raises(ValueError):
            TimeSlot(start=_at("09:00"), end=_at("09:00"))

    def test_slot_is_immutable(self):
        """Test that slots cannot be mutated after construction."""
        slot = TimeSlot(start=_at("09:00"), end=_at("10:00"))

        with pytest.raises(dataclasses.FrozenInstanceError):
            slot.end = _at("11:00")

    def test_overlaps(self):
        """Test overlap detection ignores shared boundaries."""
        morning = TimeSlot(start=_at("09:00"), end=_at("12:00"))
        late_morning = TimeSlot(start=_at("11:00"), end=_at("14:00"))
        afternoon = TimeSlot(start=_at("12:00"), end=_at("17:00"))

        assert morning.overlaps(late_morning)
        assert late_morning.overlaps(morning)
        assert not morning.overlaps(afternoon)

    def test_touches_includes_shared_boundaries(self):
        """Test that touching counts exact boundary equality."""
        morning = TimeSlot(start=_at("09:00"), end=_at("12:00"))
        afternoon = TimeSlot(start=_at("12:00"), end=_at("17:00"))
        evening = TimeSlot(start=_at("18:00"), end=_at("19:00"))

        assert morning.touches(afternoon)
        assert afternoon.touches(morning)
        assert not morning.touches(evening)


class TestMeeting:
    """Tests for Meeting model."""

    def test_new_meeting_gets_identifier_and_initial_version(self):
        """Test that new meetings are unsaved with version 0."""
        first = Meeting.new(calendar_id="cal", title="Standup", start=_at("09:00"), end=_at("09:15"))
        second = Meeting.new(calendar_id="cal", title="Standup", start=_at("09:00"), end=_at("09:15"))

        assert first.id != second.id
        assert first.version == 0
        assert first.slot == TimeSlot(start=_at("09:00"), end=_at("09:15"))


class TestPage:
    """Tests for Page model."""

    def test_total_pages_rounds_up(self):
        assert Page(items=[], page=0, size=10, total=21).total_pages == 3
        assert Page(items=[], page=0, size=10, total=0).total_pages == 0
