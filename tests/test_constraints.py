"""
Tests for request constraint checks.
"""

import pendulum
import pytest

from meetingscheduler.domain.constraints import ConstraintValidator
from meetingscheduler.domain.exceptions import (
    ConstraintViolationError,
    InvalidDurationError,
    InvalidPaginationError,
    InvalidRangeError,
)

START = pendulum.parse("2024-11-25 09:00", tz="UTC")


class TestRangeConstraints:
    """Tests for time range validation."""

    def test_accepts_range_up_to_seven_days(self):
        ConstraintValidator().validate_range(START, START.add(days=7))

    def test_rejects_range_over_seven_days(self):
        with pytest.raises(InvalidRangeError, match="cannot exceed 7 days"):
            ConstraintValidator().validate_range(START, START.add(days=7, minutes=1))

    def test_rejects_inverted_range(self):
        with pytest.raises(InvalidRangeError, match="Start time must be before end time"):
            ConstraintValidator().validate_range(START.add(hours=1), START)

    def test_rejects_empty_range(self):
        with pytest.raises(InvalidRangeError):
            ConstraintValidator().validate_range(START, START)

    def test_custom_span(self):
        """A configured span replaces the default."""
        validator = ConstraintValidator(max_range_days=1)

        with pytest.raises(InvalidRangeError, match="1 days"):
            validator.validate_range(START, START.add(days=2))


class TestDurationConstraints:
    """Tests for slot and meeting duration validation."""

    @pytest.mark.parametrize("minutes", [15, 60, 480])
    def test_accepts_slot_durations_in_bounds(self, minutes):
        ConstraintValidator().validate_slot_duration(minutes)

    @pytest.mark.parametrize("minutes", [0, 14, 481])
    def test_rejects_slot_durations_out_of_bounds(self, minutes):
        with pytest.raises(InvalidDurationError):
            ConstraintValidator().validate_slot_duration(minutes)

    def test_meeting_of_eight_hours_is_allowed(self):
        ConstraintValidator().validate_meeting_time(START, START.add(hours=8))

    def test_meeting_over_eight_hours_is_rejected(self):
        with pytest.raises(InvalidDurationError, match="Meeting duration cannot exceed"):
            ConstraintValidator().validate_meeting_time(START, START.add(hours=8, minutes=1))

    def test_inverted_meeting_is_a_range_error(self):
        with pytest.raises(InvalidRangeError):
            ConstraintValidator().validate_meeting_time(START.add(hours=1), START)


class TestPaginationConstraints:
    """Tests for page validation."""

    def test_rejects_negative_page(self):
        with pytest.raises(InvalidPaginationError):
            ConstraintValidator().validate_page(-1, 10)

    def test_rejects_empty_page_size(self):
        with pytest.raises(InvalidPaginationError):
            ConstraintValidator().validate_page(0, 0)

    def test_violations_share_a_base_class(self):
        """All constraint errors map to a client error."""
        with pytest.raises(ConstraintViolationError) as excinfo:
            ConstraintValidator().validate_page(0, 0)

        assert excinfo.value.status_code == 400
