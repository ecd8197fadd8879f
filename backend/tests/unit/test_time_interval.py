"""
Unit tests for the TimeInterval value type and WorkingHours.
"""

import pytest
from datetime import date, datetime, time, timezone

from core.exceptions import SchedulingValidationError
from shared_types.scheduling import TimeInterval, WorkingHours, contains, duration, overlaps
from utils.datetime_utils import CLINIC_TZ

DAY = date(2024, 6, 1)


def interval(start: str, end: str, day: date = DAY) -> TimeInterval:
    return TimeInterval.from_strings(day.isoformat(), start, end)


class TestConstruction:
    """Test TimeInterval validation."""

    def test_valid_interval(self):
        iv = TimeInterval(date=DAY, start=time(10, 0), end=time(10, 30))

        assert iv.duration_minutes == 30
        assert duration(iv) == 30

    @pytest.mark.parametrize("start,end", [(time(10, 0), time(10, 0)), (time(11, 0), time(10, 0))])
    def test_zero_length_or_inverted_raises(self, start, end):
        with pytest.raises(SchedulingValidationError, match="End time must be after start time"):
            TimeInterval(date=DAY, start=start, end=end)

    def test_seconds_are_rejected(self):
        with pytest.raises(SchedulingValidationError):
            TimeInterval(date=DAY, start=time(10, 0, 30), end=time(10, 30))

    def test_datetime_instead_of_date_is_rejected(self):
        with pytest.raises(SchedulingValidationError):
            TimeInterval(date=datetime(2024, 6, 1, 10, 0), start=time(10, 0), end=time(10, 30))

    def test_from_strings_accepts_12_hour_times(self):
        iv = TimeInterval.from_strings("2024-06-01", "9:30 AM", "1:00 PM")

        assert iv.start == time(9, 30)
        assert iv.end == time(13, 0)

    def test_from_strings_wraps_parse_errors(self):
        with pytest.raises(SchedulingValidationError):
            TimeInterval.from_strings("2024-06-01", "25:00", "26:00")


class TestOverlap:
    """Test half-open overlap semantics."""

    def test_adjacent_intervals_do_not_overlap(self):
        assert overlaps(interval("10:00", "10:30"), interval("10:30", "11:00")) is False

    def test_contained_interval_overlaps(self):
        assert overlaps(interval("10:00", "11:00"), interval("10:30", "10:45")) is True

    def test_partial_overlap_is_symmetric(self):
        a = interval("10:00", "10:45")
        b = interval("10:30", "11:00")

        assert a.overlaps(b) and b.overlaps(a)

    def test_different_dates_never_overlap(self):
        assert overlaps(interval("10:00", "11:00"), interval("10:00", "11:00", date(2024, 6, 2))) is False


class TestContains:
    """Test point containment."""

    def test_start_is_inside_end_is_outside(self):
        iv = interval("10:00", "10:30")

        assert contains(iv, time(10, 0))
        assert contains(iv, time(10, 29))
        assert not contains(iv, time(10, 30))

    def test_datetime_must_match_date(self):
        iv = interval("10:00", "10:30")

        assert iv.contains(datetime(2024, 6, 1, 10, 15))
        assert not iv.contains(datetime(2024, 6, 2, 10, 15))

    def test_aware_datetime_is_read_in_clinic_time(self):
        iv = interval("10:00", "10:30")
        as_utc = datetime(2024, 6, 1, 10, 15, tzinfo=CLINIC_TZ).astimezone(timezone.utc)

        assert iv.contains(as_utc)


class TestSerialization:

    def test_str_uses_hh_mm(self):
        assert str(interval("9:00", "9:30")) == "2024-06-01 [09:00,09:30)"

    def test_ordering_is_chronological(self):
        later = interval("11:00", "11:30")
        earlier = interval("09:00", "09:30")

        assert sorted([later, earlier]) == [earlier, later]


class TestWorkingHours:

    def test_open_must_precede_close(self):
        with pytest.raises(SchedulingValidationError):
            WorkingHours(open=time(18, 0), close=time(9, 0))

    def test_covers(self):
        hours = WorkingHours(open=time(9, 0), close=time(17, 0))

        assert hours.length_minutes == 480
        assert hours.covers(interval("16:30", "17:00"))
        assert not hours.covers(interval("16:45", "17:15"))
