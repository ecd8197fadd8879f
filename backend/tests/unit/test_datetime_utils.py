"""
Unit tests for datetime utilities.

Tests clinic timezone handling and the date/time parsing helpers.
"""

import pytest
from datetime import date, datetime, time, timedelta, timezone

from core.config import CLINIC_UTC_OFFSET_MINUTES
from utils.datetime_utils import (
    CLINIC_TZ, clinic_now, clinic_today, ensure_clinic_tz, format_time,
    minutes_to_time, parse_date_string, parse_time_string, time_to_minutes
)


class TestClinicTimezone:
    """Test clinic timezone utilities."""

    def test_clinic_now_returns_timezone_aware_datetime(self):
        now = clinic_now()

        assert now.tzinfo is not None
        assert now.tzinfo == CLINIC_TZ

    def test_clinic_tz_uses_configured_offset(self):
        assert CLINIC_TZ.utcoffset(None) == timedelta(minutes=CLINIC_UTC_OFFSET_MINUTES)

    def test_clinic_today_matches_clinic_now(self):
        assert clinic_today() in (clinic_now().date(), clinic_now().date() - timedelta(days=1))


class TestEnsureClinicTz:
    """Test ensure_clinic_tz function."""

    def test_naive_datetime_is_interpreted_as_clinic_time(self):
        result = ensure_clinic_tz(datetime(2024, 1, 1, 10, 0))

        assert result.tzinfo == CLINIC_TZ
        assert result.hour == 10

    def test_aware_datetime_is_converted(self):
        utc_dt = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)

        result = ensure_clinic_tz(utc_dt)

        assert result.tzinfo == CLINIC_TZ
        assert result == utc_dt

    def test_none_passes_through(self):
        assert ensure_clinic_tz(None) is None


class TestParseDateString:
    """Test parse_date_string function."""

    def test_dash_and_slash_formats(self):
        assert parse_date_string("2024-06-01") == date(2024, 6, 1)
        assert parse_date_string("2024/6/1") == date(2024, 6, 1)

    @pytest.mark.parametrize("value", ["", "   ", "2024.06.01", "2024-13-01", "2024-06"])
    def test_invalid_dates_raise(self, value):
        with pytest.raises(ValueError):
            parse_date_string(value)


class TestParseTimeString:
    """Test parse_time_string: 24-hour HH:MM and 12-hour h:mm AM/PM."""

    @pytest.mark.parametrize("value,expected", [
        ("09:30", time(9, 30)),
        ("9:30", time(9, 30)),
        ("17:00", time(17, 0)),
        ("00:00", time(0, 0)),
        ("23:59", time(23, 59)),
    ])
    def test_24_hour_format(self, value, expected):
        assert parse_time_string(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("9:30 AM", time(9, 30)),
        ("9:30 am", time(9, 30)),
        ("5:15PM", time(17, 15)),
        ("12:00 AM", time(0, 0)),
        ("12:45 PM", time(12, 45)),
    ])
    def test_12_hour_format(self, value, expected):
        assert parse_time_string(value) == expected

    @pytest.mark.parametrize("value", ["", "24:00", "9:60", "13:00 PM", "0:30 AM", "noon", "9"])
    def test_invalid_times_raise(self, value):
        with pytest.raises(ValueError):
            parse_time_string(value)


class TestMinuteArithmetic:
    """Test minute-of-day helpers."""

    def test_time_to_minutes_and_back(self):
        assert time_to_minutes(time(10, 30)) == 630
        assert minutes_to_time(630) == time(10, 30)

    def test_minutes_outside_day_raise(self):
        with pytest.raises(ValueError):
            minutes_to_time(24 * 60)
        with pytest.raises(ValueError):
            minutes_to_time(-1)

    def test_format_time(self):
        assert format_time(time(9, 5)) == "09:05"
