"""
Datetime utilities for consistent timezone handling across the application.

This module provides utilities to ensure all datetime operations use the
clinic-local calendar consistently. The clinic runs on a single fixed UTC
offset (configured via CLINIC_UTC_OFFSET_MINUTES); appointment dates and
times are stored as naive values interpreted in that calendar.
"""

import logging
import re
from datetime import datetime, timezone, timedelta, date, time
from typing import Optional

from core.config import CLINIC_UTC_OFFSET_MINUTES

logger = logging.getLogger(__name__)

# Clinic timezone constant
CLINIC_TZ = timezone(timedelta(minutes=CLINIC_UTC_OFFSET_MINUTES))

MINUTES_PER_DAY = 24 * 60

_TIME_12H_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})\s*(AM|PM)$', re.IGNORECASE)
_TIME_24H_PATTERN = re.compile(r'^([01]?\d|2[0-3]):([0-5]\d)$')


def clinic_now() -> datetime:
    """
    Get current clinic-local datetime.

    All business logic in the application uses the clinic timezone.

    Returns:
        Current datetime with the clinic timezone
    """
    return datetime.now(CLINIC_TZ)


def clinic_today() -> date:
    """Get the current clinic-local calendar date."""
    return clinic_now().date()


def ensure_clinic_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in the clinic timezone.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware datetime in the clinic timezone, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # If naive, assume it's already clinic-local time
        return dt.replace(tzinfo=CLINIC_TZ)
    else:
        return dt.astimezone(CLINIC_TZ)


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD or YYYY/MM/DD format.

    Accepts both formats:
    - YYYY-MM-DD (e.g., "2022-01-01", "2022-1-1")
    - YYYY/MM/DD (e.g., "2022/01/01", "2022/1/1")

    Automatically normalizes single-digit months/days.

    Args:
        date_str: Date string in YYYY-MM-DD or YYYY/MM/DD format

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Date string cannot be empty")

    date_str = date_str.strip()

    if '/' in date_str:
        parts = date_str.split('/')
    elif '-' in date_str:
        parts = date_str.split('-')
    else:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    if len(parts) != 3:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    year = parts[0].zfill(4)
    month = parts[1].zfill(2)
    day = parts[2].zfill(2)

    normalized = f"{year}-{month}-{day}"

    try:
        return datetime.strptime(normalized, '%Y-%m-%d').date()
    except ValueError as e:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}") from e


def parse_time_string(time_str: str) -> time:
    """
    Parse a time-of-day string in 24-hour or 12-hour format.

    Accepts:
    - 24-hour "HH:MM" (e.g., "09:30", "9:30", "17:00")
    - 12-hour "h:mm AM/PM" (e.g., "9:30 AM", "12:00 pm", "5:15PM")

    12:xx AM maps to 00:xx and 12:xx PM stays 12:xx.

    Args:
        time_str: Time string

    Returns:
        Naive time object at minute granularity

    Raises:
        ValueError: If the string is not a valid time
    """
    if not time_str or not time_str.strip():
        raise ValueError("Time string cannot be empty")

    value = time_str.strip()

    match = _TIME_12H_PATTERN.match(value)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2))
        period = match.group(3).upper()
        if hour < 1 or hour > 12 or minute > 59:
            raise ValueError(f"Invalid time (expected h:mm AM/PM or HH:MM): {time_str}")
        if period == 'AM':
            hour = 0 if hour == 12 else hour
        else:
            hour = 12 if hour == 12 else hour + 12
        return time(hour, minute)

    match = _TIME_24H_PATTERN.match(value)
    if match:
        return time(int(match.group(1)), int(match.group(2)))

    raise ValueError(f"Invalid time (expected h:mm AM/PM or HH:MM): {time_str}")


def format_time(time_obj: time) -> str:
    """Format time object to HH:MM string."""
    return time_obj.strftime('%H:%M')


def time_to_minutes(time_obj: time) -> int:
    """Minutes elapsed since midnight."""
    return time_obj.hour * 60 + time_obj.minute


def minutes_to_time(total_minutes: int) -> time:
    """
    Convert minutes since midnight back to a time object.

    Raises:
        ValueError: If the value falls outside a single calendar day
    """
    if total_minutes < 0 or total_minutes >= MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of day range: {total_minutes}")
    return time(total_minutes // 60, total_minutes % 60)
