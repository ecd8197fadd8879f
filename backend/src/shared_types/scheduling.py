"""
Shared types for scheduling and conflict resolution.

This module contains the value types exchanged between the scheduling
services: the half-open TimeInterval, practitioner WorkingHours, the
ConflictReport built when a booking collides, and the tagged BookingResult
returned by the booking coordinator.
"""

from dataclasses import dataclass, field
from datetime import date as date_type, datetime, time
from typing import TYPE_CHECKING, List, Optional, Union

from core.exceptions import SchedulingValidationError
from utils.datetime_utils import ensure_clinic_tz, format_time, parse_date_string, parse_time_string, time_to_minutes

if TYPE_CHECKING:
    from models.appointment import Appointment


def _validate_wall_clock(value: object, field_name: str) -> None:
    if not isinstance(value, time):
        raise SchedulingValidationError(f"{field_name} must be a time of day")
    if value.tzinfo is not None:
        raise SchedulingValidationError(f"{field_name} must be clinic-local (naive) time")
    if value.second or value.microsecond:
        raise SchedulingValidationError(f"{field_name} must be at minute granularity")


@dataclass(frozen=True, order=True)
class TimeInterval:
    """
    Half-open interval [start, end) on a single clinic-local calendar day.

    Intervals on different dates never overlap: each day is an independent
    conflict domain. Ordering is chronological (date, start, end).

    Raises:
        SchedulingValidationError: If start >= end or a value is malformed
    """
    date: date_type
    start: time
    end: time

    def __post_init__(self) -> None:
        if not isinstance(self.date, date_type) or isinstance(self.date, datetime):
            raise SchedulingValidationError("date must be a calendar date")
        _validate_wall_clock(self.start, "start")
        _validate_wall_clock(self.end, "end")
        if self.start >= self.end:
            raise SchedulingValidationError("End time must be after start time")

    @classmethod
    def from_strings(cls, date_str: str, start_str: str, end_str: str) -> "TimeInterval":
        """Build an interval from "YYYY-MM-DD" and "HH:MM" / "h:mm AM/PM" strings."""
        try:
            return cls(
                date=parse_date_string(date_str),
                start=parse_time_string(start_str),
                end=parse_time_string(end_str),
            )
        except ValueError as e:
            if isinstance(e, SchedulingValidationError):
                raise
            raise SchedulingValidationError(str(e)) from e

    @property
    def duration_minutes(self) -> int:
        return time_to_minutes(self.end) - time_to_minutes(self.start)

    def overlaps(self, other: "TimeInterval") -> bool:
        """True when both intervals share at least one minute on the same date."""
        if self.date != other.date:
            return False
        return self.start < other.end and other.start < self.end

    def contains(self, point: Union[time, datetime]) -> bool:
        """
        True when start <= point < end.

        Aware datetimes are converted to clinic-local time first and must
        then fall on this interval's date.
        """
        if isinstance(point, datetime):
            point = ensure_clinic_tz(point)
            if point.date() != self.date:
                return False
            point = point.time().replace(tzinfo=None)
        return self.start <= point < self.end

    def __str__(self) -> str:
        return f"{self.date.isoformat()} [{format_time(self.start)},{format_time(self.end)})"


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """Half-open overlap predicate: a.start < b.end and b.start < a.end on the same date."""
    return a.overlaps(b)


def contains(interval: TimeInterval, point: Union[time, datetime]) -> bool:
    return interval.contains(point)


def duration(interval: TimeInterval) -> int:
    """Interval length in minutes."""
    return interval.duration_minutes


@dataclass(frozen=True)
class WorkingHours:
    """Daily open/close window bounding valid slots for a practitioner."""
    open: time
    close: time

    def __post_init__(self) -> None:
        _validate_wall_clock(self.open, "open")
        _validate_wall_clock(self.close, "close")
        if self.open >= self.close:
            raise SchedulingValidationError("Opening time must be before closing time")

    @property
    def length_minutes(self) -> int:
        return time_to_minutes(self.close) - time_to_minutes(self.open)

    def covers(self, interval: TimeInterval) -> bool:
        """True when the interval lies fully within [open, close]."""
        return self.open <= interval.start and interval.end <= self.close


@dataclass(frozen=True)
class BlockingAppointment:
    """The existing appointment that blocks a requested slot."""
    appointment_id: int
    patient_display_name: str
    interval: TimeInterval


@dataclass(frozen=True)
class AlternativePractitioner:
    """Another practitioner and whether they are free for the requested interval."""
    practitioner_id: int
    name: str
    is_free: bool


@dataclass(frozen=True)
class ConflictReport:
    """
    Structured alternatives returned when a requested booking collides.

    Purely a query result; never persisted.
    """
    blocking_appointment: BlockingAppointment
    alternative_practitioners: List[AlternativePractitioner] = field(default_factory=list)
    alternative_slots: List[TimeInterval] = field(default_factory=list)
    next_available_slot: Optional[TimeInterval] = None


@dataclass(frozen=True)
class AvailabilityCheck:
    """Result of a non-committing availability probe."""
    available: bool


@dataclass(frozen=True)
class Booked:
    """The booking committed; carries the persisted appointment."""
    appointment: "Appointment"


@dataclass(frozen=True)
class Conflict:
    """The slot was taken; carries the conflict report and a user-facing sentence."""
    report: ConflictReport
    message: str


BookingResult = Union[Booked, Conflict]
