"""
Shared type definitions for the clinic scheduler backend.

This module contains dataclasses and types that are used across multiple services.
"""

from shared_types.scheduling import (
    TimeInterval, WorkingHours, BlockingAppointment, AlternativePractitioner,
    ConflictReport, AvailabilityCheck, Booked, Conflict, BookingResult,
)

__all__ = [
    "TimeInterval",
    "WorkingHours",
    "BlockingAppointment",
    "AlternativePractitioner",
    "ConflictReport",
    "AvailabilityCheck",
    "Booked",
    "Conflict",
    "BookingResult",
]
