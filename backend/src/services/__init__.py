"""
Services package for scheduling business logic.

This package contains service classes that encapsulate business logic
shared across the API endpoints.
"""

from .appointment_store import AppointmentStore
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .conflict_service import ConflictService
from .patient_service import PatientService
from .practitioner_service import PractitionerService
from .suggestion_service import SuggestionService

__all__ = [
    "AppointmentStore",
    "AvailabilityService",
    "BookingService",
    "ConflictService",
    "PatientService",
    "PractitionerService",
    "SuggestionService",
]
