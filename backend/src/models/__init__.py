# Package initialization
# Import all models to ensure relationships are properly established
from .patient import Patient
from .practitioner import Practitioner
from .appointment import Appointment, AppointmentStatus, AppointmentType, ACTIVE_STATUSES

__all__ = [
    "Patient",
    "Practitioner",
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "ACTIVE_STATUSES",
]
