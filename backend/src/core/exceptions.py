"""
Domain exceptions for the scheduling core.

Conflicts are not modeled here as faults: the booking coordinator turns a
SlotTakenError into a Conflict result that callers branch on.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.appointment import Appointment


class SchedulingValidationError(ValueError):
    """Raised for malformed requests: bad intervals, past dates, unknown ids."""
    pass


class AppointmentNotFoundError(LookupError):
    """Raised when an appointment id does not exist."""
    def __init__(self, appointment_id: int):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} not found")


class SlotTakenError(Exception):
    """Exception raised by the store when an active appointment already holds the slot."""
    def __init__(self, blocking_appointment: "Appointment"):
        self.blocking_appointment = blocking_appointment
        super().__init__(
            f"Slot blocked by appointment {blocking_appointment.id}"
        )


class StoreUnavailableError(Exception):
    """Raised when the persistence layer cannot be reached."""
    pass
