"""
Booking service: the transactional entry point for creating and moving appointments.

Each attempt walks a small state machine:

    VALIDATING -> CHECKING -> COMMITTING -> COMMITTED
                          \\-> BLOCKED -> REPORTING
                 COMMITTING -> BLOCKED   (another request won the race)

CHECKING is an optimistic pre-check; the only guarantee against double
booking is AppointmentStore.insert_if_free / reschedule_if_free. A lost race
is reported exactly like an ordinary conflict. Nothing is retried
automatically.
"""

import logging
from datetime import date as date_type, time
from enum import Enum
from typing import Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from core.constants import SLOT_UNAVAILABLE_MESSAGE
from core.exceptions import SchedulingValidationError, SlotTakenError
from core.scheduling_settings import SchedulingSettings
from models import Appointment, AppointmentStatus, AppointmentType, Practitioner
from services.appointment_store import AppointmentStore
from services.conflict_service import ConflictService
from services.patient_service import PatientService
from services.practitioner_service import PractitionerService
from services.suggestion_service import SuggestionService
from shared_types.scheduling import Booked, BookingResult, Conflict, TimeInterval
from utils.datetime_utils import clinic_now

logger = logging.getLogger(__name__)


class BookingState(str, Enum):
    VALIDATING = "VALIDATING"
    CHECKING = "CHECKING"
    COMMITTING = "COMMITTING"
    COMMITTED = "COMMITTED"
    BLOCKED = "BLOCKED"
    REPORTING = "REPORTING"


_TRANSITIONS: Dict[BookingState, FrozenSet[BookingState]] = {
    BookingState.VALIDATING: frozenset({BookingState.CHECKING}),
    BookingState.CHECKING: frozenset({BookingState.COMMITTING, BookingState.BLOCKED}),
    BookingState.COMMITTING: frozenset({BookingState.COMMITTED, BookingState.BLOCKED}),
    BookingState.BLOCKED: frozenset({BookingState.REPORTING}),
    BookingState.COMMITTED: frozenset(),
    BookingState.REPORTING: frozenset(),
}


class BookingAttempt:
    """Tracks the state of a single booking attempt."""

    def __init__(self, label: str):
        self.label = label
        self.state = BookingState.VALIDATING

    def advance(self, new_state: BookingState) -> None:
        """
        Move to new_state.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal booking transition {self.state.value} -> {new_state.value}")
        logger.debug(f"{self.label}: {self.state.value} -> {new_state.value}")
        self.state = new_state


def _validate_not_past(target_date: date_type) -> None:
    today = clinic_now().date()
    if target_date < today:
        raise SchedulingValidationError(f"Cannot book a date in the past: {target_date.isoformat()}")


class BookingService:
    """
    Service class for booking operations.
    """

    @staticmethod
    def _report_conflict(
        db: Session,
        attempt: BookingAttempt,
        practitioner: Practitioner,
        interval: TimeInterval,
        blocking: Appointment,
        settings: SchedulingSettings,
        exclude_appointment_id: Optional[int] = None
    ) -> Conflict:
        attempt.advance(BookingState.REPORTING)
        report = SuggestionService.build_report(
            db, practitioner, interval, blocking, settings, exclude_appointment_id
        )
        return Conflict(report=report, message=SLOT_UNAVAILABLE_MESSAGE)

    @staticmethod
    def create_appointment(
        db: Session,
        patient_id: int,
        practitioner_id: int,
        target_date: date_type,
        start: time,
        end: time,
        settings: SchedulingSettings,
        appointment_type: AppointmentType = AppointmentType.CONSULTATION,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        created_by_id: Optional[int] = None
    ) -> BookingResult:
        """
        Book an appointment, or explain why the slot is unavailable.

        Args:
            db: Database session
            patient_id: Patient ID
            practitioner_id: Practitioner ID
            target_date: Clinic-local date
            start: Start time
            end: End time
            settings: Scheduling settings used for suggestions
            appointment_type: Kind of visit
            reason: Optional reason for the visit
            notes: Optional internal notes
            created_by_id: Optional id of the staff member booking

        Returns:
            Booked(appointment) on success, Conflict(report, message) when the
            slot is taken (including a race lost at commit time)

        Raises:
            SchedulingValidationError: If the interval is malformed, the date is in
                the past, or the practitioner or patient is unknown
            StoreUnavailableError: If the database cannot be reached
        """
        attempt = BookingAttempt(f"create p={practitioner_id} {target_date} {start}-{end}")

        # VALIDATING
        interval = TimeInterval(date=target_date, start=start, end=end)
        _validate_not_past(interval.date)
        practitioner = PractitionerService.get_active_practitioner(db, practitioner_id)
        PatientService.require_patient(db, patient_id)
        try:
            appointment_type = AppointmentType(appointment_type)
        except ValueError as e:
            raise SchedulingValidationError(f"Invalid appointment type: {appointment_type}") from e

        attempt.advance(BookingState.CHECKING)
        blocking = ConflictService.detect_conflict(db, interval, practitioner.id)
        if blocking is not None:
            attempt.advance(BookingState.BLOCKED)
            logger.info(f"Booking blocked for practitioner {practitioner.id} at {interval} by appointment {blocking.id}")
            return BookingService._report_conflict(db, attempt, practitioner, interval, blocking, settings)

        attempt.advance(BookingState.COMMITTING)
        appointment = Appointment(
            patient_id=patient_id,
            practitioner_id=practitioner.id,
            date=interval.date,
            start_time=interval.start,
            end_time=interval.end,
            status=AppointmentStatus.CONFIRMED.value,
            type=appointment_type.value,
            reason=reason,
            notes=notes,
            created_by_id=created_by_id
        )
        try:
            appointment = AppointmentStore.insert_if_free(db, appointment)
        except SlotTakenError as e:
            attempt.advance(BookingState.BLOCKED)
            logger.warning(
                f"Lost booking race for practitioner {practitioner.id} at {interval} "
                f"to appointment {e.blocking_appointment.id}"
            )
            return BookingService._report_conflict(
                db, attempt, practitioner, interval, e.blocking_appointment, settings
            )

        attempt.advance(BookingState.COMMITTED)
        logger.info(f"Booked appointment {appointment.id} for patient {patient_id} with practitioner {practitioner.id} at {interval}")
        return Booked(appointment=appointment)

    @staticmethod
    def reschedule_appointment(
        db: Session,
        appointment_id: int,
        target_date: date_type,
        start: time,
        end: time,
        settings: SchedulingSettings,
        practitioner_id: Optional[int] = None,
        appointment_type: Optional[AppointmentType] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None
    ) -> BookingResult:
        """
        Move an existing appointment to a new interval, optionally with another practitioner.

        Follows the same states as create_appointment. The appointment's own
        current slot never blocks the move.

        Args:
            db: Database session
            appointment_id: Appointment to move
            target_date: New date
            start: New start time
            end: New end time
            settings: Scheduling settings used for suggestions
            practitioner_id: New practitioner; defaults to the current one
            appointment_type: New visit type; unchanged when None
            reason: New reason; unchanged when None
            notes: New notes; unchanged when None

        Returns:
            Booked(appointment) or Conflict(report, message)

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
            SchedulingValidationError: If the interval is malformed, the date is in
                the past, the practitioner is unknown, or the appointment is not CONFIRMED
            StoreUnavailableError: If the database cannot be reached
        """
        attempt = BookingAttempt(f"reschedule a={appointment_id} {target_date} {start}-{end}")

        # VALIDATING
        interval = TimeInterval(date=target_date, start=start, end=end)
        _validate_not_past(interval.date)
        appointment = AppointmentStore.get_appointment(db, appointment_id)
        if appointment.status != AppointmentStatus.CONFIRMED.value:
            raise SchedulingValidationError(
                f"Only confirmed appointments can be rescheduled (appointment {appointment_id} is {appointment.status})"
            )
        practitioner = PractitionerService.get_active_practitioner(
            db, practitioner_id if practitioner_id is not None else appointment.practitioner_id
        )

        attempt.advance(BookingState.CHECKING)
        blocking = ConflictService.detect_conflict(db, interval, practitioner.id, appointment.id)
        if blocking is not None:
            attempt.advance(BookingState.BLOCKED)
            logger.info(f"Reschedule of appointment {appointment.id} to {interval} blocked by appointment {blocking.id}")
            return BookingService._report_conflict(
                db, attempt, practitioner, interval, blocking, settings, appointment.id
            )

        attempt.advance(BookingState.COMMITTING)
        details: Dict[str, str] = {}
        if appointment_type is not None:
            details["type"] = appointment_type.value
        if reason is not None:
            details["reason"] = reason
        if notes is not None:
            details["notes"] = notes
        try:
            appointment = AppointmentStore.reschedule_if_free(db, appointment, practitioner.id, interval, details)
        except SlotTakenError as e:
            attempt.advance(BookingState.BLOCKED)
            logger.warning(
                f"Lost reschedule race for appointment {appointment.id} at {interval} "
                f"to appointment {e.blocking_appointment.id}"
            )
            return BookingService._report_conflict(
                db, attempt, practitioner, interval, e.blocking_appointment, settings, appointment.id
            )

        attempt.advance(BookingState.COMMITTED)
        return Booked(appointment=appointment)
