"""
Suggestion service for building conflict reports.

When a requested booking is blocked, the report offers three independent
kinds of alternative: other practitioners for the same interval, other free
slots with the same practitioner that day, and the next free slot in time.
All three are read-only searches over the store.
"""

import logging
from datetime import timedelta
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from core.scheduling_settings import SchedulingSettings
from models import Appointment, Practitioner
from services.appointment_store import AppointmentStore
from services.availability_service import AvailabilityService
from services.conflict_service import ConflictService
from services.patient_service import PatientService
from services.practitioner_service import PractitionerService
from shared_types.scheduling import (
    AlternativePractitioner, BlockingAppointment, ConflictReport, TimeInterval
)

logger = logging.getLogger(__name__)


def _without(appointments: Sequence[Appointment], appointment_id: Optional[int]) -> List[Appointment]:
    if appointment_id is None:
        return list(appointments)
    return [a for a in appointments if a.id != appointment_id]


class SuggestionService:
    """
    Service class for conflict report assembly.
    """

    @staticmethod
    def find_alternative_practitioners(
        practitioners: Sequence[Practitioner],
        requested_practitioner_id: int,
        interval: TimeInterval,
        snapshot: dict[int, List[Appointment]]
    ) -> List[AlternativePractitioner]:
        """
        List every other active practitioner with whether they are free.

        Args:
            practitioners: Active practitioners in registry order
            requested_practitioner_id: Practitioner that was requested (excluded)
            interval: Requested interval
            snapshot: Active appointments per practitioner on interval.date

        Returns:
            One entry per other practitioner, in registry order, free or not
        """
        alternatives: List[AlternativePractitioner] = []
        for practitioner in practitioners:
            if practitioner.id == requested_practitioner_id:
                continue
            blocking = ConflictService.find_blocking(snapshot.get(practitioner.id, []), interval)
            alternatives.append(AlternativePractitioner(
                practitioner_id=practitioner.id,
                name=practitioner.name,
                is_free=blocking is None
            ))
        return alternatives

    @staticmethod
    def find_next_available(
        db: Session,
        practitioner: Practitioner,
        interval: TimeInterval,
        same_day_appointments: Sequence[Appointment],
        settings: SchedulingSettings,
        exclude_appointment_id: Optional[int] = None
    ) -> Optional[TimeInterval]:
        """
        Find the earliest free slot at or after the requested start.

        Day 0 is the requested date, limited to starts at or after the
        requested start. Later days use the full working window. The horizon
        counts day 0, so a horizon of 14 searches the requested day and the
        13 days after it.

        Args:
            db: Database session
            practitioner: Requested practitioner
            interval: Requested interval (its duration is reused)
            same_day_appointments: Active appointments on the requested date
            settings: Scheduling settings (step, horizon, default hours)
            exclude_appointment_id: Appointment being moved, ignored as a blocker

        Returns:
            The first free slot found, or None within the horizon
        """
        working_hours = practitioner.working_hours(settings)
        duration_minutes = interval.duration_minutes
        step = settings.slot_step_minutes

        day0_slots = AvailabilityService.generate_free_slots(
            interval.date,
            working_hours,
            duration_minutes,
            same_day_appointments,
            step,
            not_before=interval.start
        )
        if day0_slots:
            return day0_slots[0]

        horizon = settings.next_available_horizon_days
        if horizon <= 1:
            return None

        first_day = interval.date + timedelta(days=1)
        last_day = interval.date + timedelta(days=horizon - 1)
        by_date = AppointmentStore.get_active_appointments_in_range(
            db, practitioner.id, first_day, last_day
        )

        for offset in range(1, horizon):
            day = interval.date + timedelta(days=offset)
            slots = AvailabilityService.generate_free_slots(
                day,
                working_hours,
                duration_minutes,
                _without(by_date.get(day, []), exclude_appointment_id),
                step
            )
            if slots:
                return slots[0]

        logger.info(
            f"No free {duration_minutes}-minute slot for practitioner {practitioner.id} "
            f"within {horizon} days of {interval.date}"
        )
        return None

    @staticmethod
    def build_report(
        db: Session,
        practitioner: Practitioner,
        interval: TimeInterval,
        blocking: Appointment,
        settings: SchedulingSettings,
        exclude_appointment_id: Optional[int] = None
    ) -> ConflictReport:
        """
        Assemble the conflict report for a blocked request.

        The requested day's active appointments of every active practitioner
        are read once and shared by the sub-searches.

        Args:
            db: Database session
            practitioner: Requested practitioner
            interval: Requested interval
            blocking: Appointment that blocks the request
            settings: Scheduling settings
            exclude_appointment_id: Appointment being moved, ignored as a blocker

        Returns:
            ConflictReport

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        active_practitioners = PractitionerService.list_active(db)
        practitioner_ids = [p.id for p in active_practitioners]
        if practitioner.id not in practitioner_ids:
            practitioner_ids.append(practitioner.id)

        snapshot = AppointmentStore.get_active_appointments_for_practitioners(
            db, practitioner_ids, interval.date
        )
        same_day = _without(snapshot[practitioner.id], exclude_appointment_id)

        alternative_practitioners = SuggestionService.find_alternative_practitioners(
            active_practitioners, practitioner.id, interval, snapshot
        )

        alternative_slots = AvailabilityService.generate_free_slots(
            interval.date,
            practitioner.working_hours(settings),
            interval.duration_minutes,
            same_day,
            settings.slot_step_minutes
        )[:settings.max_alternative_slots]

        next_available = SuggestionService.find_next_available(
            db, practitioner, interval, same_day, settings, exclude_appointment_id
        )

        report = ConflictReport(
            blocking_appointment=BlockingAppointment(
                appointment_id=blocking.id,
                patient_display_name=PatientService.get_display_name(db, blocking.patient_id),
                interval=blocking.interval
            ),
            alternative_practitioners=alternative_practitioners,
            alternative_slots=alternative_slots,
            next_available_slot=next_available
        )
        logger.info(
            f"Conflict report for practitioner {practitioner.id} at {interval}: "
            f"{sum(1 for p in alternative_practitioners if p.is_free)} free practitioners, "
            f"{len(alternative_slots)} same-day slots, next available {next_available}"
        )
        return report
