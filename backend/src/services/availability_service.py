"""
Availability service for free-slot enumeration and availability probes.

This module contains the slot enumerator used by the conflict report and
the free-slots endpoint, and the non-committing availability probe.
"""

import logging
from datetime import date as date_type, time
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from core.exceptions import SchedulingValidationError
from core.scheduling_settings import SchedulingSettings
from models import Appointment
from services.appointment_store import AppointmentStore
from services.conflict_service import ConflictService
from services.practitioner_service import PractitionerService
from shared_types.scheduling import AvailabilityCheck, TimeInterval, WorkingHours
from utils.datetime_utils import minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service class for availability operations.

    Slot enumeration is pure; the db-backed helpers only fetch the active
    appointments and working hours it needs.
    """

    @staticmethod
    def _generate_candidate_slots(
        target_date: date_type,
        working_hours: WorkingHours,
        duration_minutes: int,
        step_minutes: int
    ) -> List[TimeInterval]:
        """
        Generate candidate slots inside working hours.

        Starts run from the opening time in step_minutes increments up to
        close - duration inclusive, so every slot lies within [open, close].

        Args:
            target_date: Date of the slots
            working_hours: Daily window
            duration_minutes: Length of each slot
            step_minutes: Distance between consecutive starts

        Returns:
            Candidate intervals in chronological order
        """
        open_minutes = time_to_minutes(working_hours.open)
        last_start = time_to_minutes(working_hours.close) - duration_minutes

        candidates: List[TimeInterval] = []
        start = open_minutes
        while start <= last_start:
            candidates.append(TimeInterval(
                date=target_date,
                start=minutes_to_time(start),
                end=minutes_to_time(start + duration_minutes)
            ))
            start += step_minutes
        return candidates

    @staticmethod
    def generate_free_slots(
        target_date: date_type,
        working_hours: WorkingHours,
        duration_minutes: int,
        active_appointments: Sequence[Appointment],
        step_minutes: int,
        not_before: Optional[time] = None
    ) -> List[TimeInterval]:
        """
        Enumerate free slots of a given duration on one day.

        A duration longer than the working day yields an empty list.

        Args:
            target_date: Date to enumerate
            working_hours: Practitioner's daily window
            duration_minutes: Slot length in minutes
            active_appointments: The practitioner's active appointments that day
            step_minutes: Candidate start granularity
            not_before: Drop candidates starting before this time

        Returns:
            Free slots in chronological order

        Raises:
            SchedulingValidationError: If duration_minutes or step_minutes is not positive
        """
        if duration_minutes <= 0:
            raise SchedulingValidationError("Duration must be a positive number of minutes")
        if step_minutes <= 0:
            raise SchedulingValidationError("Slot step must be a positive number of minutes")

        if duration_minutes > working_hours.length_minutes:
            return []

        free_slots: List[TimeInterval] = []
        for candidate in AvailabilityService._generate_candidate_slots(
            target_date, working_hours, duration_minutes, step_minutes
        ):
            if not_before is not None and candidate.start < not_before:
                continue
            if ConflictService.find_blocking(active_appointments, candidate) is None:
                free_slots.append(candidate)
        return free_slots

    @staticmethod
    def get_free_slots(
        db: Session,
        practitioner_id: int,
        target_date: date_type,
        duration_minutes: int,
        working_hours: Optional[WorkingHours],
        settings: SchedulingSettings
    ) -> List[TimeInterval]:
        """
        Free slots for a practitioner on a date, read from the store.

        Args:
            db: Database session
            practitioner_id: Practitioner ID
            target_date: Date to enumerate
            duration_minutes: Slot length in minutes
            working_hours: Window to use; resolved from the registry when None
            settings: Scheduling settings (slot step, clinic default hours)

        Raises:
            SchedulingValidationError: If the practitioner is unknown or the duration invalid
            StoreUnavailableError: If the database cannot be reached
        """
        if working_hours is None:
            working_hours = PractitionerService.get_working_hours(db, practitioner_id, settings)

        appointments = AppointmentStore.get_active_appointments(db, practitioner_id, target_date)
        return AvailabilityService.generate_free_slots(
            target_date,
            working_hours,
            duration_minutes,
            appointments,
            settings.slot_step_minutes
        )

    @staticmethod
    def check_availability(
        db: Session,
        practitioner_id: int,
        target_date: date_type,
        start: time,
        end: time
    ) -> AvailabilityCheck:
        """
        Probe whether an interval is free without booking it.

        Probing never writes, so repeated probes with no writes in between
        return the same answer.

        Args:
            db: Database session
            practitioner_id: Practitioner ID
            target_date: Requested date
            start: Requested start time
            end: Requested end time

        Returns:
            AvailabilityCheck with available=True when nothing blocks the interval

        Raises:
            SchedulingValidationError: If the interval is malformed or the practitioner
                is unknown or inactive
            StoreUnavailableError: If the database cannot be reached
        """
        interval = TimeInterval(date=target_date, start=start, end=end)
        PractitionerService.get_active_practitioner(db, practitioner_id)

        blocking = ConflictService.detect_conflict(db, interval, practitioner_id)
        return AvailabilityCheck(available=blocking is None)
