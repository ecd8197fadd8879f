"""
Conflict detection for candidate appointment intervals.

A candidate conflicts with an existing appointment when both are active,
belong to the same practitioner and their half-open intervals overlap on
the same date.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from models import Appointment
from services.appointment_store import AppointmentStore
from shared_types.scheduling import TimeInterval

logger = logging.getLogger(__name__)


class ConflictService:
    """
    Service class for conflict detection.
    """

    @staticmethod
    def find_blocking(
        appointments: Iterable[Appointment],
        candidate: TimeInterval
    ) -> Optional[Appointment]:
        """
        Scan appointments for the first one overlapping the candidate.

        Args:
            appointments: Active appointments sorted by start time ascending
            candidate: Requested interval

        Returns:
            The earliest-starting overlapping appointment, or None
        """
        for appointment in appointments:
            if appointment.interval.overlaps(candidate):
                return appointment
        return None

    @staticmethod
    def detect_conflict(
        db: Session,
        candidate: TimeInterval,
        practitioner_id: int,
        exclude_appointment_id: Optional[int] = None
    ) -> Optional[Appointment]:
        """
        Check a candidate interval against the store.

        Reads the store on every call; never cached.

        Args:
            db: Database session
            candidate: Requested interval
            practitioner_id: Practitioner the interval is requested for
            exclude_appointment_id: Appointment being moved, ignored in the check

        Returns:
            The blocking appointment, or None when the interval is free

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        appointments = AppointmentStore.get_active_appointments(
            db, practitioner_id, candidate.date, exclude_appointment_id
        )
        blocking = ConflictService.find_blocking(appointments, candidate)
        if blocking is not None:
            logger.debug(f"Candidate {candidate} for practitioner {practitioner_id} blocked by appointment {blocking.id}")
        return blocking
