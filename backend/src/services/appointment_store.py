"""
Appointment store for persisted appointment reads and conflict-safe writes.

This module owns every query and write against the appointments table made
by the scheduling core. Writes that must not double-book a practitioner
(insert_if_free, reschedule_if_free, re-activating a status) run their
overlap check and the write inside one transaction that holds the
practitioner's row lock (SELECT ... FOR UPDATE on PostgreSQL; on SQLite the
engine opens every transaction with BEGIN IMMEDIATE). The lock is released
by the commit or rollback at the end of the same call.
"""

import logging
from collections import defaultdict
from datetime import date as date_type
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import store_errors
from core.exceptions import AppointmentNotFoundError, SlotTakenError
from models import Appointment, AppointmentStatus, Practitioner, ACTIVE_STATUSES
from shared_types.scheduling import TimeInterval

logger = logging.getLogger(__name__)


class AppointmentStore:
    """
    Service class for appointment persistence.

    All reads return only what the database holds right now; nothing is
    cached between calls, so status changes are visible to the next check.
    """

    @staticmethod
    def _active_query(db: Session, practitioner_id: int, target_date: date_type):
        return db.query(Appointment).filter(
            Appointment.practitioner_id == practitioner_id,
            Appointment.date == target_date,
            Appointment.status.in_(ACTIVE_STATUSES)
        )

    @staticmethod
    def get_active_appointments(
        db: Session,
        practitioner_id: int,
        target_date: date_type,
        exclude_appointment_id: Optional[int] = None
    ) -> List[Appointment]:
        """
        Get the active appointments of one practitioner on one date.

        Args:
            db: Database session
            practitioner_id: Practitioner ID
            target_date: Clinic-local date
            exclude_appointment_id: Appointment to leave out (used when moving it)

        Returns:
            CONFIRMED/COMPLETED appointments ordered by start time ascending

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        with store_errors(db, "get_active_appointments"):
            query = AppointmentStore._active_query(db, practitioner_id, target_date)
            if exclude_appointment_id is not None:
                query = query.filter(Appointment.id != exclude_appointment_id)
            return query.order_by(Appointment.start_time.asc(), Appointment.id.asc()).all()

    @staticmethod
    def get_active_appointments_for_practitioners(
        db: Session,
        practitioner_ids: Iterable[int],
        target_date: date_type
    ) -> Dict[int, List[Appointment]]:
        """
        Snapshot the active appointments of several practitioners on one date.

        A single query, so the suggestion sub-searches all see the same state.

        Returns:
            Mapping practitioner_id -> appointments ordered by start. Every
            requested id is present, with an empty list when it has none.
        """
        ids = list(practitioner_ids)
        result: Dict[int, List[Appointment]] = {practitioner_id: [] for practitioner_id in ids}
        if not ids:
            return result

        with store_errors(db, "get_active_appointments_for_practitioners"):
            rows = db.query(Appointment).filter(
                Appointment.practitioner_id.in_(ids),
                Appointment.date == target_date,
                Appointment.status.in_(ACTIVE_STATUSES)
            ).order_by(Appointment.start_time.asc(), Appointment.id.asc()).all()

        for appointment in rows:
            result[appointment.practitioner_id].append(appointment)
        return result

    @staticmethod
    def get_active_appointments_in_range(
        db: Session,
        practitioner_id: int,
        start_date: date_type,
        end_date: date_type
    ) -> Dict[date_type, List[Appointment]]:
        """
        Get one practitioner's active appointments across a date range.

        Args:
            db: Database session
            practitioner_id: Practitioner ID
            start_date: First date, inclusive
            end_date: Last date, inclusive

        Returns:
            Mapping date -> appointments ordered by start. Dates without
            appointments are absent.
        """
        with store_errors(db, "get_active_appointments_in_range"):
            rows = db.query(Appointment).filter(
                Appointment.practitioner_id == practitioner_id,
                Appointment.date >= start_date,
                Appointment.date <= end_date,
                Appointment.status.in_(ACTIVE_STATUSES)
            ).order_by(Appointment.date.asc(), Appointment.start_time.asc(), Appointment.id.asc()).all()

        by_date: Dict[date_type, List[Appointment]] = defaultdict(list)
        for appointment in rows:
            by_date[appointment.date].append(appointment)
        return dict(by_date)

    @staticmethod
    def _lock_practitioner(db: Session, practitioner_id: int) -> None:
        """Take the practitioner row lock for the rest of the current transaction."""
        db.query(Practitioner.id).filter(
            Practitioner.id == practitioner_id
        ).with_for_update().first()

    @staticmethod
    def _find_overlap(
        db: Session,
        practitioner_id: int,
        interval: TimeInterval,
        exclude_appointment_id: Optional[int] = None
    ) -> Optional[Appointment]:
        """Earliest-starting active appointment overlapping the interval, if any."""
        query = AppointmentStore._active_query(db, practitioner_id, interval.date).filter(
            Appointment.start_time < interval.end,
            Appointment.end_time > interval.start
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.order_by(Appointment.start_time.asc(), Appointment.id.asc()).first()

    @staticmethod
    def _release_blocked(db: Session, blocking: Appointment) -> SlotTakenError:
        """
        End the transaction after a failed check and build the error.

        The blocking appointment is detached first so its loaded values
        survive the rollback without another query.
        """
        db.expunge(blocking)
        db.rollback()
        return SlotTakenError(blocking)

    @staticmethod
    def _commit_guarded(
        db: Session,
        practitioner_id: int,
        interval: TimeInterval,
        exclude_appointment_id: Optional[int] = None
    ) -> None:
        """
        Commit the pending write, mapping a unique-index violation to SlotTakenError.

        The partial unique index only fires when the row lock was bypassed
        (e.g. a write from outside this store).
        """
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            blocking = AppointmentStore._find_overlap(db, practitioner_id, interval, exclude_appointment_id)
            if blocking is None:
                raise
            logger.warning(f"Unique slot index rejected write for practitioner {practitioner_id} at {interval}: {e}")
            raise AppointmentStore._release_blocked(db, blocking) from e

    @staticmethod
    def insert_if_free(db: Session, appointment: Appointment) -> Appointment:
        """
        Insert an appointment only if its practitioner is free for its interval.

        The check and the insert form one atomic unit under the practitioner's
        row lock, so two concurrent calls for overlapping intervals can never
        both commit.

        Args:
            db: Database session
            appointment: Unsaved appointment with practitioner, date and times set

        Returns:
            The persisted appointment

        Raises:
            SlotTakenError: If an active appointment already overlaps the interval
            StoreUnavailableError: If the database cannot be reached
        """
        interval = appointment.interval
        with store_errors(db, "insert_if_free"):
            AppointmentStore._lock_practitioner(db, appointment.practitioner_id)
            blocking = AppointmentStore._find_overlap(db, appointment.practitioner_id, interval)
            if blocking is not None:
                logger.warning(
                    f"Slot {interval} for practitioner {appointment.practitioner_id} "
                    f"taken by appointment {blocking.id} before commit"
                )
                raise AppointmentStore._release_blocked(db, blocking)

            db.add(appointment)
            AppointmentStore._commit_guarded(db, appointment.practitioner_id, interval)
            db.refresh(appointment)

        logger.info(f"Inserted appointment {appointment.id} for practitioner {appointment.practitioner_id} at {interval}")
        return appointment

    @staticmethod
    def reschedule_if_free(
        db: Session,
        appointment: Appointment,
        practitioner_id: int,
        interval: TimeInterval,
        details: Optional[Dict[str, str]] = None
    ) -> Appointment:
        """
        Move an existing appointment to a new practitioner/interval if free.

        Same guarantee as insert_if_free; the appointment's own row is left
        out of the overlap check. Column values in details (type, reason,
        notes) are written in the same commit as the move.

        Raises:
            SlotTakenError: If another active appointment overlaps the target
            StoreUnavailableError: If the database cannot be reached
        """
        with store_errors(db, "reschedule_if_free"):
            AppointmentStore._lock_practitioner(db, practitioner_id)
            blocking = AppointmentStore._find_overlap(db, practitioner_id, interval, appointment.id)
            if blocking is not None:
                logger.warning(
                    f"Reschedule of appointment {appointment.id} to {interval} blocked by appointment {blocking.id}"
                )
                raise AppointmentStore._release_blocked(db, blocking)

            appointment.practitioner_id = practitioner_id
            appointment.date = interval.date
            appointment.start_time = interval.start
            appointment.end_time = interval.end
            for column, value in (details or {}).items():
                setattr(appointment, column, value)
            AppointmentStore._commit_guarded(db, practitioner_id, interval, appointment.id)
            db.refresh(appointment)

        logger.info(f"Rescheduled appointment {appointment.id} to practitioner {practitioner_id} at {interval}")
        return appointment

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Appointment:
        """
        Get an appointment by id.

        Raises:
            AppointmentNotFoundError: If no appointment has this id
            StoreUnavailableError: If the database cannot be reached
        """
        with store_errors(db, "get_appointment"):
            appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    @staticmethod
    def list_appointments(
        db: Session,
        practitioner_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        status: Optional[AppointmentStatus] = None,
        appointment_type: Optional[str] = None,
        start_date: Optional[date_type] = None,
        end_date: Optional[date_type] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Appointment], int]:
        """
        List appointments with optional filters and pagination.

        Args:
            db: Database session
            practitioner_id: Only this practitioner's appointments
            patient_id: Only this patient's appointments
            status: Only appointments with this status
            appointment_type: Only appointments of this type
            start_date: Earliest date, inclusive
            end_date: Latest date, inclusive
            page: 1-based page number
            limit: Page size

        Returns:
            (page of appointments ordered by date desc then start asc, total matching count)
        """
        with store_errors(db, "list_appointments"):
            query = db.query(Appointment)
            if practitioner_id is not None:
                query = query.filter(Appointment.practitioner_id == practitioner_id)
            if patient_id is not None:
                query = query.filter(Appointment.patient_id == patient_id)
            if status is not None:
                query = query.filter(Appointment.status == AppointmentStatus(status).value)
            if appointment_type is not None:
                query = query.filter(Appointment.type == appointment_type)
            if start_date is not None:
                query = query.filter(Appointment.date >= start_date)
            if end_date is not None:
                query = query.filter(Appointment.date <= end_date)

            total = query.count()
            items = (
                query.order_by(Appointment.date.desc(), Appointment.start_time.asc(), Appointment.id.asc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
        return items, total

    @staticmethod
    def list_calendar(
        db: Session,
        start_date: date_type,
        end_date: date_type,
        practitioner_id: Optional[int] = None
    ) -> List[Appointment]:
        """All appointments (any status) in [start_date, end_date], chronological."""
        with store_errors(db, "list_calendar"):
            query = db.query(Appointment).filter(
                Appointment.date >= start_date,
                Appointment.date <= end_date
            )
            if practitioner_id is not None:
                query = query.filter(Appointment.practitioner_id == practitioner_id)
            return query.order_by(
                Appointment.date.asc(), Appointment.start_time.asc(), Appointment.id.asc()
            ).all()

    @staticmethod
    def list_for_day(
        db: Session,
        day: date_type,
        practitioner_id: Optional[int] = None
    ) -> List[Appointment]:
        return AppointmentStore.list_calendar(db, day, day, practitioner_id)

    @staticmethod
    def update_status(db: Session, appointment_id: int, status: AppointmentStatus) -> Appointment:
        """
        Change an appointment's status.

        Moving an inactive appointment back to an active status occupies its
        slot again, so that transition is checked under the practitioner lock
        like an insert.

        Raises:
            AppointmentNotFoundError: If no appointment has this id
            SlotTakenError: If re-activation would overlap another active appointment
            StoreUnavailableError: If the database cannot be reached
        """
        new_status = AppointmentStatus(status)
        appointment = AppointmentStore.get_appointment(db, appointment_id)
        previous = appointment.status

        with store_errors(db, "update_status"):
            if not appointment.is_active and new_status.value in ACTIVE_STATUSES:
                AppointmentStore._lock_practitioner(db, appointment.practitioner_id)
                blocking = AppointmentStore._find_overlap(
                    db, appointment.practitioner_id, appointment.interval, appointment.id
                )
                if blocking is not None:
                    logger.warning(
                        f"Re-activating appointment {appointment.id} blocked by appointment {blocking.id}"
                    )
                    raise AppointmentStore._release_blocked(db, blocking)

            appointment.status = new_status.value
            AppointmentStore._commit_guarded(
                db, appointment.practitioner_id, appointment.interval, appointment.id
            )
            db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} status {previous} -> {appointment.status}")
        return appointment

    @staticmethod
    def cancel_appointment(db: Session, appointment_id: int) -> Appointment:
        """
        Cancel an appointment, freeing its slot. Cancelling twice is a no-op.

        Raises:
            AppointmentNotFoundError: If no appointment has this id
        """
        return AppointmentStore.update_status(db, appointment_id, AppointmentStatus.CANCELLED)
