"""
Integration tests for AppointmentStore against a real database.

Covers active-appointment reads, conflict-safe insert and reschedule,
status changes, listings and store-outage translation.
"""

import pytest
from datetime import date, time, timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from core.exceptions import AppointmentNotFoundError, SlotTakenError, StoreUnavailableError
from models import Appointment, AppointmentStatus
from services.appointment_store import AppointmentStore
from shared_types.scheduling import TimeInterval

DAY = date(2030, 3, 4)


def new_appointment(practitioner, patient, start: time, end: time, day: date = DAY) -> Appointment:
    return Appointment(
        practitioner_id=practitioner.id,
        patient_id=patient.id,
        date=day,
        start_time=start,
        end_time=end,
    )


class TestActiveAppointments:
    """Only CONFIRMED and COMPLETED appointments are returned, sorted by start."""

    def test_filters_inactive_and_sorts(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        late = make_appointment(practitioner, patient, DAY, time(14, 0), time(14, 30))
        early = make_appointment(practitioner, patient, DAY, time(9, 0), time(9, 30), AppointmentStatus.COMPLETED)
        make_appointment(practitioner, patient, DAY, time(10, 0), time(10, 30), AppointmentStatus.CANCELLED)
        make_appointment(practitioner, patient, DAY, time(11, 0), time(11, 30), AppointmentStatus.NO_SHOW)
        make_appointment(practitioner, patient, DAY, time(12, 0), time(12, 30), AppointmentStatus.RESCHEDULED)

        result = AppointmentStore.get_active_appointments(db_session, practitioner.id, DAY)

        assert [a.id for a in result] == [early.id, late.id]

    def test_exclude_appointment(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        moved = make_appointment(practitioner, patient, DAY, time(9, 0), time(9, 30))

        assert AppointmentStore.get_active_appointments(db_session, practitioner.id, DAY, moved.id) == []

    def test_snapshot_for_several_practitioners(self, db_session, make_practitioner, make_patient, make_appointment):
        first = make_practitioner("A", "One")
        second = make_practitioner("B", "Two")
        idle = make_practitioner("C", "Three")
        patient = make_patient()
        a1 = make_appointment(first, patient, DAY, time(9, 0), time(9, 30))
        a2 = make_appointment(second, patient, DAY, time(9, 0), time(9, 30))
        make_appointment(second, patient, DAY + timedelta(days=1), time(9, 0), time(9, 30))

        snapshot = AppointmentStore.get_active_appointments_for_practitioners(
            db_session, [first.id, second.id, idle.id], DAY
        )

        assert [a.id for a in snapshot[first.id]] == [a1.id]
        assert [a.id for a in snapshot[second.id]] == [a2.id]
        assert snapshot[idle.id] == []

    def test_range_groups_by_date(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        make_appointment(practitioner, patient, DAY, time(9, 0), time(9, 30))
        inside = make_appointment(practitioner, patient, DAY + timedelta(days=2), time(9, 0), time(9, 30))
        make_appointment(practitioner, patient, DAY + timedelta(days=5), time(9, 0), time(9, 30))

        by_date = AppointmentStore.get_active_appointments_in_range(
            db_session, practitioner.id, DAY + timedelta(days=1), DAY + timedelta(days=4)
        )

        assert list(by_date.keys()) == [DAY + timedelta(days=2)]
        assert [a.id for a in by_date[DAY + timedelta(days=2)]] == [inside.id]


class TestInsertIfFree:
    """The check and the insert run as one unit."""

    def test_inserts_when_free(self, db_session, make_practitioner, make_patient):
        practitioner = make_practitioner()
        patient = make_patient()

        saved = AppointmentStore.insert_if_free(db_session, new_appointment(practitioner, patient, time(10, 0), time(10, 30)))

        assert saved.id is not None
        assert saved.status == AppointmentStatus.CONFIRMED.value
        assert saved.created_at is not None

    def test_adjacent_slots_both_insert(self, db_session, make_practitioner, make_patient):
        practitioner = make_practitioner()
        patient = make_patient()

        AppointmentStore.insert_if_free(db_session, new_appointment(practitioner, patient, time(10, 0), time(10, 30)))
        AppointmentStore.insert_if_free(db_session, new_appointment(practitioner, patient, time(10, 30), time(11, 0)))

        assert len(AppointmentStore.get_active_appointments(db_session, practitioner.id, DAY)) == 2

    def test_overlap_raises_slot_taken_with_blocker(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        existing = make_appointment(practitioner, patient, DAY, time(10, 0), time(11, 0))

        with pytest.raises(SlotTakenError) as exc_info:
            AppointmentStore.insert_if_free(db_session, new_appointment(practitioner, patient, time(10, 30), time(11, 30)))

        assert exc_info.value.blocking_appointment.id == existing.id
        assert len(AppointmentStore.get_active_appointments(db_session, practitioner.id, DAY)) == 1

    def test_cancelled_slot_can_be_rebooked(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        make_appointment(practitioner, patient, DAY, time(10, 0), time(10, 30), AppointmentStatus.CANCELLED)

        saved = AppointmentStore.insert_if_free(db_session, new_appointment(practitioner, patient, time(10, 0), time(10, 30)))

        assert saved.id is not None

    def test_other_practitioner_does_not_block(self, db_session, make_practitioner, make_patient, make_appointment):
        first = make_practitioner("A", "One")
        second = make_practitioner("B", "Two")
        patient = make_patient()
        make_appointment(first, patient, DAY, time(10, 0), time(10, 30))

        saved = AppointmentStore.insert_if_free(db_session, new_appointment(second, patient, time(10, 0), time(10, 30)))

        assert saved.practitioner_id == second.id


class TestRescheduleIfFree:

    def test_move_within_own_slot(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        appointment = make_appointment(practitioner, patient, DAY, time(10, 0), time(11, 0))

        moved = AppointmentStore.reschedule_if_free(
            db_session, appointment, practitioner.id, TimeInterval(DAY, time(10, 30), time(11, 30))
        )

        assert (moved.start_time, moved.end_time) == (time(10, 30), time(11, 30))

    def test_move_onto_other_appointment_raises(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        appointment = make_appointment(practitioner, patient, DAY, time(9, 0), time(9, 30))
        other = make_appointment(practitioner, patient, DAY, time(10, 0), time(10, 30))

        with pytest.raises(SlotTakenError) as exc_info:
            AppointmentStore.reschedule_if_free(
                db_session, appointment, practitioner.id, TimeInterval(DAY, time(10, 15), time(10, 45))
            )

        assert exc_info.value.blocking_appointment.id == other.id
        db_session.refresh(appointment)
        assert appointment.start_time == time(9, 0)


class TestStatusChanges:

    def test_cancel_frees_slot(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        appointment = make_appointment(practitioner, patient, DAY, time(10, 0), time(10, 30))

        cancelled = AppointmentStore.cancel_appointment(db_session, appointment.id)

        assert cancelled.status == AppointmentStatus.CANCELLED.value
        assert AppointmentStore.get_active_appointments(db_session, practitioner.id, DAY) == []

    def test_reactivation_into_taken_slot_raises(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        old = make_appointment(practitioner, patient, DAY, time(10, 0), time(10, 30), AppointmentStatus.CANCELLED)
        make_appointment(practitioner, patient, DAY, time(10, 0), time(10, 30))

        with pytest.raises(SlotTakenError):
            AppointmentStore.update_status(db_session, old.id, AppointmentStatus.CONFIRMED)

    def test_completed_keeps_slot(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        appointment = make_appointment(practitioner, patient, DAY, time(10, 0), time(10, 30))

        AppointmentStore.update_status(db_session, appointment.id, AppointmentStatus.COMPLETED)

        assert len(AppointmentStore.get_active_appointments(db_session, practitioner.id, DAY)) == 1

    def test_unknown_appointment_raises(self, db_session):
        with pytest.raises(AppointmentNotFoundError):
            AppointmentStore.update_status(db_session, 999999, AppointmentStatus.CANCELLED)


class TestListings:

    def test_list_paginates_and_orders(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        for offset in range(3):
            make_appointment(practitioner, patient, DAY + timedelta(days=offset), time(9, 0), time(9, 30))
            make_appointment(practitioner, patient, DAY + timedelta(days=offset), time(8, 0), time(8, 30))

        items, total = AppointmentStore.list_appointments(db_session, practitioner_id=practitioner.id, page=1, limit=4)

        assert total == 6
        assert len(items) == 4
        # Newest date first, earliest start first within a date
        assert (items[0].date, items[0].start_time) == (DAY + timedelta(days=2), time(8, 0))
        assert (items[1].date, items[1].start_time) == (DAY + timedelta(days=2), time(9, 0))

    def test_list_filters_by_status(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        make_appointment(practitioner, patient, DAY, time(9, 0), time(9, 30))
        cancelled = make_appointment(practitioner, patient, DAY, time(10, 0), time(10, 30), AppointmentStatus.CANCELLED)

        items, total = AppointmentStore.list_appointments(
            db_session, practitioner_id=practitioner.id, status=AppointmentStatus.CANCELLED
        )

        assert total == 1 and items[0].id == cancelled.id

    def test_calendar_range_is_chronological(self, db_session, make_practitioner, make_patient, make_appointment):
        practitioner = make_practitioner()
        patient = make_patient()
        second = make_appointment(practitioner, patient, DAY + timedelta(days=1), time(9, 0), time(9, 30))
        first = make_appointment(practitioner, patient, DAY, time(15, 0), time(15, 30))
        make_appointment(practitioner, patient, DAY + timedelta(days=9), time(9, 0), time(9, 30))

        items = AppointmentStore.list_calendar(db_session, DAY, DAY + timedelta(days=1), practitioner.id)

        assert [a.id for a in items] == [first.id, second.id]


class TestStoreUnavailable:

    def test_operational_error_is_translated(self, db_session):
        with patch.object(db_session, "query", side_effect=OperationalError("SELECT 1", {}, Exception("down"))):
            with pytest.raises(StoreUnavailableError):
                AppointmentStore.get_active_appointments(db_session, 1, DAY)
