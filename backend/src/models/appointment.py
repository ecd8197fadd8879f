"""
Appointment model representing scheduled sessions between patients and practitioners.

Appointments are the only state the scheduling core writes. An appointment
occupies the half-open interval [start_time, end_time) on its date for its
practitioner. Only CONFIRMED and COMPLETED appointments are active and block
a slot; every other status frees it.
"""

from datetime import date as date_type, datetime, time
from enum import Enum
from typing import Optional

from sqlalchemy import String, ForeignKey, Index, TIMESTAMP, Date, Time, CheckConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_NOTES_LENGTH, MAX_REASON_LENGTH
from core.database import Base
from shared_types.scheduling import TimeInterval


class AppointmentStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    RESCHEDULED = "RESCHEDULED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


class AppointmentType(str, Enum):
    CONSULTATION = "CONSULTATION"
    FOLLOW_UP = "FOLLOW_UP"
    EMERGENCY = "EMERGENCY"
    PROCEDURE = "PROCEDURE"


ACTIVE_STATUSES = (AppointmentStatus.CONFIRMED.value, AppointmentStatus.COMPLETED.value)
"""Statuses that occupy a slot."""


def _in_list(column: str, values: list[str]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


_ACTIVE_PREDICATE = _in_list("status", list(ACTIVE_STATUSES))


class Appointment(Base):
    """
    Appointment entity for one patient with one practitioner in one time slot.

    The storage-level partial unique index on (practitioner_id, date, start_time)
    for active rows backs up the row-locked check in AppointmentStore; it
    catches identical starts but not partial overlaps, which the store itself
    guards.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    """Reference to the patient who has booked this appointment."""

    practitioner_id: Mapped[int] = mapped_column(ForeignKey("practitioners.id"))
    """Reference to the practitioner whose time is booked."""

    date: Mapped[date_type] = mapped_column(Date)
    """Clinic-local calendar date of the appointment."""

    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)

    status: Mapped[str] = mapped_column(String(20), default=AppointmentStatus.CONFIRMED.value, nullable=False)
    """Current status. Valid values: see AppointmentStatus."""

    type: Mapped[str] = mapped_column(String(20), default=AppointmentType.CONSULTATION.value, nullable=False)
    """Kind of visit. Valid values: see AppointmentType."""

    reason: Mapped[Optional[str]] = mapped_column(String(MAX_REASON_LENGTH), nullable=True)
    """Optional reason for the visit."""

    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)
    """Optional internal notes."""

    created_by_id: Mapped[Optional[int]] = mapped_column(nullable=True)
    """Identifier of the staff member who booked the appointment, if known."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    practitioner = relationship("Practitioner", back_populates="appointments")

    __table_args__ = (
        CheckConstraint('start_time < end_time', name='check_appointment_time_range'),
        CheckConstraint(_in_list("status", [s.value for s in AppointmentStatus]), name='check_appointment_status'),
        CheckConstraint(_in_list("type", [t.value for t in AppointmentType]), name='check_appointment_type'),
        # Conflict detection and day views
        Index('idx_appointments_practitioner_date', 'practitioner_id', 'date'),
        Index('idx_appointments_patient', 'patient_id'),
        Index('idx_appointments_status', 'status'),
        # Two active appointments can never start at the same minute for one practitioner
        Index(
            'uq_appointments_active_slot',
            'practitioner_id', 'date', 'start_time',
            unique=True,
            postgresql_where=text(_ACTIVE_PREDICATE),
            sqlite_where=text(_ACTIVE_PREDICATE),
        ),
    )

    @property
    def is_active(self) -> bool:
        """True when this appointment occupies its slot."""
        return self.status in ACTIVE_STATUSES

    @property
    def interval(self) -> TimeInterval:
        """The occupied [start_time, end_time) interval."""
        return TimeInterval(date=self.date, start=self.start_time, end=self.end_time)

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, practitioner_id={self.practitioner_id}, "
            f"date={self.date}, time={self.start_time}-{self.end_time}, status={self.status})>"
        )
