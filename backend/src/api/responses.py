"""
Shared response models for API endpoints.

This module contains Pydantic response models for the appointment
endpoints, and the converters from domain values to those models.
"""

from datetime import datetime, date as date_type
from typing import List, Optional

from pydantic import BaseModel

from models import Appointment
from shared_types.scheduling import ConflictReport, TimeInterval
from utils.datetime_utils import format_time


class TimeIntervalResponse(BaseModel):
    """A [start_time, end_time) slot on a date. Times are HH:MM."""
    date: date_type
    start_time: str
    end_time: str

    @classmethod
    def from_interval(cls, interval: TimeInterval) -> "TimeIntervalResponse":
        return cls(
            date=interval.date,
            start_time=format_time(interval.start),
            end_time=format_time(interval.end)
        )


class AppointmentResponse(BaseModel):
    """Response model for appointment details."""
    id: int
    patient_id: int
    practitioner_id: int
    date: date_type
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    status: str
    type: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            patient_id=appointment.patient_id,
            practitioner_id=appointment.practitioner_id,
            date=appointment.date,
            start_time=format_time(appointment.start_time),
            end_time=format_time(appointment.end_time),
            status=appointment.status,
            type=appointment.type,
            reason=appointment.reason,
            notes=appointment.notes,
            created_by_id=appointment.created_by_id,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at
        )


class BlockingAppointmentResponse(BaseModel):
    """The existing appointment that blocks the requested slot."""
    appointment_id: int
    patient_display_name: str
    interval: TimeIntervalResponse


class AlternativePractitionerResponse(BaseModel):
    practitioner_id: int
    name: str
    is_free: bool


class ConflictReportResponse(BaseModel):
    """Alternatives offered when a booking collides."""
    blocking_appointment: BlockingAppointmentResponse
    alternative_practitioners: List[AlternativePractitionerResponse]
    alternative_slots: List[TimeIntervalResponse]
    next_available_slot: Optional[TimeIntervalResponse] = None

    @classmethod
    def from_report(cls, report: ConflictReport) -> "ConflictReportResponse":
        blocking = report.blocking_appointment
        return cls(
            blocking_appointment=BlockingAppointmentResponse(
                appointment_id=blocking.appointment_id,
                patient_display_name=blocking.patient_display_name,
                interval=TimeIntervalResponse.from_interval(blocking.interval)
            ),
            alternative_practitioners=[
                AlternativePractitionerResponse(
                    practitioner_id=p.practitioner_id, name=p.name, is_free=p.is_free
                )
                for p in report.alternative_practitioners
            ],
            alternative_slots=[TimeIntervalResponse.from_interval(s) for s in report.alternative_slots],
            next_available_slot=(
                TimeIntervalResponse.from_interval(report.next_available_slot)
                if report.next_available_slot else None
            )
        )


class AvailabilityResponse(BaseModel):
    """Response model for an availability probe."""
    available: bool


class AppointmentEnvelope(BaseModel):
    """Success wrapper for a single appointment."""
    success: bool = True
    message: Optional[str] = None
    data: AppointmentResponse


class ConflictEnvelope(BaseModel):
    """409 body returned when the requested slot is taken."""
    success: bool = False
    message: str
    conflict: ConflictReportResponse


class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class AppointmentListResponse(BaseModel):
    """Response model for listing appointments."""
    success: bool = True
    data: List[AppointmentResponse]
    meta: Optional[PaginationMeta] = None


class FreeSlotsResponse(BaseModel):
    """Free slots of one practitioner on one date."""
    practitioner_id: int
    date: date_type
    duration_minutes: int
    slots: List[TimeIntervalResponse]


class MessageResponse(BaseModel):
    success: bool = True
    message: str
