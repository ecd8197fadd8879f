# pyright: reportMissingTypeStubs=false
"""
Appointment scheduling API endpoints.

Booking, rescheduling, availability probes and appointment listings. A taken
slot is not an error here: create and reschedule answer 409 with a conflict
report the caller can pick an alternative from.
"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from core.constants import DEFAULT_PAGE_SIZE, MAX_NOTES_LENGTH, MAX_PAGE_SIZE, MAX_REASON_LENGTH
from core.database import get_db
from core.exceptions import (
    AppointmentNotFoundError, SchedulingValidationError, SlotTakenError, StoreUnavailableError
)
from core.scheduling_settings import SchedulingSettings
from models import AppointmentStatus, AppointmentType
from services import AppointmentStore, AvailabilityService, BookingService
from shared_types.scheduling import Booked, BookingResult, TimeInterval
from utils.datetime_utils import clinic_today, parse_date_string
from api.responses import (
    AppointmentEnvelope, AppointmentListResponse, AppointmentResponse, AvailabilityResponse,
    ConflictEnvelope, ConflictReportResponse, FreeSlotsResponse, MessageResponse,
    PaginationMeta, TimeIntervalResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()

STORE_UNAVAILABLE_DETAIL = "Appointment store is temporarily unavailable"


def get_scheduling_settings() -> SchedulingSettings:
    """FastAPI dependency supplying scheduling settings to endpoints."""
    return SchedulingSettings.from_env()


# ===== Request Models =====

class AppointmentCreateRequest(BaseModel):
    """Request model for booking an appointment. Times accept HH:MM or h:mm AM/PM."""
    patient_id: int
    practitioner_id: int
    date: str = Field(..., description="YYYY-MM-DD")
    start_time: str = Field(..., description="HH:MM or h:mm AM/PM")
    end_time: str = Field(..., description="HH:MM or h:mm AM/PM")
    type: AppointmentType = AppointmentType.CONSULTATION
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)
    created_by_id: Optional[int] = None


class AppointmentRescheduleRequest(BaseModel):
    """Request model for moving an appointment. Omitted type, reason and notes stay unchanged."""
    date: str = Field(..., description="YYYY-MM-DD")
    start_time: str = Field(..., description="HH:MM or h:mm AM/PM")
    end_time: str = Field(..., description="HH:MM or h:mm AM/PM")
    practitioner_id: Optional[int] = None
    type: Optional[AppointmentType] = None
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class AppointmentStatusRequest(BaseModel):
    status: AppointmentStatus


# ===== Helpers =====

def _parse_date_param(value: str, name: str):
    try:
        return parse_date_string(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} (expected YYYY-MM-DD): {value}"
        )


def _booking_response(result: BookingResult, success_status: int, message: str) -> JSONResponse:
    """Render a BookingResult as the success envelope or the 409 conflict body."""
    if isinstance(result, Booked):
        body = AppointmentEnvelope(
            message=message,
            data=AppointmentResponse.from_model(result.appointment)
        )
        return JSONResponse(status_code=success_status, content=body.model_dump(mode="json"))

    body = ConflictEnvelope(
        message=result.message,
        conflict=ConflictReportResponse.from_report(result.report)
    )
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump(mode="json"))


# ===== Availability =====

@router.get("/availability", summary="Check whether a slot is free", response_model=AvailabilityResponse)
def check_availability(
    practitioner_id: int = Query(...),
    date: str = Query(..., description="YYYY-MM-DD"),
    start_time: str = Query(..., description="HH:MM or h:mm AM/PM"),
    end_time: str = Query(..., description="HH:MM or h:mm AM/PM"),
    db: Session = Depends(get_db)
) -> AvailabilityResponse:
    """Non-committing probe. Repeating it without intervening writes gives the same answer."""
    try:
        interval = TimeInterval.from_strings(date, start_time, end_time)
        result = AvailabilityService.check_availability(
            db, practitioner_id, interval.date, interval.start, interval.end
        )
        return AvailabilityResponse(available=result.available)
    except HTTPException:
        raise
    except SchedulingValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)
    except Exception as e:
        logger.exception(f"Failed to check availability: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check availability"
        )


@router.get(
    "/practitioners/{practitioner_id}/free-slots",
    summary="List free slots for a practitioner on a date",
    response_model=FreeSlotsResponse
)
def get_free_slots(
    practitioner_id: int,
    date: str = Query(..., description="YYYY-MM-DD"),
    duration_minutes: int = Query(..., description="Slot length in minutes"),
    db: Session = Depends(get_db),
    settings: SchedulingSettings = Depends(get_scheduling_settings)
) -> FreeSlotsResponse:
    try:
        target_date = _parse_date_param(date, "date")
        slots = AvailabilityService.get_free_slots(
            db, practitioner_id, target_date, duration_minutes, None, settings
        )
        return FreeSlotsResponse(
            practitioner_id=practitioner_id,
            date=target_date,
            duration_minutes=duration_minutes,
            slots=[TimeIntervalResponse.from_interval(s) for s in slots]
        )
    except HTTPException:
        raise
    except SchedulingValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)
    except Exception as e:
        logger.exception(f"Failed to list free slots for practitioner {practitioner_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list free slots"
        )


# ===== Listings =====

@router.get("/", summary="List appointments", response_model=AppointmentListResponse)
def list_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    practitioner_id: Optional[int] = Query(None),
    patient_id: Optional[int] = Query(None),
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    type_filter: Optional[AppointmentType] = Query(None, alias="type"),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db)
) -> AppointmentListResponse:
    """List appointments, newest date first, with pagination metadata."""
    try:
        items, total = AppointmentStore.list_appointments(
            db,
            practitioner_id=practitioner_id,
            patient_id=patient_id,
            status=status_filter,
            appointment_type=type_filter.value if type_filter else None,
            start_date=_parse_date_param(start_date, "start_date") if start_date else None,
            end_date=_parse_date_param(end_date, "end_date") if end_date else None,
            page=page,
            limit=limit
        )
        return AppointmentListResponse(
            data=[AppointmentResponse.from_model(a) for a in items],
            meta=PaginationMeta(
                total=total,
                page=page,
                limit=limit,
                total_pages=math.ceil(total / limit) if total else 0
            )
        )
    except HTTPException:
        raise
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)
    except Exception as e:
        logger.exception(f"Failed to list appointments: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list appointments"
        )


@router.get("/calendar", summary="Appointments in a date range", response_model=AppointmentListResponse)
def get_calendar(
    start_date: str = Query(..., description="YYYY-MM-DD"),
    end_date: str = Query(..., description="YYYY-MM-DD"),
    practitioner_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
) -> AppointmentListResponse:
    try:
        start = _parse_date_param(start_date, "start_date")
        end = _parse_date_param(end_date, "end_date")
        if end < start:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="end_date must not be before start_date"
            )
        items = AppointmentStore.list_calendar(db, start, end, practitioner_id)
        return AppointmentListResponse(data=[AppointmentResponse.from_model(a) for a in items])
    except HTTPException:
        raise
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)
    except Exception as e:
        logger.exception(f"Failed to load calendar: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load calendar"
        )


@router.get("/today", summary="Today's appointments", response_model=AppointmentListResponse)
def get_today(
    practitioner_id: Optional[int] = Query(None),
    db: Session = Depends(get_db)
) -> AppointmentListResponse:
    """Appointments on the clinic-local current date, earliest first."""
    try:
        items = AppointmentStore.list_for_day(db, clinic_today(), practitioner_id)
        return AppointmentListResponse(data=[AppointmentResponse.from_model(a) for a in items])
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)
    except Exception as e:
        logger.exception(f"Failed to load today's appointments: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load today's appointments"
        )


# ===== Booking =====

@router.post(
    "/",
    summary="Book an appointment",
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ConflictEnvelope, "description": "Slot taken; body carries alternatives"}}
)
def create_appointment(
    request: AppointmentCreateRequest,
    db: Session = Depends(get_db),
    settings: SchedulingSettings = Depends(get_scheduling_settings)
) -> JSONResponse:
    """
    Book an appointment.

    Returns 201 with the appointment, or 409 with a conflict report when the
    slot is taken, including when a concurrent request committed first.
    """
    try:
        interval = TimeInterval.from_strings(request.date, request.start_time, request.end_time)
        result = BookingService.create_appointment(
            db,
            patient_id=request.patient_id,
            practitioner_id=request.practitioner_id,
            target_date=interval.date,
            start=interval.start,
            end=interval.end,
            settings=settings,
            appointment_type=request.type,
            reason=request.reason,
            notes=request.notes,
            created_by_id=request.created_by_id
        )
        return _booking_response(result, status.HTTP_201_CREATED, "Appointment created successfully")
    except HTTPException:
        raise
    except SchedulingValidationError as e:
        logger.warning(f"Rejected booking request: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)
    except Exception as e:
        logger.exception(f"Failed to create appointment: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create appointment"
        )


@router.get("/{appointment_id}", summary="Get appointment details", response_model=AppointmentEnvelope)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db)
) -> AppointmentEnvelope:
    try:
        appointment = AppointmentStore.get_appointment(db, appointment_id)
        return AppointmentEnvelope(data=AppointmentResponse.from_model(appointment))
    except AppointmentNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)
    except Exception as e:
        logger.exception(f"Failed to get appointment {appointment_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get appointment"
        )


@router.put(
    "/{appointment_id}/reschedule",
    summary="Move an appointment to another slot",
    responses={409: {"model": ConflictEnvelope, "description": "Target slot taken; body carries alternatives"}}
)
def reschedule_appointment(
    appointment_id: int,
    request: AppointmentRescheduleRequest,
    db: Session = Depends(get_db),
    settings: SchedulingSettings = Depends(get_scheduling_settings)
) -> JSONResponse:
    try:
        interval = TimeInterval.from_strings(request.date, request.start_time, request.end_time)
        result = BookingService.reschedule_appointment(
            db,
            appointment_id=appointment_id,
            target_date=interval.date,
            start=interval.start,
            end=interval.end,
            settings=settings,
            practitioner_id=request.practitioner_id,
            appointment_type=request.type,
            reason=request.reason,
            notes=request.notes
        )
        return _booking_response(result, status.HTTP_200_OK, "Appointment rescheduled successfully")
    except HTTPException:
        raise
    except AppointmentNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    except SchedulingValidationError as e:
        logger.warning(f"Rejected reschedule of appointment {appointment_id}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)
    except Exception as e:
        logger.exception(f"Failed to reschedule appointment {appointment_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reschedule appointment"
        )


@router.put("/{appointment_id}/status", summary="Update appointment status", response_model=AppointmentEnvelope)
def update_status(
    appointment_id: int,
    request: AppointmentStatusRequest,
    db: Session = Depends(get_db)
) -> AppointmentEnvelope:
    """Set the status. Re-activating into a slot that is now taken answers 409."""
    try:
        appointment = AppointmentStore.update_status(db, appointment_id, request.status)
        return AppointmentEnvelope(
            message=f"Appointment marked as {appointment.status}",
            data=AppointmentResponse.from_model(appointment)
        )
    except AppointmentNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    except SlotTakenError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Slot is now held by appointment {e.blocking_appointment.id}"
        )
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)
    except Exception as e:
        logger.exception(f"Failed to update status of appointment {appointment_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update appointment status"
        )


@router.delete("/{appointment_id}", summary="Cancel appointment", response_model=MessageResponse)
def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db)
) -> MessageResponse:
    try:
        AppointmentStore.cancel_appointment(db, appointment_id)
        return MessageResponse(message="Appointment cancelled successfully")
    except AppointmentNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    except StoreUnavailableError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STORE_UNAVAILABLE_DETAIL)
    except Exception as e:
        logger.exception(f"Failed to cancel appointment {appointment_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel appointment"
        )
