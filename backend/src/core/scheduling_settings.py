"""
Scheduling settings passed explicitly into the scheduling services.

Clinic hours, slot granularity and suggestion limits live in one validated
object. Services receive it as an argument instead of reading module globals,
so tests and callers can vary them per request.
"""

from datetime import time

from pydantic import BaseModel, Field, field_validator, model_validator

from core import config
from core.constants import MAX_SLOT_STEP_MINUTES, MIN_SLOT_STEP_MINUTES, MAX_SUGGESTION_HORIZON_DAYS
from shared_types.scheduling import WorkingHours
from utils.datetime_utils import parse_time_string


class SchedulingSettings(BaseModel):
    """Schema for scheduling settings."""
    default_open_time: time = Field(default=time(9, 0), description="Clinic opening time used for practitioners without their own hours.")
    default_close_time: time = Field(default=time(18, 0), description="Clinic closing time used for practitioners without their own hours.")
    slot_step_minutes: int = Field(default=15, ge=MIN_SLOT_STEP_MINUTES, le=MAX_SLOT_STEP_MINUTES, description="Granularity of candidate slot start times. 15 means candidates at 09:00, 09:15, 09:30, ...")
    max_alternative_slots: int = Field(default=5, ge=1, le=50, description="Maximum number of same-day alternative slots in a conflict report.")
    next_available_horizon_days: int = Field(default=14, ge=1, le=MAX_SUGGESTION_HORIZON_DAYS, description="Number of calendar days, counting the requested day, searched for the next available slot.")

    @field_validator('default_open_time', 'default_close_time', mode='before')
    @classmethod
    def parse_time(cls, v: object) -> object:
        if isinstance(v, str):
            return parse_time_string(v)
        return v

    @model_validator(mode='after')
    def validate_clinic_hours(self) -> "SchedulingSettings":
        if self.default_open_time >= self.default_close_time:
            raise ValueError('default_open_time must be before default_close_time')
        return self

    @property
    def default_working_hours(self) -> WorkingHours:
        """Clinic-wide working hours."""
        return WorkingHours(open=self.default_open_time, close=self.default_close_time)

    @classmethod
    def from_env(cls) -> "SchedulingSettings":
        """Build settings from the environment-backed values in core.config."""
        return cls(
            default_open_time=config.CLINIC_OPEN_TIME,
            default_close_time=config.CLINIC_CLOSE_TIME,
            slot_step_minutes=config.SLOT_STEP_MINUTES,
            max_alternative_slots=config.MAX_ALTERNATIVE_SLOTS,
            next_available_horizon_days=config.NEXT_AVAILABLE_HORIZON_DAYS,
        )
