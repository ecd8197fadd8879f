"""
Practitioner model representing clinicians whose time can be booked.

Practitioners are read-only inputs to the scheduling core: the registry
supplies their identity and daily working hours, and the booking services
lock a practitioner's row while committing an appointment for them.
"""

from datetime import datetime, time
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, TIMESTAMP, Time, Boolean, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_STRING_LENGTH
from core.database import Base
from shared_types.scheduling import WorkingHours

if TYPE_CHECKING:
    from core.scheduling_settings import SchedulingSettings


class Practitioner(Base):
    """
    Practitioner entity with uniform daily working hours.

    When open_time/close_time are not set, the clinic default hours from
    SchedulingSettings apply.
    """

    __tablename__ = "practitioners"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the practitioner. Registry order is ascending id."""

    first_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    last_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))

    open_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    """Daily start of working hours. Null means the clinic default applies."""

    close_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    """Daily end of working hours. Null means the clinic default applies."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Inactive practitioners cannot be booked and are never suggested."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    appointments = relationship("Appointment", back_populates="practitioner")

    __table_args__ = (
        CheckConstraint(
            "open_time IS NULL OR close_time IS NULL OR open_time < close_time",
            name='check_practitioner_hours'
        ),
        Index('idx_practitioners_active', 'is_active'),
    )

    @property
    def name(self) -> str:
        """Display name, "first last"."""
        return f"{self.first_name} {self.last_name}"

    def working_hours(self, settings: "SchedulingSettings") -> WorkingHours:
        """
        Resolve this practitioner's daily window.

        Args:
            settings: Scheduling settings carrying the clinic default hours

        Returns:
            WorkingHours from the practitioner's own hours, or the clinic default
            when either bound is unset
        """
        if self.open_time is None or self.close_time is None:
            return settings.default_working_hours
        return WorkingHours(open=self.open_time, close=self.close_time)

    def __repr__(self) -> str:
        return f"<Practitioner(id={self.id}, name='{self.name}', active={self.is_active})>"
