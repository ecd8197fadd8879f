"""
Patient model representing individuals who book appointments.

The scheduling core only reads patients: it checks that a patient exists
before booking and shows the patient's display name in conflict reports.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_STRING_LENGTH
from core.database import Base


class Patient(Base):
    """Patient entity referenced by appointments."""

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the patient."""

    first_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    last_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Contact phone number for the patient."""

    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    appointments = relationship("Appointment", back_populates="patient")
    """Relationship to all Appointment entities booked by this patient."""

    __table_args__ = (
        Index('idx_patients_last_name', 'last_name'),
    )

    @property
    def display_name(self) -> str:
        """Name shown in conflict reports, "first last"."""
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name='{self.display_name}')>"
