"""
Patient service for read-only patient lookups used while booking.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from core.database import store_errors
from core.exceptions import SchedulingValidationError
from models import Patient

logger = logging.getLogger(__name__)


class PatientService:
    """
    Service class for patient registry operations.
    """

    @staticmethod
    def get_patient(db: Session, patient_id: int) -> Optional[Patient]:
        with store_errors(db, "get_patient"):
            return db.query(Patient).filter(Patient.id == patient_id).first()

    @staticmethod
    def require_patient(db: Session, patient_id: int) -> Patient:
        """
        Fetch a patient that must exist for the booking to proceed.

        Raises:
            SchedulingValidationError: If the patient does not exist
            StoreUnavailableError: If the database cannot be reached
        """
        patient = PatientService.get_patient(db, patient_id)
        if patient is None:
            raise SchedulingValidationError(f"Patient {patient_id} not found")
        return patient

    @staticmethod
    def get_display_name(db: Session, patient_id: int) -> str:
        """Display name for conflict reports; falls back to a placeholder for missing rows."""
        patient = PatientService.get_patient(db, patient_id)
        if patient is None:
            logger.warning(f"Appointment references missing patient {patient_id}")
            return f"Patient #{patient_id}"
        return patient.display_name
