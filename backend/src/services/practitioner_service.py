"""
Practitioner service for read-only practitioner lookups.

The scheduling core never writes practitioners. This module is the registry
the booking and suggestion services consult for identity, active status and
working hours.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from core.database import store_errors
from core.exceptions import SchedulingValidationError
from core.scheduling_settings import SchedulingSettings
from models import Practitioner
from shared_types.scheduling import WorkingHours

logger = logging.getLogger(__name__)


class PractitionerService:
    """
    Service class for practitioner registry operations.
    """

    @staticmethod
    def get_practitioner(db: Session, practitioner_id: int) -> Optional[Practitioner]:
        """Fetch a practitioner by id, active or not."""
        with store_errors(db, "get_practitioner"):
            return db.query(Practitioner).filter(Practitioner.id == practitioner_id).first()

    @staticmethod
    def get_active_practitioner(db: Session, practitioner_id: int) -> Practitioner:
        """
        Fetch a bookable practitioner.

        Args:
            db: Database session
            practitioner_id: Practitioner ID

        Returns:
            The active Practitioner

        Raises:
            SchedulingValidationError: If the practitioner does not exist or is inactive
            StoreUnavailableError: If the database cannot be reached
        """
        practitioner = PractitionerService.get_practitioner(db, practitioner_id)
        if practitioner is None:
            raise SchedulingValidationError(f"Practitioner {practitioner_id} not found")
        if not practitioner.is_active:
            raise SchedulingValidationError(f"Practitioner {practitioner_id} is not active")
        return practitioner

    @staticmethod
    def list_active(db: Session) -> List[Practitioner]:
        """All active practitioners in registry order (ascending id)."""
        with store_errors(db, "list_active_practitioners"):
            return (
                db.query(Practitioner)
                .filter(Practitioner.is_active == True)  # noqa: E712
                .order_by(Practitioner.id.asc())
                .all()
            )

    @staticmethod
    def get_working_hours(
        db: Session,
        practitioner_id: int,
        settings: SchedulingSettings
    ) -> WorkingHours:
        """
        Resolve the daily working hours for a practitioner.

        Raises:
            SchedulingValidationError: If the practitioner does not exist
        """
        practitioner = PractitionerService.get_practitioner(db, practitioner_id)
        if practitioner is None:
            raise SchedulingValidationError(f"Practitioner {practitioner_id} not found")
        return practitioner.working_hours(settings)
