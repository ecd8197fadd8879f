"""initial_schema_baseline

Revision ID: 3c1f0a9d7e21
Revises:
Create Date: 2026-10-18 10:30:00.000000

Baseline migration creating the scheduling schema from the current model
definitions: practitioners, patients and appointments, including the
appointment check constraints, the (practitioner_id, date) lookup index and
the partial unique index on active appointment start times.
"""
from typing import Sequence, Union
import sys
import os

# Add src directory to path to import models
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from alembic import op

# Import all models to ensure they're registered with Base.metadata
from core.database import Base
from models.patient import Patient  # noqa: F401
from models.practitioner import Practitioner  # noqa: F401
from models.appointment import Appointment  # noqa: F401


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d7e21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables, indexes and constraints from the models."""
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    """Drop all tables created by this baseline."""
    Base.metadata.drop_all(bind=op.get_bind())
