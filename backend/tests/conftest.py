"""
Test configuration and shared fixtures for the clinic scheduler test suite.

Uses a SQLite file database by default (set TEST_DATABASE_URL to run against
PostgreSQL) with transaction-based isolation. Each test gets a clean database
state via automatic rollback.
"""

import os
import tempfile
from datetime import date, time, timedelta
from pathlib import Path
from typing import Callable, Generator, Optional

# Point the application at the test database before core.config is imported
_TEST_DB_DIR = tempfile.mkdtemp(prefix="clinic_scheduler_test_")
TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    f"sqlite:///{Path(_TEST_DB_DIR) / 'clinic_scheduler_test.db'}"
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

import pytest  # noqa: E402
from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from core.database import Base, create_db_engine, get_db  # noqa: E402
from core.scheduling_settings import SchedulingSettings  # noqa: E402
from models import Appointment, AppointmentStatus, Patient, Practitioner  # noqa: E402

BACKEND_DIR = Path(__file__).resolve().parent.parent

# A fixed clinic-local "today" for tests that pin the clock
FIXED_TODAY = date(2024, 5, 20)


@pytest.fixture(scope="session")
def db_engine():
    """
    Create a database engine for the test session.

    Uses NullPool so each test gets a fresh connection.
    """
    engine = create_db_engine(TEST_DATABASE_URL, poolclass=NullPool)

    yield engine

    engine.dispose()


@pytest.fixture(scope="session", autouse=True)
def setup_test_database(db_engine):
    """
    Build the test schema with Alembic migrations (base -> head).

    Runs once per session so the baseline migration itself is exercised.
    """
    alembic_cfg = Config(str(BACKEND_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", TEST_DATABASE_URL)
    alembic_cfg.attributes["configure_logger"] = False

    Base.metadata.drop_all(bind=db_engine)
    command.upgrade(alembic_cfg, "head")

    yield

    Base.metadata.drop_all(bind=db_engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Provide a database session for a test with automatic rollback.

    The session joins an outer transaction and turns its own commits and
    rollbacks into savepoints, so application code can commit freely while
    everything is undone at teardown.
    """
    connection = db_engine.connect()
    transaction = connection.begin()

    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        expire_on_commit=False,
        autoflush=False,
    )

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def settings() -> SchedulingSettings:
    """Clinic defaults: 09:00-18:00, 15-minute step, 5 alternatives, 14-day horizon."""
    return SchedulingSettings()


@pytest.fixture
def client(db_session: Session, settings: SchedulingSettings) -> Generator[TestClient, None, None]:
    """TestClient whose requests share the test's db_session."""
    from main import app
    from api.appointments import get_scheduling_settings

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_scheduling_settings] = lambda: settings
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_practitioner(db_session: Session) -> Callable[..., Practitioner]:
    """Factory for committed practitioners."""
    def _make(
        first_name: str = "Ada",
        last_name: str = "Lovelace",
        open_time: Optional[time] = None,
        close_time: Optional[time] = None,
        is_active: bool = True,
    ) -> Practitioner:
        practitioner = Practitioner(
            first_name=first_name,
            last_name=last_name,
            open_time=open_time,
            close_time=close_time,
            is_active=is_active,
        )
        db_session.add(practitioner)
        db_session.commit()
        return practitioner
    return _make


@pytest.fixture
def make_patient(db_session: Session) -> Callable[..., Patient]:
    """Factory for committed patients."""
    def _make(first_name: str = "Grace", last_name: str = "Hopper") -> Patient:
        patient = Patient(first_name=first_name, last_name=last_name, phone="+15550100")
        db_session.add(patient)
        db_session.commit()
        return patient
    return _make


@pytest.fixture
def make_appointment(db_session: Session) -> Callable[..., Appointment]:
    """Factory for committed appointments, written directly (no conflict check)."""
    def _make(
        practitioner: Practitioner,
        patient: Patient,
        day: date,
        start: time,
        end: time,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    ) -> Appointment:
        appointment = Appointment(
            practitioner_id=practitioner.id,
            patient_id=patient.id,
            date=day,
            start_time=start,
            end_time=end,
            status=status.value,
        )
        db_session.add(appointment)
        db_session.commit()
        return appointment
    return _make


@pytest.fixture
def future_date() -> date:
    """A date safely after the real clinic-local today."""
    from utils.datetime_utils import clinic_today
    return clinic_today() + timedelta(days=7)
