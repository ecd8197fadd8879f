# pyright: reportMissingTypeStubs=false
"""
Database configuration and session management.

This module sets up SQLAlchemy database connection, session management,
and provides dependency injection for database sessions in FastAPI routes.

PostgreSQL is the production database. SQLite is supported for local runs
and the test suite; SQLite engines open every transaction with
BEGIN IMMEDIATE so concurrent writers are serialized the same way the
PostgreSQL row lock in AppointmentStore serializes them.
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator

from fastapi import HTTPException
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from core.config import DATABASE_URL
from core.constants import DB_POOL_RECYCLE_SECONDS, SQLITE_BUSY_TIMEOUT_SECONDS
from core.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


def _configure_sqlite_locking(engine: Engine) -> None:
    """
    Take the SQLite write lock at transaction start.

    pysqlite's own BEGIN handling is disabled and replaced with
    BEGIN IMMEDIATE, so a check-then-insert inside one transaction cannot
    interleave with another writer.
    """
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):  # type: ignore
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):  # type: ignore
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(url: str, **kwargs: Any) -> Engine:
    """
    Create an engine with the settings used across the application.

    Args:
        url: SQLAlchemy database URL
        **kwargs: Extra create_engine arguments (e.g. poolclass for tests)

    Returns:
        Configured Engine
    """
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={
                "check_same_thread": False,  # Sessions are used from request threads
                "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
            },
            echo=False,
            **kwargs,
        )
        _configure_sqlite_locking(engine)
        return engine

    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=DB_POOL_RECYCLE_SECONDS,
        echo=False,          # Disable SQL logging
        **kwargs,
    )


# Create SQLAlchemy engine with optimized settings
engine = create_db_engine(DATABASE_URL)

# Create configured SessionLocal class
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Don't expire objects after commit
)

# Create Base class for declarative models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


# SQLAlchemy event listeners to automatically set created_at and updated_at using clinic time
@event.listens_for(Base, "before_insert", propagate=True)  # type: ignore
def receive_before_insert(mapper, connection, target):  # type: ignore
    """Set created_at and updated_at on insert using clinic time."""
    # Import here to avoid circular import
    from utils.datetime_utils import clinic_now
    now = clinic_now()
    # Only set timestamps that are mapped columns (exist in mapper.columns)
    for column_name in ("created_at", "updated_at"):
        if hasattr(mapper, "columns") and column_name in mapper.columns:  # type: ignore
            if getattr(target, column_name, None) is None:  # type: ignore
                setattr(target, column_name, now)  # type: ignore


@event.listens_for(Base, "before_update", propagate=True)  # type: ignore
def receive_before_update(mapper, connection, target):  # type: ignore
    """Set updated_at on update using clinic time."""
    # Import here to avoid circular import
    from utils.datetime_utils import clinic_now
    if hasattr(mapper, "columns") and "updated_at" in mapper.columns:  # type: ignore
        setattr(target, "updated_at", clinic_now())  # type: ignore


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency to provide database sessions.

    Yields a database session that is automatically closed after the request.
    Handles cleanup even if an exception occurs during request processing.

    Yields:
        Session: SQLAlchemy database session

    Example:
        ```python
        @router.get("/appointments/{appointment_id}")
        def read_appointment(appointment_id: int, db: Session = Depends(get_db)):
            return AppointmentStore.get_appointment(db, appointment_id)
        ```
    """
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.exception(f"Database error: {e}")
        db.rollback()
        raise
    except HTTPException:
        # Don't log HTTPExceptions as errors - they're expected business logic
        db.rollback()
        raise
    except Exception as e:
        logger.exception(f"Unexpected error in database session: {e}")
        db.rollback()
        raise
    finally:
        db.close()



@contextmanager
def store_errors(db: Session, operation: str) -> Generator[None, None, None]:
    """
    Translate connection-level failures into StoreUnavailableError.

    Wraps every scheduling query, so an unreachable database surfaces the
    same way whichever lookup touches it first. The session is rolled back
    before the error propagates.

    Args:
        db: Session the wrapped queries run on
        operation: Name used in the log line and error message
    """
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Appointment store unavailable during {operation}: {e}")
        db.rollback()
        raise StoreUnavailableError(f"Appointment store unavailable during {operation}") from e
