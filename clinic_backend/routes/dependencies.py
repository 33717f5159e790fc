import logging
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.database import SessionLocal, ensure_appointment_schema
from clinic_backend.scheduling.errors import SchedulingError

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_now() -> datetime:
    """Clinic-local wall clock. Overridden in tests."""
    return datetime.now()


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


def database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    logger.exception('Database error: %s', exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def to_http_exception(exc: SchedulingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
