from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slot_booking.core.exceptions import SchedulingError
from slot_booking.database import ensure_scheduling_schema

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def ensure_database_ready() -> None:
    try:
        ensure_scheduling_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def get_clock():
    return datetime.now


@contextmanager
def scheduling_errors(db: Session) -> Iterator[None]:
    """Translate core errors into HTTP errors; the core has already rolled back its own work."""
    try:
        yield
    except SchedulingError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail={'code': exc.code, 'message': exc.message},
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
