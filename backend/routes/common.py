from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from backend.database import ensure_appointment_schema
from backend.scheduling.errors import (
    InvalidStatusTransitionError,
    InvalidTimeRangeError,
    NotFoundError,
    SchedulingConflictError,
    SchedulingError,
)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL.'

_SCHEDULING_STATUS_CODES = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    SchedulingConflictError: status.HTTP_409_CONFLICT,
    InvalidStatusTransitionError: status.HTTP_400_BAD_REQUEST,
    InvalidTimeRangeError: status.HTTP_400_BAD_REQUEST,
}


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def scheduling_http_error(exc: SchedulingError) -> HTTPException:
    status_code = _SCHEDULING_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=exc.detail)


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def paginate(page: int, limit: int) -> tuple[int, int]:
    return (page - 1) * limit, limit
