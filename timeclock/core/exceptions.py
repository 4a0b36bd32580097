"""
Domain exceptions and global exception handlers.

Check-in failures carry the message shown verbatim on the kiosk, so the
handlers forward ``exc.message``; storage errors never leak a stack trace.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class TimeclockError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 400
    code: str = "ERROR"
    message: str = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NotFound(TimeclockError):
    status_code = 404
    code = "NOT_FOUND"
    message = "PIN not found"


class AlreadyExited(TimeclockError):
    code = "ALREADY_EXITED"
    message = "You already registered your exit today"


class DayComplete(TimeclockError):
    code = "DAY_COMPLETE"
    message = "Your attendance for today is already complete"


class PastExitWindow(TimeclockError):
    code = "PAST_EXIT_WINDOW"
    message = "Exit time has already passed, entry can no longer be registered today"


class PersistenceFailure(TimeclockError):
    """Storage fault; nothing was written, the whole attempt may be retried."""

    status_code = 503
    code = "PERSISTENCE_FAILURE"
    message = "Attendance could not be saved, please try again"


class ConflictFailure(PersistenceFailure):
    """A concurrent attempt won the race for the same record."""

    status_code = 409
    code = "CONFLICT"
    message = "Attendance was registered concurrently, please try again"


async def _timeclock_error_handler(_request: Request, exc: TimeclockError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, "success": False},
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(TimeclockError, _timeclock_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
