"""
Kiosk endpoints — server clock, PIN check-in and photo upload.

These are PUBLIC: the terminal has no login, so both writes are
rate-limited per client IP instead.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.api.v1.deps import (get_broadcaster, get_clock, get_db,
                                   get_photo_storage, limiter)
from timeclock.core.config import settings
from timeclock.schemas.attendance import (CheckInRequest, CheckInResponse,
                                          HealthResponse,
                                          PhotoUploadRequest,
                                          PhotoUploadResponse,
                                          ServerTimeResponse)
from timeclock.services.broadcast import Broadcaster
from timeclock.services.checkin import check_in
from timeclock.services.photos import PhotoStorage, attach_photo

router = APIRouter(tags=["kiosk"])
logger = logging.getLogger(__name__)


@router.get("/time", response_model=ServerTimeResponse)
async def server_time(
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ServerTimeResponse:
    """Current server instant, so terminals display the clock that decides punctuality."""
    now = clock()
    return ServerTimeResponse(
        timestamp=int(now.timestamp() * 1000),
        iso=now.isoformat(),
        date=now.date(),
        weekday=now.strftime("%A"),
        time=now.strftime("%H:%M:%S"),
    )


@router.post("/checkin", response_model=CheckInResponse)
@limiter.limit(settings.PIN_RATE_LIMIT)
async def checkin(
    request: Request,
    body: CheckInRequest,
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> CheckInResponse:
    """Register the employee's ENTRY or EXIT for today."""
    result = await check_in(
        db,
        body.pin,
        clock(),
        publish=broadcaster.publisher("attendance"),
    )
    return CheckInResponse(
        attendance_id=result.attendance_id,
        name=result.display_name,
        event=result.kind.value,
        punctuality=result.punctuality.value if result.punctuality else None,
        date=result.date,
        time=result.time,
    )


@router.post("/checkin/photo", response_model=PhotoUploadResponse)
@limiter.limit(settings.PIN_RATE_LIMIT)
async def upload_photo(
    request: Request,
    body: PhotoUploadRequest,
    db: AsyncSession = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> PhotoUploadResponse:
    """Attach the terminal's snapshot to an attendance record."""
    path = await attach_photo(db, storage, body.attendance_id, body.image_bytes())
    broadcaster.publish(
        "attendance",
        "attendance-photo",
        {"attendance_id": body.attendance_id, "photo_path": path},
    )
    return PhotoUploadResponse(message="Photo saved", photo_path=path)


@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Liveness plus a database round-trip."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check failed: %s", exc)
        return HealthResponse(status="degraded", database=False, version=settings.VERSION)
    return HealthResponse(status="ok", database=True, version=settings.VERSION)
