"""
Attendance photo storage and the photo-attachment step of a check-in.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import tempfile
from pathlib import Path

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.core.exceptions import NotFound, PersistenceFailure
from timeclock.models.attendance import Attendance, AttendanceHistory

logger = logging.getLogger(__name__)

_PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class PhotoStorage:
    """Writes photos into one local directory, one file per attendance."""

    def __init__(self, base_dir: str | os.PathLike[str]) -> None:
        self.base_dir = Path(base_dir)

    def filename_for(self, attendance_id: int, data: bytes) -> str:
        ext = ".png" if data.startswith(_PNG_MAGIC) else ".jpg"
        return f"attendance_{attendance_id}{ext}"

    def save(self, filename: str, data: bytes) -> str:
        """Write ``data`` atomically under ``filename``; returns the stored path.

        Each call writes its own temp file, so overlapping saves of the same
        photo all succeed and the last rename wins.
        """
        self.base_dir.mkdir(parents=True, exist_ok=True)
        target = self.base_dir / Path(filename).name
        fd, tmp_name = tempfile.mkstemp(dir=self.base_dir, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
            os.replace(tmp_name, target)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise
        return str(target)


async def attach_photo(
    db: AsyncSession,
    storage: PhotoStorage,
    attendance_id: int,
    image: bytes,
) -> str:
    """Store ``image`` and point the attendance row and its history row at it.

    Retrying with the same arguments rewrites the same file and the same
    reference, so the call is safe to repeat.
    """
    attendance = await db.get(Attendance, attendance_id)
    if attendance is None:
        raise NotFound("Attendance record not found")

    filename = storage.filename_for(attendance_id, image)
    try:
        path = await asyncio.to_thread(storage.save, filename, image)
    except OSError as exc:
        logger.error("Could not store photo for attendance %d: %s", attendance_id, exc)
        raise PersistenceFailure("Photo could not be saved") from exc

    try:
        attendance.photo_path = path
        await db.execute(
            update(AttendanceHistory)
            .where(AttendanceHistory.attendance_id == attendance_id)
            .values(photo_path=path)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Could not link photo to attendance %d: %s", attendance_id, exc, exc_info=True)
        raise PersistenceFailure("Photo could not be saved") from exc

    logger.info("Photo stored for attendance %d at %s", attendance_id, path)
    return path
