"""Pydantic schemas for the kiosk check-in flow and attendance views."""

from __future__ import annotations

import base64
import binascii
import re
import datetime as dt
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

_PIN_RE = re.compile(r"^\d{4,16}$")

# Upper bound for a decoded kiosk photo
MAX_PHOTO_BYTES = 5 * 1024 * 1024


# ── Check-in ────────────────────────────────────────────────────────
class CheckInRequest(BaseModel):
    pin: str

    @field_validator("pin", mode="before")
    @classmethod
    def _pin(cls, v: object) -> str:
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        if not isinstance(v, str):
            raise ValueError("PIN must be a string of digits")
        v = v.strip()
        if not _PIN_RE.match(v):
            raise ValueError("PIN must be 4-16 digits")
        return v


class CheckInResponse(BaseModel):
    success: bool = True
    attendance_id: int
    name: str
    event: str  # ENTRY | EXIT
    punctuality: str | None = None  # ON_TIME | LATE, null for EXIT
    date: dt.date
    time: dt.time


# ── Photo ───────────────────────────────────────────────────────────
class PhotoUploadRequest(BaseModel):
    attendance_id: int = Field(gt=0)
    image_base64: str

    @field_validator("image_base64")
    @classmethod
    def _image(cls, v: str) -> str:
        # Accept data URLs straight from a browser canvas
        if v.startswith("data:") and "," in v:
            v = v.split(",", 1)[1]
        try:
            raw = base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Image must be valid base64") from exc
        if not raw:
            raise ValueError("Image must not be empty")
        if len(raw) > MAX_PHOTO_BYTES:
            raise ValueError("Image is too large")
        return v

    def image_bytes(self) -> bytes:
        return base64.b64decode(self.image_base64)


class PhotoUploadResponse(BaseModel):
    success: bool = True
    message: str
    photo_path: str


# ── Server clock ────────────────────────────────────────────────────
class ServerTimeResponse(BaseModel):
    timestamp: int  # epoch milliseconds
    iso: str
    date: dt.date
    weekday: str
    time: str  # HH:MM:SS, 24h


# ── Attendance feed (dashboards) ────────────────────────────────────
class AttendanceFeedItem(BaseModel):
    id: int
    attendance_id: int
    employee_id: int
    employee_name: str
    employee_number: str | None = None
    property_name: str
    area_name: str
    event_type: str
    date: dt.date
    time: dt.time
    photo_path: str | None = None

    model_config = {"from_attributes": True}


# ── Incidences ──────────────────────────────────────────────────────
class IncidenceRead(BaseModel):
    id: int
    employee_id: int
    employee_name: str
    incidence_type: str
    date: dt.date
    justified: bool
    created_at: datetime | None = None


class IncidenceUpdate(BaseModel):
    justified: bool


# ── Generic ─────────────────────────────────────────────────────────
class DeleteResponse(BaseModel):
    success: bool
    message: str


class HealthResponse(BaseModel):
    status: str
    database: bool
    version: str
