"""Pydantic schemas for employees."""

from __future__ import annotations

from datetime import datetime, time

from pydantic import BaseModel, field_validator


class EmployeeCreate(BaseModel):
    first_name: str
    last_name: str
    position: str
    property_area_id: int
    employee_number: str | None = None

    @field_validator("first_name", "last_name", "position")
    @classmethod
    def _required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field must not be empty")
        if len(v) > 150:
            raise ValueError("Field must not exceed 150 characters")
        return v

    @field_validator("employee_number")
    @classmethod
    def _number(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class EmployeeUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    position: str | None = None
    property_area_id: int | None = None
    employee_number: str | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def _not_blank(cls, v: str | None) -> str:
        if v is None or not v.strip():
            raise ValueError("Field must not be empty")
        return v.strip()


class EmployeeRead(BaseModel):
    id: int
    first_name: str
    last_name: str
    employee_number: str | None
    position: str | None
    pin: str
    is_active: bool
    created_at: datetime | None
    property_area_id: int | None = None
    property_id: int | None = None
    property_name: str | None = None
    area_id: int | None = None
    area_name: str | None = None
    entry_time: time | None = None
    exit_time: time | None = None
