"""Pydantic schemas for properties, areas and their links."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name must not be empty")
    if len(v) > 150:
        raise ValueError("Name must not exceed 150 characters")
    return v


# ── Property ────────────────────────────────────────────────────────
class PropertyCreate(BaseModel):
    name: str
    address: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _clean_name(v)


class PropertyUpdate(BaseModel):
    name: str | None = None
    address: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Name must not be empty")
        return _clean_name(v)


class PropertyRead(BaseModel):
    id: int
    name: str
    address: str | None
    is_active: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ── Area ────────────────────────────────────────────────────────────
class AreaCreate(BaseModel):
    name: str
    description: str | None = None
    property_id: int

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _clean_name(v)


class AreaUpdate(BaseModel):
    name: str | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("Name must not be empty")
        return _clean_name(v)


class AreaRead(BaseModel):
    id: int
    name: str
    description: str | None
    is_active: bool
    property_area_id: int
    property_id: int
    property_name: str


# ── Property-area link ──────────────────────────────────────────────
class PropertyAreaRead(BaseModel):
    property_area_id: int
    property_id: int
    property_name: str
    area_id: int
    area_name: str
