"""Pydantic schemas for User CRUD."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator, model_validator

VALID_ROLES = {"admin", "property_admin", "kiosk", "readonly"}


class UserCreate(BaseModel):
    username: str
    password: str
    full_name: str | None = None
    role: str = "readonly"
    property_id: int | None = None
    employee_id: int | None = None

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str) -> str:
        if v not in VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(VALID_ROLES)}")
        return v

    @field_validator("username")
    @classmethod
    def _normalise_username(cls, v: str) -> str:
        v = v.strip().lower()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    @model_validator(mode="after")
    def _scoped_role(self) -> "UserCreate":
        if self.role == "property_admin" and self.property_id is None:
            raise ValueError("property_admin users need a property_id")
        return self


class UserRead(BaseModel):
    id: int
    username: str
    full_name: str | None
    role: str
    property_id: int | None
    employee_id: int | None
    is_active: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}
