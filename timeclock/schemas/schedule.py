"""Pydantic schemas for schedules."""

from __future__ import annotations

from datetime import time

from pydantic import BaseModel, Field, field_validator, model_validator

from timeclock.models.schedule import WEEKDAYS


class ScheduleWrite(BaseModel):
    entry_time: time
    exit_time: time
    tolerance_minutes: int = Field(default=0, ge=0, le=240)
    schedule_type: str | None = None
    property_area_id: int
    days: list[str]

    @field_validator("days")
    @classmethod
    def _days(cls, v: list[str]) -> list[str]:
        days = []
        for day in v:
            day = day.strip().upper()[:3]
            if day not in WEEKDAYS:
                raise ValueError(f"Days must be among {', '.join(WEEKDAYS)}")
            if day not in days:
                days.append(day)
        if not days:
            raise ValueError("At least one day is required")
        return days

    @model_validator(mode="after")
    def _exit_after_entry(self) -> "ScheduleWrite":
        # Overnight shifts are not supported
        if self.exit_time <= self.entry_time:
            raise ValueError("exit_time must be later than entry_time")
        return self


class ScheduleCreate(ScheduleWrite):
    pass


class ScheduleUpdate(ScheduleWrite):
    pass


class ScheduleRead(BaseModel):
    id: int
    entry_time: time
    exit_time: time
    tolerance_minutes: int
    schedule_type: str | None
    is_active: bool
    property_area_id: int
    property_name: str | None = None
    area_name: str | None = None
    days: list[str]
