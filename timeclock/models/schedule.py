"""
Schedule model — expected entry / exit times for one property-area link.

Only one active schedule may exist per link; overlapping shifts are not
modelled.
"""

from __future__ import annotations

from datetime import datetime, time, timezone

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Integer, String,
                        Time, UniqueConstraint)
from sqlalchemy.orm import relationship

from timeclock.db.base import Base

WEEKDAYS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")


class Schedule(Base):
    __tablename__ = "schedules"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    property_area_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("property_areas.id"), nullable=False, index=True
    )
    entry_time: time = Column(Time, nullable=False)  # type: ignore[assignment]
    exit_time: time = Column(Time, nullable=False)  # type: ignore[assignment]
    tolerance_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    schedule_type: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    property_area = relationship("PropertyArea")
    days = relationship(
        "ScheduleDay",
        back_populates="schedule",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ScheduleDay.id",
    )

    @property
    def weekdays(self) -> list[str]:
        return [d.weekday for d in self.days]


class ScheduleDay(Base):
    __tablename__ = "schedule_days"
    __table_args__ = (UniqueConstraint("schedule_id", "weekday", name="uq_schedule_day"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    schedule_id: int = Column(Integer, ForeignKey("schedules.id"), nullable=False)  # type: ignore[assignment]
    weekday: str = Column(String(3), nullable=False)  # type: ignore[assignment]  # MON..SUN

    schedule = relationship("Schedule", back_populates="days")
