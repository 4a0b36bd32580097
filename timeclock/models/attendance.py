"""
Attendance, attendance history and incidence models.

Rows here are written only by the check-in flow; the photo reference is
the one column patched afterwards.
"""

from __future__ import annotations

import datetime as dt
from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, Date, DateTime, ForeignKey, Index,
                        Integer, String, Time, UniqueConstraint)
from sqlalchemy.orm import relationship

from timeclock.db.base import Base


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        # At most one ENTRY and one EXIT per employee-day
        UniqueConstraint("employee_id", "date", "event_type", name="uq_attendance_emp_date_kind"),
        Index("ix_attendance_employee_date", "employee_id", "date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    event_type: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # ENTRY | EXIT
    date: dt.date = Column(Date, nullable=False, index=True)  # type: ignore[assignment]
    time: dt.time = Column(Time, nullable=False)  # type: ignore[assignment]
    photo_path: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", back_populates="attendances")


class AttendanceHistory(Base):
    """Label snapshot taken at check-in; later renames never rewrite it."""

    __tablename__ = "attendance_history"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    attendance_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("attendance.id"), nullable=False, unique=True
    )
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    employee_name: str = Column(String(260), nullable=False)  # type: ignore[assignment]
    employee_number: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    property_name: str = Column(String(150), nullable=False)  # type: ignore[assignment]
    area_name: str = Column(String(150), nullable=False)  # type: ignore[assignment]
    event_type: str = Column(String(10), nullable=False)  # type: ignore[assignment]
    date: dt.date = Column(Date, nullable=False, index=True)  # type: ignore[assignment]
    time: dt.time = Column(Time, nullable=False)  # type: ignore[assignment]
    photo_path: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]


class Incidence(Base):
    __tablename__ = "incidences"
    __table_args__ = (Index("ix_incidence_employee_date", "employee_id", "date"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    incidence_type: str = Column(String(20), nullable=False, default="LATE")  # type: ignore[assignment]
    date: dt.date = Column(Date, nullable=False)  # type: ignore[assignment]
    justified: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee")
