"""
Employee model — people who check in at the terminal with a PIN.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from timeclock.db.base import Base


class Employee(Base):
    __tablename__ = "employees"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    first_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    last_name: str = Column(String(150), nullable=False)  # type: ignore[assignment]
    employee_number: str | None = Column(String(30), unique=True, nullable=True)  # type: ignore[assignment]
    position: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    # Terminal code, not a login credential
    pin: str = Column(String(16), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    property_area_id: int | None = Column(  # type: ignore[assignment]
        Integer, ForeignKey("property_areas.id"), nullable=True, index=True
    )
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    property_area = relationship("PropertyArea")
    attendances = relationship("Attendance", back_populates="employee")

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
