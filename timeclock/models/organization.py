"""
Property / Area models and the link binding one area to one property.

Schedules and employees hang off the link (``PropertyArea``), never off
the property or the area directly.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Integer, String,
                        UniqueConstraint)
from sqlalchemy.orm import relationship

from timeclock.db.base import Base


class Property(Base):
    __tablename__ = "properties"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(150), nullable=False)  # type: ignore[assignment]
    address: str | None = Column(String(300), nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    links = relationship("PropertyArea", back_populates="property")


class Area(Base):
    __tablename__ = "areas"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(150), nullable=False)  # type: ignore[assignment]
    description: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    links = relationship("PropertyArea", back_populates="area")


class PropertyArea(Base):
    __tablename__ = "property_areas"
    __table_args__ = (
        UniqueConstraint("property_id", "area_id", name="uq_property_area"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    property_id: int = Column(Integer, ForeignKey("properties.id"), nullable=False)  # type: ignore[assignment]
    area_id: int = Column(Integer, ForeignKey("areas.id"), nullable=False)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]

    property = relationship("Property", back_populates="links")
    area = relationship("Area", back_populates="links")
