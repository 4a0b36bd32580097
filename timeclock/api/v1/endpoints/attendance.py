"""
Attendance views for dashboards — today's feed and lateness incidences.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.api.v1.deps import (ensure_property_scope, get_clock, get_db,
                                   get_current_active_user, require_editor)
from timeclock.models.attendance import AttendanceHistory, Incidence
from timeclock.models.employee import Employee
from timeclock.models.organization import PropertyArea
from timeclock.models.user import User
from timeclock.schemas.attendance import (AttendanceFeedItem, IncidenceRead,
                                          IncidenceUpdate)
from timeclock.services.audit import record_audit

router = APIRouter(tags=["attendance"])
logger = logging.getLogger(__name__)


def _incidence_read(incidence: Incidence, employee: Employee) -> IncidenceRead:
    return IncidenceRead(
        id=incidence.id,
        employee_id=incidence.employee_id,
        employee_name=employee.display_name,
        incidence_type=incidence.incidence_type,
        date=incidence.date,
        justified=incidence.justified,
        created_at=incidence.created_at,
    )


@router.get("/attendance/today", response_model=list[AttendanceFeedItem])
async def attendance_today(
    db: AsyncSession = Depends(get_db),
    clock=Depends(get_clock),
    _user: User = Depends(get_current_active_user),
) -> list[AttendanceHistory]:
    """Today's check-ins as recorded at the time (newest first)."""
    today = clock().date()
    result = await db.execute(
        select(AttendanceHistory)
        .where(AttendanceHistory.date == today)
        .order_by(AttendanceHistory.time.desc(), AttendanceHistory.id.desc())
    )
    return list(result.scalars().all())


@router.get("/incidences", response_model=list[IncidenceRead])
async def list_incidences(
    date_: date | None = Query(default=None, alias="date"),
    justified: bool | None = None,
    skip: int = 0,
    limit: int = Query(default=100, le=500),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[IncidenceRead]:
    query = (
        select(Incidence, Employee)
        .join(Employee, Incidence.employee_id == Employee.id)
        .order_by(Incidence.date.desc(), Incidence.id.desc())
        .offset(skip)
        .limit(limit)
    )
    if date_ is not None:
        query = query.where(Incidence.date == date_)
    if justified is not None:
        query = query.where(Incidence.justified.is_(justified))
    if user.role == "property_admin":
        query = query.join(PropertyArea, Employee.property_area_id == PropertyArea.id).where(
            PropertyArea.property_id == user.property_id
        )
    result = await db.execute(query)
    return [_incidence_read(incidence, employee) for incidence, employee in result.all()]


@router.patch("/incidences/{incidence_id}", response_model=IncidenceRead)
async def update_incidence(
    incidence_id: int,
    body: IncidenceUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_editor),
) -> IncidenceRead:
    """Mark a lateness incidence as justified (or revert it)."""
    result = await db.execute(
        select(Incidence, Employee, PropertyArea.property_id)
        .join(Employee, Incidence.employee_id == Employee.id)
        .outerjoin(PropertyArea, Employee.property_area_id == PropertyArea.id)
        .where(Incidence.id == incidence_id)
    )
    row = result.first()
    if row is None:
        raise HTTPException(status_code=404, detail="Incidence not found")
    incidence, employee, property_id = row
    ensure_property_scope(user, property_id)

    incidence.justified = body.justified
    record_audit(
        db,
        user,
        f"set incidence {incidence_id} of {employee.display_name} "
        f"to {'justified' if body.justified else 'unjustified'}",
    )
    await db.commit()
    logger.info("Incidence %d justified=%s", incidence_id, body.justified)
    return _incidence_read(incidence, employee)
