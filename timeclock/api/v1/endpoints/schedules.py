"""
Schedule CRUD.

A schedule belongs to one property-area link and only one active schedule
may exist per link.  Deleting a schedule unassigns the link's employees,
since an employee without a schedule cannot check in.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.api.v1.deps import (ensure_property_scope, get_broadcaster,
                                   get_current_active_user, get_db,
                                   require_editor)
from timeclock.api.v1.endpoints.areas import load_active_link
from timeclock.models.employee import Employee
from timeclock.models.organization import Area, Property, PropertyArea
from timeclock.models.schedule import Schedule, ScheduleDay
from timeclock.models.user import User
from timeclock.schemas.attendance import DeleteResponse
from timeclock.schemas.organization import PropertyAreaRead
from timeclock.schemas.schedule import (ScheduleCreate, ScheduleRead,
                                        ScheduleUpdate)
from timeclock.services.audit import record_audit
from timeclock.services.broadcast import Broadcaster

router = APIRouter(prefix="/schedules", tags=["schedules"])
logger = logging.getLogger(__name__)


def _schedule_read(schedule: Schedule, prop: Property | None, area: Area | None) -> ScheduleRead:
    return ScheduleRead(
        id=schedule.id,
        entry_time=schedule.entry_time,
        exit_time=schedule.exit_time,
        tolerance_minutes=schedule.tolerance_minutes,
        schedule_type=schedule.schedule_type,
        is_active=schedule.is_active,
        property_area_id=schedule.property_area_id,
        property_name=prop.name if prop else None,
        area_name=area.name if area else None,
        days=schedule.weekdays,
    )


def _schedule_query():
    return (
        select(Schedule, Property, Area)
        .join(PropertyArea, Schedule.property_area_id == PropertyArea.id)
        .join(Property, PropertyArea.property_id == Property.id)
        .join(Area, PropertyArea.area_id == Area.id)
    )


async def _load_schedule(db: AsyncSession, schedule_id: int, *, active_only: bool = True):
    query = _schedule_query().where(Schedule.id == schedule_id)
    if active_only:
        query = query.where(Schedule.is_active.is_(True))
    result = await db.execute(query)
    row = result.first()
    if row is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return row[0], row[1], row[2]


async def _ensure_link_free(db: AsyncSession, property_area_id: int, schedule_id: int | None = None) -> None:
    query = select(Schedule.id).where(
        Schedule.property_area_id == property_area_id, Schedule.is_active.is_(True)
    )
    if schedule_id is not None:
        query = query.where(Schedule.id != schedule_id)
    existing = await db.execute(query.limit(1))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="This area already has an active schedule")


def _describe(body: ScheduleCreate | ScheduleUpdate, prop: Property, area: Area) -> str:
    return (
        f"{prop.name} - {area.name}: {body.entry_time.isoformat()} to "
        f"{body.exit_time.isoformat()}, tolerance {body.tolerance_minutes} min, "
        f"type {body.schedule_type or '-'}, days {', '.join(body.days)}"
    )


@router.get("/available-links", response_model=list[PropertyAreaRead])
async def list_available_links(
    editing_schedule_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[PropertyAreaRead]:
    """Links without an active schedule (plus the one of the schedule being edited)."""
    busy = select(Schedule.property_area_id).where(Schedule.is_active.is_(True))
    if editing_schedule_id is not None:
        busy = busy.where(Schedule.id != editing_schedule_id)

    query = (
        select(PropertyArea, Property, Area)
        .join(Property, PropertyArea.property_id == Property.id)
        .join(Area, PropertyArea.area_id == Area.id)
        .where(
            PropertyArea.is_active.is_(True),
            Property.is_active.is_(True),
            Area.is_active.is_(True),
            PropertyArea.id.not_in(busy),
        )
        .order_by(Property.name, Area.name)
    )
    if user.role == "property_admin":
        query = query.where(Property.id == user.property_id)
    result = await db.execute(query)
    return [
        PropertyAreaRead(
            property_area_id=link.id,
            property_id=prop.id,
            property_name=prop.name,
            area_id=area.id,
            area_name=area.name,
        )
        for link, prop, area in result.all()
    ]


@router.get("", response_model=list[ScheduleRead])
async def list_schedules(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[ScheduleRead]:
    query = (
        _schedule_query()
        .where(
            Schedule.is_active.is_(True),
            PropertyArea.is_active.is_(True),
            Property.is_active.is_(True),
            Area.is_active.is_(True),
        )
        .order_by(Property.name, Area.name)
    )
    if user.role == "property_admin":
        query = query.where(Property.id == user.property_id)
    result = await db.execute(query)
    return [_schedule_read(*row) for row in result.all()]


@router.post("", response_model=ScheduleRead, status_code=201)
async def create_schedule(
    body: ScheduleCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_editor),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> ScheduleRead:
    link, prop, area = await load_active_link(db, body.property_area_id)
    ensure_property_scope(user, prop.id)
    await _ensure_link_free(db, link.id)

    schedule = Schedule(
        property_area_id=link.id,
        entry_time=body.entry_time,
        exit_time=body.exit_time,
        tolerance_minutes=body.tolerance_minutes,
        schedule_type=body.schedule_type,
        days=[ScheduleDay(weekday=day) for day in body.days],
    )
    db.add(schedule)
    await db.flush()
    record_audit(db, user, f"created schedule {schedule.id} for {_describe(body, prop, area)}")
    await db.commit()

    data = _schedule_read(schedule, prop, area)
    logger.info("Created schedule %d for link %d", schedule.id, link.id)
    broadcaster.publish("schedules", "schedule-created", data.model_dump(mode="json"))
    return data


@router.get("/{schedule_id}", response_model=ScheduleRead)
async def get_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> ScheduleRead:
    return _schedule_read(*await _load_schedule(db, schedule_id, active_only=False))


@router.put("/{schedule_id}", response_model=ScheduleRead)
async def update_schedule(
    schedule_id: int,
    body: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_editor),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> ScheduleRead:
    schedule, old_prop, _ = await _load_schedule(db, schedule_id)
    ensure_property_scope(user, old_prop.id)

    link, prop, area = await load_active_link(db, body.property_area_id)
    ensure_property_scope(user, prop.id)
    await _ensure_link_free(db, link.id, schedule_id)

    schedule.property_area_id = link.id
    schedule.entry_time = body.entry_time
    schedule.exit_time = body.exit_time
    schedule.tolerance_minutes = body.tolerance_minutes
    schedule.schedule_type = body.schedule_type
    # Old days must be gone before their replacements hit the unique constraint
    schedule.days.clear()
    await db.flush()
    schedule.days.extend(ScheduleDay(weekday=day) for day in body.days)
    await db.flush()
    record_audit(db, user, f"updated schedule {schedule_id}: {_describe(body, prop, area)}")
    await db.commit()

    data = _schedule_read(schedule, prop, area)
    logger.info("Updated schedule %d", schedule_id)
    broadcaster.publish("schedules", "schedule-updated", data.model_dump(mode="json"))
    return data


@router.delete("/{schedule_id}", response_model=DeleteResponse)
async def delete_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_editor),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> DeleteResponse:
    """Soft-delete the schedule and unassign the employees of its area."""
    schedule, prop, area = await _load_schedule(db, schedule_id)
    ensure_property_scope(user, prop.id)

    await db.execute(
        update(Employee)
        .where(Employee.property_area_id == schedule.property_area_id)
        .values(property_area_id=None)
    )
    schedule.is_active = False
    record_audit(
        db,
        user,
        f"deactivated schedule {schedule_id} in {prop.name} - {area.name}; employees unassigned",
    )
    await db.commit()

    logger.info("Soft-deleted schedule %d", schedule_id)
    broadcaster.publish("schedules", "schedule-deleted", {"id": schedule_id, "is_active": False})
    return DeleteResponse(success=True, message="Schedule deactivated")
