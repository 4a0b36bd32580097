"""
Area CRUD.  Every area is created inside a property, which creates the
property-area link schedules and employees attach to.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.api.v1.deps import (ensure_property_scope, get_broadcaster,
                                   get_current_active_user, get_db,
                                   require_editor)
from timeclock.models.employee import Employee
from timeclock.models.organization import Area, Property, PropertyArea
from timeclock.models.schedule import Schedule
from timeclock.models.user import User
from timeclock.schemas.attendance import DeleteResponse
from timeclock.schemas.organization import AreaCreate, AreaRead, AreaUpdate
from timeclock.services.audit import record_audit
from timeclock.services.broadcast import Broadcaster

router = APIRouter(prefix="/areas", tags=["areas"])
logger = logging.getLogger(__name__)


def _area_read(area: Area, link: PropertyArea, prop: Property) -> AreaRead:
    return AreaRead(
        id=area.id,
        name=area.name,
        description=area.description,
        is_active=area.is_active,
        property_area_id=link.id,
        property_id=prop.id,
        property_name=prop.name,
    )


async def _get_active_area(db: AsyncSession, area_id: int) -> tuple[Area, PropertyArea, Property]:
    result = await db.execute(
        select(Area, PropertyArea, Property)
        .join(PropertyArea, PropertyArea.area_id == Area.id)
        .join(Property, PropertyArea.property_id == Property.id)
        .where(
            Area.id == area_id,
            Area.is_active.is_(True),
            PropertyArea.is_active.is_(True),
        )
        .limit(1)
    )
    row = result.first()
    if row is None:
        raise HTTPException(status_code=404, detail="Area not found")
    return row[0], row[1], row[2]


@router.post("", response_model=AreaRead, status_code=201)
async def create_area(
    body: AreaCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_editor),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> AreaRead:
    ensure_property_scope(user, body.property_id)
    prop = await db.get(Property, body.property_id)
    if prop is None or not prop.is_active:
        raise HTTPException(status_code=400, detail="Invalid property")

    area = Area(name=body.name, description=body.description)
    db.add(area)
    await db.flush()
    link = PropertyArea(property_id=prop.id, area_id=area.id)
    db.add(link)
    await db.flush()
    record_audit(db, user, f"created area {area.name} in {prop.name}")
    await db.commit()

    data = _area_read(area, link, prop)
    logger.info("Created area %d (%s) in property %d", area.id, area.name, prop.id)
    broadcaster.publish("areas", "area-created", data.model_dump(mode="json"))
    return data


@router.get("", response_model=list[AreaRead])
async def list_areas(
    property_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[AreaRead]:
    query = (
        select(Area, PropertyArea, Property)
        .join(PropertyArea, PropertyArea.area_id == Area.id)
        .join(Property, PropertyArea.property_id == Property.id)
        .where(
            Area.is_active.is_(True),
            PropertyArea.is_active.is_(True),
            Property.is_active.is_(True),
        )
        .order_by(Property.name, Area.name)
    )
    if user.role == "property_admin":
        property_id = user.property_id
    if property_id is not None:
        query = query.where(Property.id == property_id)
    result = await db.execute(query)
    return [_area_read(area, link, prop) for area, link, prop in result.all()]


@router.get("/{area_id}", response_model=AreaRead)
async def get_area(
    area_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> AreaRead:
    return _area_read(*await _get_active_area(db, area_id))


@router.put("/{area_id}", response_model=AreaRead)
async def update_area(
    area_id: int,
    body: AreaUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_editor),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> AreaRead:
    area, link, prop = await _get_active_area(db, area_id)
    ensure_property_scope(user, prop.id)

    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(area, field, value)
    record_audit(db, user, f"updated area {area_id} in {prop.name}: {changes}")
    await db.commit()

    data = _area_read(area, link, prop)
    logger.info("Updated area %d", area_id)
    broadcaster.publish("areas", "area-updated", data.model_dump(mode="json"))
    return data


@router.delete("/{area_id}", response_model=DeleteResponse)
async def delete_area(
    area_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_editor),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> DeleteResponse:
    """Soft-delete the area; its employees stay active but unassigned."""
    area, link, prop = await _get_active_area(db, area_id)
    ensure_property_scope(user, prop.id)

    await db.execute(
        update(Employee).where(Employee.property_area_id == link.id).values(property_area_id=None)
    )
    await db.execute(
        update(Schedule).where(Schedule.property_area_id == link.id).values(is_active=False)
    )
    link.is_active = False
    area.is_active = False
    record_audit(db, user, f"deactivated area {area.name} in {prop.name}")
    await db.commit()

    logger.info("Soft-deleted area %d (%s)", area_id, area.name)
    broadcaster.publish("areas", "area-deleted", {"id": area_id, "is_active": False})
    return DeleteResponse(success=True, message=f"Area '{area.name}' deactivated")


async def load_active_link(db: AsyncSession, property_area_id: int) -> tuple[PropertyArea, Property, Area]:
    """Active property-area link with its property and area, or HTTP 400."""
    result = await db.execute(
        select(PropertyArea, Property, Area)
        .join(Property, PropertyArea.property_id == Property.id)
        .join(Area, PropertyArea.area_id == Area.id)
        .where(
            PropertyArea.id == property_area_id,
            PropertyArea.is_active.is_(True),
            Property.is_active.is_(True),
            Area.is_active.is_(True),
        )
    )
    row = result.first()
    if row is None:
        raise HTTPException(status_code=400, detail="Invalid property-area link")
    return row[0], row[1], row[2]
