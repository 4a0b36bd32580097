"""
Property CRUD.

- GET operations require any authenticated user.
- POST / PUT / DELETE operations require admin role.
- Deletion is always soft; ``/full`` also retires the property's staff,
  ``/only`` leaves the employees active but unassigned.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.api.v1.deps import (get_broadcaster, get_current_active_user,
                                   get_db, require_admin)
from timeclock.models.employee import Employee
from timeclock.models.organization import Property, PropertyArea
from timeclock.models.schedule import Schedule
from timeclock.models.user import User
from timeclock.schemas.attendance import DeleteResponse
from timeclock.schemas.organization import (PropertyCreate, PropertyRead,
                                            PropertyUpdate)
from timeclock.services.audit import record_audit
from timeclock.services.broadcast import Broadcaster

router = APIRouter(prefix="/properties", tags=["properties"])
logger = logging.getLogger(__name__)


async def _get_active_property(db: AsyncSession, property_id: int) -> Property:
    result = await db.execute(
        select(Property).where(Property.id == property_id, Property.is_active.is_(True))
    )
    prop = result.scalar_one_or_none()
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


async def _retire_links(db: AsyncSession, property_id: int, *, retire_employees: bool) -> list[int]:
    """Deactivate every link of the property with its schedules; returns the link ids."""
    result = await db.execute(
        select(PropertyArea.id).where(
            PropertyArea.property_id == property_id, PropertyArea.is_active.is_(True)
        )
    )
    link_ids = list(result.scalars().all())
    if not link_ids:
        return link_ids

    if retire_employees:
        await db.execute(
            update(Employee).where(Employee.property_area_id.in_(link_ids)).values(is_active=False)
        )
    else:
        await db.execute(
            update(Employee)
            .where(Employee.property_area_id.in_(link_ids))
            .values(property_area_id=None)
        )
    await db.execute(
        update(Schedule).where(Schedule.property_area_id.in_(link_ids)).values(is_active=False)
    )
    await db.execute(
        update(PropertyArea).where(PropertyArea.id.in_(link_ids)).values(is_active=False)
    )
    return link_ids


@router.post("", response_model=PropertyRead, status_code=201)
async def create_property(
    body: PropertyCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> Property:
    prop = Property(name=body.name, address=body.address)
    db.add(prop)
    await db.flush()
    record_audit(db, admin, f"created property {prop.name}")
    await db.commit()
    await db.refresh(prop)

    logger.info("Created property %d (%s)", prop.id, prop.name)
    broadcaster.publish(
        "properties", "property-created", PropertyRead.model_validate(prop).model_dump(mode="json")
    )
    return prop


@router.get("", response_model=list[PropertyRead])
async def list_properties(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[Property]:
    query = select(Property).where(Property.is_active.is_(True)).order_by(Property.name)
    if user.role == "property_admin":
        query = query.where(Property.id == user.property_id)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.get("/{property_id}", response_model=PropertyRead)
async def get_property(
    property_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> Property:
    return await _get_active_property(db, property_id)


@router.put("/{property_id}", response_model=PropertyRead)
async def update_property(
    property_id: int,
    body: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> Property:
    prop = await _get_active_property(db, property_id)
    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(prop, field, value)

    record_audit(db, admin, f"updated property {property_id}: {changes}")
    await db.commit()
    await db.refresh(prop)

    logger.info("Updated property %d", property_id)
    broadcaster.publish(
        "properties", "property-updated", PropertyRead.model_validate(prop).model_dump(mode="json")
    )
    return prop


@router.delete("/{property_id}/full", response_model=DeleteResponse)
async def delete_property_full(
    property_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> DeleteResponse:
    """Deactivate the property with its areas links, schedules, employees and property admins."""
    prop = await _get_active_property(db, property_id)
    prop.is_active = False
    link_ids = await _retire_links(db, property_id, retire_employees=True)
    await db.execute(
        update(User)
        .where(User.property_id == property_id, User.role == "property_admin")
        .values(is_active=False)
    )
    record_audit(db, admin, f"deactivated property {prop.name} and all its staff")
    await db.commit()

    logger.info("Fully deactivated property %d (%d links)", property_id, len(link_ids))
    broadcaster.publish("properties", "property-deleted-full", {"id": property_id, "is_active": False})
    return DeleteResponse(success=True, message=f"Property '{prop.name}' deactivated with its staff")


@router.delete("/{property_id}/only", response_model=DeleteResponse)
async def delete_property_only(
    property_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> DeleteResponse:
    """Deactivate the property; its employees stay active but unassigned."""
    prop = await _get_active_property(db, property_id)
    prop.is_active = False
    link_ids = await _retire_links(db, property_id, retire_employees=False)
    record_audit(db, admin, f"deactivated property {prop.name}; employees unassigned")
    await db.commit()

    logger.info("Deactivated property %d (%d links unassigned)", property_id, len(link_ids))
    broadcaster.publish("properties", "property-deleted-only", {"id": property_id, "is_active": False})
    return DeleteResponse(success=True, message=f"Property '{prop.name}' deactivated")
