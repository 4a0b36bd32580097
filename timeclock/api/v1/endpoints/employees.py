"""
Employee CRUD.

- GET operations require any authenticated user.
- POST / PUT / DELETE operations require an admin, or a property admin
  acting inside its own property.
- PINs are generated here: the property id followed by four random digits.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.api.v1.deps import (ensure_property_scope, get_broadcaster,
                                   get_current_active_user, get_db,
                                   require_editor)
from timeclock.api.v1.endpoints.areas import load_active_link
from timeclock.models.employee import Employee
from timeclock.models.organization import Area, Property, PropertyArea
from timeclock.models.schedule import Schedule
from timeclock.models.user import User
from timeclock.schemas.attendance import DeleteResponse
from timeclock.schemas.employee import (EmployeeCreate, EmployeeRead,
                                        EmployeeUpdate)
from timeclock.schemas.organization import PropertyAreaRead
from timeclock.services.audit import record_audit
from timeclock.services.broadcast import Broadcaster

router = APIRouter(prefix="/employees", tags=["employees"])
logger = logging.getLogger(__name__)

_PIN_ATTEMPTS = 50


async def _generate_unique_pin(db: AsyncSession, property_id: int) -> str:
    for _ in range(_PIN_ATTEMPTS):
        pin = f"{property_id}{secrets.randbelow(9000) + 1000}"
        existing = await db.execute(select(Employee.id).where(Employee.pin == pin))
        if existing.scalar_one_or_none() is None:
            return pin
    logger.error("PIN space exhausted for property %d", property_id)
    raise HTTPException(status_code=503, detail="Could not generate a unique PIN")


def _employee_query():
    return (
        select(Employee, PropertyArea, Property, Area, Schedule)
        .outerjoin(PropertyArea, Employee.property_area_id == PropertyArea.id)
        .outerjoin(Property, PropertyArea.property_id == Property.id)
        .outerjoin(Area, PropertyArea.area_id == Area.id)
        .outerjoin(
            Schedule,
            and_(Schedule.property_area_id == PropertyArea.id, Schedule.is_active.is_(True)),
        )
    )


def _employee_read(emp, link, prop, area, schedule) -> EmployeeRead:
    return EmployeeRead(
        id=emp.id,
        first_name=emp.first_name,
        last_name=emp.last_name,
        employee_number=emp.employee_number,
        position=emp.position,
        pin=emp.pin,
        is_active=emp.is_active,
        created_at=emp.created_at,
        property_area_id=link.id if link else None,
        property_id=prop.id if prop else None,
        property_name=prop.name if prop else None,
        area_id=area.id if area else None,
        area_name=area.name if area else None,
        entry_time=schedule.entry_time if schedule else None,
        exit_time=schedule.exit_time if schedule else None,
    )


async def _load_employee(db: AsyncSession, employee_id: int) -> EmployeeRead:
    result = await db.execute(
        _employee_query().where(Employee.id == employee_id, Employee.is_active.is_(True)).limit(1)
    )
    row = result.first()
    if row is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return _employee_read(*row)


async def _ensure_number_free(db: AsyncSession, number: str | None, employee_id: int | None = None) -> None:
    if number is None:
        return
    query = select(Employee.id).where(Employee.employee_number == number)
    if employee_id is not None:
        query = query.where(Employee.id != employee_id)
    existing = await db.execute(query)
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail=f"Employee number '{number}' already in use")


@router.get("/links", response_model=list[PropertyAreaRead])
async def list_assignable_links(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[PropertyAreaRead]:
    """Property-area links an employee can be assigned to."""
    query = (
        select(PropertyArea, Property, Area)
        .join(Property, PropertyArea.property_id == Property.id)
        .join(Area, PropertyArea.area_id == Area.id)
        .where(
            PropertyArea.is_active.is_(True),
            Property.is_active.is_(True),
            Area.is_active.is_(True),
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


@router.get("", response_model=list[EmployeeRead])
async def list_employees(
    property_id: int | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = Query(default=50, le=500),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[EmployeeRead]:
    query = (
        _employee_query()
        .where(Employee.is_active.is_(True))
        .order_by(Employee.first_name, Employee.last_name)
        .offset(skip)
        .limit(limit)
    )
    if user.role == "property_admin":
        property_id = user.property_id
    if property_id is not None:
        query = query.where(Property.id == property_id)
    if search:
        # Escape SQL LIKE metacharacters to prevent wildcard injection
        safe_search = search.replace("%", r"\%").replace("_", r"\_")
        pattern = f"%{safe_search}%"
        query = query.where(
            or_(
                Employee.first_name.ilike(pattern, escape="\\"),
                Employee.last_name.ilike(pattern, escape="\\"),
            )
        )
    result = await db.execute(query)
    return [_employee_read(*row) for row in result.all()]


@router.post("", response_model=EmployeeRead, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_editor),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> EmployeeRead:
    link, prop, area = await load_active_link(db, body.property_area_id)
    ensure_property_scope(user, prop.id)
    await _ensure_number_free(db, body.employee_number)

    employee = Employee(
        first_name=body.first_name,
        last_name=body.last_name,
        employee_number=body.employee_number,
        position=body.position,
        property_area_id=link.id,
        pin=await _generate_unique_pin(db, prop.id),
    )
    db.add(employee)
    await db.flush()
    record_audit(db, user, f"created employee {employee.display_name} in {prop.name} - {area.name}")
    await db.commit()

    data = await _load_employee(db, employee.id)
    logger.info("Created employee %d (%s)", employee.id, employee.display_name)
    broadcaster.publish("employees", "employee-created", data.model_dump(mode="json"))
    return data


@router.get("/{employee_id}", response_model=EmployeeRead)
async def get_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> EmployeeRead:
    data = await _load_employee(db, employee_id)
    if user.role == "property_admin" and data.property_id != user.property_id:
        raise HTTPException(status_code=404, detail="Employee not found")
    return data


@router.put("/{employee_id}", response_model=EmployeeRead)
async def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_editor),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> EmployeeRead:
    current = await _load_employee(db, employee_id)
    ensure_property_scope(user, current.property_id)

    changes = body.model_dump(exclude_unset=True)
    if changes.get("property_area_id") is not None:
        _, prop, _ = await load_active_link(db, changes["property_area_id"])
        ensure_property_scope(user, prop.id)
    if "employee_number" in changes:
        changes["employee_number"] = (changes["employee_number"] or "").strip() or None
        await _ensure_number_free(db, changes["employee_number"], employee_id)

    employee = await db.get(Employee, employee_id)
    for field, value in changes.items():
        setattr(employee, field, value)
    record_audit(db, user, f"updated employee {employee_id}: {changes}")
    await db.commit()

    data = await _load_employee(db, employee_id)
    logger.info("Updated employee %d", employee_id)
    broadcaster.publish("employees", "employee-updated", data.model_dump(mode="json"))
    return data


@router.delete("/{employee_id}", response_model=DeleteResponse)
async def delete_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_editor),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> DeleteResponse:
    """Soft-delete (deactivate) an employee. Attendance history is preserved."""
    current = await _load_employee(db, employee_id)
    ensure_property_scope(user, current.property_id)

    employee = await db.get(Employee, employee_id)
    employee.is_active = False
    record_audit(db, user, f"deactivated employee {employee.display_name}")
    await db.commit()

    logger.info("Soft-deleted employee %d (%s)", employee_id, employee.display_name)
    broadcaster.publish("employees", "employee-deleted", {"id": employee_id, "is_active": False})
    return DeleteResponse(success=True, message=f"Employee '{employee.display_name}' deactivated")
