"""
Attendance decision engine — PIN check-in at the terminal.

``check_in`` resolves the employee behind a PIN, decides whether the tap
is the day's ENTRY or EXIT, evaluates punctuality for entries and writes
the attendance row, its history snapshot and (when late) an incidence in
one transaction.  Any failure rolls back every write of the attempt.

The rules are pure functions over explicit instants so they can be
exercised without a clock or a database.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.core.exceptions import (AlreadyExited, ConflictFailure,
                                       DayComplete, NotFound, PastExitWindow,
                                       PersistenceFailure, TimeclockError)
from timeclock.models.attendance import Attendance, AttendanceHistory, Incidence
from timeclock.models.employee import Employee
from timeclock.models.organization import Area, Property, PropertyArea
from timeclock.models.schedule import Schedule

logger = logging.getLogger(__name__)

# publish(event_name, payload); delivery is best-effort
Publisher = Callable[[str, dict[str, Any]], Any]


class EventKind(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"


class Punctuality(str, Enum):
    ON_TIME = "ON_TIME"
    LATE = "LATE"


@dataclass(frozen=True)
class EmployeeLookup:
    employee_id: int
    display_name: str
    employee_number: str | None
    property_area_id: int
    property_name: str
    area_name: str
    entry_time: time
    exit_time: time
    tolerance_minutes: int


@dataclass(frozen=True)
class TodayRecord:
    kind: EventKind
    time: time


@dataclass(frozen=True)
class CheckInResult:
    attendance_id: int
    display_name: str
    kind: EventKind
    punctuality: Punctuality | None
    date: date
    time: time


# ── Rules ───────────────────────────────────────────────────────────
def at_time_of_day(now: datetime, time_of_day: time) -> datetime:
    """``now``'s calendar date at ``time_of_day``, in ``now``'s timezone."""
    return datetime.combine(now.date(), time_of_day.replace(tzinfo=None), tzinfo=now.tzinfo)


def classify_event(records: Sequence[TodayRecord]) -> EventKind:
    """Decide the kind of today's next record from the ones already written."""
    if not records:
        return EventKind.ENTRY
    if len(records) == 1:
        if records[0].kind is EventKind.ENTRY:
            return EventKind.EXIT
        raise AlreadyExited()
    raise DayComplete()


def can_still_enter(exit_time: time, now: datetime) -> bool:
    """An entry is refused from the exit cutoff second onwards."""
    return now < at_time_of_day(now, exit_time)


def evaluate_punctuality(entry_time: time, tolerance_minutes: int, now: datetime) -> Punctuality:
    deadline = at_time_of_day(now, entry_time) + timedelta(minutes=tolerance_minutes)
    return Punctuality.ON_TIME if now <= deadline else Punctuality.LATE


# ── Store ───────────────────────────────────────────────────────────
async def find_active_employee_by_pin(db: AsyncSession, pin: str) -> EmployeeLookup | None:
    """Active employee with ``pin`` plus the active schedule of its area link."""
    result = await db.execute(
        select(Employee, Property.name, Area.name, Schedule)
        .join(PropertyArea, Employee.property_area_id == PropertyArea.id)
        .join(Property, PropertyArea.property_id == Property.id)
        .join(Area, PropertyArea.area_id == Area.id)
        .join(
            Schedule,
            and_(
                Schedule.property_area_id == PropertyArea.id,
                Schedule.is_active.is_(True),
            ),
        )
        .where(
            Employee.pin == pin,
            Employee.is_active.is_(True),
            PropertyArea.is_active.is_(True),
        )
        .order_by(Schedule.id.desc())
        .limit(1)
    )
    row = result.first()
    if row is None:
        return None
    employee, property_name, area_name, schedule = row
    return EmployeeLookup(
        employee_id=employee.id,
        display_name=employee.display_name,
        employee_number=employee.employee_number,
        property_area_id=employee.property_area_id,
        property_name=property_name,
        area_name=area_name,
        entry_time=schedule.entry_time,
        exit_time=schedule.exit_time,
        tolerance_minutes=schedule.tolerance_minutes,
    )


async def list_today_records(db: AsyncSession, employee_id: int, day: date) -> list[TodayRecord]:
    # Row lock serialises same-employee taps where the backend supports it
    result = await db.execute(
        select(Attendance.event_type, Attendance.time)
        .where(Attendance.employee_id == employee_id, Attendance.date == day)
        .order_by(Attendance.time.asc())
        .with_for_update()
    )
    return [TodayRecord(kind=EventKind(kind), time=tod) for kind, tod in result.all()]


async def insert_incidence(db: AsyncSession, employee_id: int, day: date) -> Incidence:
    incidence = Incidence(
        employee_id=employee_id,
        incidence_type=Punctuality.LATE.value,
        date=day,
        justified=False,
    )
    db.add(incidence)
    await db.flush()
    return incidence


async def insert_attendance(
    db: AsyncSession, employee_id: int, kind: EventKind, day: date, time_of_day: time
) -> Attendance:
    attendance = Attendance(
        employee_id=employee_id,
        event_type=kind.value,
        date=day,
        time=time_of_day,
    )
    db.add(attendance)
    await db.flush()
    return attendance


async def insert_history(
    db: AsyncSession, attendance: Attendance, employee: EmployeeLookup
) -> AttendanceHistory:
    history = AttendanceHistory(
        attendance_id=attendance.id,
        employee_id=employee.employee_id,
        employee_name=employee.display_name,
        employee_number=employee.employee_number,
        property_name=employee.property_name,
        area_name=employee.area_name,
        event_type=attendance.event_type,
        date=attendance.date,
        time=attendance.time,
    )
    db.add(history)
    await db.flush()
    return history


# ── Engine ──────────────────────────────────────────────────────────
async def check_in(
    db: AsyncSession,
    pin: str,
    now: datetime,
    publish: Publisher | None = None,
) -> CheckInResult:
    """Register the next attendance event for the employee behind ``pin``.

    Raises ``NotFound``, ``AlreadyExited``, ``DayComplete``,
    ``PastExitWindow`` or ``PersistenceFailure``; in every case nothing
    written during the attempt survives.
    """
    today = now.date()
    time_of_day = now.time().replace(microsecond=0)

    try:
        employee = await find_active_employee_by_pin(db, pin)
        if employee is None:
            raise NotFound()

        kind = classify_event(await list_today_records(db, employee.employee_id, today))

        punctuality: Punctuality | None = None
        if kind is EventKind.ENTRY:
            if not can_still_enter(employee.exit_time, now):
                raise PastExitWindow()
            punctuality = evaluate_punctuality(
                employee.entry_time, employee.tolerance_minutes, now
            )
            if punctuality is Punctuality.LATE:
                await insert_incidence(db, employee.employee_id, today)

        attendance = await insert_attendance(db, employee.employee_id, kind, today, time_of_day)
        await insert_history(db, attendance, employee)
        attendance_id = attendance.id
        await db.commit()
    except TimeclockError:
        await db.rollback()
        raise
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Concurrent check-in rejected for PIN ending %s: %s", pin[-2:], exc)
        raise ConflictFailure() from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Check-in could not be persisted: %s", exc, exc_info=True)
        raise PersistenceFailure() from exc

    logger.info(
        "Check-in %s (%s) for %s on %s at %s",
        kind.value,
        punctuality.value if punctuality else "-",
        employee.display_name,
        today.isoformat(),
        time_of_day.isoformat(),
    )

    result = CheckInResult(
        attendance_id=attendance_id,
        display_name=employee.display_name,
        kind=kind,
        punctuality=punctuality,
        date=today,
        time=time_of_day,
    )
    if publish is not None:
        _notify(publish, result, employee)
    return result


def _notify(publish: Publisher, result: CheckInResult, employee: EmployeeLookup) -> None:
    payload = {
        "attendance_id": result.attendance_id,
        "employee_id": employee.employee_id,
        "name": result.display_name,
        "property": employee.property_name,
        "area": employee.area_name,
        "event": result.kind.value,
        "punctuality": result.punctuality.value if result.punctuality else None,
        "date": result.date.isoformat(),
        "time": result.time.isoformat(),
    }
    try:
        publish("attendance-registered", payload)
    except Exception:
        # The check-in is already committed; a lost notification is acceptable
        logger.warning("Could not publish attendance %d", result.attendance_id, exc_info=True)
