"""
Shared test fixtures for the Timeclock test suite.

Async SQLAlchemy over an in-memory aiosqlite database, with the DB
session, the clock and the authenticated user overridden on the app.
"""

import os
import sys
from datetime import datetime, time, timezone
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["TIMEZONE_OFFSET"] = "+00:00"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from timeclock.api.v1.deps import get_clock, get_current_user, get_db
from timeclock.db.base import Base
from timeclock.db.session import enable_sqlite_foreign_keys
from timeclock.main import app
from timeclock.models.employee import Employee
from timeclock.models.organization import Area, Property, PropertyArea
from timeclock.models.schedule import Schedule, ScheduleDay
from timeclock.models.user import User
from timeclock.services.photos import PhotoStorage

# Separate test engine shared by the app (via dependency override) and the tests
test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(test_engine)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# A Monday; check-in scenarios move the clock within this day
DEFAULT_NOW = datetime(2026, 3, 2, 8, 55, tzinfo=timezone.utc)


def _admin() -> User:
    return User(id=1, username="admin", is_active=True, role="admin")


_auth_state = {"user": _admin()}


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables (with the admin row audit entries point at) and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with TestingSessionLocal() as session:
        session.add(User(id=1, username="admin", hashed_password="x", role="admin"))
        await session.commit()

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


async def _override_get_current_user() -> User:
    return _auth_state["user"]


app.dependency_overrides[get_db] = _override_get_db
app.dependency_overrides[get_current_user] = _override_get_current_user


class FixedClock:
    """Settable stand-in for the wall clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int = 0, second: int = 0) -> datetime:
        self.now = self.now.replace(hour=hour, minute=minute, second=second, microsecond=0)
        return self.now


@pytest.fixture(autouse=True)
def clock():
    fixed = FixedClock(DEFAULT_NOW)
    app.dependency_overrides[get_clock] = lambda: fixed
    yield fixed
    app.dependency_overrides.pop(get_clock, None)


@pytest.fixture(autouse=True)
def photo_storage(tmp_path):
    """Keep kiosk photos inside the test's temp dir."""
    previous = app.state.photo_storage
    storage = PhotoStorage(tmp_path / "photos")
    app.state.photo_storage = storage
    yield storage
    app.state.photo_storage = previous


@pytest.fixture
def login_as():
    """Switch the authenticated user for the rest of the test."""

    def _login(role: str, property_id: int | None = None) -> User:
        user = User(id=1, username=f"{role}-user", is_active=True, role=role, property_id=property_id)
        _auth_state["user"] = user
        return user

    yield _login
    _auth_state["user"] = _admin()


@pytest.fixture
def real_auth():
    """Use the real JWT guard instead of the overridden user."""
    app.dependency_overrides.pop(get_current_user, None)
    yield
    app.dependency_overrides[get_current_user] = _override_get_current_user


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def broadcaster():
    return app.state.broadcaster


@pytest.fixture
def seed_employee(db_session: AsyncSession):
    """Insert property -> area -> link (-> schedule) -> employee and return them."""

    async def _seed(
        pin: str = "10001234",
        *,
        entry: time = time(9, 0),
        exit_: time = time(18, 0),
        tolerance: int = 15,
        with_schedule: bool = True,
        active: bool = True,
        property_name: str = "Hotel Centro",
        area_name: str = "Front Desk",
        first_name: str = "Ana",
        last_name: str = "Lopez",
        employee_number: str | None = None,
    ) -> SimpleNamespace:
        prop = Property(name=property_name, address="Av. Juarez 1")
        area = Area(name=area_name)
        db_session.add_all([prop, area])
        await db_session.flush()

        link = PropertyArea(property_id=prop.id, area_id=area.id)
        db_session.add(link)
        await db_session.flush()

        schedule = None
        if with_schedule:
            schedule = Schedule(
                property_area_id=link.id,
                entry_time=entry,
                exit_time=exit_,
                tolerance_minutes=tolerance,
                schedule_type="FIXED",
                days=[ScheduleDay(weekday=d) for d in ("MON", "TUE", "WED", "THU", "FRI")],
            )
            db_session.add(schedule)

        employee = Employee(
            first_name=first_name,
            last_name=last_name,
            employee_number=employee_number,
            position="Receptionist",
            pin=pin,
            property_area_id=link.id,
            is_active=active,
        )
        db_session.add(employee)
        await db_session.commit()
        return SimpleNamespace(
            property=prop, area=area, link=link, schedule=schedule, employee=employee
        )

    return _seed


@pytest.fixture
def session_factory():
    """Fresh sessions for code under test that commits or rolls back itself."""
    return TestingSessionLocal
