"""
Timeclock — Application entry point.

This is the **only** file that assembles the app.  Business logic lives
in the `services/`, `api/`, `models/` and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select

from timeclock.api.v1.api import api_router
from timeclock.api.v1.deps import limiter
from timeclock.core.config import settings
from timeclock.core.exceptions import register_exception_handlers
from timeclock.core.security import get_password_hash
from timeclock.db.base import Base
from timeclock.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from timeclock.models.attendance import Attendance, AttendanceHistory, Incidence  # noqa: F401
from timeclock.models.audit import AuditLog  # noqa: F401
from timeclock.models.employee import Employee  # noqa: F401
from timeclock.models.organization import Area, Property, PropertyArea  # noqa: F401
from timeclock.models.schedule import Schedule, ScheduleDay  # noqa: F401
from timeclock.models.user import User
from timeclock.services.broadcast import Broadcaster
from timeclock.services.photos import PhotoStorage

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed default admin user on first run
    async with async_session_factory() as session:
        result = await session.execute(
            select(User).where(User.username == settings.FIRST_ADMIN_USERNAME)
        )
        if result.scalar_one_or_none() is None:
            admin = User(
                username=settings.FIRST_ADMIN_USERNAME,
                hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                full_name="System Administrator",
                role="admin",
            )
            session.add(admin)
            await session.commit()
            logger.info(
                "Default admin created: %s (password: <redacted>)",
                settings.FIRST_ADMIN_USERNAME,
            )

    logger.info("Timeclock v%s started (clock offset %s)", settings.VERSION, settings.TIMEZONE_OFFSET)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="PIN time & attendance backend",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Process-wide collaborators, injected through api.v1.deps
    application.state.broadcaster = Broadcaster(queue_size=settings.SSE_QUEUE_SIZE)
    application.state.photo_storage = PhotoStorage(settings.PHOTO_DIR)
    application.state.limiter = limiter

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
