"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from timeclock.api.v1.endpoints import (areas, attendance, auth, employees,
                                        events, kiosk, properties, schedules)

api_router = APIRouter()

# Auth (login, refresh, logout, user management)
api_router.include_router(auth.router)

# Kiosk: server clock, PIN check-in, photo upload
api_router.include_router(kiosk.router)

# Attendance feed and incidences
api_router.include_router(attendance.router)

# Administration
api_router.include_router(properties.router)
api_router.include_router(areas.router)
api_router.include_router(employees.router)
api_router.include_router(schedules.router)

# Live update channels (SSE)
api_router.include_router(events.router)
