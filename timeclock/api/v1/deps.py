"""
FastAPI dependencies — database session, auth guards, clock and the
process-wide collaborators stored on ``app.state``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import datetime
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.core.config import local_now, settings
from timeclock.core.security import decode_access_token
from timeclock.db.session import async_session_factory
from timeclock.models.user import User
from timeclock.services.broadcast import Broadcaster
from timeclock.services.photos import PhotoStorage

# We use auto_error=False so we can manually check for the cookie if header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

# Rate limiter keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Clock & shared collaborators ────────────────────────────────────
def get_clock() -> Callable[[], datetime]:
    """Source of "now" for the kiosk; overridden with fixed instants in tests."""
    return local_now


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


def get_photo_storage(request: Request) -> PhotoStorage:
    return request.app.state.photo_storage


# ── Auth dependencies ───────────────────────────────────────────────
def extract_token(token: Optional[str], cookie_value: Optional[str]) -> Optional[str]:
    """Priority: Header > Cookie (cookie stored as ``Bearer <token>``)."""
    if token:
        return token
    if cookie_value:
        if cookie_value.startswith("Bearer "):
            return cookie_value.split(" ", 1)[1]
        return cookie_value
    return None


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),  # Read from HttpOnly Cookie
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT from Header OR Cookie, look up user."""
    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    final_token = extract_token(token, access_token)
    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise credentials_exc

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()
    if user is None:
        raise credentials_exc
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject inactive accounts."""
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user account")
    return current_user


async def require_admin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Only allow admin role to proceed."""
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


async def require_editor(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Admins, and property admins within their own property."""
    if current_user.role not in ("admin", "property_admin"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission for this action",
        )
    return current_user


def ensure_property_scope(user: User, property_id: int | None) -> None:
    """Property admins may only act on their own property."""
    if user.role == "property_admin" and property_id != user.property_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You cannot act on another property",
        )
