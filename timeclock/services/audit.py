"""Audit trail helper used by the administrative endpoints."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from timeclock.models.audit import AuditLog
from timeclock.models.user import User


def record_audit(db: AsyncSession, user: User, action: str) -> AuditLog:
    """Stage an audit row in the caller's transaction (committed with it)."""
    entry = AuditLog(user_id=user.id, action=f"{user.username} {action}"[:1000])
    db.add(entry)
    return entry
