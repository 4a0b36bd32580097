"""
Live update channels (Server-Sent Events) for the admin dashboards.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from timeclock.api.v1.deps import get_broadcaster, get_current_active_user
from timeclock.core.config import settings
from timeclock.models.user import User
from timeclock.services.broadcast import TOPICS, Broadcaster

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/{topic}")
async def subscribe(
    topic: str,
    broadcaster: Broadcaster = Depends(get_broadcaster),
    _user: User = Depends(get_current_active_user),
) -> StreamingResponse:
    """Stream ``event:``/``data:`` frames for one topic until the browser disconnects."""
    if topic not in TOPICS:
        raise HTTPException(status_code=404, detail=f"Unknown channel '{topic}'")
    return StreamingResponse(
        broadcaster.stream(topic, keepalive=settings.SSE_KEEPALIVE_SECONDS),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
