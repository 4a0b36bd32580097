"""Tests for the kiosk endpoints: /time, /checkin, /checkin/photo and /health."""

import asyncio
import base64
import json

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from timeclock.models.attendance import Attendance, AttendanceHistory

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"kiosk-frame" * 10
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"kiosk-frame" * 10


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


@pytest.mark.asyncio
async def test_server_time_uses_clock(async_client: AsyncClient, clock):
    clock.set(9, 14, 59)
    resp = await async_client.get("/api/v1/time")
    assert resp.status_code == 200
    data = resp.json()
    assert data["time"] == "09:14:59"
    assert data["date"] == "2026-03-02"
    assert data["weekday"] == "Monday"
    assert data["timestamp"] == int(clock.now.timestamp() * 1000)


@pytest.mark.asyncio
async def test_full_day_scenario(async_client: AsyncClient, clock, seed_employee):
    """Unknown PIN, late entry, exit, then the day is closed."""
    resp = await async_client.post("/api/v1/checkin", json={"pin": "10001234"})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "PIN not found"
    assert resp.json()["code"] == "NOT_FOUND"

    await seed_employee()

    clock.set(9, 20)
    resp = await async_client.post("/api/v1/checkin", json={"pin": "10001234"})
    assert resp.status_code == 200
    entry = resp.json()
    assert entry["success"] is True
    assert entry["event"] == "ENTRY"
    assert entry["punctuality"] == "LATE"
    assert entry["name"] == "Ana Lopez"
    assert entry["time"] == "09:20:00"

    clock.set(18, 3)
    resp = await async_client.post("/api/v1/checkin", json={"pin": "10001234"})
    assert resp.status_code == 200
    assert resp.json()["event"] == "EXIT"
    assert resp.json()["punctuality"] is None

    resp = await async_client.post("/api/v1/checkin", json={"pin": "10001234"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "DAY_COMPLETE"


@pytest.mark.asyncio
async def test_entry_after_exit_time_is_rejected(async_client: AsyncClient, clock, seed_employee):
    await seed_employee()
    clock.set(18, 0, 0)
    resp = await async_client.post("/api/v1/checkin", json={"pin": "10001234"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "PAST_EXIT_WINDOW"


@pytest.mark.asyncio
async def test_numeric_pin_is_accepted(async_client: AsyncClient, clock, seed_employee):
    await seed_employee()
    clock.set(9, 0)
    resp = await async_client.post("/api/v1/checkin", json={"pin": 10001234})
    assert resp.status_code == 200
    assert resp.json()["punctuality"] == "ON_TIME"


@pytest.mark.asyncio
@pytest.mark.parametrize("pin", ["", "12", "12ab", "1" * 17, None, True, " "])
async def test_malformed_pin_is_rejected(async_client: AsyncClient, pin):
    resp = await async_client.post("/api/v1/checkin", json={"pin": pin})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_checkin_is_broadcast(async_client: AsyncClient, clock, seed_employee, broadcaster):
    await seed_employee()
    queue = broadcaster.subscribe("attendance")
    try:
        clock.set(8, 45)
        resp = await async_client.post("/api/v1/checkin", json={"pin": "10001234"})
        assert resp.status_code == 200

        message = queue.get_nowait()
        assert message.event == "attendance-registered"
        assert message.data["attendance_id"] == resp.json()["attendance_id"]
        assert message.data["punctuality"] == "ON_TIME"
        frame = message.encode()
        assert frame.startswith("event: attendance-registered\ndata: ")
        assert json.loads(frame.split("data: ", 1)[1])["name"] == "Ana Lopez"
    finally:
        broadcaster.unsubscribe("attendance", queue)


@pytest.mark.asyncio
async def test_photo_upload_links_attendance_and_history(
    async_client: AsyncClient, clock, seed_employee, db_session, photo_storage
):
    await seed_employee()
    clock.set(9, 0)
    attendance_id = (
        await async_client.post("/api/v1/checkin", json={"pin": "10001234"})
    ).json()["attendance_id"]

    resp = await async_client.post(
        "/api/v1/checkin/photo",
        json={"attendance_id": attendance_id, "image_base64": _b64(JPEG_BYTES)},
    )
    assert resp.status_code == 200
    path = resp.json()["photo_path"]
    assert path.endswith(f"attendance_{attendance_id}.jpg")
    assert (photo_storage.base_dir / f"attendance_{attendance_id}.jpg").read_bytes() == JPEG_BYTES

    attendance = await db_session.get(Attendance, attendance_id)
    history = (
        await db_session.execute(
            select(AttendanceHistory).where(AttendanceHistory.attendance_id == attendance_id)
        )
    ).scalar_one()
    assert attendance.photo_path == path
    assert history.photo_path == path


@pytest.mark.asyncio
async def test_photo_upload_is_idempotent(
    async_client: AsyncClient, clock, seed_employee, photo_storage
):
    await seed_employee()
    clock.set(9, 0)
    attendance_id = (
        await async_client.post("/api/v1/checkin", json={"pin": "10001234"})
    ).json()["attendance_id"]

    payload = {"attendance_id": attendance_id, "image_base64": "data:image/png;base64," + _b64(PNG_BYTES)}
    first = await async_client.post("/api/v1/checkin/photo", json=payload)
    second = await async_client.post("/api/v1/checkin/photo", json=payload)

    assert first.status_code == second.status_code == 200
    assert first.json()["photo_path"] == second.json()["photo_path"]
    assert first.json()["photo_path"].endswith(".png")
    assert sorted(p.name for p in photo_storage.base_dir.iterdir()) == [
        f"attendance_{attendance_id}.png"
    ]


@pytest.mark.asyncio
async def test_overlapping_saves_of_same_photo_all_succeed(photo_storage):
    for _ in range(10):
        paths = await asyncio.gather(
            *(asyncio.to_thread(photo_storage.save, "attendance_7.jpg", JPEG_BYTES) for _ in range(4))
        )
        assert len(set(paths)) == 1

    assert (photo_storage.base_dir / "attendance_7.jpg").read_bytes() == JPEG_BYTES
    assert [p.name for p in photo_storage.base_dir.iterdir()] == ["attendance_7.jpg"]


@pytest.mark.asyncio
async def test_photo_for_unknown_attendance_is_404(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/v1/checkin/photo",
        json={"attendance_id": 4242, "image_base64": _b64(JPEG_BYTES)},
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Attendance record not found"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"attendance_id": 1, "image_base64": "not base64!!"},
        {"attendance_id": 1, "image_base64": ""},
        {"attendance_id": 0, "image_base64": _b64(JPEG_BYTES)},
        {"image_base64": _b64(JPEG_BYTES)},
    ],
)
async def test_photo_upload_validation(async_client: AsyncClient, payload):
    resp = await async_client.post("/api/v1/checkin/photo", json=payload)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_health_reports_database(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": True, "version": "1.0.0"}
