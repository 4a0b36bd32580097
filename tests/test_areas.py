"""Tests for area CRUD inside a property."""

import pytest
from httpx import AsyncClient

from timeclock.models.employee import Employee
from timeclock.models.schedule import Schedule


async def _property(async_client: AsyncClient, name: str = "Hotel Playa") -> int:
    return (await async_client.post("/api/v1/properties", json={"name": name})).json()["id"]


@pytest.mark.asyncio
async def test_create_area_creates_link(async_client: AsyncClient, broadcaster):
    property_id = await _property(async_client)
    queue = broadcaster.subscribe("areas")
    try:
        resp = await async_client.post(
            "/api/v1/areas",
            json={"name": "Housekeeping", "description": "Rooms", "property_id": property_id},
        )
    finally:
        broadcaster.unsubscribe("areas", queue)
    assert resp.status_code == 201
    data = resp.json()
    assert data["property_id"] == property_id
    assert data["property_name"] == "Hotel Playa"
    assert data["property_area_id"] > 0
    assert queue.get_nowait().data["name"] == "Housekeeping"


@pytest.mark.asyncio
async def test_area_in_unknown_property_is_400(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/areas", json={"name": "Bar", "property_id": 77})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_list_areas_filters_by_property(async_client: AsyncClient):
    first = await _property(async_client, "A")
    second = await _property(async_client, "B")
    await async_client.post("/api/v1/areas", json={"name": "Bar", "property_id": first})
    await async_client.post("/api/v1/areas", json={"name": "Spa", "property_id": second})

    resp = await async_client.get("/api/v1/areas")
    assert [a["name"] for a in resp.json()] == ["Bar", "Spa"]

    resp = await async_client.get("/api/v1/areas", params={"property_id": second})
    assert [a["name"] for a in resp.json()] == ["Spa"]


@pytest.mark.asyncio
async def test_update_area(async_client: AsyncClient):
    property_id = await _property(async_client)
    area_id = (
        await async_client.post("/api/v1/areas", json={"name": "Bar", "property_id": property_id})
    ).json()["id"]

    resp = await async_client.put(f"/api/v1/areas/{area_id}", json={"name": "Lobby Bar"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Lobby Bar"
    assert (await async_client.get(f"/api/v1/areas/{area_id}")).json()["name"] == "Lobby Bar"


@pytest.mark.asyncio
async def test_delete_area_unassigns_employees(async_client: AsyncClient, seed_employee, db_session):
    seed = await seed_employee()
    area_id, employee_id, schedule_id = seed.area.id, seed.employee.id, seed.schedule.id

    resp = await async_client.delete(f"/api/v1/areas/{area_id}")
    assert resp.status_code == 200

    db_session.expire_all()
    employee = await db_session.get(Employee, employee_id)
    schedule = await db_session.get(Schedule, schedule_id)
    assert employee.is_active is True
    assert employee.property_area_id is None
    assert schedule.is_active is False
    assert (await async_client.get(f"/api/v1/areas/{area_id}")).status_code == 404


@pytest.mark.asyncio
async def test_property_admin_scope(async_client: AsyncClient, login_as):
    mine = await _property(async_client, "Mine")
    theirs = await _property(async_client, "Theirs")

    login_as("property_admin", property_id=mine)
    ok = await async_client.post("/api/v1/areas", json={"name": "Bar", "property_id": mine})
    assert ok.status_code == 201
    denied = await async_client.post("/api/v1/areas", json={"name": "Bar", "property_id": theirs})
    assert denied.status_code == 403
