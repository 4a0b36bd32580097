"""Tests for employee CRUD and PIN generation."""

import pytest
from httpx import AsyncClient

from timeclock.models.employee import Employee


async def _link_id(async_client: AsyncClient, property_name: str = "Hotel Sur") -> tuple[int, int]:
    prop = (await async_client.post("/api/v1/properties", json={"name": property_name})).json()
    area = (
        await async_client.post(
            "/api/v1/areas", json={"name": "Kitchen", "property_id": prop["id"]}
        )
    ).json()
    return prop["id"], area["property_area_id"]


def _employee_payload(link_id: int, **overrides) -> dict:
    payload = {
        "first_name": "Luis",
        "last_name": "Garcia",
        "position": "Cook",
        "property_area_id": link_id,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_employee_generates_property_prefixed_pin(async_client: AsyncClient):
    property_id, link_id = await _link_id(async_client)
    resp = await async_client.post("/api/v1/employees", json=_employee_payload(link_id))
    assert resp.status_code == 201
    data = resp.json()
    assert data["pin"].startswith(str(property_id))
    assert len(data["pin"]) == len(str(property_id)) + 4
    assert data["pin"].isdigit()
    assert data["property_name"] == "Hotel Sur"
    assert data["area_name"] == "Kitchen"
    assert data["entry_time"] is None


@pytest.mark.asyncio
async def test_generated_pins_are_unique(async_client: AsyncClient):
    _, link_id = await _link_id(async_client)
    pins = set()
    for i in range(5):
        resp = await async_client.post(
            "/api/v1/employees", json=_employee_payload(link_id, first_name=f"E{i}")
        )
        pins.add(resp.json()["pin"])
    assert len(pins) == 5


@pytest.mark.asyncio
async def test_pin_space_exhaustion_is_503(async_client: AsyncClient, monkeypatch):
    _, link_id = await _link_id(async_client)
    first = (await async_client.post("/api/v1/employees", json=_employee_payload(link_id))).json()

    # Every draw lands on the PIN that is already taken
    suffix = int(first["pin"][-4:]) - 1000
    monkeypatch.setattr("timeclock.api.v1.endpoints.employees.secrets.randbelow", lambda _n: suffix)

    resp = await async_client.post("/api/v1/employees", json=_employee_payload(link_id))
    assert resp.status_code == 503


@pytest.mark.asyncio
async def test_create_employee_with_invalid_link_is_400(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/employees", json=_employee_payload(999))
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_employee_number_must_be_unique(async_client: AsyncClient):
    _, link_id = await _link_id(async_client)
    ok = await async_client.post(
        "/api/v1/employees", json=_employee_payload(link_id, employee_number="N-1")
    )
    assert ok.status_code == 201
    dup = await async_client.post(
        "/api/v1/employees", json=_employee_payload(link_id, employee_number=" N-1 ")
    )
    assert dup.status_code == 409


@pytest.mark.asyncio
async def test_blank_names_are_rejected(async_client: AsyncClient):
    _, link_id = await _link_id(async_client)
    resp = await async_client.post(
        "/api/v1/employees", json=_employee_payload(link_id, first_name="  ")
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_and_search_employees(async_client: AsyncClient):
    _, link_id = await _link_id(async_client)
    await async_client.post("/api/v1/employees", json=_employee_payload(link_id, first_name="Maria"))
    await async_client.post("/api/v1/employees", json=_employee_payload(link_id, first_name="Pedro"))

    resp = await async_client.get("/api/v1/employees")
    assert [e["first_name"] for e in resp.json()] == ["Maria", "Pedro"]

    resp = await async_client.get("/api/v1/employees", params={"search": "ped"})
    assert [e["first_name"] for e in resp.json()] == ["Pedro"]

    resp = await async_client.get("/api/v1/employees", params={"search": "%"})
    assert resp.json() == []


@pytest.mark.asyncio
async def test_update_employee_moves_and_renames(async_client: AsyncClient):
    _, link_id = await _link_id(async_client)
    _, other_link = await _link_id(async_client, "Hotel Este")
    emp = (await async_client.post("/api/v1/employees", json=_employee_payload(link_id))).json()

    resp = await async_client.put(
        f"/api/v1/employees/{emp['id']}",
        json={"last_name": "Gomez", "property_area_id": other_link},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["last_name"] == "Gomez"
    assert data["property_name"] == "Hotel Este"
    assert data["pin"] == emp["pin"]

    resp = await async_client.put(f"/api/v1/employees/{emp['id']}", json={"first_name": None})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_delete_employee_is_soft(async_client: AsyncClient, db_session):
    _, link_id = await _link_id(async_client)
    emp = (await async_client.post("/api/v1/employees", json=_employee_payload(link_id))).json()

    resp = await async_client.delete(f"/api/v1/employees/{emp['id']}")
    assert resp.status_code == 200
    assert (await async_client.get(f"/api/v1/employees/{emp['id']}")).status_code == 404

    row = await db_session.get(Employee, emp["id"])
    assert row is not None
    assert row.is_active is False


@pytest.mark.asyncio
async def test_property_admin_cannot_touch_other_property(async_client: AsyncClient, login_as):
    _, link_id = await _link_id(async_client)
    mine, _ = await _link_id(async_client, "Hotel Propio")
    emp = (await async_client.post("/api/v1/employees", json=_employee_payload(link_id))).json()

    login_as("property_admin", property_id=mine)
    assert (await async_client.get(f"/api/v1/employees/{emp['id']}")).status_code == 404
    assert (await async_client.delete(f"/api/v1/employees/{emp['id']}")).status_code == 403
    resp = await async_client.post("/api/v1/employees", json=_employee_payload(link_id))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_readonly_cannot_create(async_client: AsyncClient, login_as):
    _, link_id = await _link_id(async_client)
    login_as("readonly")
    resp = await async_client.post("/api/v1/employees", json=_employee_payload(link_id))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_links_listing(async_client: AsyncClient):
    property_id, link_id = await _link_id(async_client)
    resp = await async_client.get("/api/v1/employees/links")
    assert resp.json() == [
        {
            "property_area_id": link_id,
            "property_id": property_id,
            "property_name": "Hotel Sur",
            "area_id": resp.json()[0]["area_id"],
            "area_name": "Kitchen",
        }
    ]
