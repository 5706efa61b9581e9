"""
Parts inventory tests: stock CRUD and parts used on maintenance work.
"""

import pytest
from sqlalchemy import select

from ivms.app.models.enums import TrackingMode
from ivms.app.models.notification import Notification, NotificationType
from ivms.tests.helpers import headers_for

BASE = "/v1/parts"


def _part_payload(**overrides):
    payload = {
        "name": "Brake Pad",
        "car_type": "SEDAN",
        "car_model": "Toyota Camry",
        "tracking_mode": "QUANTITY",
        "quantity": 10,
    }
    payload.update(overrides)
    return payload


async def _maintenance_in_progress(client, super_admin, garage_user, technician, car):
    response = await client.post(
        "/v1/maintenance", json={"car_id": car.id, "description": "Brakes worn"}, headers=headers_for(garage_user)
    )
    request_id = response.json()["id"]
    await client.post(
        f"/v1/maintenance/{request_id}/triage", json={"maintenance_type": "INTERNAL"}, headers=headers_for(technician)
    )
    await client.post(f"/v1/maintenance/{request_id}/approve", headers=headers_for(super_admin))
    response = await client.post(f"/v1/maintenance/{request_id}/start", headers=headers_for(technician))
    assert response.json()["status"] == "IN_PROGRESS"
    return request_id


async def _assign(client, user, maintenance_id, part_id, quantity=None):
    body = {"part_id": part_id}
    if quantity is not None:
        body["quantity"] = quantity
    return await client.post(f"/v1/maintenance/{maintenance_id}/parts", json=body, headers=headers_for(user))


# --- Stock ---

@pytest.mark.asyncio
async def test_garage_adds_quantity_part(client, garage_user):
    response = await client.post(BASE, json=_part_payload(), headers=headers_for(garage_user))
    assert response.status_code == 201
    data = response.json()
    assert data["quantity"] == 10
    assert data["serial_number"] is None


@pytest.mark.asyncio
async def test_serial_part_counts_as_one(client, garage_user):
    payload = _part_payload(name="ECU", tracking_mode="SERIAL_NUMBER", quantity=None, serial_number="ECU-0001")
    response = await client.post(BASE, json=payload, headers=headers_for(garage_user))
    assert response.status_code == 201
    assert response.json()["quantity"] == 1

    response = await client.post(BASE, json=payload, headers=headers_for(garage_user))
    assert response.status_code == 409
    assert response.json()["details"]["field"] == "serial_number"


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides,field", [
    ({"quantity": None}, "quantity"),
    ({"serial_number": "SN-1"}, "serial_number"),
    ({"tracking_mode": "SERIAL_NUMBER", "quantity": None}, "serial_number"),
    ({"tracking_mode": "SERIAL_NUMBER", "serial_number": "SN-1", "quantity": 3}, "quantity"),
])
async def test_tracking_mode_rules(client, garage_user, overrides, field):
    response = await client.post(BASE, json=_part_payload(**overrides), headers=headers_for(garage_user))
    assert response.status_code == 400
    assert response.json()["details"]["field"] == field


@pytest.mark.asyncio
async def test_only_garage_maintains_stock(client, technician, operator, make_part):
    part = await make_part()

    response = await client.post(BASE, json=_part_payload(), headers=headers_for(technician))
    assert response.status_code == 403

    response = await client.get(BASE, headers=headers_for(technician))
    assert response.json()["total"] == 1

    response = await client.get(BASE, headers=headers_for(operator))
    assert response.status_code == 403

    response = await client.patch(f"{BASE}/{part.id}", json={"quantity": 3}, headers=headers_for(technician))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_and_soft_delete(client, garage_user, make_part):
    part = await make_part()
    headers = headers_for(garage_user)

    response = await client.patch(f"{BASE}/{part.id}", json={"quantity": 25, "name": "Brake Pad Set"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["quantity"] == 25
    assert response.json()["name"] == "Brake Pad Set"

    response = await client.delete(f"{BASE}/{part.id}", headers=headers)
    assert response.status_code == 204

    response = await client.get(f"{BASE}/{part.id}", headers=headers)
    assert response.status_code == 404
    assert (await client.get(BASE, headers=headers)).json()["total"] == 0


@pytest.mark.asyncio
async def test_serial_part_quantity_is_fixed(client, garage_user, make_part):
    part = await make_part(name="ECU", quantity=1, tracking_mode=TrackingMode.SERIAL_NUMBER, serial_number="ECU-1")

    response = await client.patch(f"{BASE}/{part.id}", json={"quantity": 2}, headers=headers_for(garage_user))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_search_and_low_stock(client, garage_user, make_part):
    await make_part(name="Brake Pad", quantity=2)
    await make_part(name="Oil Filter", quantity=40)
    headers = headers_for(garage_user)

    response = await client.get(BASE, params={"search": "brake"}, headers=headers)
    assert [p["name"] for p in response.json()["parts"]] == ["Brake Pad"]

    response = await client.get(f"{BASE}/low-stock", headers=headers)
    assert [p["name"] for p in response.json()["parts"]] == ["Brake Pad"]

    response = await client.get(f"{BASE}/low-stock", params={"threshold": 50}, headers=headers)
    assert [p["name"] for p in response.json()["parts"]] == ["Brake Pad", "Oil Filter"]


# --- Parts used on maintenance ---

@pytest.mark.asyncio
async def test_assignment_takes_stock(client, db_session, super_admin, garage_user, technician, car, make_part):
    part = await make_part(quantity=10)
    maintenance_id = await _maintenance_in_progress(client, super_admin, garage_user, technician, car)

    response = await _assign(client, technician, maintenance_id, part.id, quantity=4)
    assert response.status_code == 201, response.text
    usage = response.json()
    assert usage["quantity_used"] == 4
    assert usage["assigned_by_id"] == technician.id

    await db_session.refresh(part)
    assert part.quantity == 6

    response = await client.get(f"/v1/maintenance/{maintenance_id}/parts", headers=headers_for(garage_user))
    assert [u["part_id"] for u in response.json()["usages"]] == [part.id]

    response = await client.get(f"{BASE}/{part.id}/usage-history", headers=headers_for(garage_user))
    assert [u["maintenance_request_id"] for u in response.json()["usages"]] == [maintenance_id]


@pytest.mark.asyncio
async def test_insufficient_stock(client, db_session, super_admin, garage_user, technician, car, make_part):
    part = await make_part(quantity=2)
    maintenance_id = await _maintenance_in_progress(client, super_admin, garage_user, technician, car)

    response = await _assign(client, technician, maintenance_id, part.id, quantity=3)
    assert response.status_code == 400
    assert response.json()["details"] == {"part_id": part.id, "available": 2, "requested": 3}

    await db_session.refresh(part)
    assert part.quantity == 2


@pytest.mark.asyncio
async def test_low_stock_warns_garage(client, db_session, super_admin, garage_user, technician, car, make_part):
    part = await make_part(quantity=7)
    maintenance_id = await _maintenance_in_progress(client, super_admin, garage_user, technician, car)

    await _assign(client, technician, maintenance_id, part.id, quantity=1)
    result = await db_session.execute(
        select(Notification).where(Notification.type == NotificationType.PART_LOW_STOCK)
    )
    assert result.scalars().all() == []

    await _assign(client, technician, maintenance_id, part.id, quantity=1)
    result = await db_session.execute(
        select(Notification).where(Notification.type == NotificationType.PART_LOW_STOCK)
    )
    [warning] = result.scalars().all()
    assert warning.user_id == garage_user.id
    assert "Only 5" in warning.message


@pytest.mark.asyncio
async def test_parts_only_for_work_in_progress(client, garage_user, technician, car, make_part):
    part = await make_part()
    response = await client.post(
        "/v1/maintenance", json={"car_id": car.id, "description": "Noise"}, headers=headers_for(garage_user)
    )
    maintenance_id = response.json()["id"]

    response = await _assign(client, technician, maintenance_id, part.id)
    assert response.status_code == 400
    assert response.json()["details"]["status"] == "PENDING"


@pytest.mark.asyncio
async def test_serial_part_used_once(client, super_admin, garage_user, technician, make_car, make_part):
    part = await make_part(name="ECU", quantity=1, tracking_mode=TrackingMode.SERIAL_NUMBER, serial_number="ECU-1")
    first_car = await make_car(license_plate="AAA-111")
    second_car = await make_car(license_plate="BBB-222")
    first = await _maintenance_in_progress(client, super_admin, garage_user, technician, first_car)
    second = await _maintenance_in_progress(client, super_admin, garage_user, technician, second_car)

    response = await _assign(client, technician, first, part.id, quantity=2)
    assert response.status_code == 400

    assert (await _assign(client, technician, first, part.id)).status_code == 201

    response = await _assign(client, technician, second, part.id)
    assert response.status_code == 400
    assert response.json()["details"]["part_id"] == part.id


@pytest.mark.asyncio
async def test_removing_assignment_restocks(client, db_session, super_admin, garage_user, technician, car, make_part):
    part = await make_part(quantity=10)
    maintenance_id = await _maintenance_in_progress(client, super_admin, garage_user, technician, car)
    usage = (await _assign(client, technician, maintenance_id, part.id, quantity=3)).json()

    response = await client.delete(f"/v1/maintenance/parts/{usage['id']}", headers=headers_for(garage_user))
    assert response.status_code == 204

    await db_session.refresh(part)
    assert part.quantity == 10

    response = await client.get(f"/v1/maintenance/{maintenance_id}/parts", headers=headers_for(garage_user))
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_operation_cannot_assign(client, operator, super_admin, garage_user, technician, car, make_part):
    part = await make_part()
    maintenance_id = await _maintenance_in_progress(client, super_admin, garage_user, technician, car)

    response = await _assign(client, operator, maintenance_id, part.id)
    assert response.status_code == 403

    result = await client.get(f"{BASE}/{part.id}", headers=headers_for(garage_user))
    assert result.json()["quantity"] == 10
