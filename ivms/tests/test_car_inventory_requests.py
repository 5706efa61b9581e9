"""
Car inventory request tests: approval-gated fleet additions and retirements.
"""

import pytest
from sqlalchemy import select

from ivms.app.models.car import Car
from ivms.app.models.enums import CarStatus
from ivms.app.models.notification import Notification, NotificationType
from ivms.tests.helpers import headers_for, trip_payload

BASE = "/v1/car-inventory-requests"


def _new_car(**overrides):
    car = {
        "model": "Toyota Hiace",
        "type": "VAN",
        "year": 2023,
        "license_plate": "NEW-001",
        "vin": "JTFSX23P000000001",
        "current_mileage": 12,
    }
    car.update(overrides)
    return car


async def _raise(client, user, json):
    return await client.post(BASE, json=json, headers=headers_for(user))


async def _step(client, user, request_id, action, json=None):
    return await client.post(f"{BASE}/{request_id}/{action}", json=json, headers=headers_for(user))


async def _recipients(db_session, type):
    result = await db_session.execute(select(Notification.user_id).where(Notification.type == type))
    return result.scalars().all()


@pytest.mark.asyncio
async def test_add_request_registers_car_on_approval(client, db_session, super_admin, garage_user):
    response = await _raise(client, garage_user, {"type": "ADD", "car": _new_car()})
    assert response.status_code == 201, response.text
    request = response.json()
    assert request["status"] == "PENDING"
    assert request["car_id"] is None
    assert request["car_data"]["license_plate"] == "NEW-001"

    assert await _recipients(db_session, NotificationType.CAR_INVENTORY_REQUEST_CREATED) == [super_admin.id]

    # Nothing is registered until an admin signs off
    result = await db_session.execute(select(Car).where(Car.license_plate == "NEW-001"))
    assert result.scalar_one_or_none() is None

    response = await _step(client, super_admin, request["id"], "approve")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "APPROVED"
    assert data["approved_by_id"] == super_admin.id

    response = await client.get(f"/v1/cars/{data['car_id']}", headers=headers_for(garage_user))
    car = response.json()
    assert car["license_plate"] == "NEW-001"
    assert car["type"] == "VAN"
    assert car["status"] == "AVAILABLE"

    assert await _recipients(db_session, NotificationType.CAR_INVENTORY_REQUEST_APPROVED) == [garage_user.id]


@pytest.mark.asyncio
async def test_add_request_plate_must_be_free(client, garage_user, car):
    response = await _raise(client, garage_user, {"type": "ADD", "car": _new_car(license_plate=car.license_plate)})
    assert response.status_code == 409
    assert response.json()["details"]["field"] == "license_plate"


@pytest.mark.asyncio
async def test_two_pending_adds_cannot_claim_the_same_vin(client, garage_user):
    first = await _raise(client, garage_user, {"type": "ADD", "car": _new_car()})
    assert first.status_code == 201

    response = await _raise(client, garage_user, {"type": "ADD", "car": _new_car(license_plate="NEW-002")})
    assert response.status_code == 409
    details = response.json()["details"]
    assert details["field"] == "vin"
    assert details["car_inventory_request_id"] == first.json()["id"]


@pytest.mark.asyncio
async def test_approval_rechecks_uniqueness(client, super_admin, garage_user):
    request = (await _raise(client, garage_user, {"type": "ADD", "car": _new_car()})).json()

    # Registered directly while the request waited
    response = await client.post(
        "/v1/cars", json=_new_car(vin="OTHERVIN"), headers=headers_for(garage_user)
    )
    assert response.status_code == 201

    response = await _step(client, super_admin, request["id"], "approve")
    assert response.status_code == 409

    response = await client.get(f"{BASE}/{request['id']}", headers=headers_for(garage_user))
    assert response.json()["status"] == "PENDING"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload,field", [
    ({"type": "ADD"}, "car"),
    ({"type": "DELETE"}, "car_id"),
])
async def test_payload_must_match_type(client, garage_user, payload, field):
    response = await _raise(client, garage_user, payload)
    assert response.status_code == 400
    assert response.json()["details"]["field"] == field


@pytest.mark.asyncio
async def test_delete_request_retires_car_on_approval(client, super_admin, garage_user, car):
    response = await _raise(client, garage_user, {"type": "DELETE", "car_id": car.id})
    assert response.status_code == 201
    request = response.json()
    assert request["car_id"] == car.id

    response = await _step(client, super_admin, request["id"], "approve")
    assert response.status_code == 200

    response = await client.get(f"/v1/cars/{car.id}", headers=headers_for(garage_user))
    assert response.json()["status"] == "DELETED"


@pytest.mark.asyncio
async def test_one_pending_delete_per_car(client, garage_user, car):
    first = await _raise(client, garage_user, {"type": "DELETE", "car_id": car.id})

    response = await _raise(client, garage_user, {"type": "DELETE", "car_id": car.id})
    assert response.status_code == 409
    assert response.json()["details"]["car_inventory_request_id"] == first.json()["id"]


@pytest.mark.asyncio
async def test_delete_request_for_deleted_car(client, garage_user, make_car):
    deleted = await make_car(license_plate="OLD-001", status=CarStatus.DELETED)

    response = await _raise(client, garage_user, {"type": "DELETE", "car_id": deleted.id})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_approval_refused_while_car_is_out(client, super_admin, operator, garage_user, car):
    request = (await _raise(client, garage_user, {"type": "DELETE", "car_id": car.id})).json()

    trip = await client.post("/v1/car-requests", json=trip_payload(), headers=headers_for(operator))
    await client.post(
        f"/v1/car-requests/{trip.json()['id']}/assign", json={"car_id": car.id}, headers=headers_for(garage_user)
    )

    response = await _step(client, super_admin, request["id"], "approve")
    assert response.status_code == 409
    assert response.json()["details"]["car_status"] == "ASSIGNED"

    response = await client.get(f"/v1/cars/{car.id}", headers=headers_for(garage_user))
    assert response.json()["status"] == "ASSIGNED"


@pytest.mark.asyncio
async def test_reject_requires_reason_and_notifies_creator(client, db_session, super_admin, garage_user, car):
    request = (await _raise(client, garage_user, {"type": "DELETE", "car_id": car.id})).json()

    response = await _step(client, super_admin, request["id"], "reject", {"rejection_reason": "  "})
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "rejection_reason"

    response = await _step(client, super_admin, request["id"], "reject", {"rejection_reason": "Still needed"})
    assert response.status_code == 200
    assert response.json()["rejection_reason"] == "Still needed"

    result = await db_session.execute(
        select(Notification).where(Notification.type == NotificationType.CAR_INVENTORY_REQUEST_REJECTED)
    )
    [notification] = result.scalars().all()
    assert notification.user_id == garage_user.id
    assert "Still needed" in notification.message

    await db_session.refresh(car)
    assert car.status == CarStatus.AVAILABLE


@pytest.mark.asyncio
async def test_only_admin_decides(client, garage_user, car):
    request = (await _raise(client, garage_user, {"type": "DELETE", "car_id": car.id})).json()

    response = await _step(client, garage_user, request["id"], "approve")
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"


@pytest.mark.asyncio
async def test_decided_request_is_final(client, super_admin, garage_user, car):
    request = (await _raise(client, garage_user, {"type": "DELETE", "car_id": car.id})).json()
    await _step(client, super_admin, request["id"], "approve")

    response = await _step(client, super_admin, request["id"], "reject", {"rejection_reason": "Changed my mind"})
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_only_garage_raises_and_only_admin_sees_queue(client, operator, garage_user, super_admin, car):
    response = await _raise(client, operator, {"type": "DELETE", "car_id": car.id})
    assert response.status_code == 403

    await _raise(client, garage_user, {"type": "DELETE", "car_id": car.id})

    response = await client.get(f"{BASE}/pending", headers=headers_for(garage_user))
    assert response.status_code == 403

    response = await client.get(f"{BASE}/pending", headers=headers_for(super_admin))
    assert response.json()["total"] == 1

    response = await client.get(BASE, params={"type": "ADD"}, headers=headers_for(garage_user))
    assert response.json()["total"] == 0
