"""
Concurrent update tests.

Two independent sessions load the same rows, one commits first, and the
loser must get a ConflictError instead of silently overwriting.
"""

import pytest
from sqlalchemy import update

from ivms.app.core.exceptions import ConflictError
from ivms.app.models.car import Car
from ivms.app.models.car_request import CarRequest
from ivms.app.models.enums import CarRequestStatus, CarStatus, MaintenanceStatus
from ivms.app.models.maintenance_request import MaintenanceRequest
from ivms.app.services import car_service
from ivms.app.services.car_request_service import CarRequestService
from ivms.app.services.maintenance_service import MaintenanceService
from ivms.app.services.vehicle_status import get_car, set_car_status
from ivms.tests.helpers import claims_for, headers_for, trip_payload


async def _new_request(client, operator):
    response = await client.post("/v1/car-requests", json=trip_payload(), headers=headers_for(operator))
    assert response.status_code == 201
    return response.json()["id"]


async def _assigned_request(client, operator, garage_user, car):
    request_id = await _new_request(client, operator)
    response = await client.post(
        f"/v1/car-requests/{request_id}/assign", json={"car_id": car.id}, headers=headers_for(garage_user)
    )
    assert response.status_code == 200
    return request_id


@pytest.mark.asyncio
async def test_approve_and_reject_race_has_one_winner(client, session_factory, super_admin, operator, garage_user, car):
    request_id = await _assigned_request(client, operator, garage_user, car)
    admin = claims_for(super_admin)

    async with session_factory() as first, session_factory() as second:
        # Both sessions see the request as ASSIGNED
        loaded_first = await CarRequestService.get(first, request_id)
        loaded_second = await CarRequestService.get(second, request_id)

        await CarRequestService.approve(first, request_id, admin)

        with pytest.raises(ConflictError) as exc:
            await CarRequestService.reject(second, request_id, admin, "Too late")
        assert exc.value.status_code == 409

    async with session_factory() as check:
        stored = await check.get(CarRequest, request_id)
        assert stored.status == CarRequestStatus.APPROVED
        # The losing reject must not have released the car
        assert (await check.get(Car, car.id)).status == CarStatus.ASSIGNED


@pytest.mark.asyncio
async def test_double_approve_conflicts(client, session_factory, super_admin, operator, garage_user, car):
    request_id = await _assigned_request(client, operator, garage_user, car)
    admin = claims_for(super_admin)

    async with session_factory() as first, session_factory() as second:
        loaded_first = await CarRequestService.get(first, request_id)
        loaded_second = await CarRequestService.get(second, request_id)

        await CarRequestService.approve(first, request_id, admin)
        with pytest.raises(ConflictError):
            await CarRequestService.approve(second, request_id, admin)


@pytest.mark.asyncio
async def test_two_requests_cannot_reserve_the_same_car(
    client, session_factory, operator, other_operator, garage_user, car
):
    first_id = await _new_request(client, operator)
    second_id = await _new_request(client, other_operator)
    garage = claims_for(garage_user)

    async with session_factory() as first, session_factory() as second:
        # Both garage sessions saw the car as AVAILABLE
        assert (await get_car(first, car.id)).status == CarStatus.AVAILABLE
        assert (await get_car(second, car.id)).status == CarStatus.AVAILABLE

        await CarRequestService.assign(first, first_id, garage, car_id=car.id)

        with pytest.raises(ConflictError) as exc:
            await CarRequestService.assign(second, second_id, garage, car_id=car.id)
        assert exc.value.details["car_status"] == "ASSIGNED"

    async with session_factory() as check:
        assert (await check.get(CarRequest, first_id)).assigned_car_id == car.id
        assert (await check.get(CarRequest, second_id)).status == CarRequestStatus.PENDING


@pytest.mark.asyncio
async def test_stale_edit_conflicts(client, session_factory, operator):
    request_id = await _new_request(client, operator)
    owner = claims_for(operator)

    async with session_factory() as first, session_factory() as second:
        loaded_first = await CarRequestService.get(first, request_id)
        loaded_second = await CarRequestService.get(second, request_id)

        await CarRequestService.update(first, request_id, {"destination": "Airport"}, owner)
        with pytest.raises(ConflictError):
            await CarRequestService.update(second, request_id, {"purpose": "Changed"}, owner)


async def _approved_maintenance(client, garage_user, technician, super_admin, car):
    response = await client.post(
        "/v1/maintenance", json={"car_id": car.id, "description": "Brakes"}, headers=headers_for(garage_user)
    )
    request_id = response.json()["id"]
    await client.post(
        f"/v1/maintenance/{request_id}/triage", json={"maintenance_type": "INTERNAL"}, headers=headers_for(technician)
    )
    response = await client.post(f"/v1/maintenance/{request_id}/approve", headers=headers_for(super_admin))
    assert response.status_code == 200
    return request_id


async def _change_car_status_elsewhere(session_factory, car_id, status):
    async with session_factory() as other:
        await other.execute(update(Car).where(Car.id == car_id).values(status=status))
        await other.commit()


@pytest.mark.asyncio
async def test_maintenance_start_does_not_overwrite_a_newer_car_status(
    client, session_factory, super_admin, garage_user, technician, car
):
    request_id = await _approved_maintenance(client, garage_user, technician, super_admin, car)

    async with session_factory() as stale:
        await MaintenanceService.get(stale, request_id)
        assert (await get_car(stale, car.id)).status == CarStatus.AVAILABLE

        # The car is handed out after this session read it
        await _change_car_status_elsewhere(session_factory, car.id, CarStatus.ASSIGNED)

        with pytest.raises(ConflictError) as exc:
            await MaintenanceService.start(stale, request_id, claims_for(technician))
        assert exc.value.details["car_status"] == "ASSIGNED"

    async with session_factory() as check:
        assert (await check.get(Car, car.id)).status == CarStatus.ASSIGNED
        assert (await check.get(MaintenanceRequest, request_id)).status == MaintenanceStatus.APPROVED


@pytest.mark.asyncio
async def test_soft_delete_does_not_overwrite_a_newer_car_status(client, session_factory, garage_user, car):
    async with session_factory() as stale:
        assert (await get_car(stale, car.id)).status == CarStatus.AVAILABLE

        await _change_car_status_elsewhere(session_factory, car.id, CarStatus.UNDER_MAINTENANCE)

        with pytest.raises(ConflictError) as exc:
            await car_service.delete_car(stale, car.id, claims_for(garage_user))
        assert exc.value.details["car_status"] == "UNDER_MAINTENANCE"

    async with session_factory() as check:
        assert (await check.get(Car, car.id)).status == CarStatus.UNDER_MAINTENANCE


@pytest.mark.asyncio
async def test_set_car_status_requires_expected_current_status(db_session, car):
    with pytest.raises(ConflictError) as exc:
        await set_car_status(db_session, car.id, CarStatus.IN_TRANSIT, from_statuses=(CarStatus.ASSIGNED,))
    assert exc.value.details == {"car_id": car.id, "car_status": "AVAILABLE"}

    moved = await set_car_status(
        db_session, car.id, CarStatus.UNDER_MAINTENANCE, from_statuses=(CarStatus.AVAILABLE, CarStatus.ASSIGNED)
    )
    assert moved.status == CarStatus.UNDER_MAINTENANCE

    # Rentals have no company car to move
    assert await set_car_status(db_session, None, CarStatus.AVAILABLE, from_statuses=()) is None
