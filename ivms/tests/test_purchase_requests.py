"""
Purchase request tests.
"""

import pytest
from sqlalchemy import select

from ivms.app.models.notification import Notification, NotificationType
from ivms.tests.helpers import headers_for

BASE = "/v1/purchase-requests"


def _purchase(**overrides):
    payload = {"part_name": "Brake Pad", "quantity": 20, "estimated_cost": 340.0, "vendor": "Parts R Us"}
    payload.update(overrides)
    return payload


async def _raise(client, user, **overrides):
    response = await client.post(BASE, json=_purchase(**overrides), headers=headers_for(user))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_approval_flow(client, db_session, super_admin, garage_user):
    request = await _raise(client, garage_user)
    assert request["status"] == "PENDING"
    assert request["created_by_id"] == garage_user.id

    result = await db_session.execute(
        select(Notification.user_id).where(Notification.type == NotificationType.PURCHASE_REQUEST_CREATED)
    )
    assert result.scalars().all() == [super_admin.id]

    response = await client.post(f"{BASE}/{request['id']}/approve", headers=headers_for(super_admin))
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "APPROVED"
    assert data["approved_by_id"] == super_admin.id

    result = await db_session.execute(
        select(Notification.user_id).where(Notification.type == NotificationType.PURCHASE_REQUEST_APPROVED)
    )
    assert result.scalars().all() == [garage_user.id]


@pytest.mark.asyncio
async def test_reject_needs_reason(client, super_admin, garage_user):
    request = await _raise(client, garage_user)

    response = await client.post(f"{BASE}/{request['id']}/reject", headers=headers_for(super_admin))
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "rejection_reason"

    response = await client.post(
        f"{BASE}/{request['id']}/reject", json={"rejection_reason": "Over budget"}, headers=headers_for(super_admin)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "REJECTED"
    assert response.json()["rejection_reason"] == "Over budget"

    response = await client.post(f"{BASE}/{request['id']}/approve", headers=headers_for(super_admin))
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_creator_cannot_approve_own_request(client, garage_user):
    request = await _raise(client, garage_user)

    response = await client.post(f"{BASE}/{request['id']}/approve", headers=headers_for(garage_user))
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"quantity": 0},
    {"estimated_cost": -1},
    {"vendor": "X"},
])
async def test_invalid_payload(client, garage_user, overrides):
    response = await client.post(BASE, json=_purchase(**overrides), headers=headers_for(garage_user))
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_only_garage_raises(client, operator, technician):
    for user in (operator, technician):
        response = await client.post(BASE, json=_purchase(), headers=headers_for(user))
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_pending_queue_and_filters(client, super_admin, garage_user, technician):
    first = await _raise(client, garage_user, part_name="Oil Filter")
    second = await _raise(client, garage_user, part_name="Wiper Blade")
    await client.post(f"{BASE}/{first['id']}/approve", headers=headers_for(super_admin))

    response = await client.get(f"{BASE}/pending", headers=headers_for(super_admin))
    assert [r["id"] for r in response.json()["purchase_requests"]] == [second["id"]]

    response = await client.get(f"{BASE}/pending", headers=headers_for(garage_user))
    assert response.status_code == 403

    response = await client.get(BASE, params={"status": "APPROVED"}, headers=headers_for(technician))
    assert [r["id"] for r in response.json()["purchase_requests"]] == [first["id"]]

    response = await client.get(BASE, params={"from_date": "2100-01-01T00:00:00"}, headers=headers_for(garage_user))
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_missing_request_is_404(client, super_admin):
    response = await client.get(f"{BASE}/9999", headers=headers_for(super_admin))
    assert response.status_code == 404
