"""
User management tests.

Covers username uniqueness, the department/role pairing rule on create
and update, deactivation with token revocation, and hash hiding.
"""

import pytest
from sqlalchemy import select

from ivms.app.models.enums import Department, Role
from ivms.app.models.user import User
from ivms.app.services.user_service import exclude_password
from ivms.tests.helpers import headers_for


def _new_user(**overrides):
    payload = {
        "username": "newguy",
        "password": "secret123",
        "full_name": "New Guy",
        "department": "GARAGE",
        "role": "TECHNICIAN",
    }
    payload.update(overrides)
    return payload


def _assert_no_password(data):
    assert "password" not in data
    assert "hashed_password" not in data


@pytest.mark.asyncio
async def test_create_user(client, super_admin, db_session):
    response = await client.post("/v1/users", json=_new_user(), headers=headers_for(super_admin))
    assert response.status_code == 201
    data = response.json()
    assert data["username"] == "newguy"
    assert data["is_active"] is True
    _assert_no_password(data)

    stored = (await db_session.execute(select(User).where(User.username == "newguy"))).scalar_one()
    assert stored.hashed_password != "secret123"


@pytest.mark.asyncio
async def test_duplicate_username_conflicts(client, super_admin):
    headers = headers_for(super_admin)
    assert (await client.post("/v1/users", json=_new_user(), headers=headers)).status_code == 201

    response = await client.post("/v1/users", json=_new_user(full_name="Other"), headers=headers)
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT"


@pytest.mark.asyncio
@pytest.mark.parametrize("department,role,rule", [
    ("GARAGE", "SUPER_ADMIN", "SUPER_ADMIN_REQUIRES_ADMIN_DEPARTMENT"),
    ("ADMIN", "OPERATOR", "ADMIN_DEPARTMENT_REQUIRES_SUPER_ADMIN"),
])
async def test_create_enforces_department_role_rule(client, super_admin, department, role, rule):
    response = await client.post(
        "/v1/users", json=_new_user(department=department, role=role), headers=headers_for(super_admin)
    )
    assert response.status_code == 400
    assert response.json()["details"]["rule"] == rule


@pytest.mark.asyncio
async def test_update_with_own_username_is_not_a_conflict(client, super_admin, garage_user):
    response = await client.patch(
        f"/v1/users/{garage_user.id}",
        json={"username": "garage", "full_name": "Garage Boss"},
        headers=headers_for(super_admin)
    )
    assert response.status_code == 200
    assert response.json()["full_name"] == "Garage Boss"


@pytest.mark.asyncio
async def test_update_to_taken_username_conflicts(client, super_admin, garage_user, operator):
    response = await client.patch(
        f"/v1/users/{garage_user.id}", json={"username": "operator"}, headers=headers_for(super_admin)
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_checks_rule_against_merged_values(client, super_admin, garage_user):
    headers = headers_for(super_admin)

    # Role alone: SUPER_ADMIN with the stored GARAGE department
    response = await client.patch(f"/v1/users/{garage_user.id}", json={"role": "SUPER_ADMIN"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["details"]["rule"] == "SUPER_ADMIN_REQUIRES_ADMIN_DEPARTMENT"

    # Both together is a valid promotion
    response = await client.patch(
        f"/v1/users/{garage_user.id}", json={"role": "SUPER_ADMIN", "department": "ADMIN"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["department"] == "ADMIN"


@pytest.mark.asyncio
async def test_super_admin_cannot_be_moved_out_of_admin(client, super_admin, make_user):
    second_admin = await make_user("admin2", Department.ADMIN, Role.SUPER_ADMIN)

    response = await client.patch(
        f"/v1/users/{second_admin.id}", json={"department": "GARAGE"}, headers=headers_for(super_admin)
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_deactivate_revokes_tokens_and_activate_restores(client, super_admin, operator):
    admin_headers = headers_for(super_admin)
    operator_headers = headers_for(operator)
    assert (await client.get("/v1/auth/me", headers=operator_headers)).status_code == 200

    response = await client.delete(f"/v1/users/{operator.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    assert (await client.get("/v1/auth/me", headers=operator_headers)).status_code == 401

    response = await client.post(f"/v1/users/{operator.id}/activate", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is True

    login = await client.post("/v1/auth/login", json={"username": "operator", "password": "secret123"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_cannot_deactivate_self(client, super_admin):
    response = await client.delete(f"/v1/users/{super_admin.id}", headers=headers_for(super_admin))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_user_management_is_super_admin_only(client, garage_user):
    response = await client.get("/v1/users", headers=headers_for(garage_user))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_and_get_never_expose_hash(client, super_admin, operator, garage_user):
    headers = headers_for(super_admin)

    response = await client.get("/v1/users", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    for user in data["users"]:
        _assert_no_password(user)

    response = await client.get("/v1/users", params={"department": "OPERATION"}, headers=headers)
    assert [u["username"] for u in response.json()["users"]] == ["operator"]

    response = await client.get(f"/v1/users/{operator.id}", headers=headers)
    _assert_no_password(response.json())


@pytest.mark.asyncio
async def test_get_missing_user_is_404(client, super_admin):
    response = await client.get("/v1/users/9999", headers=headers_for(super_admin))
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_creation_audit_records_fields_but_not_password(client, super_admin):
    headers = headers_for(super_admin)
    response = await client.post("/v1/users", json=_new_user(), headers=headers)
    user_id = response.json()["id"]

    response = await client.get(
        "/v1/audit-logs", params={"action": "USER_CREATED", "entity_id": user_id}, headers=headers
    )
    [log] = response.json()["logs"]
    assert log["target_username"] == "newguy"
    assert log["meta_data"] == {
        "username": "newguy",
        "full_name": "New Guy",
        "department": "GARAGE",
        "role": "TECHNICIAN",
    }
    _assert_no_password(log["meta_data"])


def test_exclude_password_strips_hash():
    data = {"id": 1, "username": "x", "hashed_password": "$2b$...", "password": "plain"}
    assert exclude_password(data) == {"id": 1, "username": "x"}
