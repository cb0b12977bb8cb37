"""Tests for user account management endpoints."""

import pytest
from httpx import AsyncClient

from conftest import login
from ems.models.user import User

NEW_USER = {
    "username": "new.hire",
    "email": "New.Hire@EMS.test",
    "password": "welcome1",
    "role": "employee",
}


@pytest.mark.asyncio
async def test_create_user(admin_client: AsyncClient):
    """POST /users should create a login account."""
    resp = await admin_client.post("/api/v1/users", json=NEW_USER)
    assert resp.status_code == 201
    data = resp.json()
    assert data["username"] == "new.hire"
    assert data["email"] == "new.hire@ems.test"
    assert data["status"] == "active"
    assert "hashed_password" not in data
    assert "password" not in data


@pytest.mark.asyncio
async def test_created_user_can_log_in(admin_client: AsyncClient, client_factory):
    await admin_client.post("/api/v1/users", json=NEW_USER)
    client = await client_factory()
    data = await login(client, "new.hire", "welcome1")
    assert data["employee_id"] is None


@pytest.mark.asyncio
async def test_create_duplicate_username_rejected(admin_client: AsyncClient):
    await admin_client.post("/api/v1/users", json=NEW_USER)
    resp = await admin_client.post(
        "/api/v1/users",
        json={**NEW_USER, "email": "other@ems.test"},
    )
    assert resp.status_code == 400
    assert "already registered" in resp.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "override",
    [
        {"username": "ab"},
        {"email": "not-an-email"},
        {"password": "123"},
        {"role": "superuser"},
        {"status": "banned"},
    ],
)
async def test_create_user_validation(admin_client: AsyncClient, override):
    resp = await admin_client.post("/api/v1/users", json={**NEW_USER, **override})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_users_with_filters(admin_client: AsyncClient, employee_user: User):
    resp = await admin_client.get("/api/v1/users")
    assert resp.status_code == 200
    assert {u["username"] for u in resp.json()} == {"admin", "alice"}

    resp = await admin_client.get("/api/v1/users?role=employee")
    assert [u["username"] for u in resp.json()] == ["alice"]

    resp = await admin_client.get("/api/v1/users?search=ALI")
    assert [u["username"] for u in resp.json()] == ["alice"]


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(admin_client: AsyncClient, employee_user: User):
    resp = await admin_client.get("/api/v1/users?search=%25")
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_employee_cannot_manage_users(employee_client: AsyncClient, admin_user: User):
    assert (await employee_client.get("/api/v1/users")).status_code == 403
    assert (await employee_client.get(f"/api/v1/users/{admin_user.id}")).status_code == 403
    resp = await employee_client.post("/api/v1/users", json=NEW_USER)
    assert resp.status_code == 403
    assert resp.json()["permission"] == "create_user"
    resp = await employee_client.delete(f"/api/v1/users/{admin_user.id}")
    assert resp.json()["permission"] == "delete_user"


@pytest.mark.asyncio
async def test_update_user_role_and_status(admin_client: AsyncClient, employee_user: User):
    resp = await admin_client.put(
        f"/api/v1/users/{employee_user.id}",
        json={"role": "admin", "status": "inactive"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["role"] == "admin"
    assert data["status"] == "inactive"


@pytest.mark.asyncio
async def test_update_user_not_found(admin_client: AsyncClient):
    resp = await admin_client.put("/api/v1/users/9999", json={"status": "inactive"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_reset_password(admin_client: AsyncClient, employee_user: User, client_factory):
    resp = await admin_client.post(
        f"/api/v1/users/{employee_user.id}/reset-password",
        json={"new_password": "brand-new"},
    )
    assert resp.status_code == 200

    client = await client_factory()
    await login(client, "alice", "brand-new")


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(admin_client: AsyncClient, admin_user: User):
    resp = await admin_client.delete(f"/api/v1/users/{admin_user.id}")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_delete_user_cascades_to_profile(admin_client: AsyncClient, employee_user: User):
    resp = await admin_client.delete(f"/api/v1/users/{employee_user.id}")
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    assert (await admin_client.get(f"/api/v1/users/{employee_user.id}")).status_code == 404
    employees = (await admin_client.get("/api/v1/employees")).json()
    assert [e["first_name"] for e in employees] == ["Admin"]
