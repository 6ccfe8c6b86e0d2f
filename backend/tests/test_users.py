"""
Tests for user administration, role assignment and self-or-admin record views.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from conftest import auth_headers_for
from macsync.models import User


@pytest.mark.asyncio
async def test_list_users_requires_admin(client: AsyncClient, member_headers, admin_headers):
    forbidden = await client.get("/api/v1/users", headers=member_headers)
    assert forbidden.status_code == 403

    response = await client.get("/api/v1/users", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert {u["email"] for u in data["users"]} == {"member@mcmaster.ca", "admin@mcmaster.ca"}


@pytest.mark.asyncio
async def test_system_admin_counts_as_admin(client: AsyncClient, make_user):
    root = await make_user("root@mcmaster.ca", role_names=(), is_system_admin=True)
    response = await client.get("/api/v1/users", headers=auth_headers_for(root))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_create_user_with_roles(client: AsyncClient, admin_headers, admin):
    response = await client.post(
        "/api/v1/users",
        json={"email": "Exec@McMaster.ca", "first_name": "Exec", "last_name": "Member", "roles": ["Admin", "Member"]},
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "exec@mcmaster.ca"
    assert data["name"] == "Exec Member"
    assert data["roles"] == ["Admin", "Member"]


@pytest.mark.asyncio
async def test_create_user_duplicate_email(client: AsyncClient, admin_headers, member):
    response = await client.post("/api/v1/users", json={"email": member.email}, headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_create_user_unknown_role(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/users",
        json={"email": "someone@mcmaster.ca", "roles": ["Overlord"]},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert "Available roles" in response.json()["detail"]


@pytest.mark.asyncio
async def test_get_user_not_found(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/users/99999", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_user_profile(client: AsyncClient, admin_headers, member):
    response = await client.put(
        f"/api/v1/users/{member.id}",
        json={"program": "Mechatronics", "is_active": False},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["program"] == "Mechatronics"
    assert data["is_active"] is False


@pytest.mark.asyncio
async def test_update_system_admin_needs_admin_password(client: AsyncClient, admin_headers, member):
    missing = await client.put(
        f"/api/v1/users/{member.id}", json={"is_system_admin": True}, headers=admin_headers
    )
    assert missing.status_code == 400

    wrong = await client.put(
        f"/api/v1/users/{member.id}",
        json={"is_system_admin": True, "admin_password": "not-my-password"},
        headers=admin_headers,
    )
    assert wrong.status_code == 401

    ok = await client.put(
        f"/api/v1/users/{member.id}",
        json={"is_system_admin": True, "admin_password": "testpassword123"},
        headers=admin_headers,
    )
    assert ok.status_code == 200
    assert ok.json()["is_system_admin"] is True


@pytest.mark.asyncio
async def test_update_user_email_conflict(client: AsyncClient, admin_headers, admin, member):
    response = await client.put(
        f"/api/v1/users/{member.id}", json={"email": admin.email}, headers=admin_headers
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_user(client: AsyncClient, db_session, admin_headers, member):
    member_id = member.id
    response = await client.delete(f"/api/v1/users/{member_id}", headers=admin_headers)
    assert response.status_code == 204

    result = await db_session.execute(select(User).where(User.id == member_id))
    assert result.scalar_one_or_none() is None


@pytest.mark.asyncio
async def test_cannot_delete_self(client: AsyncClient, admin_headers, admin):
    response = await client.delete(f"/api/v1/users/{admin.id}", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_roles(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/roles", headers=admin_headers)
    assert response.status_code == 200
    assert [r["name"] for r in response.json()["roles"]] == ["Admin", "Member"]


@pytest.mark.asyncio
async def test_assign_role_is_idempotent(client: AsyncClient, admin_headers, admin, member):
    first = await client.post(
        f"/api/v1/users/{member.id}/roles", json={"role_name": "Admin"}, headers=admin_headers
    )
    assert first.status_code == 201
    assert first.json()["role_name"] == "Admin"
    assert first.json()["assigned_by"] == admin.id

    second = await client.post(
        f"/api/v1/users/{member.id}/roles", json={"role_name": "Admin"}, headers=admin_headers
    )
    assert second.status_code == 201

    roles = await client.get(f"/api/v1/users/{member.id}/roles", headers=admin_headers)
    assert roles.json()["role_names"] == ["Admin", "Member"]


@pytest.mark.asyncio
async def test_assign_unknown_role(client: AsyncClient, admin_headers, member):
    response = await client.post(
        f"/api/v1/users/{member.id}/roles", json={"role_name": "Overlord"}, headers=admin_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_revoke_role(client: AsyncClient, admin_headers, member):
    response = await client.delete(f"/api/v1/users/{member.id}/roles/Member", headers=admin_headers)
    assert response.status_code == 204

    again = await client.delete(f"/api/v1/users/{member.id}/roles/Member", headers=admin_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_replace_roles(client: AsyncClient, admin_headers, member):
    response = await client.put(
        f"/api/v1/users/{member.id}/roles", json={"roles": ["Admin"]}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["roles"] == ["Admin"]

    bad = await client.put(
        f"/api/v1/users/{member.id}/roles", json={"roles": ["Admin", "Ghost"]}, headers=admin_headers
    )
    assert bad.status_code == 400


@pytest.mark.asyncio
async def test_my_roles(client: AsyncClient, member_headers):
    response = await client.get("/api/v1/users/me/roles", headers=member_headers)
    assert response.status_code == 200
    assert response.json()["role_names"] == ["Member"]


@pytest.mark.asyncio
async def test_user_records_are_self_or_admin(client: AsyncClient, make_user, member, member_headers, admin_headers):
    other = await make_user("other@mcmaster.ca")

    own = await client.get(f"/api/v1/users/{member.id}/tickets", headers=member_headers)
    assert own.status_code == 200
    assert own.json()["count"] == 0

    foreign = await client.get(f"/api/v1/users/{other.id}/payments", headers=member_headers)
    assert foreign.status_code == 403

    as_admin = await client.get(f"/api/v1/users/{other.id}/payments", headers=admin_headers)
    assert as_admin.status_code == 200
