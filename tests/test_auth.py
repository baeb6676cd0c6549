"""Tests for registration, e-mail verification, login and the profile/admin surfaces."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from staffops.models.user import User
from conftest import PASSWORD


async def _register(client: AsyncClient, email="Alice@Example.com", username="alice"):
    return await client.post(
        "/auth/register", json={"username": username, "email": email, "password": "Sup3rSecret!"},
    )


@pytest.mark.asyncio
async def test_register_verify_login(async_client: AsyncClient, db_session):
    resp = await _register(async_client)
    assert resp.status_code == 201
    assert resp.json()["user"]["email"] == "alice@example.com"
    assert resp.json()["user"]["verified"] is False

    resp = await _register(async_client, email="alice@example.com", username="alice2")
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_exists"

    resp = await async_client.post("/auth/login", json={"email": "alice@example.com", "password": "Sup3rSecret!"})
    assert resp.status_code == 403

    user = (await db_session.execute(select(User).where(User.email == "alice@example.com"))).scalar_one()
    wrong = "000000" if user.verification_code != "000000" else "111111"
    resp = await async_client.post("/auth/verify", json={"email": "alice@example.com", "code": wrong})
    assert resp.status_code == 400

    resp = await async_client.post(
        "/auth/verify", json={"email": "alice@example.com", "code": user.verification_code},
    )
    assert resp.status_code == 200
    assert resp.json()["access_token"]

    resp = await async_client.post("/auth/login", json={"email": "ALICE@example.com", "password": "Sup3rSecret!"})
    assert resp.status_code == 200
    token = resp.json()["access_token"]

    resp = await async_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.json()["user"]["username"] == "alice"


@pytest.mark.asyncio
async def test_login_failures(async_client: AsyncClient, make_user):
    user = await make_user()
    inactive = await make_user(is_active=False)

    resp = await async_client.post("/auth/login", json={"email": user.email, "password": "wrong-password"})
    assert resp.status_code == 401
    resp = await async_client.post("/auth/login", json={"email": "nobody@example.com", "password": PASSWORD})
    assert resp.status_code == 401
    resp = await async_client.post("/auth/login", json={"email": inactive.email, "password": PASSWORD})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_token_required(async_client: AsyncClient, make_user, auth):
    resp = await async_client.get("/auth/me")
    assert resp.status_code in (401, 403)
    resp = await async_client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401

    unverified = await make_user(verified=False)
    resp = await async_client.get("/auth/me", headers=auth(unverified))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_change_password(async_client: AsyncClient, make_user, auth):
    user = await make_user()

    resp = await async_client.post(
        "/auth/change-password",
        json={"current_password": "not-it-at-all", "new_password": "Another123!"},
        headers=auth(user),
    )
    assert resp.status_code == 400

    resp = await async_client.post(
        "/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "Another123!"},
        headers=auth(user),
    )
    assert resp.status_code == 200

    resp = await async_client.post("/auth/login", json={"email": user.email, "password": "Another123!"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_password_reset(async_client: AsyncClient, db_session, make_user):
    user = await make_user()

    resp = await async_client.post("/auth/forgot-password", json={"email": "ghost@example.com"})
    assert resp.json()["success"] is True

    resp = await async_client.post("/auth/forgot-password", json={"email": user.email})
    assert resp.status_code == 200
    await db_session.refresh(user)
    assert user.reset_token

    resp = await async_client.post(
        "/auth/reset-password", json={"token": user.reset_token, "new_password": "Brand-new-1"},
    )
    assert resp.status_code == 200

    resp = await async_client.post(
        "/auth/reset-password", json={"token": user.reset_token, "new_password": "Brand-new-2"},
    )
    assert resp.status_code == 400

    resp = await async_client.post("/auth/login", json={"email": user.email, "password": "Brand-new-1"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_profile_upsert(async_client: AsyncClient, make_user, auth):
    user = await make_user(with_profile=False)

    resp = await async_client.get("/profile", headers=auth(user))
    assert resp.status_code == 404

    resp = await async_client.put(
        "/profile",
        json={"name": "Ada", "phone": "555-0101", "department": "Facilities", "job_title": "Cleaning Staff",
              "work_start": "08:00", "work_end": "16:00", "skills": [" mopping ", ""]},
        headers=auth(user),
    )
    assert resp.status_code == 200
    profile = resp.json()["profile"]
    assert profile["skills"] == ["mopping"]
    assert profile["profile_complete"] is True

    resp = await async_client.put("/profile", json={"work_end": "07:00"}, headers=auth(user))
    assert resp.status_code == 400

    resp = await async_client.put("/profile", json={"work_start": "25:00"}, headers=auth(user))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_admin_routes_require_admin(async_client: AsyncClient, make_user, auth):
    staff = await make_user()
    admin = await make_user(role="admin", job_title=None)

    resp = await async_client.get("/admin/staff", headers=auth(staff))
    assert resp.status_code == 403

    resp = await async_client.get("/admin/staff", headers=auth(admin))
    body = resp.json()
    assert resp.status_code == 200
    assert [row["user"]["id"] for row in body["staff"]] == [staff.id]
    assert body["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_deactivate_and_create_admin(async_client: AsyncClient, make_user, auth):
    staff = await make_user()
    admin = await make_user(role="admin", job_title=None)

    resp = await async_client.post(f"/admin/staff/{admin.id}/deactivate", headers=auth(admin))
    assert resp.status_code == 403

    resp = await async_client.post(f"/admin/staff/{staff.id}/deactivate", headers=auth(admin))
    assert resp.status_code == 200
    resp = await async_client.get("/auth/me", headers=auth(staff))
    assert resp.status_code == 401

    new_admin = {"username": "boss", "email": "boss@example.com", "password": "Sup3rSecret!", "role": "super_admin"}
    resp = await async_client.post("/admin/create-admin", json=new_admin, headers=auth(admin))
    assert resp.status_code == 403

    resp = await async_client.post("/admin/create-admin", json={**new_admin, "role": "admin"}, headers=auth(admin))
    assert resp.status_code == 201
    assert resp.json()["user"]["verified"] is True
