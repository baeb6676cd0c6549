"""Tests for per-user alerts and the admin alert endpoints."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from staffops.models.alert import Alert
from staffops.services.notifications import create_system_alert
from staffops.utils.time import utcnow


@pytest.mark.asyncio
async def test_create_system_alert_truncates_and_expires(db_session, make_user):
    user = await make_user()
    alert = await create_system_alert(db_session, "shift_reminder", user.id, "T" * 150, "m" * 600, expires_in_days=1)
    assert alert.id is not None
    assert len(alert.title) == 100
    assert len(alert.message) == 500
    assert timedelta(hours=23) < alert.expires_at - utcnow() <= timedelta(days=1)


@pytest.mark.asyncio
async def test_my_alerts_hides_expired_and_counts_unread(async_client: AsyncClient, db_session, make_user, auth):
    user = await make_user()
    other = await make_user()
    await create_system_alert(db_session, "task_assigned", user.id, "New task", "Lobby", priority="high")
    await create_system_alert(db_session, "shift_reminder", user.id, "Shift", "Tomorrow 09:00", priority="low")
    await create_system_alert(db_session, "task_assigned", other.id, "Not yours", "x")
    db_session.add(Alert(user_id=user.id, type="shift_reminder", title="Old", message="Gone",
                         expires_at=utcnow() - timedelta(hours=1)))
    await db_session.commit()

    resp = await async_client.get("/alerts/my-alerts", headers=auth(user))
    data = resp.json()
    assert [a["title"] for a in data["alerts"]] == ["Shift", "New task"]
    assert data["unread_count"] == 2
    assert [a["title"] for a in data["grouped"]["high"]] == ["New task"]

    resp = await async_client.get("/alerts/my-alerts", params={"type": "task_assigned"}, headers=auth(user))
    assert [a["title"] for a in resp.json()["alerts"]] == ["New task"]


@pytest.mark.asyncio
async def test_mark_read_is_owner_only(async_client: AsyncClient, db_session, make_user, auth):
    owner = await make_user()
    stranger = await make_user()
    admin = await make_user(role="admin", job_title=None)
    alert = await create_system_alert(db_session, "task_assigned", owner.id, "New task", "Lobby")

    resp = await async_client.put(f"/alerts/mark-read/{alert.id}", headers=auth(stranger))
    assert resp.status_code == 403
    resp = await async_client.put(f"/alerts/mark-read/{alert.id}", headers=auth(admin))
    assert resp.status_code == 403

    resp = await async_client.put(f"/alerts/mark-read/{alert.id}", headers=auth(owner))
    assert resp.status_code == 200
    assert resp.json()["alert"]["is_read"] is True

    resp = await async_client.put("/alerts/mark-read/9999", headers=auth(owner))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_mark_all_read(async_client: AsyncClient, db_session, make_user, auth):
    user = await make_user()
    for n in range(3):
        await create_system_alert(db_session, "shift_reminder", user.id, f"Shift {n}", "Soon")

    resp = await async_client.put("/alerts/mark-all-read", headers=auth(user))
    assert resp.json()["updated"] == 3
    resp = await async_client.get("/alerts/my-alerts", headers=auth(user))
    assert resp.json()["unread_count"] == 0


@pytest.mark.asyncio
async def test_delete_by_owner_or_admin(async_client: AsyncClient, db_session, make_user, auth):
    owner = await make_user()
    stranger = await make_user()
    admin = await make_user(role="admin", job_title=None)
    first = await create_system_alert(db_session, "task_assigned", owner.id, "One", "x")
    second = await create_system_alert(db_session, "task_assigned", owner.id, "Two", "x")

    resp = await async_client.delete(f"/alerts/{first.id}", headers=auth(stranger))
    assert resp.status_code == 403
    resp = await async_client.delete(f"/alerts/{first.id}", headers=auth(owner))
    assert resp.status_code == 200
    resp = await async_client.delete(f"/alerts/{second.id}", headers=auth(admin))
    assert resp.status_code == 200

    resp = await async_client.get("/alerts/my-alerts", headers=auth(owner))
    assert resp.json()["alerts"] == []


@pytest.mark.asyncio
async def test_broadcast_by_department(async_client: AsyncClient, make_user, auth):
    admin = await make_user(role="admin", job_title=None, department="Management")
    facilities = [await make_user() for _ in range(2)]
    await make_user(department="Security")
    await make_user(verified=False)

    resp = await async_client.post(
        "/alerts/admin/broadcast",
        json={"type": "emergency_cleanup", "title": "Spill", "message": "Lobby B", "department": "Facilities"},
        headers=auth(admin),
    )
    assert resp.status_code == 201
    assert resp.json()["recipients"] == 2

    for user in facilities:
        resp = await async_client.get("/alerts/my-alerts", headers=auth(user))
        assert [a["type"] for a in resp.json()["alerts"]] == ["emergency_cleanup"]

    resp = await async_client.post(
        "/alerts/admin/broadcast",
        json={"type": "emergency_cleanup", "title": "Spill", "message": "Lobby B"},
        headers=auth(facilities[0]),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_statistics_and_cleanup(async_client: AsyncClient, db_session, make_user, auth):
    admin = await make_user(role="admin", job_title=None)
    user = await make_user()
    await create_system_alert(db_session, "task_assigned", user.id, "New", "x", priority="high")
    read = await create_system_alert(db_session, "shift_reminder", user.id, "Shift", "x")
    read.is_read = True
    db_session.add(Alert(user_id=user.id, type="shift_reminder", title="Old", message="Gone",
                         expires_at=utcnow() - timedelta(hours=1)))
    await db_session.commit()

    resp = await async_client.get("/alerts/admin/statistics", headers=auth(admin))
    stats = resp.json()["statistics"]
    assert stats["total"] == 3
    assert stats["read"] == 1
    assert stats["by_type"] == {"task_assigned": 1, "shift_reminder": 2}

    resp = await async_client.delete("/alerts/admin/cleanup-expired", headers=auth(admin))
    assert resp.json()["deleted"] == 1

    resp = await async_client.get("/alerts/admin/all", params={"user_id": user.id}, headers=auth(admin))
    body = resp.json()
    assert body["pagination"]["total"] == 2
    assert body["stats"]["unread"] == 1
