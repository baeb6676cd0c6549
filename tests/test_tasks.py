"""Route tests for the task lifecycle and schedules."""

from datetime import date

import pytest
from httpx import AsyncClient

DAY = date(2030, 6, 3)


@pytest.mark.asyncio
async def test_status_lifecycle_and_rating(async_client: AsyncClient, make_user, make_task, auth):
    admin = await make_user(role="admin", job_title=None)
    staff = await make_user()
    other = await make_user()
    task = await make_task(staff, DAY)

    resp = await async_client.put(f"/tasks/{task.id}/status", json={"status": "in-progress"}, headers=auth(other))
    assert resp.status_code == 403

    resp = await async_client.post(f"/tasks/{task.id}/rate", json={"rating": 5}, headers=auth(admin))
    assert resp.status_code == 400

    resp = await async_client.put(f"/tasks/{task.id}/status", json={"status": "in-progress"}, headers=auth(staff))
    assert resp.json()["task"]["status"] == "in-progress"

    resp = await async_client.put(
        f"/tasks/{task.id}/status",
        json={"status": "completed", "completion_notes": "Done"},
        headers=auth(staff),
    )
    body = resp.json()["task"]
    assert body["status"] == "completed"
    assert body["completed_at"] is not None

    resp = await async_client.put(f"/tasks/{task.id}/status", json={"status": "pending"}, headers=auth(staff))
    assert resp.status_code == 400

    resp = await async_client.post(f"/tasks/{task.id}/rate", json={"rating": 6}, headers=auth(admin))
    assert resp.status_code == 422
    resp = await async_client.post(f"/tasks/{task.id}/rate", json={"rating": 4, "feedback": "Good"}, headers=auth(admin))
    assert resp.json()["task"]["rating"] == 4


@pytest.mark.asyncio
async def test_manual_reassign_route(async_client: AsyncClient, make_user, make_task, auth):
    admin = await make_user(role="admin", job_title=None)
    first = await make_user()
    second = await make_user()
    task = await make_task(first, DAY)

    resp = await async_client.post(
        "/tasks/manual-reassign", json={"task_id": task.id, "new_user_id": second.id}, headers=auth(admin),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["task"]["assigned_to_id"] == second.id
    assert body["task"]["status"] == "pending"
    assert body["reassignment_details"]["reason"] == "manual_override"

    resp = await async_client.post(
        "/tasks/manual-reassign", json={"task_id": task.id, "new_user_id": second.id}, headers=auth(admin),
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_assigned"

    resp = await async_client.get(f"/tasks/{task.id}", headers=auth(first))
    assert resp.status_code == 200
    assert len(resp.json()["task"]["reassignment_history"]) == 1


@pytest.mark.asyncio
async def test_check_reassignments_route(async_client: AsyncClient, make_user, make_task, mark_present, auth):
    admin = await make_user(role="admin", job_title=None)
    absent = await make_user()
    present = await make_user()
    await mark_present(present, DAY)
    await make_task(absent, DAY)

    resp = await async_client.post(
        "/tasks/check-reassignments", params={"date": DAY.isoformat()}, headers=auth(admin),
    )
    body = resp.json()
    assert body["processed"] == 1
    assert body["reassigned"] == 1
    assert body["results"][0]["details"]["to_user_id"] == present.id


@pytest.mark.asyncio
async def test_schedule_creation(async_client: AsyncClient, make_user, auth):
    admin = await make_user(role="admin", job_title=None)
    staff = await make_user()
    payload = {"user_id": staff.id, "date": DAY.isoformat(), "shift": "Night", "start_time": "22:00", "end_time": "06:00"}

    resp = await async_client.post("/schedules", json=payload, headers=auth(admin))
    assert resp.status_code == 201
    assert resp.json()["schedule"]["status"] == "scheduled"

    resp = await async_client.post("/schedules", json={**payload, "shift": "Morning"}, headers=auth(admin))
    assert resp.status_code == 409

    resp = await async_client.get("/schedules/my", headers=auth(staff))
    assert [s["shift"] for s in resp.json()["schedules"]] == ["Night"]

    resp = await async_client.get("/alerts/my-alerts", headers=auth(staff))
    assert [a["type"] for a in resp.json()["alerts"]] == ["shift_reminder"]
