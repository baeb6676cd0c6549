"""Tests for the workload-aware reassignment engine and its task routes."""

from datetime import date

import pytest
from httpx import AsyncClient

from staffops.core.exceptions import AlreadyAssigned, InvalidState, NoCandidates
from staffops.services import reassignment

DAY = date(2030, 1, 15)


@pytest.mark.asyncio
async def test_least_loaded_candidate_wins(db_session, make_user, make_task, mark_present):
    absent = await make_user()
    busy = await make_user()
    idle = await make_user()
    await mark_present(busy, DAY)
    await mark_present(idle, DAY)
    await make_task(busy, DAY)
    await make_task(busy, DAY, status="in-progress")
    task = await make_task(absent, DAY)

    details = await reassignment.auto_reassign(db_session, task.id)

    assert details.from_user_id == absent.id
    assert details.to_user_id == idle.id
    assert details.new_user_workload == 1
    assert details.reason == "user_absent"
    assert task.assigned_to_id == idle.id
    assert task.original_assignee_id == absent.id
    assert task.status == "reassigned"
    assert task.is_reassigned is True
    assert len(task.reassignment_history) == 1
    assert task.reassignment_history[0].to_user_id == idle.id


@pytest.mark.asyncio
async def test_equal_workload_goes_to_lowest_user_id(db_session, make_user, make_task, mark_present):
    absent = await make_user()
    first = await make_user()
    second = await make_user()
    await mark_present(second, DAY)
    await mark_present(first, DAY, status="late")
    task = await make_task(absent, DAY)

    details = await reassignment.auto_reassign(db_session, task.id)
    assert details.to_user_id == first.id


@pytest.mark.asyncio
async def test_candidates_filtered_by_title_presence_and_verification(db_session, make_user, mark_present):
    absent = await make_user()
    guard = await make_user(job_title="Security Officer")
    unverified = await make_user(verified=False)
    not_in = await make_user()
    half_day = await make_user(job_title="senior CLEANING lead")
    await mark_present(guard, DAY)
    await mark_present(unverified, DAY)
    await mark_present(not_in, DAY, status="absent")
    await mark_present(half_day, DAY, status="half-day")

    candidates = await reassignment.find_eligible_candidates(
        db_session, "Cleaning", DAY, exclude_user_id=absent.id,
    )
    assert [c.user_id for c in candidates] == [half_day.id]
    assert candidates[0].workload == 0


@pytest.mark.asyncio
async def test_no_candidates_leaves_task_untouched(db_session, make_user, make_task):
    absent = await make_user()
    task = await make_task(absent, DAY)

    with pytest.raises(NoCandidates):
        await reassignment.auto_reassign(db_session, task.id)

    assert task.status == "pending"
    assert task.assigned_to_id == absent.id
    assert task.is_reassigned is False
    assert task.reassignment_history == []


@pytest.mark.asyncio
async def test_only_pending_tasks_are_auto_reassigned(db_session, make_user, make_task, mark_present):
    absent = await make_user()
    other = await make_user()
    await mark_present(other, DAY)
    task = await make_task(absent, DAY, status="in-progress")

    with pytest.raises(InvalidState):
        await reassignment.auto_reassign(db_session, task.id)


@pytest.mark.asyncio
async def test_manual_reassign_keeps_status_and_original_assignee(db_session, make_user, make_task):
    first = await make_user()
    second = await make_user()
    third = await make_user()
    task = await make_task(first, DAY, status="in-progress")

    await reassignment.manual_reassign(db_session, task.id, second.id)
    await reassignment.manual_reassign(db_session, task.id, third.id)

    assert task.status == "in-progress"
    assert task.assigned_to_id == third.id
    assert task.original_assignee_id == first.id
    assert task.reassignment_reason == "manual_override"
    assert [(e.from_user_id, e.to_user_id) for e in task.reassignment_history] == [
        (first.id, second.id),
        (second.id, third.id),
    ]

    with pytest.raises(AlreadyAssigned):
        await reassignment.manual_reassign(db_session, task.id, third.id)


@pytest.mark.asyncio
async def test_batch_reports_partial_failures(db_session, make_user, make_task, mark_present):
    absent = await make_user()
    present = await make_user()
    await mark_present(present, DAY)
    movable = await make_task(absent, DAY, title="Mop the floor")
    stuck = await make_task(absent, DAY, category="Security", title="Patrol gate")
    untouched = await make_task(present, DAY, title="Wipe windows")

    outcomes = await reassignment.batch_reassign_for_date(db_session, DAY)

    by_task = {o.task_id: o for o in outcomes}
    assert set(by_task) == {movable.id, stuck.id}
    assert by_task[movable.id].success is True
    assert by_task[movable.id].details.to_user_id == present.id
    assert by_task[stuck.id].success is False
    assert "Security" in by_task[stuck.id].error
    assert untouched.status == "pending"


@pytest.mark.asyncio
async def test_reassignment_stats(db_session, make_user, make_task, mark_present):
    absent = await make_user()
    present = await make_user()
    await mark_present(present, DAY)
    task = await make_task(absent, DAY)
    await reassignment.auto_reassign(db_session, task.id)

    stats = await reassignment.get_reassignment_stats(db_session)
    assert stats["total_reassigned"] == 1
    assert stats["by_reason"] == {"user_absent": 1}
    assert stats["by_category"] == {"Cleaning": 1}
    assert stats["by_date"] == {DAY.isoformat(): 1}


@pytest.mark.asyncio
async def test_create_task_reassigns_when_assignee_absent(async_client: AsyncClient, make_user, mark_present, auth):
    admin = await make_user(role="admin", job_title=None)
    absent = await make_user()
    present = await make_user()
    await mark_present(present, DAY)

    resp = await async_client.post(
        "/tasks",
        json={"title": "Clean restrooms", "assigned_to_id": absent.id, "date": DAY.isoformat(), "category": "Cleaning"},
        headers=auth(admin),
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["success"] is True
    assert data["task"]["assigned_to_id"] == present.id
    assert data["task"]["status"] == "reassigned"
    assert data["reassignment_details"]["to_user_id"] == present.id


@pytest.mark.asyncio
async def test_create_task_succeeds_without_candidates(async_client: AsyncClient, make_user, auth):
    admin = await make_user(role="admin", job_title=None)
    absent = await make_user()

    resp = await async_client.post(
        "/tasks",
        json={"title": "Clean restrooms", "assigned_to_id": absent.id, "date": DAY.isoformat(), "category": "Cleaning"},
        headers=auth(admin),
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["task"]["assigned_to_id"] == absent.id
    assert data["reassignment_details"] is None


@pytest.mark.asyncio
async def test_reassign_route_errors(async_client: AsyncClient, make_user, make_task, auth):
    admin = await make_user(role="admin", job_title=None)
    staff = await make_user()
    task = await make_task(staff, DAY)

    resp = await async_client.post("/tasks/reassign", json={"task_id": task.id}, headers=auth(admin))
    assert resp.status_code == 422
    assert resp.json()["error"] == "no_candidates"

    resp = await async_client.post("/tasks/reassign", json={"task_id": 9999}, headers=auth(admin))
    assert resp.status_code == 404

    resp = await async_client.post("/tasks/reassign", json={"task_id": task.id}, headers=auth(staff))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_category_wildcards_match_literally(db_session, make_user, mark_present):
    plain = await make_user(job_title="Cleaning Staff")
    literal = await make_user(job_title="100% Cleaning")
    await mark_present(plain, DAY)
    await mark_present(literal, DAY)

    candidates = await reassignment.find_eligible_candidates(db_session, "%", DAY)
    assert [c.user_id for c in candidates] == [literal.id]

    assert await reassignment.find_eligible_candidates(db_session, "Clean_ng", DAY) == []
