"""Tests for the shift-swap state machine."""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from staffops.core.exceptions import Conflict, Forbidden, InvalidState, ValidationError
from staffops.models.alert import Alert
from staffops.models.shift_swap import ShiftSwap
from staffops.services import shift_swap
from staffops.utils.time import utcnow

DAY = date(2030, 5, 6)


@pytest.fixture
def pair(make_user, make_schedule):
    async def _pair():
        requester = await make_user()
        target = await make_user()
        mine = await make_schedule(requester, DAY, "Morning")
        theirs = await make_schedule(target, DAY, "Evening", start_time="17:00", end_time="23:00")
        return requester, target, mine, theirs

    return _pair


@pytest.mark.asyncio
async def test_accept_then_admin_approve_swaps_owners(db_session, make_user, pair):
    requester, target, mine, theirs = await pair()
    admin = await make_user(role="admin", job_title=None)

    swap = await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "Doctor appointment")
    assert swap.status == "pending"
    assert swap.admin_status == "pending"
    assert swap.expires_at > utcnow()

    swap = await shift_swap.respond(db_session, swap.id, target, True, "Sure")
    assert swap.status == "accepted"
    assert swap.admin_status == "pending"
    assert mine.user_id == requester.id

    swap = await shift_swap.admin_decide(db_session, swap.id, admin, True, "Fine")
    assert swap.admin_status == "approved"
    assert swap.admin_id == admin.id
    assert (mine.user_id, theirs.user_id) == (target.id, requester.id)
    assert mine.status == theirs.status == "swapped"
    assert mine.swap_request_id == theirs.swap_request_id == swap.id

    alerts = (await db_session.execute(select(Alert.user_id, Alert.type))).all()
    assert sorted(a.user_id for a in alerts) == sorted([target.id, requester.id, requester.id, target.id])
    assert {a.type for a in alerts} == {"swap_request"}


@pytest.mark.asyncio
async def test_accept_without_admin_step_executes(db_session, pair):
    requester, target, mine, theirs = await pair()
    swap = await shift_swap.request_swap(
        db_session, requester, target.id, mine.id, theirs.id, "Family event", admin_required=False,
    )

    swap = await shift_swap.respond(db_session, swap.id, target, True)
    assert swap.status == "accepted"
    assert swap.admin_status == "approved"
    assert (mine.user_id, theirs.user_id) == (target.id, requester.id)


@pytest.mark.asyncio
async def test_decline_is_final(db_session, pair):
    requester, target, mine, theirs = await pair()
    swap = await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "Exam")

    with pytest.raises(Forbidden):
        await shift_swap.respond(db_session, swap.id, requester, True)

    swap = await shift_swap.respond(db_session, swap.id, target, False, "Busy")
    assert swap.status == "rejected"
    assert swap.response_message == "Busy"
    assert mine.user_id == requester.id

    with pytest.raises(InvalidState):
        await shift_swap.respond(db_session, swap.id, target, True)


@pytest.mark.asyncio
async def test_admin_rejection(db_session, make_user, pair):
    requester, target, mine, theirs = await pair()
    admin = await make_user(role="admin", job_title=None)
    swap = await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "Exam")

    with pytest.raises(InvalidState):
        await shift_swap.admin_decide(db_session, swap.id, admin, True)

    await shift_swap.respond(db_session, swap.id, target, True)
    swap = await shift_swap.admin_decide(db_session, swap.id, admin, False, "Understaffed")
    assert swap.status == "rejected"
    assert swap.admin_status == "rejected"
    assert swap.response_message == "Rejected by admin: Understaffed"
    assert (mine.user_id, theirs.user_id) == (requester.id, target.id)


@pytest.mark.asyncio
async def test_request_validation(db_session, make_user, make_schedule, pair):
    requester, target, mine, theirs = await pair()
    outsider = await make_user()

    with pytest.raises(ValidationError):
        await shift_swap.request_swap(db_session, requester, requester.id, mine.id, mine.id, "x")
    with pytest.raises(Forbidden):
        await shift_swap.request_swap(db_session, outsider, target.id, mine.id, theirs.id, "x")
    with pytest.raises(ValidationError):
        await shift_swap.request_swap(db_session, requester, outsider.id, mine.id, theirs.id, "x")

    await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "first")
    with pytest.raises(Conflict):
        await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "second")


@pytest.mark.asyncio
async def test_request_rejects_double_booking(db_session, make_user, make_schedule):
    requester = await make_user()
    target = await make_user()
    mine = await make_schedule(requester, DAY)
    theirs = await make_schedule(target, DAY + timedelta(days=1))
    await make_schedule(requester, DAY + timedelta(days=1), "Night")

    with pytest.raises(Conflict):
        await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "Trade days")


@pytest.mark.asyncio
async def test_only_scheduled_shifts_can_be_offered(db_session, make_user, make_schedule):
    requester = await make_user()
    target = await make_user()
    mine = await make_schedule(requester, DAY, status="completed")
    theirs = await make_schedule(target, DAY)

    with pytest.raises(InvalidState):
        await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "Late")


@pytest.mark.asyncio
async def test_expired_request_is_cancelled_on_response(db_session, pair):
    requester, target, mine, theirs = await pair()
    swap = await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "Exam")
    swap.expires_at = utcnow() - timedelta(minutes=1)
    await db_session.commit()

    with pytest.raises(InvalidState, match="expired"):
        await shift_swap.respond(db_session, swap.id, target, True)

    await db_session.refresh(swap)
    assert swap.status == "cancelled"
    await db_session.refresh(mine)
    assert mine.user_id == requester.id


@pytest.mark.asyncio
async def test_expire_stale(db_session, pair):
    requester, target, mine, theirs = await pair()
    swap = await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "Exam")

    assert await shift_swap.expire_stale(db_session) == 0
    assert await shift_swap.expire_stale(db_session, utcnow() + timedelta(days=2)) == 1

    await db_session.refresh(swap)
    assert swap.status == "cancelled"


@pytest.mark.asyncio
async def test_cancel(db_session, pair):
    requester, target, mine, theirs = await pair()
    swap = await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "Exam")

    with pytest.raises(Forbidden):
        await shift_swap.cancel(db_session, swap.id, target)

    swap = await shift_swap.cancel(db_session, swap.id, requester)
    assert swap.status == "cancelled"

    with pytest.raises(InvalidState):
        await shift_swap.respond(db_session, swap.id, target, True)


@pytest.mark.asyncio
async def test_concurrent_response_loses(db_session, session_factory, pair):
    requester, target, mine, theirs = await pair()
    swap = await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "Exam")

    async with session_factory() as other:
        await shift_swap.respond(other, swap.id, target, False, "No")

    # db_session still holds the stale pending row
    assert swap.status == "pending"
    with pytest.raises(Conflict):
        await shift_swap.respond(db_session, swap.id, target, True)

    await db_session.refresh(swap)
    assert swap.status == "rejected"


@pytest.mark.asyncio
async def test_execution_rolls_back_when_ownership_changed(db_session, make_user, pair):
    requester, target, mine, theirs = await pair()
    third = await make_user()
    swap = await shift_swap.request_swap(
        db_session, requester, target.id, mine.id, theirs.id, "Exam", admin_required=False,
    )
    theirs.user_id = third.id
    await db_session.commit()

    with pytest.raises(InvalidState):
        await shift_swap.respond(db_session, swap.id, target, True)

    await db_session.refresh(swap)
    assert swap.status == "pending"


@pytest.mark.asyncio
async def test_available_partners(db_session, make_user, make_schedule, pair):
    requester, target, mine, theirs = await pair()
    done = await make_user()
    await make_schedule(done, DAY, status="completed")
    other_day = await make_user()
    await make_schedule(other_day, DAY + timedelta(days=1))
    busy_a, busy_b = await make_user(), await make_user()
    busy_a_shift = await make_schedule(busy_a, DAY)
    busy_b_shift = await make_schedule(busy_b, DAY)
    await shift_swap.request_swap(db_session, busy_a, busy_b.id, busy_a_shift.id, busy_b_shift.id, "Exam")

    partners = await shift_swap.available_partners(db_session, requester, mine.id)
    assert [p["schedule_id"] for p in partners] == [theirs.id]
    assert partners[0]["username"] == target.username
    assert partners[0]["shift"] == "Evening"

    with pytest.raises(Forbidden):
        await shift_swap.available_partners(db_session, target, mine.id)


@pytest.mark.asyncio
async def test_swap_routes(async_client: AsyncClient, db_session, make_user, auth, pair):
    requester, target, mine, theirs = await pair()
    admin = await make_user(role="admin", job_title=None)

    resp = await async_client.post(
        "/shifts/request-swap",
        json={
            "target_user_id": target.id,
            "requester_schedule_id": mine.id,
            "target_schedule_id": theirs.id,
            "reason": "Doctor appointment",
        },
        headers=auth(requester),
    )
    assert resp.status_code == 201
    swap_id = resp.json()["swap"]["id"]

    resp = await async_client.get("/shifts/my-requests", headers=auth(target))
    assert [s["id"] for s in resp.json()["received"]] == [swap_id]

    resp = await async_client.post(f"/shifts/respond/{swap_id}", json={"accept": True}, headers=auth(target))
    assert resp.json()["swap"]["status"] == "accepted"

    resp = await async_client.post(f"/shifts/admin/approve/{swap_id}", json={"approve": True}, headers=auth(target))
    assert resp.status_code == 403

    resp = await async_client.post(f"/shifts/admin/approve/{swap_id}", json={"approve": True}, headers=auth(admin))
    assert resp.status_code == 200
    assert resp.json()["swap"]["admin_status"] == "approved"

    resp = await async_client.post(f"/shifts/admin/approve/{swap_id}", json={"approve": True}, headers=auth(admin))
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_state"

    await db_session.refresh(mine)
    assert mine.user_id == target.id


@pytest.mark.asyncio
async def test_concurrent_requests_leave_one_pending(db_session, session_factory, pair, monkeypatch):
    requester, target, mine, theirs = await pair()
    ids = (mine.id, theirs.id)
    lookup = shift_swap._pending_swap_for
    raced = []

    async def stale_pending_lookup(db, schedule_ids):
        found = await lookup(db, schedule_ids)
        # the rival commits after our read saw no pending request
        if not raced:
            raced.append(schedule_ids)
            async with session_factory() as other:
                await shift_swap.request_swap(other, requester, target.id, *ids, "Exam")
        return found

    monkeypatch.setattr(shift_swap, "_pending_swap_for", stale_pending_lookup)

    with pytest.raises(Conflict):
        await shift_swap.request_swap(db_session, requester, target.id, *ids, "Dentist")

    pending = await db_session.execute(select(ShiftSwap).where(ShiftSwap.status == "pending"))
    assert [s.reason for s in pending.scalars().all()] == ["Exam"]
