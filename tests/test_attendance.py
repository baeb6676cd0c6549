"""Tests for check-in rules, the leave workflow and the auto-absent sweep."""

from datetime import date, datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from staffops.config import settings
from staffops.core.exceptions import Conflict, InvalidState, ValidationError
from staffops.models.attendance import Attendance
from staffops.services import attendance as attendance_service
from staffops.services.attendance import evaluate_check_in, is_user_present
from staffops.utils.time import today, utcnow


@pytest.mark.parametrize(
    "clock, status, delay",
    [
        ("08:45", "present", -15),
        ("09:10", "present", 10),
        ("09:11", "late", 11),
        ("11:00", "late", 120),
        ("11:01", "absent", 121),
    ],
)
def test_evaluate_check_in(clock, status, delay):
    hours, minutes = (int(p) for p in clock.split(":"))
    verdict = evaluate_check_in(datetime(2030, 1, 2, hours, minutes), "09:00")
    assert verdict.status == status
    assert verdict.delay_minutes == delay


def test_delay_text():
    assert evaluate_check_in(datetime(2030, 1, 2, 10, 35), "09:00").delay_text == "1h 35m"
    assert evaluate_check_in(datetime(2030, 1, 2, 9, 25), "09:00").delay_text == "25m"


@pytest.mark.asyncio
async def test_presence_statuses(db_session, make_user, mark_present):
    day = date(2030, 1, 2)
    statuses = ["present", "late", "half-day", "absent", "leave"]
    users = [await make_user() for _ in statuses]
    for user, status in zip(users, statuses):
        await mark_present(user, day, status=status)
    nobody = await make_user()

    presence = [await is_user_present(db_session, u.id, day) for u in users]
    assert presence == [True, True, True, False, False]
    assert await is_user_present(db_session, nobody.id, day) is False


@pytest.mark.asyncio
async def test_check_in_then_out(async_client: AsyncClient, make_user, auth):
    user = await make_user(work_start=utcnow().strftime("%H:%M"))

    resp = await async_client.post("/attendance/check-in", json={"location": "Front desk"}, headers=auth(user))
    assert resp.status_code == 200
    assert resp.json()["attendance"]["status"] == "present"

    resp = await async_client.post("/attendance/check-in", json={}, headers=auth(user))
    assert resp.status_code == 409

    resp = await async_client.post("/attendance/check-out", json={}, headers=auth(user))
    assert resp.status_code == 200
    assert resp.json()["attendance"]["check_out_at"] is not None

    resp = await async_client.post("/attendance/check-out", json={}, headers=auth(user))
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_check_in_outside_whitelist(async_client: AsyncClient, make_user, auth, monkeypatch):
    monkeypatch.setattr(settings, "OFFICE_IP_WHITELIST", "10.0.0.1")
    user = await make_user()

    resp = await async_client.post(
        "/attendance/check-in", json={}, headers={**auth(user), "X-Real-IP": "192.168.1.9"},
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_check_out_without_check_in(db_session, make_user):
    user = await make_user()
    with pytest.raises(InvalidState):
        await attendance_service.check_out(db_session, user)


@pytest.mark.asyncio
async def test_leave_only_for_future_dates(db_session, make_user):
    user = await make_user()
    with pytest.raises(ValidationError):
        await attendance_service.apply_leave(db_session, user, today(), "sick", "Flu")

    tomorrow = today() + timedelta(days=1)
    record = await attendance_service.apply_leave(db_session, user, tomorrow, "sick", "Flu")
    assert record.status == "leave"
    assert record.is_approved is None

    with pytest.raises(Conflict):
        await attendance_service.apply_leave(db_session, user, tomorrow, "personal", "Again")


@pytest.mark.asyncio
async def test_leave_decisions(db_session, make_user):
    user = await make_user()
    admin = await make_user(role="admin", job_title=None)
    first = await attendance_service.apply_leave(db_session, user, today() + timedelta(days=1), "vacation", "Trip")
    second = await attendance_service.apply_leave(db_session, user, today() + timedelta(days=2), "vacation", "Trip")

    approved = await attendance_service.decide_leave(db_session, first.id, True, admin, "Enjoy")
    assert approved.is_approved is True
    assert "APPROVED" in approved.notes
    with pytest.raises(InvalidState):
        await attendance_service.decide_leave(db_session, first.id, False, admin)

    await attendance_service.decide_leave(db_session, second.id, False, admin, "Short staffed")
    assert await db_session.get(Attendance, second.id) is None


@pytest.mark.asyncio
async def test_auto_mark_absent(db_session, make_user, mark_present):
    now = datetime(2030, 1, 2, 9, 30)
    missing = await make_user(work_start="09:00")
    later_shift = await make_user(work_start="13:00")
    checked_in = await make_user(work_start="09:00")
    await make_user(role="admin", job_title=None, work_start="09:00")
    await make_user(verified=False, work_start="09:00")
    await mark_present(checked_in, now.date())

    marked = await attendance_service.auto_mark_absent(db_session, now)
    assert marked == 1

    rows = (await db_session.execute(
        select(Attendance.user_id, Attendance.status).where(Attendance.date == now.date())
    )).all()
    assert sorted(tuple(r) for r in rows) == sorted([(missing.id, "absent"), (checked_in.id, "present")])
    assert later_shift.id not in [r.user_id for r in rows]

    assert await attendance_service.auto_mark_absent(db_session, now) == 0


@pytest.mark.asyncio
async def test_admin_mark_absent_overwrites_presence(db_session, make_user, mark_present):
    user = await make_user()
    admin = await make_user(role="admin", job_title=None)
    day = date(2030, 1, 2)
    await mark_present(user, day)

    record = await attendance_service.mark_absent(db_session, user.id, day, "Left early", admin)
    assert record.status == "absent"
    assert record.is_manual_entry is True
    assert record.check_in_at is None


@pytest.mark.asyncio
async def test_concurrent_first_check_in_loses(db_session, session_factory, make_user, monkeypatch):
    user = await make_user(work_start=utcnow().strftime("%H:%M"))
    lookup = attendance_service.get_working_hours
    user_id = user.id
    raced = []

    async def hours_after_rival_checks_in(db, uid):
        # the rival commits between our "no record yet" read and our insert
        if not raced:
            raced.append(uid)
            async with session_factory() as other:
                await attendance_service.check_in(other, user)
        return await lookup(db, uid)

    monkeypatch.setattr(attendance_service, "get_working_hours", hours_after_rival_checks_in)

    with pytest.raises(Conflict):
        await attendance_service.check_in(db_session, user)

    rows = (await db_session.execute(select(Attendance).where(Attendance.user_id == user_id))).scalars().all()
    assert len(rows) == 1
    assert rows[0].check_in_at is not None
