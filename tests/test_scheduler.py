"""Tests for the periodic maintenance runner."""

import asyncio
from datetime import timedelta

import pytest

from staffops.services.scheduler import DEFAULT_JOBS, PeriodicRunner
from staffops.services import shift_swap
from staffops.utils.time import today, utcnow


@pytest.mark.asyncio
async def test_failing_job_does_not_stop_the_pass(session_factory):
    calls = []

    async def broken(db):
        calls.append("broken")
        raise RuntimeError("boom")

    async def healthy(db):
        calls.append("healthy")
        return 7

    runner = PeriodicRunner(session_factory, 60, jobs=[("broken", broken), ("healthy", healthy)])
    results = await runner.run_once()

    assert calls == ["broken", "healthy"]
    assert results == {"broken": None, "healthy": 7}


@pytest.mark.asyncio
async def test_default_jobs_run_against_empty_database(session_factory):
    runner = PeriodicRunner(session_factory, 60)
    results = await runner.run_once()
    assert set(results) == {name for name, _ in DEFAULT_JOBS}
    assert all(value == 0 for value in results.values())


@pytest.mark.asyncio
async def test_default_pass_expires_stale_swaps(db_session, session_factory, make_user, make_schedule):
    requester = await make_user()
    target = await make_user()
    day = today() + timedelta(days=3)
    mine = await make_schedule(requester, day)
    theirs = await make_schedule(target, day)
    swap = await shift_swap.request_swap(db_session, requester, target.id, mine.id, theirs.id, "Exam")
    swap.expires_at = utcnow() - timedelta(minutes=5)
    await db_session.commit()

    results = await PeriodicRunner(session_factory, 60).run_once()

    assert results["expire_stale_swaps"] == 1
    await db_session.refresh(swap)
    assert swap.status == "cancelled"


@pytest.mark.asyncio
async def test_start_and_stop(session_factory):
    ran = asyncio.Event()

    async def job(db):
        ran.set()
        return 1

    runner = PeriodicRunner(session_factory, 3600, jobs=[("job", job)])
    runner.start()
    assert runner.running
    await asyncio.wait_for(ran.wait(), timeout=5)
    await runner.stop()
    assert not runner.running
