"""
Periodic maintenance loop owned by the application lifespan.

Each pass runs the sweeps below in order, each in its own session. A failing
sweep is logged and the pass moves on to the next one.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from staffops.services import attendance, reassignment, shift_swap, verification
from staffops.utils.time import today

logger = logging.getLogger(__name__)

Job = Callable[[AsyncSession], Awaitable[object]]


async def _mark_absent(db: AsyncSession):
    return await attendance.auto_mark_absent(db)


async def _reassign_today(db: AsyncSession):
    outcomes = await reassignment.batch_reassign_for_date(db, today())
    return sum(1 for o in outcomes if o.success)


async def _flag_overdue(db: AsyncSession):
    return await verification.mark_overdue(db)


async def _expire_swaps(db: AsyncSession):
    return await shift_swap.expire_stale(db)


DEFAULT_JOBS: list[tuple[str, Job]] = [
    ("auto_mark_absent", _mark_absent),
    ("batch_reassign", _reassign_today),
    ("mark_overdue_verifications", _flag_overdue),
    ("expire_stale_swaps", _expire_swaps),
]


class PeriodicRunner:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        interval_seconds: float,
        jobs: Optional[list[tuple[str, Job]]] = None,
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.jobs = jobs if jobs is not None else DEFAULT_JOBS
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> dict[str, object]:
        results = {}
        for name, job in self.jobs:
            try:
                async with self.session_factory() as db:
                    results[name] = await job(db)
            except Exception:
                logger.exception("Periodic job %s failed", name)
                results[name] = None
        return results

    async def _loop(self) -> None:
        while True:
            results = await self.run_once()
            logger.debug("Periodic pass finished: %s", results)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Periodic jobs started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Periodic jobs stopped")
