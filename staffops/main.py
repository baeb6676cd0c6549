# staffops/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import select

from staffops.config import settings
from staffops.core.exceptions import register_exception_handlers
from staffops.core.security import hash_password
from staffops.database import AsyncSessionLocal, Base, engine
from staffops.routers import (
    admin, alerts, attendance, auth, performance, profile, schedule, shifts, task, verification,
)
from staffops.services.notifications import EmailNotifier
from staffops.services.scheduler import PeriodicRunner

# Register every table on Base.metadata before create_all
from staffops.models.alert import Alert  # noqa: F401
from staffops.models.attendance import Attendance  # noqa: F401
from staffops.models.performance import PerformanceRecord  # noqa: F401
from staffops.models.schedule import Schedule  # noqa: F401
from staffops.models.shift_swap import ShiftSwap  # noqa: F401
from staffops.models.task import Task  # noqa: F401
from staffops.models.verification import SecretTeam, VerificationTask  # noqa: F401
from staffops.models.user import User

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_admin() -> None:
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.email == settings.FIRST_ADMIN_EMAIL))
        if result.scalar_one_or_none() is not None:
            return
        session.add(User(
            username="admin",
            email=settings.FIRST_ADMIN_EMAIL,
            hashed_password=hash_password(settings.FIRST_ADMIN_PASSWORD),
            role="super_admin",
            verified=True,
        ))
        await session.commit()
        logger.info("Default admin created: %s (password: <redacted>)", settings.FIRST_ADMIN_EMAIL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")
    await seed_admin()

    runner = PeriodicRunner(AsyncSessionLocal, settings.SCHEDULER_INTERVAL_SECONDS)
    if settings.SCHEDULER_ENABLED:
        runner.start()
    app.state.scheduler = runner

    yield

    await runner.stop()
    await app.state.notifier.close()
    await engine.dispose()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    application = FastAPI(title="StaffOps - Staff Management Backend", version="1.0", lifespan=lifespan)
    application.state.notifier = EmailNotifier(settings)

    register_exception_handlers(application)

    application.include_router(auth.router)
    application.include_router(profile.router)
    application.include_router(admin.router)
    application.include_router(attendance.router)
    application.include_router(task.router)
    application.include_router(verification.router)
    application.include_router(schedule.router)
    application.include_router(shifts.router)
    application.include_router(performance.router)
    application.include_router(alerts.router)

    @application.get("/")
    def read_root():
        return {"success": True, "message": "Welcome to the StaffOps backend"}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("staffops.main:app", host="0.0.0.0", port=8000, reload=True)
