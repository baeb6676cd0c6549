"""
Shared fixtures: a fresh in-memory aiosqlite database per test, the app wired
to it through a ``get_db`` override, and factories for users, profiles and
bearer headers.
"""

import os
from datetime import date
from typing import AsyncGenerator, Optional

import pytest

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SMTP_HOST"] = ""
os.environ["OFFICE_IP_WHITELIST"] = ""

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from staffops.core.security import hash_password, token_service
from staffops.database import Base, get_db
from staffops.main import app
from staffops.models.attendance import Attendance
from staffops.models.schedule import Schedule
from staffops.models.task import Task
from staffops.models.user import Profile, User

PASSWORD = "Password123!"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield factory
    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Raw session for arranging data and calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_user(db_session: AsyncSession):
    counter = {"n": 0}

    async def _make(
        role: str = "user",
        job_title: Optional[str] = "Cleaning Staff",
        department: Optional[str] = "Facilities",
        verified: bool = True,
        is_active: bool = True,
        work_start: str = "09:00",
        with_profile: bool = True,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=f"user{n}",
            email=f"user{n}@example.com",
            hashed_password=PASSWORD_HASH,
            role=role,
            verified=verified,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.flush()
        if with_profile:
            db_session.add(Profile(
                user_id=user.id,
                name=f"User {n}",
                department=department,
                job_title=job_title,
                work_start=work_start,
                work_end="17:00",
                skills=[],
                is_active=is_active,
            ))
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def mark_present(db_session: AsyncSession):
    async def _mark(user: User, day: date, status: str = "present") -> Attendance:
        record = Attendance(user_id=user.id, date=day, status=status)
        db_session.add(record)
        await db_session.commit()
        return record

    return _mark


@pytest.fixture
def make_task(db_session: AsyncSession):
    async def _make(assignee: User, day: date, category: str = "Cleaning", status: str = "pending", **extra) -> Task:
        task = Task(
            title=extra.pop("title", "Clean the lobby"),
            assigned_to_id=assignee.id,
            date=day,
            category=category,
            status=status,
            is_reassigned=False,
            reassignment_history=[],
            **extra,
        )
        db_session.add(task)
        await db_session.commit()
        return task

    return _make


@pytest.fixture
def make_schedule(db_session: AsyncSession):
    async def _make(user: User, day: date, shift: str = "Morning", **extra) -> Schedule:
        schedule = Schedule(
            user_id=user.id,
            date=day,
            shift=shift,
            start_time=extra.pop("start_time", "09:00"),
            end_time=extra.pop("end_time", "17:00"),
            status=extra.pop("status", "scheduled"),
            **extra,
        )
        db_session.add(schedule)
        await db_session.commit()
        return schedule

    return _make


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {token_service.create_access_token(user.id)}"}


@pytest.fixture
def auth():
    return auth_headers
