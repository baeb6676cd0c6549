from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.core.auth import get_current_admin
from staffops.core.exceptions import AlreadyExists, Forbidden, InvalidState, NotFound
from staffops.core.security import hash_password
from staffops.database import get_db
from staffops.models.attendance import Attendance
from staffops.models.task import Task
from staffops.models.user import Profile, User
from staffops.routers.profile import apply_profile_update
from staffops.schemas.profile import AdminProfileUpdate, ProfileResponse
from staffops.schemas.user import AdminCreate, UserResponse
from staffops.utils.time import today

router = APIRouter(prefix="/admin", tags=["admin"])


def _staff_row(user: User, profile: Optional[Profile]) -> dict:
    return {
        "user": UserResponse.model_validate(user),
        "profile": ProfileResponse.model_validate(profile) if profile else None,
    }


def _staff_query():
    return (
        select(User, Profile)
        .outerjoin(Profile, Profile.user_id == User.id)
        .where(User.role == "user")
    )


@router.get("/staff")
async def list_staff(
    department: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    query = _staff_query()
    if department:
        query = query.where(Profile.department == department)
    if is_active is not None:
        query = query.where(User.is_active.is_(is_active))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(User.id).offset((page - 1) * limit).limit(limit))
    return {
        "success": True,
        "staff": [_staff_row(u, p) for u, p in result.all()],
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.get("/staff/search")
async def search_staff(
    q: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    pattern = f"%{q.lower()}%"
    result = await db.execute(
        _staff_query()
        .where(or_(
            func.lower(User.username).like(pattern),
            func.lower(User.email).like(pattern),
            func.lower(Profile.name).like(pattern),
            func.lower(Profile.department).like(pattern),
            func.lower(Profile.job_title).like(pattern),
        ))
        .order_by(User.id)
        .limit(50)
    )
    return {"success": True, "staff": [_staff_row(u, p) for u, p in result.all()]}


@router.get("/staff/stats")
async def staff_stats(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    total = (await db.execute(select(func.count(User.id)).where(User.role == "user"))).scalar_one()
    active = (await db.execute(
        select(func.count(User.id)).where(User.role == "user").where(User.is_active.is_(True))
    )).scalar_one()
    verified = (await db.execute(
        select(func.count(User.id)).where(User.role == "user").where(User.verified.is_(True))
    )).scalar_one()
    by_department = await db.execute(
        select(Profile.department, func.count(Profile.id))
        .join(User, User.id == Profile.user_id)
        .where(User.role == "user")
        .group_by(Profile.department)
        .order_by(Profile.department)
    )
    complete = (await db.execute(
        select(func.count(Profile.id)).where(Profile.profile_complete.is_(True))
    )).scalar_one()
    return {
        "success": True,
        "stats": {
            "total_staff": total,
            "active": active,
            "inactive": total - active,
            "verified": verified,
            "complete_profiles": complete,
            "by_department": {(d or "Unassigned"): c for d, c in by_department.all()},
        },
    }


@router.get("/staff/{user_id}")
async def staff_detail(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    result = await db.execute(
        select(User, Profile).outerjoin(Profile, Profile.user_id == User.id).where(User.id == user_id)
    )
    row = result.first()
    if row is None:
        raise NotFound("User not found")
    user, profile = row

    since = today() - timedelta(days=30)
    attendance = await db.execute(
        select(Attendance.status, func.count(Attendance.id))
        .where(Attendance.user_id == user_id)
        .where(Attendance.date >= since)
        .group_by(Attendance.status)
    )
    tasks = await db.execute(
        select(Task.status, func.count(Task.id))
        .where(Task.assigned_to_id == user_id)
        .group_by(Task.status)
    )
    return {
        "success": True,
        **_staff_row(user, profile),
        "attendance_last_30_days": dict(attendance.all()),
        "tasks_by_status": dict(tasks.all()),
    }


@router.put("/staff/{user_id}")
async def update_staff(
    user_id: int,
    body: AdminProfileUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    profile = result.scalar_one_or_none()
    data = body.model_dump(exclude_unset=True)
    if profile is None:
        profile = Profile(user_id=user_id, name=data.pop("name", None) or user.username, skills=[])
        db.add(profile)
    apply_profile_update(profile, data)
    await db.commit()
    return {"success": True, **_staff_row(user, profile)}


@router.post("/staff/{user_id}/deactivate")
async def deactivate_staff(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if user.id == admin.id:
        raise Forbidden("You cannot deactivate your own account")
    if not user.is_active:
        raise InvalidState("User is already inactive")
    user.is_active = False
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    profile = result.scalar_one_or_none()
    if profile is not None:
        profile.is_active = False
    await db.commit()
    return {"success": True, "message": f"User {user.username} deactivated"}


@router.post("/create-admin", status_code=201)
async def create_admin(
    body: AdminCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    if body.role == "super_admin" and admin.role != "super_admin":
        raise Forbidden("Only a super admin can create another super admin")
    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none() is not None:
        raise AlreadyExists("Email already registered")
    user = User(
        username=body.username,
        email=body.email,
        hashed_password=hash_password(body.password),
        role=body.role,
        verified=True,
    )
    db.add(user)
    await db.commit()
    return {"success": True, "user": UserResponse.model_validate(user)}
