from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.core.auth import get_current_admin, get_current_user
from staffops.core.exceptions import Conflict, NotFound, ValidationError
from staffops.database import get_db
from staffops.models.schedule import Schedule
from staffops.models.user import User
from staffops.schemas.schedule import ScheduleCreate, ScheduleResponse
from staffops.services.notifications import create_system_alert

router = APIRouter(prefix="/schedules", tags=["schedules"])


@router.post("", status_code=201)
async def create_schedule(
    body: ScheduleCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    user = await db.get(User, body.user_id)
    if user is None or not user.is_active:
        raise NotFound("User not found")
    if body.end_time == body.start_time:
        raise ValidationError("Shift start and end cannot be equal")

    existing = await db.execute(
        select(Schedule.id).where(Schedule.user_id == body.user_id).where(Schedule.date == body.date)
    )
    if existing.first() is not None:
        raise Conflict(f"User already has a shift on {body.date}")

    schedule = Schedule(**body.model_dump(), assigned_by=admin.id, status="scheduled")
    db.add(schedule)
    await db.commit()

    await create_system_alert(
        db,
        "shift_reminder",
        schedule.user_id,
        "New Shift Scheduled",
        f"{schedule.shift} shift on {schedule.date} from {schedule.start_time} to {schedule.end_time}",
        related_id=schedule.id,
        related_model="Schedule",
    )
    return {"success": True, "schedule": ScheduleResponse.model_validate(schedule)}


@router.get("/my")
async def my_schedules(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = select(Schedule).where(Schedule.user_id == current_user.id)
    if start_date:
        query = query.where(Schedule.date >= start_date)
    if end_date:
        query = query.where(Schedule.date <= end_date)
    result = await db.execute(query.order_by(Schedule.date))
    return {"success": True, "schedules": [ScheduleResponse.model_validate(s) for s in result.scalars().all()]}


@router.get("/admin/all")
async def all_schedules(
    for_date: Optional[date] = Query(None, alias="date"),
    department: Optional[str] = None,
    user_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    query = select(Schedule)
    if for_date:
        query = query.where(Schedule.date == for_date)
    if department:
        query = query.where(Schedule.department == department)
    if user_id:
        query = query.where(Schedule.user_id == user_id)
    result = await db.execute(query.order_by(Schedule.date, Schedule.user_id))
    return {"success": True, "schedules": [ScheduleResponse.model_validate(s) for s in result.scalars().all()]}
