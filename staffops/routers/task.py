import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.core.auth import get_current_admin, get_current_user
from staffops.core.exceptions import DomainError, Forbidden, InvalidState, NotFound, ValidationError
from staffops.database import get_db
from staffops.models.task import Task
from staffops.models.user import User
from staffops.schemas.task import (
    ManualReassignRequest, ReassignRequest, ReassignmentDetailsResponse,
    TaskCreate, TaskRate, TaskResponse, TaskUpdate, TaskUpdateStatus,
)
from staffops.services import reassignment
from staffops.services.attendance import is_user_present
from staffops.services.notifications import create_system_alert
from staffops.utils.time import today, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])

CLOSED_STATUSES = ("completed", "cancelled")


async def _get_task(db: AsyncSession, task_id: int) -> Task:
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")
    return task


def _details(details) -> Optional[ReassignmentDetailsResponse]:
    return ReassignmentDetailsResponse.model_validate(details) if details else None


@router.post("", status_code=201)
async def create_task(
    task_in: TaskCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    assignee = await db.get(User, task_in.assigned_to_id)
    if assignee is None or not assignee.is_active:
        raise NotFound("Assigned user not found")

    task = Task(
        **task_in.model_dump(),
        assigned_by_id=admin.id,
        status="pending",
        is_reassigned=False,
        reassignment_history=[],
    )
    db.add(task)
    await db.commit()
    logger.info("Task %s created for user %s on %s", task.id, task.assigned_to_id, task.date)

    details = None
    if not await is_user_present(db, task.assigned_to_id, task.date):
        try:
            details = await reassignment.auto_reassign(db, task.id, "user_absent")
        except DomainError as e:
            logger.info("Task %s kept with absent assignee: %s", task.id, e.detail)

    await create_system_alert(
        db,
        "task_assigned",
        task.assigned_to_id,
        "New Task Assigned",
        f"{task.title} ({task.category}) on {task.date}",
        priority="high" if task.priority in ("high", "urgent") else "medium",
        related_id=task.id,
        related_model="Task",
    )
    return {
        "success": True,
        "task": TaskResponse.model_validate(task),
        "reassignment_details": _details(details),
    }


@router.get("/my-tasks")
async def my_tasks(
    status: Optional[str] = None,
    task_date: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = select(Task).where(Task.assigned_to_id == current_user.id)
    if status:
        query = query.where(Task.status == status)
    if task_date:
        query = query.where(Task.date == task_date)
    result = await db.execute(query.order_by(Task.date.desc(), Task.id))
    tasks = result.scalars().all()
    return {"success": True, "count": len(tasks), "tasks": [TaskResponse.model_validate(t) for t in tasks]}


@router.get("/today")
async def todays_tasks(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Task)
        .where(Task.assigned_to_id == current_user.id)
        .where(Task.date == today())
        .order_by(Task.id)
    )
    tasks = result.scalars().all()
    return {
        "success": True,
        "tasks": [TaskResponse.model_validate(t) for t in tasks],
        "total_estimated_minutes": sum(t.estimated_duration for t in tasks if t.status not in CLOSED_STATUSES),
    }


@router.get("/admin/all")
async def all_tasks(
    status: Optional[str] = None,
    category: Optional[str] = None,
    assigned_to_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    query = select(Task)
    if status:
        query = query.where(Task.status == status)
    if category:
        query = query.where(Task.category == category)
    if assigned_to_id:
        query = query.where(Task.assigned_to_id == assigned_to_id)
    if date_from:
        query = query.where(Task.date >= date_from)
    if date_to:
        query = query.where(Task.date <= date_to)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(Task.date.desc(), Task.id.desc()).offset((page - 1) * limit).limit(limit))
    return {
        "success": True,
        "tasks": [TaskResponse.model_validate(t) for t in result.scalars().all()],
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.get("/admin/dashboard")
async def task_dashboard(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    async def grouped(column, *filters):
        query = select(column, func.count(Task.id)).group_by(column)
        for f in filters:
            query = query.where(f)
        return dict((await db.execute(query)).all())

    by_status = await grouped(Task.status)
    total = sum(by_status.values())
    return {
        "success": True,
        "dashboard": {
            "total": total,
            "by_status": by_status,
            "by_category": await grouped(Task.category),
            "by_priority": await grouped(Task.priority),
            "today": await grouped(Task.status, Task.date == today()),
            "reassigned": (await db.execute(
                select(func.count(Task.id)).where(Task.is_reassigned.is_(True))
            )).scalar_one(),
            "completion_rate": round(by_status.get("completed", 0) / total * 100) if total else 0,
        },
    }


@router.post("/reassign")
async def reassign_task(
    body: ReassignRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    details = await reassignment.auto_reassign(db, body.task_id, body.reason)
    task = await _get_task(db, body.task_id)
    return {"success": True, "task": TaskResponse.model_validate(task), "reassignment_details": _details(details)}


@router.post("/manual-reassign")
async def manual_reassign_task(
    body: ManualReassignRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    details = await reassignment.manual_reassign(db, body.task_id, body.new_user_id, body.reason)
    task = await _get_task(db, body.task_id)
    await create_system_alert(
        db,
        "task_assigned",
        body.new_user_id,
        "Task Reassigned To You",
        f"{task.title} ({task.category}) on {task.date}",
        related_id=task.id,
        related_model="Task",
    )
    return {"success": True, "task": TaskResponse.model_validate(task), "reassignment_details": _details(details)}


@router.post("/check-reassignments")
async def check_reassignments(
    for_date: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    outcomes = await reassignment.batch_reassign_for_date(db, for_date or today())
    return {
        "success": True,
        "processed": len(outcomes),
        "reassigned": sum(1 for o in outcomes if o.success),
        "results": [
            {
                "task_id": o.task_id,
                "title": o.title,
                "success": o.success,
                "details": _details(o.details),
                "error": o.error,
            }
            for o in outcomes
        ],
    }


@router.get("/reassignment-stats")
async def reassignment_stats(
    for_date: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return {"success": True, "stats": await reassignment.get_reassignment_stats(db, for_date)}


@router.put("/{task_id}/status")
async def update_task_status(
    task_id: int,
    body: TaskUpdateStatus,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = await _get_task(db, task_id)
    if task.assigned_to_id != current_user.id and not current_user.is_admin:
        raise Forbidden("Task not assigned to you")
    if task.status in CLOSED_STATUSES:
        raise InvalidState(f"Task is already {task.status}")

    task.status = body.status
    if body.status == "completed":
        task.completed_at = utcnow()
        task.completion_notes = body.completion_notes
    await db.commit()
    return {"success": True, "task": TaskResponse.model_validate(task)}


@router.post("/{task_id}/rate")
async def rate_task(
    task_id: int,
    body: TaskRate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    task = await _get_task(db, task_id)
    if task.status != "completed":
        raise InvalidState("Only completed tasks can be rated")
    task.rating = body.rating
    task.feedback = body.feedback
    task.rated_by_id = admin.id
    await db.commit()
    return {"success": True, "task": TaskResponse.model_validate(task)}


@router.put("/{task_id}")
async def update_task(
    task_id: int,
    body: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    task = await _get_task(db, task_id)
    if task.status in CLOSED_STATUSES:
        raise InvalidState(f"Cannot edit a {task.status} task")
    data = body.model_dump(exclude_unset=True)
    if "title" in data and data["title"] is None:
        raise ValidationError("Title cannot be empty")
    for field, value in data.items():
        setattr(task, field, value)
    await db.commit()
    return {"success": True, "task": TaskResponse.model_validate(task)}


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    task = await _get_task(db, task_id)
    await db.delete(task)
    await db.commit()
    return {"success": True, "message": "Task deleted"}


@router.get("/{task_id}")
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = await _get_task(db, task_id)
    if not current_user.is_admin and current_user.id not in (task.assigned_to_id, task.original_assignee_id):
        raise Forbidden("Task not assigned to you")
    return {"success": True, "task": TaskResponse.model_validate(task)}
