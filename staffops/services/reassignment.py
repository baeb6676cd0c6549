"""
Workload-aware task reassignment.

A task whose assignee is absent is handed to the least-loaded eligible
colleague: someone whose profile job title matches the task category, who is
active, verified and present that day. Workload is the number of the
candidate's pending/in-progress tasks on the task date. Candidates are
enumerated by user id and sorted stably, so the lowest id wins a tie.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.core.exceptions import (
    AlreadyAssigned, DomainError, InvalidState, NoCandidates, NotFound,
)
from staffops.models.task import Task, ReassignmentEvent, ACTIVE_STATUSES
from staffops.models.user import Profile, User
from staffops.services.attendance import PresencePredicate, is_user_present
from staffops.utils.time import utcnow

logger = logging.getLogger(__name__)

REASSIGNMENT_REASONS = ("user_absent", "user_overloaded", "manual_override")


@dataclass
class Candidate:
    user_id: int
    username: str
    job_title: str
    workload: int
    total_estimated_minutes: int


@dataclass
class ReassignmentDetails:
    task_id: int
    from_user_id: int
    to_user_id: int
    reason: str
    new_user_workload: Optional[int] = None
    reassigned_at: datetime = field(default_factory=utcnow)


@dataclass
class TaskReassignmentResult:
    task_id: int
    title: str
    success: bool
    details: Optional[ReassignmentDetails] = None
    error: Optional[str] = None


async def find_eligible_candidates(
    db: AsyncSession,
    category: str,
    day: date,
    exclude_user_id: Optional[int] = None,
    presence: PresencePredicate = is_user_present,
) -> list[Candidate]:
    result = await db.execute(
        select(User.id, User.username, Profile.job_title)
        .join(Profile, Profile.user_id == User.id)
        .where(func.lower(Profile.job_title).contains(category.lower(), autoescape=True))
        .where(Profile.is_active.is_(True))
        .where(User.is_active.is_(True))
        .where(User.verified.is_(True))
        .order_by(User.id)
    )

    candidates = []
    for user_id, username, job_title in result.all():
        if user_id == exclude_user_id:
            continue
        if not await presence(db, user_id, day):
            continue

        load = await db.execute(
            select(func.count(Task.id), func.coalesce(func.sum(Task.estimated_duration), 0))
            .where(Task.assigned_to_id == user_id)
            .where(Task.date == day)
            .where(Task.status.in_(ACTIVE_STATUSES))
        )
        count, minutes = load.one()
        candidates.append(Candidate(user_id, username, job_title, count, int(minutes)))

    # sorted() is stable: equal workloads keep user-id order
    return sorted(candidates, key=lambda c: c.workload)


async def _get_task(db: AsyncSession, task_id: int) -> Task:
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")
    return task


def _apply_reassignment(task: Task, new_user_id: int, reason: str, now: datetime) -> None:
    previous = task.assigned_to_id
    if task.original_assignee_id is None:
        task.original_assignee_id = previous
    task.assigned_to_id = new_user_id
    task.is_reassigned = True
    task.reassignment_reason = reason
    task.reassigned_at = now
    task.reassignment_history.append(
        ReassignmentEvent(from_user_id=previous, to_user_id=new_user_id, reason=reason, timestamp=now)
    )


async def auto_reassign(
    db: AsyncSession,
    task_id: int,
    reason: str = "user_absent",
    presence: PresencePredicate = is_user_present,
) -> ReassignmentDetails:
    task = await _get_task(db, task_id)
    if task.status != "pending":
        raise InvalidState(f"Only pending tasks can be auto-reassigned (task is {task.status})")

    candidates = await find_eligible_candidates(
        db, task.category, task.date, exclude_user_id=task.assigned_to_id, presence=presence,
    )
    candidates = [c for c in candidates if c.user_id != task.original_assignee_id]
    if not candidates:
        logger.info("No candidates to take over task %s (%s, %s)", task.id, task.category, task.date)
        raise NoCandidates(f"No available users found for category {task.category!r} on {task.date}")

    best = candidates[0]
    now = utcnow()
    from_user_id = task.assigned_to_id
    _apply_reassignment(task, best.user_id, reason, now)
    task.status = "reassigned"
    await db.commit()

    logger.info("Task %s reassigned %s -> %s (%s)", task.id, from_user_id, best.user_id, reason)
    return ReassignmentDetails(
        task_id=task.id,
        from_user_id=from_user_id,
        to_user_id=best.user_id,
        reason=reason,
        new_user_workload=best.workload + 1,
        reassigned_at=now,
    )


async def manual_reassign(
    db: AsyncSession,
    task_id: int,
    new_user_id: int,
    reason: str = "manual_override",
) -> ReassignmentDetails:
    task = await _get_task(db, task_id)
    if task.assigned_to_id == new_user_id:
        raise AlreadyAssigned("Task is already assigned to this user")
    new_user = await db.get(User, new_user_id)
    if new_user is None or not new_user.is_active:
        raise NotFound("New assignee not found")

    now = utcnow()
    from_user_id = task.assigned_to_id
    _apply_reassignment(task, new_user_id, reason, now)
    await db.commit()

    logger.info("Task %s manually reassigned %s -> %s", task.id, from_user_id, new_user_id)
    return ReassignmentDetails(
        task_id=task.id,
        from_user_id=from_user_id,
        to_user_id=new_user_id,
        reason=reason,
        reassigned_at=now,
    )


async def batch_reassign_for_date(
    db: AsyncSession,
    day: date,
    presence: PresencePredicate = is_user_present,
) -> list[TaskReassignmentResult]:
    result = await db.execute(
        select(Task.id, Task.title, Task.assigned_to_id)
        .where(Task.date == day)
        .where(Task.status == "pending")
        .where(Task.is_reassigned.is_(False))
        .order_by(Task.id)
    )

    outcomes = []
    for task_id, title, assignee_id in result.all():
        if await presence(db, assignee_id, day):
            continue
        try:
            details = await auto_reassign(db, task_id, "user_absent", presence=presence)
        except DomainError as e:
            outcomes.append(TaskReassignmentResult(task_id, title, False, error=e.detail))
            continue
        outcomes.append(TaskReassignmentResult(task_id, title, True, details=details))

    if outcomes:
        ok = sum(1 for o in outcomes if o.success)
        logger.info("Reassignment sweep for %s: %s reassigned, %s failed", day, ok, len(outcomes) - ok)
    return outcomes


async def get_reassignment_stats(db: AsyncSession, day: Optional[date] = None) -> dict:
    query = select(Task.reassignment_reason, Task.category, Task.date).where(Task.is_reassigned.is_(True))
    if day is not None:
        query = query.where(Task.date == day)
    rows = (await db.execute(query)).all()

    by_reason = Counter(reason for reason, _, _ in rows)
    by_category = Counter(category for _, category, _ in rows)
    by_date = Counter(d.isoformat() for _, _, d in rows)
    return {
        "total_reassigned": len(rows),
        "by_reason": dict(by_reason),
        "by_category": dict(by_category),
        "by_date": dict(sorted(by_date.items())),
    }
