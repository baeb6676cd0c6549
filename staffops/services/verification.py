"""
Secret-team verification dispatch.

Completed tasks are checked by an anonymous verifier drawn at random from the
least-loaded active secret team. The verifier rates cleanliness, completeness
and quality (1-5); the mean, rounded half-up to one decimal, decides the
result: >= 4 pass, >= 2.5 recheck, otherwise fail.
"""

import logging
import random
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.config import settings
from staffops.core.exceptions import (
    AlreadyAssigned, AlreadySubmitted, Conflict, Forbidden, InvalidRating, InvalidState,
    NoActiveTeams, NotFound, TaskNotCompleted, ValidationError,
)
from staffops.models.task import Task
from staffops.models.user import User
from staffops.models.verification import (
    SecretTeam, TeamMember, VerificationIssue, VerificationTask,
    OPEN_VERIFICATION_STATUSES, TEAM_SIZE,
)
from staffops.utils.time import utcnow

logger = logging.getLogger(__name__)

PASS_THRESHOLD = Decimal("4")
RECHECK_THRESHOLD = Decimal("2.5")


def compute_verification_score(cleanliness: int, completeness: int, quality: int) -> tuple[float, str]:
    ratings = (cleanliness, completeness, quality)
    for rating in ratings:
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidRating("All ratings must be whole numbers between 1 and 5")

    score = (Decimal(sum(ratings)) / Decimal(3)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    if score >= PASS_THRESHOLD:
        result = "pass"
    elif score >= RECHECK_THRESHOLD:
        result = "recheck"
    else:
        result = "fail"
    return float(score), result


def is_overdue(verification: VerificationTask, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return verification.status == "pending" and now > verification.deadline


@dataclass
class IssueInput:
    category: str
    description: str
    severity: str = "medium"


async def team_workloads(db: AsyncSession) -> list[tuple[SecretTeam, int]]:
    """Active teams in id order with their open (pending/in-progress) verification count."""
    open_counts = (
        select(VerificationTask.team_id, func.count(VerificationTask.id).label("open_count"))
        .where(VerificationTask.status.in_(OPEN_VERIFICATION_STATUSES))
        .group_by(VerificationTask.team_id)
        .subquery()
    )
    result = await db.execute(
        select(SecretTeam, func.coalesce(open_counts.c.open_count, 0))
        .outerjoin(open_counts, open_counts.c.team_id == SecretTeam.id)
        .where(SecretTeam.is_active.is_(True))
        .order_by(SecretTeam.id)
    )
    return [(team, int(count)) for team, count in result.all()]


async def select_least_loaded_team(db: AsyncSession) -> SecretTeam:
    workloads = await team_workloads(db)
    if not workloads:
        raise NoActiveTeams("No active secret teams available")
    best, best_load = workloads[0]
    for team, load in workloads[1:]:
        if load < best_load:
            best, best_load = team, load
    return best


async def assign_verification(db: AsyncSession, task_id: int) -> tuple[VerificationTask, SecretTeam]:
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")
    if task.status != "completed":
        raise TaskNotCompleted("Only completed tasks can be verified")

    existing = await db.execute(select(VerificationTask.id).where(VerificationTask.task_id == task_id))
    if existing.scalar_one_or_none() is not None:
        raise AlreadyAssigned("Verification already assigned for this task")

    team = await select_least_loaded_team(db)
    members = team.active_members
    if not members:
        raise InvalidState(f"Team {team.team_code} has no active members")
    verifier = random.choice(members)

    now = utcnow()
    verification = VerificationTask(
        task_id=task.id,
        original_staff_id=task.assigned_to_id,
        assigned_verifier_id=verifier.user_id,
        team_id=team.id,
        status="pending",
        location=task.location,
        priority="urgent" if task.priority == "urgent" else "medium",
        is_anonymous=True,
        assigned_at=now,
        deadline=now + timedelta(hours=settings.VERIFICATION_DEADLINE_HOURS),
        issues=[],
    )
    db.add(verification)
    try:
        await db.commit()
    except IntegrityError:
        # lost the race on verification_tasks.task_id
        await db.rollback()
        raise AlreadyAssigned("Verification already assigned for this task")

    logger.info("Task %s sent to team %s for verification", task.id, team.team_code)
    return verification, team


async def submit_report(
    db: AsyncSession,
    verification_id: int,
    verifier_id: int,
    cleanliness: int,
    completeness: int,
    quality: int,
    comments: Optional[str] = None,
    issues: Iterable[IssueInput] = (),
) -> tuple[VerificationTask, Task]:
    verification = await db.get(VerificationTask, verification_id)
    if verification is None:
        raise NotFound("Verification task not found")
    if verification.assigned_verifier_id != verifier_id:
        raise Forbidden("You are not assigned to this verification")
    if verification.status == "completed":
        raise AlreadySubmitted("Verification report already submitted")

    score, result = compute_verification_score(cleanliness, completeness, quality)

    # Only the first submission may complete the row.
    guard = await db.execute(
        update(VerificationTask)
        .where(VerificationTask.id == verification_id)
        .where(VerificationTask.status != "completed")
        .values(status="completed")
        .execution_options(synchronize_session=False)
    )
    if guard.rowcount != 1:
        await db.rollback()
        raise AlreadySubmitted("Verification report already submitted")

    verification.cleanliness = cleanliness
    verification.completeness = completeness
    verification.quality = quality
    verification.overall_score = score
    verification.result = result
    verification.comments = comments
    for issue in issues:
        verification.issues.append(
            VerificationIssue(category=issue.category, description=issue.description, severity=issue.severity)
        )
    verification.status = "completed"
    verification.verified_at = utcnow()
    await db.commit()

    task = await db.get(Task, verification.task_id)
    logger.info("Verification %s submitted: %s (%s)", verification.id, result, score)
    return verification, task


async def create_team(db: AsyncSession, team_name: str, member_ids: list[int], creator: User) -> SecretTeam:
    if len(member_ids) != TEAM_SIZE or len(set(member_ids)) != TEAM_SIZE:
        raise ValidationError(f"Team must have exactly {TEAM_SIZE} different members")

    users = (await db.execute(select(User).where(User.id.in_(member_ids)))).scalars().all()
    if len(users) != TEAM_SIZE:
        raise NotFound("One or more members not found")
    if any(u.role != "user" or not u.is_active for u in users):
        raise ValidationError("Only active staff users can join a secret team")

    taken = await _members_in_active_teams(db, member_ids)
    if taken:
        raise Conflict(f"Users already in an active team: {taken}")

    team = SecretTeam(
        team_name=team_name,
        team_code=await _generate_team_code(db),
        is_active=True,
        created_by=creator.id,
        members=[TeamMember(user_id=uid, is_active=True) for uid in member_ids],
    )
    db.add(team)
    await db.commit()
    logger.info("Secret team %s created with members %s", team.team_code, member_ids)
    return team


async def _members_in_active_teams(
    db: AsyncSession, member_ids: list[int], exclude_team_id: Optional[int] = None,
) -> list[int]:
    query = (
        select(TeamMember.user_id)
        .join(SecretTeam, SecretTeam.id == TeamMember.team_id)
        .where(TeamMember.user_id.in_(member_ids))
        .where(TeamMember.is_active.is_(True))
        .where(SecretTeam.is_active.is_(True))
    )
    if exclude_team_id is not None:
        query = query.where(SecretTeam.id != exclude_team_id)
    return sorted(set((await db.execute(query)).scalars().all()))


async def _generate_team_code(db: AsyncSession) -> str:
    used = set((await db.execute(select(SecretTeam.team_code))).scalars().all())
    if len(used) >= 900:
        raise InvalidState("No team codes left")
    while True:
        code = f"ST{random.randint(100, 999)}"
        if code not in used:
            return code


async def set_team_active(db: AsyncSession, team_id: int, active: bool) -> SecretTeam:
    team = await db.get(SecretTeam, team_id)
    if team is None:
        raise NotFound("Team not found")
    if active and not team.is_active:
        member_ids = [m.user_id for m in team.active_members]
        taken = await _members_in_active_teams(db, member_ids, exclude_team_id=team.id)
        if taken:
            raise Conflict(f"Users already in an active team: {taken}")
    team.is_active = active
    await db.commit()
    return team


async def active_team_of(db: AsyncSession, user_id: int) -> Optional[SecretTeam]:
    result = await db.execute(
        select(SecretTeam)
        .join(TeamMember, TeamMember.team_id == SecretTeam.id)
        .where(TeamMember.user_id == user_id)
        .where(TeamMember.is_active.is_(True))
        .where(SecretTeam.is_active.is_(True))
    )
    return result.scalars().first()


async def verifier_tasks(db: AsyncSession, user_id: int) -> list[tuple[VerificationTask, Task]]:
    result = await db.execute(
        select(VerificationTask, Task)
        .join(Task, Task.id == VerificationTask.task_id)
        .where(VerificationTask.assigned_verifier_id == user_id)
        .order_by(VerificationTask.deadline)
    )
    return [(v, t) for v, t in result.all()]


async def mark_overdue(db: AsyncSession, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    result = await db.execute(
        update(VerificationTask)
        .where(VerificationTask.status == "pending")
        .where(VerificationTask.deadline < now)
        .values(status="overdue")
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount:
        logger.info("Flagged %s verifications as overdue", result.rowcount)
    return result.rowcount


async def overdue_verifications(db: AsyncSession, now: Optional[datetime] = None) -> list[dict]:
    now = now or utcnow()
    result = await db.execute(
        select(VerificationTask, Task.title, SecretTeam.team_code)
        .join(Task, Task.id == VerificationTask.task_id)
        .join(SecretTeam, SecretTeam.id == VerificationTask.team_id)
        .where(VerificationTask.status.in_(("pending", "overdue")))
        .where(VerificationTask.deadline < now)
        .order_by(VerificationTask.deadline)
    )
    return [
        {
            "id": v.id,
            "task_id": v.task_id,
            "task_title": title,
            "team_code": code,
            "assigned_verifier_id": v.assigned_verifier_id,
            "deadline": v.deadline,
            "hours_overdue": round((now - v.deadline).total_seconds() / 3600, 1),
        }
        for v, title, code in result.all()
    ]


def _pct(part: int, whole: int) -> int:
    if not whole:
        return 0
    return int((Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _avg(values: list) -> float:
    if not values:
        return 0.0
    return float((Decimal(sum(values)) / Decimal(len(values))).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


async def dashboard_stats(db: AsyncSession, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    verifications = (await db.execute(select(VerificationTask))).scalars().all()

    overdue = sum(1 for v in verifications if v.status == "overdue" or is_overdue(v, now))
    status_counts = Counter(v.status for v in verifications)
    completed = [v for v in verifications if v.status == "completed"]
    results = Counter(v.result for v in completed)
    issue_categories = Counter(i.category for v in completed for i in v.issues)

    total = len(verifications)
    return {
        "total": total,
        "pending": status_counts.get("pending", 0),
        "in_progress": status_counts.get("in-progress", 0),
        "completed": len(completed),
        "overdue": overdue,
        "results": {
            "pass": results.get("pass", 0),
            "recheck": results.get("recheck", 0),
            "fail": results.get("fail", 0),
        },
        "averages": {
            "cleanliness": _avg([v.cleanliness for v in completed]),
            "completeness": _avg([v.completeness for v in completed]),
            "quality": _avg([v.quality for v in completed]),
            "overall_score": _avg([Decimal(str(v.overall_score)) for v in completed]),
        },
        "issue_categories": dict(issue_categories),
        "pass_rate": _pct(results.get("pass", 0), len(completed)),
        "completion_rate": _pct(len(completed), total),
        "overdue_rate": _pct(overdue, total),
    }


async def teams_overview(db: AsyncSession) -> list[dict]:
    teams = (await db.execute(select(SecretTeam).order_by(SecretTeam.id))).scalars().all()
    rows = await db.execute(
        select(VerificationTask.team_id, VerificationTask.status, func.count(VerificationTask.id))
        .group_by(VerificationTask.team_id, VerificationTask.status)
    )
    per_team: dict[int, Counter] = {}
    for team_id, status, count in rows.all():
        per_team.setdefault(team_id, Counter())[status] = count

    member_ids = {m.user_id for t in teams for m in t.members}
    names = {}
    if member_ids:
        names = dict((await db.execute(select(User.id, User.username).where(User.id.in_(member_ids)))).all())

    overview = []
    for team in teams:
        counts = per_team.get(team.id, Counter())
        overview.append({
            "id": team.id,
            "team_name": team.team_name,
            "team_code": team.team_code,
            "is_active": team.is_active,
            "created_at": team.created_at,
            "members": [
                {"user_id": m.user_id, "username": names.get(m.user_id), "is_active": m.is_active}
                for m in team.members
            ],
            "stats": {
                "total": sum(counts.values()),
                "completed": counts.get("completed", 0),
                "pending": counts.get("pending", 0),
                "overdue": counts.get("overdue", 0),
                "workload": sum(counts.get(s, 0) for s in OPEN_VERIFICATION_STATUSES),
            },
        })
    return overview
