"""
Monthly performance scoring.

``compute_metrics`` gathers attendance, schedule and task figures for a date
range; ``finalize_record`` derives the overall score, grade, level, alert
flags and status from the stored components and must run before every save of
a ``PerformanceRecord``.
"""

import logging
from calendar import monthrange
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.core.exceptions import InvalidState, NotFound
from staffops.models.attendance import Attendance
from staffops.models.performance import (
    Achievement, DisciplinaryAction, ImprovementArea, ImprovementPlan, PerformanceIssue,
    PerformanceRecord, WARNING_ACTION_TYPES,
)
from staffops.models.schedule import Schedule
from staffops.models.task import Task
from staffops.models.user import Profile, User
from staffops.services.notifications import (
    EmailNotifier, create_system_alert, performance_warning_email,
)
from staffops.utils.time import month_bounds, shift_month, utcnow

logger = logging.getLogger(__name__)

ATTENDANCE_WEIGHT = Decimal("0.4")
TASK_WEIGHT = Decimal("0.4")
PUNCTUALITY_WEIGHT = Decimal("0.2")
TREND_THRESHOLD = 5


def round_half_up(value, digits: int = 0):
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def _percent(part: int, whole: int) -> int:
    return round_half_up(Decimal(part) * 100 / Decimal(whole))


@dataclass
class PerformanceMetrics:
    total_work_days: int = 0
    present_days: int = 0
    late_days: int = 0
    absent_days: int = 0
    leave_days: int = 0
    attendance_score: int = 0
    punctuality_score: int = 100
    total_working_hours: float = 0.0
    total_tasks: int = 0
    completed_tasks: int = 0
    pending_tasks: int = 0
    in_progress_tasks: int = 0
    cancelled_tasks: int = 0
    task_completion_rate: int = 0
    average_task_rating: float = 0.0


async def compute_metrics(db: AsyncSession, user_id: int, start: date, end: date) -> PerformanceMetrics:
    """Metrics for ``start <= day < end``."""
    metrics = PerformanceMetrics()

    attendance = (await db.execute(
        select(Attendance.status, Attendance.is_approved, Attendance.working_minutes)
        .where(Attendance.user_id == user_id)
        .where(Attendance.date >= start)
        .where(Attendance.date < end)
    )).all()
    scheduled_days = (await db.execute(
        select(func.count(Schedule.id))
        .where(Schedule.user_id == user_id)
        .where(Schedule.date >= start)
        .where(Schedule.date < end)
    )).scalar_one()

    metrics.total_work_days = scheduled_days or len(attendance)
    metrics.present_days = sum(1 for row in attendance if row.status in ("present", "late"))
    metrics.late_days = sum(1 for row in attendance if row.status == "late")
    metrics.absent_days = sum(1 for row in attendance if row.status == "absent")
    metrics.leave_days = sum(1 for row in attendance if row.status == "leave" and row.is_approved)
    working_minutes = sum(row.working_minutes or 0 for row in attendance)
    metrics.total_working_hours = round_half_up(Decimal(working_minutes) / 60, 1)

    # No work days: nothing was missed and nothing was late.
    if metrics.total_work_days:
        metrics.attendance_score = _percent(metrics.present_days, metrics.total_work_days)
        metrics.punctuality_score = _percent(metrics.total_work_days - metrics.late_days, metrics.total_work_days)
    else:
        metrics.attendance_score = 0
        metrics.punctuality_score = 100

    tasks = (await db.execute(
        select(Task.status, Task.rating)
        .where(Task.assigned_to_id == user_id)
        .where(Task.date >= start)
        .where(Task.date < end)
    )).all()
    metrics.total_tasks = len(tasks)
    metrics.completed_tasks = sum(1 for t in tasks if t.status == "completed")
    metrics.pending_tasks = sum(1 for t in tasks if t.status in ("pending", "reassigned"))
    metrics.in_progress_tasks = sum(1 for t in tasks if t.status == "in-progress")
    metrics.cancelled_tasks = sum(1 for t in tasks if t.status == "cancelled")
    if metrics.total_tasks:
        metrics.task_completion_rate = _percent(metrics.completed_tasks, metrics.total_tasks)

    ratings = [t.rating for t in tasks if t.status == "completed" and t.rating is not None]
    if ratings:
        metrics.average_task_rating = round_half_up(Decimal(sum(ratings)) / len(ratings), 1)
    return metrics


def grade_for(score: int) -> str:
    if score >= 95:
        return "A+"
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


def level_for(score: int) -> str:
    if score >= 90:
        return "excellent"
    if score >= 80:
        return "good"
    if score >= 70:
        return "satisfactory"
    if score >= 60:
        return "needs_improvement"
    return "poor"


def overall_score_for(attendance: int, task_completion: int, punctuality: int) -> int:
    weighted = (
        Decimal(attendance) * ATTENDANCE_WEIGHT
        + Decimal(task_completion) * TASK_WEIGHT
        + Decimal(punctuality) * PUNCTUALITY_WEIGHT
    )
    return round_half_up(weighted)


def finalize_record(record: PerformanceRecord) -> PerformanceRecord:
    """Recompute every derived field from the component scores. Idempotent."""
    warnings = record.warnings_count or 0
    record.overall_score = overall_score_for(
        record.attendance_score or 0, record.task_completion_rate or 0, record.punctuality_score or 0,
    )
    record.grade = grade_for(record.overall_score)
    record.performance_level = level_for(record.overall_score)

    record.low_performance = record.overall_score < 70
    record.attendance_issue = (record.attendance_score or 0) < 80
    record.task_delay = (record.task_completion_rate or 0) < 75
    record.improvement_required = record.overall_score < 60 or warnings > 0

    if record.overall_score < 50 or warnings >= 2:
        record.status = "needs_attention"
    elif record.status == "draft" and record.overall_score > 0:
        record.status = "finalized"
    return record


def _trend(delta: float) -> str:
    if delta > TREND_THRESHOLD:
        return "improving"
    if delta < -TREND_THRESHOLD:
        return "declining"
    return "stable"


def calculate_trends(current: PerformanceRecord, previous: Optional[PerformanceRecord]) -> None:
    if previous is None:
        return
    attendance = current.attendance_score - previous.attendance_score
    tasks = current.task_completion_rate - previous.task_completion_rate
    punctuality = current.punctuality_score - previous.punctuality_score
    overall = current.overall_score - previous.overall_score

    current.attendance_trend = _trend(attendance)
    current.task_trend = _trend(tasks)
    current.punctuality_trend = _trend(punctuality)
    current.overall_trend = _trend(overall)

    current.attendance_change = round_half_up(attendance, 1)
    current.task_change = round_half_up(tasks, 1)
    current.punctuality_change = round_half_up(punctuality, 1)
    current.overall_change = round_half_up(overall, 1)


def risk_level(record: PerformanceRecord) -> str:
    score, warnings = record.overall_score, record.warnings_count
    if score < 50 or warnings >= 3:
        return "high"
    if score < 70 or warnings >= 2:
        return "medium"
    if score < 85 or warnings >= 1:
        return "low"
    return "none"


def active_issues_count(record: PerformanceRecord) -> int:
    return sum(1 for issue in record.performance_issues if not issue.resolved)


def warning_level_for(action_type: str, warnings_count: int) -> str:
    if action_type == "final_warning" or warnings_count >= 3:
        return "final_warning"
    if warnings_count >= 2:
        return "second_warning"
    return "first_warning"


def new_record(user_id: int, month: str) -> PerformanceRecord:
    start, end = month_bounds(month)
    return PerformanceRecord(
        user_id=user_id,
        month=month,
        period_start=start,
        period_end=end - timedelta(days=1),
        status="draft",
        warnings_count=0,
        disciplinary_actions=[],
        achievements=[],
        improvement_areas=[],
        performance_issues=[],
        improvement_plan=None,
    )


async def get_record(db: AsyncSession, user_id: int, month: str) -> Optional[PerformanceRecord]:
    result = await db.execute(
        select(PerformanceRecord)
        .where(PerformanceRecord.user_id == user_id)
        .where(PerformanceRecord.month == month)
    )
    return result.scalar_one_or_none()


async def get_record_or_404(db: AsyncSession, user_id: int, month: str) -> PerformanceRecord:
    record = await get_record(db, user_id, month)
    if record is None:
        raise NotFound(f"No performance record for user {user_id} in {month}")
    return record


def apply_metrics(record: PerformanceRecord, metrics: PerformanceMetrics) -> None:
    for name, value in asdict(metrics).items():
        setattr(record, name, value)


async def calculate_for_month(db: AsyncSession, user_id: int, month: str) -> PerformanceRecord:
    """Upsert the (user, month) record from fresh metrics and commit it."""
    start, end = month_bounds(month)
    metrics = await compute_metrics(db, user_id, start, end)

    record = await get_record(db, user_id, month)
    if record is None:
        record = new_record(user_id, month)
        db.add(record)
    apply_metrics(record, metrics)
    finalize_record(record)
    calculate_trends(record, await get_record(db, user_id, shift_month(month, -1)))
    record.calculated_at = utcnow()

    try:
        await db.commit()
    except IntegrityError:
        # a concurrent calculation inserted the row first; recompute onto it
        await db.rollback()
        record = await get_record_or_404(db, user_id, month)
        apply_metrics(record, metrics)
        finalize_record(record)
        record.calculated_at = utcnow()
        await db.commit()
    return record


def add_disciplinary_action(
    record: PerformanceRecord,
    action_type: str,
    reason: str,
    description: Optional[str] = None,
    issued_by: Optional[int] = None,
    expiry_date=None,
    auto_generated: bool = False,
) -> DisciplinaryAction:
    """Append an action; warning types bump ``warnings_count`` by exactly one. Caller commits."""
    now = utcnow()
    action = DisciplinaryAction(
        action_type=action_type,
        reason=reason,
        description=description,
        issued_by=issued_by,
        effective_date=now,
        expiry_date=expiry_date,
        is_active=True,
        auto_generated=auto_generated,
        acknowledged=False,
    )
    if action_type in WARNING_ACTION_TYPES:
        record.warnings_count = (record.warnings_count or 0) + 1
        record.has_active_warnings = True
        record.warning_level = warning_level_for(action_type, record.warnings_count)
        action.warning_level = record.warning_level
    record.disciplinary_actions.append(action)
    record.last_warning_date = now
    record.status = "needs_attention"
    finalize_record(record)
    return action


def auto_warning_reasons(record: PerformanceRecord) -> list[str]:
    reasons = []
    if record.overall_score < 60:
        reasons.append(f"Overall performance critically low: {record.overall_score}%")
    if record.attendance_score < 70:
        reasons.append(f"Attendance below acceptable level: {record.attendance_score}%")
    if record.task_completion_rate < 70:
        reasons.append(f"Task completion rate too low: {record.task_completion_rate}%")
    return reasons


async def check_auto_warnings(
    db: AsyncSession,
    record: PerformanceRecord,
    notifier: Optional[EmailNotifier] = None,
    issued_by: Optional[int] = None,
    dry_run: bool = False,
) -> Optional[DisciplinaryAction]:
    """Issue one automatic verbal warning when any threshold is breached.

    The warning is committed first; the e-mail and alert that follow are
    best-effort and cannot undo it.
    """
    reasons = auto_warning_reasons(record)
    if not reasons or dry_run:
        return None

    reason = "; ".join(reasons)
    action = add_disciplinary_action(
        record,
        "verbal_warning",
        reason,
        description="Automatically generated from monthly performance metrics",
        issued_by=issued_by,
        auto_generated=True,
    )
    await db.commit()
    logger.info("Auto warning %s issued to user %s for %s", action.warning_level, record.user_id, record.month)

    await create_system_alert(
        db,
        "performance_review",
        record.user_id,
        f"Performance Warning - {action.warning_level.replace('_', ' ').title()}",
        reason,
        priority="high",
        action_required=True,
        related_id=record.id,
    )
    if notifier is not None:
        user = await db.get(User, record.user_id)
        if user is not None:
            subject, html = performance_warning_email(user.username, action.warning_level, reason, record.month)
            notifier.dispatch(user.email, subject, html)
    return action


async def add_achievement(db, record, title, description=None, category="performance", points=0, added_by=None):
    achievement = Achievement(
        title=title, description=description, category=category, points=points, added_by=added_by,
    )
    record.achievements.append(achievement)
    finalize_record(record)
    await db.commit()
    return achievement


async def add_improvement_area(db, record, area, description=None, priority="medium", target_date=None, added_by=None):
    item = ImprovementArea(
        area=area, description=description, priority=priority, target_date=target_date, added_by=added_by,
    )
    record.improvement_areas.append(item)
    finalize_record(record)
    await db.commit()
    return item


async def add_performance_issue(db, record, category, description, severity="moderate", reported_by=None):
    issue = PerformanceIssue(
        category=category, description=description, severity=severity, reported_by=reported_by, reported_at=utcnow(),
    )
    record.performance_issues.append(issue)
    record.status = "under_review"
    record.review_due = True
    finalize_record(record)
    await db.commit()
    return issue


async def resolve_issue(db, record, issue_id: int, resolution_notes: Optional[str] = None):
    issue = next((i for i in record.performance_issues if i.id == issue_id), None)
    if issue is None:
        raise NotFound("Performance issue not found")
    if issue.resolved:
        raise InvalidState("Issue already resolved")
    issue.resolved = True
    issue.resolved_at = utcnow()
    issue.resolution_notes = resolution_notes
    record.review_due = active_issues_count(record) > 0
    finalize_record(record)
    await db.commit()
    return issue


def _add_months(day: date, months: int) -> date:
    year, month = divmod(day.year * 12 + day.month - 1 + months, 12)
    month += 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


async def create_improvement_plan(db, record, objectives: list[dict], duration_months: int = 3, created_by=None):
    start = utcnow().date()
    end = _add_months(start, duration_months or 3)
    plan_objectives = [
        {
            "description": obj["description"],
            "target_date": (obj.get("target_date") or end).isoformat(),
        }
        for obj in objectives
    ]
    if record.improvement_plan is not None:
        record.improvement_plan.is_active = True
        record.improvement_plan.start_date = start
        record.improvement_plan.end_date = end
        record.improvement_plan.objectives = plan_objectives
        record.improvement_plan.created_by = created_by
    else:
        record.improvement_plan = ImprovementPlan(
            is_active=True, start_date=start, end_date=end, objectives=plan_objectives, created_by=created_by,
        )
    finalize_record(record)
    await db.commit()
    return record.improvement_plan


async def user_warnings(db: AsyncSession, user_id: int) -> list[tuple[PerformanceRecord, DisciplinaryAction]]:
    result = await db.execute(
        select(PerformanceRecord, DisciplinaryAction)
        .join(DisciplinaryAction, DisciplinaryAction.record_id == PerformanceRecord.id)
        .where(PerformanceRecord.user_id == user_id)
        .order_by(DisciplinaryAction.effective_date.desc(), DisciplinaryAction.id.desc())
    )
    return [(r, a) for r, a in result.all()]


async def acknowledge_warning(db: AsyncSession, user_id: int, action_id: int, comments: Optional[str] = None) -> DisciplinaryAction:
    result = await db.execute(
        select(DisciplinaryAction)
        .join(PerformanceRecord, PerformanceRecord.id == DisciplinaryAction.record_id)
        .where(DisciplinaryAction.id == action_id)
        .where(PerformanceRecord.user_id == user_id)
    )
    action = result.scalar_one_or_none()
    if action is None:
        raise NotFound("Warning not found")
    if action.acknowledged:
        raise InvalidState("Warning already acknowledged")
    action.acknowledged = True
    action.acknowledged_at = utcnow()
    action.employee_comments = comments
    await db.commit()
    return action


async def history(db: AsyncSession, user_id: int, months: int = 6) -> list[PerformanceRecord]:
    result = await db.execute(
        select(PerformanceRecord)
        .where(PerformanceRecord.user_id == user_id)
        .order_by(PerformanceRecord.month.desc())
        .limit(months)
    )
    return list(result.scalars().all())


async def records_for_month(db: AsyncSession, month: str) -> list[tuple[PerformanceRecord, User, Optional[Profile]]]:
    result = await db.execute(
        select(PerformanceRecord, User, Profile)
        .join(User, User.id == PerformanceRecord.user_id)
        .outerjoin(Profile, Profile.user_id == User.id)
        .where(PerformanceRecord.month == month)
        .order_by(PerformanceRecord.overall_score.desc(), PerformanceRecord.user_id)
    )
    return [(r, u, p) for r, u, p in result.all()]


async def top_performers(db: AsyncSession, month: str, limit: int = 10):
    return (await records_for_month(db, month))[:limit]


async def low_performers(db: AsyncSession, month: str, threshold: int = 60):
    return [row for row in await records_for_month(db, month) if row[0].overall_score < threshold]


async def employees_needing_attention(db: AsyncSession, month: str):
    return [
        row for row in await records_for_month(db, month)
        if row[0].status == "needs_attention" or row[0].has_active_warnings or row[0].overall_score < 60
    ]


async def department_averages(db: AsyncSession, month: str) -> list[dict]:
    result = await db.execute(
        select(
            Profile.department,
            func.count(PerformanceRecord.id),
            func.avg(PerformanceRecord.overall_score),
            func.avg(PerformanceRecord.attendance_score),
            func.avg(PerformanceRecord.task_completion_rate),
            func.avg(PerformanceRecord.punctuality_score),
            func.sum(PerformanceRecord.warnings_count),
        )
        .join(Profile, Profile.user_id == PerformanceRecord.user_id)
        .where(PerformanceRecord.month == month)
        .group_by(Profile.department)
        .order_by(Profile.department)
    )
    return [
        {
            "department": department or "Unassigned",
            "employees": count,
            "average_score": round_half_up(avg_score or 0, 1),
            "average_attendance": round_half_up(avg_attendance or 0, 1),
            "average_task_completion": round_half_up(avg_tasks or 0, 1),
            "average_punctuality": round_half_up(avg_punctuality or 0, 1),
            "total_warnings": int(warnings or 0),
        }
        for department, count, avg_score, avg_attendance, avg_tasks, avg_punctuality, warnings in result.all()
    ]


async def analytics(db: AsyncSession, month: str) -> dict:
    records = [row[0] for row in await records_for_month(db, month)]
    grades = {g: 0 for g in ("A+", "A", "B", "C", "D", "F")}
    levels = {lvl: 0 for lvl in ("excellent", "good", "satisfactory", "needs_improvement", "poor")}
    for r in records:
        grades[r.grade] = grades.get(r.grade, 0) + 1
        levels[r.performance_level] = levels.get(r.performance_level, 0) + 1
    total = len(records)
    return {
        "month": month,
        "total_employees": total,
        "average_score": round_half_up(Decimal(sum(r.overall_score for r in records)) / total, 1) if total else 0.0,
        "grade_distribution": grades,
        "level_distribution": levels,
        "with_active_warnings": sum(1 for r in records if r.has_active_warnings),
        "needing_attention": sum(1 for r in records if r.status == "needs_attention"),
        "active_improvement_plans": sum(1 for r in records if r.improvement_plan and r.improvement_plan.is_active),
    }
