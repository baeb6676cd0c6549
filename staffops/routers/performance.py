from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.core.auth import get_current_admin, get_current_user
from staffops.core.exceptions import NotFound
from staffops.database import get_db
from staffops.models.performance import PerformanceRecord
from staffops.models.user import Profile, User
from staffops.schemas.performance import (
    AchievementCreate, AchievementResponse, AcknowledgeRequest, AutoCheckRequest,
    DisciplinaryActionResponse, ImprovementAreaCreate, ImprovementAreaResponse,
    ImprovementPlanCreate, ImprovementPlanResponse, PerformanceIssueCreate,
    PerformanceIssueResponse, PerformanceRecordResponse, RecalculateRequest,
    ResolveIssueRequest, WarningCreate, MONTH,
)
from staffops.services import performance as perf
from staffops.services.notifications import (
    EmailNotifier, create_system_alert, get_notifier, performance_warning_email,
)
from staffops.utils.time import current_month

router = APIRouter(prefix="/performance", tags=["performance"])


def _summary(record: PerformanceRecord, user: User, profile: Optional[Profile]) -> dict:
    return {
        "user_id": user.id,
        "username": user.username,
        "name": profile.name if profile else None,
        "department": profile.department if profile else None,
        "overall_score": record.overall_score,
        "grade": record.grade,
        "performance_level": record.performance_level,
        "attendance_score": record.attendance_score,
        "task_completion_rate": record.task_completion_rate,
        "punctuality_score": record.punctuality_score,
        "warnings_count": record.warnings_count,
        "warning_level": record.warning_level,
        "status": record.status,
        "risk_level": perf.risk_level(record),
        "active_issues": perf.active_issues_count(record),
    }


async def _staff_ids(db: AsyncSession, user_id: Optional[int] = None) -> list[int]:
    query = select(User.id).where(User.role == "user").where(User.is_active.is_(True))
    if user_id is not None:
        query = query.where(User.id == user_id)
    return list((await db.execute(query.order_by(User.id))).scalars().all())


async def _record_for(db: AsyncSession, user_id: int, month: Optional[str]) -> PerformanceRecord:
    if await db.get(User, user_id) is None:
        raise NotFound("User not found")
    month = month or current_month()
    record = await perf.get_record(db, user_id, month)
    if record is None:
        record = await perf.calculate_for_month(db, user_id, month)
    return record


@router.get("/my-performance")
async def my_performance(
    month: Optional[str] = Query(None, pattern=MONTH),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = await perf.calculate_for_month(db, current_user.id, month or current_month())
    past = await perf.history(db, current_user.id)
    return {
        "success": True,
        "performance": PerformanceRecordResponse.model_validate(record),
        "risk_level": perf.risk_level(record),
        "history": [
            {"month": r.month, "overall_score": r.overall_score, "grade": r.grade} for r in past
        ],
    }


@router.get("/my-warnings")
async def my_warnings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = await perf.user_warnings(db, current_user.id)
    return {
        "success": True,
        "warnings": [
            {"month": record.month, **DisciplinaryActionResponse.model_validate(action).model_dump()}
            for record, action in rows
        ],
        "unacknowledged": sum(1 for _, a in rows if not a.acknowledged),
    }


@router.post("/acknowledge-warning")
async def acknowledge_warning(
    body: AcknowledgeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    action = await perf.acknowledge_warning(db, current_user.id, body.action_id, body.comments)
    return {"success": True, "warning": DisciplinaryActionResponse.model_validate(action)}


@router.get("/admin/all-users")
async def all_users(
    month: Optional[str] = Query(None, pattern=MONTH),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    month = month or current_month()
    rows = await perf.records_for_month(db, month)
    return {"success": True, "month": month, "users": [_summary(*row) for row in rows]}


@router.get("/admin/user/{user_id}")
async def user_performance(
    user_id: int,
    month: Optional[str] = Query(None, pattern=MONTH),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    if await db.get(User, user_id) is None:
        raise NotFound("User not found")
    record = await perf.calculate_for_month(db, user_id, month or current_month())
    past = await perf.history(db, user_id)
    return {
        "success": True,
        "performance": PerformanceRecordResponse.model_validate(record),
        "risk_level": perf.risk_level(record),
        "history": [PerformanceRecordResponse.model_validate(r) for r in past],
    }


@router.post("/admin/recalculate")
async def recalculate(
    body: RecalculateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    month = body.month or current_month()
    user_ids = await _staff_ids(db, body.user_id)
    if body.user_id is not None and not user_ids:
        raise NotFound("User not found")
    for user_id in user_ids:
        await perf.calculate_for_month(db, user_id, month)
    return {"success": True, "month": month, "recalculated": len(user_ids)}


@router.get("/admin/analytics")
async def analytics(
    month: Optional[str] = Query(None, pattern=MONTH),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    month = month or current_month()
    top = await perf.top_performers(db, month, limit=5)
    low = await perf.low_performers(db, month)
    return {
        "success": True,
        "analytics": await perf.analytics(db, month),
        "top_performers": [_summary(*row) for row in top],
        "low_performers": [_summary(*row) for row in low],
    }


@router.get("/admin/departments")
async def departments(
    month: Optional[str] = Query(None, pattern=MONTH),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    month = month or current_month()
    return {"success": True, "month": month, "departments": await perf.department_averages(db, month)}


@router.post("/admin/add-achievement", status_code=201)
async def add_achievement(
    body: AchievementCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    record = await _record_for(db, body.user_id, body.month)
    item = await perf.add_achievement(
        db, record, body.title, body.description, body.category, body.points, added_by=admin.id,
    )
    return {"success": True, "achievement": AchievementResponse.model_validate(item)}


@router.post("/admin/add-improvement-area", status_code=201)
async def add_improvement_area(
    body: ImprovementAreaCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    record = await _record_for(db, body.user_id, body.month)
    item = await perf.add_improvement_area(
        db, record, body.area, body.description, body.priority, body.target_date, added_by=admin.id,
    )
    return {"success": True, "improvement_area": ImprovementAreaResponse.model_validate(item)}


@router.post("/admin/add-performance-issue", status_code=201)
async def add_performance_issue(
    body: PerformanceIssueCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    record = await _record_for(db, body.user_id, body.month)
    issue = await perf.add_performance_issue(
        db, record, body.category, body.description, body.severity, reported_by=admin.id,
    )
    return {"success": True, "issue": PerformanceIssueResponse.model_validate(issue), "status": record.status}


@router.post("/admin/resolve-issue")
async def resolve_issue(
    body: ResolveIssueRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    record = await perf.get_record_or_404(db, body.user_id, body.month or current_month())
    issue = await perf.resolve_issue(db, record, body.issue_id, body.resolution_notes)
    return {"success": True, "issue": PerformanceIssueResponse.model_validate(issue)}


@router.post("/admin/create-warning", status_code=201)
async def create_warning(
    body: WarningCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
    notifier: EmailNotifier = Depends(get_notifier),
):
    record = await _record_for(db, body.user_id, body.month)
    action = perf.add_disciplinary_action(
        record, body.action_type, body.reason, body.description, issued_by=admin.id, expiry_date=body.expiry_date,
    )
    await db.commit()

    level = action.warning_level or body.action_type
    await create_system_alert(
        db,
        "performance_review",
        record.user_id,
        f"Disciplinary Action - {level.replace('_', ' ').title()}",
        body.reason,
        priority="high",
        action_required=True,
        related_id=record.id,
    )
    user = await db.get(User, record.user_id)
    subject, html = performance_warning_email(user.username, level, body.reason, record.month)
    notifier.dispatch(user.email, subject, html)
    return {
        "success": True,
        "warning": DisciplinaryActionResponse.model_validate(action),
        "warnings_count": record.warnings_count,
        "warning_level": record.warning_level,
    }


@router.post("/admin/create-improvement-plan", status_code=201)
async def create_improvement_plan(
    body: ImprovementPlanCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    record = await _record_for(db, body.user_id, body.month)
    plan = await perf.create_improvement_plan(
        db,
        record,
        [o.model_dump() for o in body.objectives],
        body.duration_months,
        created_by=admin.id,
    )
    return {"success": True, "improvement_plan": ImprovementPlanResponse.model_validate(plan)}


@router.post("/admin/auto-check-warnings")
async def auto_check_warnings(
    body: AutoCheckRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
    notifier: EmailNotifier = Depends(get_notifier),
):
    month = body.month or current_month()
    results = []
    for user_id in await _staff_ids(db):
        record = await perf.calculate_for_month(db, user_id, month)
        reasons = perf.auto_warning_reasons(record)
        if not reasons:
            continue
        action = await perf.check_auto_warnings(db, record, notifier, issued_by=admin.id, dry_run=body.dry_run)
        results.append({
            "user_id": user_id,
            "overall_score": record.overall_score,
            "reasons": reasons,
            "warning_issued": action is not None,
            "warning_level": action.warning_level if action else None,
        })
    return {
        "success": True,
        "month": month,
        "dry_run": body.dry_run,
        "flagged": len(results),
        "results": results,
    }


@router.get("/admin/employees-needing-attention")
async def employees_needing_attention(
    month: Optional[str] = Query(None, pattern=MONTH),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    month = month or current_month()
    rows = await perf.employees_needing_attention(db, month)
    return {"success": True, "month": month, "employees": [_summary(*row) for row in rows]}
