from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.core.auth import get_current_admin, get_current_user
from staffops.database import get_db
from staffops.models.user import User
from staffops.schemas.verification import (
    AssignVerificationRequest, IssueResponse, TeamCreate, TeamStatusUpdate, VerificationSubmit,
)
from staffops.services import verification as verification_service
from staffops.services.notifications import create_system_alert
from staffops.services.verification import IssueInput, is_overdue
from staffops.utils.time import utcnow

router = APIRouter(prefix="/verification", tags=["verification"])


@router.post("/create-team", status_code=201)
async def create_team(
    body: TeamCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    team = await verification_service.create_team(db, body.team_name, body.member_ids, admin)
    return {
        "success": True,
        "team": {
            "id": team.id,
            "team_name": team.team_name,
            "team_code": team.team_code,
            "member_ids": [m.user_id for m in team.members],
        },
    }


@router.post("/assign-verification", status_code=201)
async def assign_verification(
    body: AssignVerificationRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    verification, team = await verification_service.assign_verification(db, body.task_id)
    await create_system_alert(
        db,
        "task_assigned",
        verification.assigned_verifier_id,
        "New Verification Task",
        f"A completed task needs anonymous verification before {verification.deadline:%Y-%m-%d %H:%M} UTC.",
        priority="high" if verification.priority == "urgent" else "medium",
        action_required=True,
        related_id=verification.task_id,
        related_model="Task",
        expires_in_days=1,
    )
    return {
        "success": True,
        "verification": {
            "id": verification.id,
            "team_code": team.team_code,
            "deadline": verification.deadline,
        },
    }


@router.get("/my-tasks")
async def my_verification_tasks(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    team = await verification_service.active_team_of(db, current_user.id)
    if team is None:
        return {"success": True, "is_verifier": False, "tasks": []}

    now = utcnow()
    rows = await verification_service.verifier_tasks(db, current_user.id)
    return {
        "success": True,
        "is_verifier": True,
        "team_code": team.team_code,
        "tasks": [
            {
                "id": v.id,
                "task_title": task.title,
                "task_category": task.category,
                "location": v.location,
                "priority": v.priority,
                "status": "overdue" if is_overdue(v, now) else v.status,
                "assigned_at": v.assigned_at,
                "deadline": v.deadline,
                "result": v.result,
                "overall_score": v.overall_score,
            }
            for v, task in rows
        ],
    }


@router.put("/submit/{verification_id}")
async def submit_verification(
    verification_id: int,
    body: VerificationSubmit,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    verification, task = await verification_service.submit_report(
        db,
        verification_id,
        current_user.id,
        body.cleanliness,
        body.completeness,
        body.quality,
        body.comments,
        [IssueInput(i.category, i.description, i.severity) for i in body.issues],
    )
    return {
        "success": True,
        "task_title": task.title if task else None,
        "result": {
            "overall_score": verification.overall_score,
            "verification_result": verification.result,
            "breakdown": {
                "cleanliness": verification.cleanliness,
                "completeness": verification.completeness,
                "quality": verification.quality,
            },
            "issues": [IssueResponse.model_validate(i) for i in verification.issues],
        },
    }


@router.get("/admin/dashboard")
async def verification_dashboard(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return {"success": True, "stats": await verification_service.dashboard_stats(db)}


@router.get("/admin/teams")
async def list_teams(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return {"success": True, "teams": await verification_service.teams_overview(db)}


@router.get("/admin/overdue")
async def overdue(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    rows = await verification_service.overdue_verifications(db)
    return {"success": True, "count": len(rows), "overdue": rows}


@router.put("/admin/teams/{team_id}/status")
async def set_team_status(
    team_id: int,
    body: TeamStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    team = await verification_service.set_team_active(db, team_id, body.is_active)
    return {"success": True, "team": {"id": team.id, "team_code": team.team_code, "is_active": team.is_active}}
