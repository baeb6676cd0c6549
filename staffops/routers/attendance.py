from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.config import settings
from staffops.core.auth import get_current_admin, get_current_user
from staffops.database import get_db
from staffops.models.attendance import Attendance
from staffops.models.user import Profile, User
from staffops.schemas.attendance import (
    AttendanceResponse, CheckInRequest, CheckOutRequest, LeaveDecision, LeaveRequest, MarkAbsentRequest,
)
from staffops.services import attendance as attendance_service
from staffops.services.notifications import EmailNotifier, get_notifier, leave_application_email, leave_status_email
from staffops.utils.time import today

router = APIRouter(prefix="/attendance", tags=["attendance"])


def get_client_ip(request: Request) -> Optional[str]:
    """
    Client IP from the trusted X-Real-IP header, then X-Forwarded-For,
    then the socket peer.
    """
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("/check-in")
async def check_in(
    request: Request,
    body: CheckInRequest = CheckInRequest(),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    client_ip = get_client_ip(request)
    allowed = settings.allowed_ips
    if allowed is not None and client_ip not in allowed:
        raise HTTPException(403, "Check-in is only allowed from the office network")

    record, verdict = await attendance_service.check_in(
        db, current_user, body.location, client_ip, body.device_info, body.notes,
    )
    message = "Checked in successfully"
    if verdict.status == "late":
        message = f"Checked in late by {verdict.delay_text}"
    return {"success": True, "message": message, "attendance": AttendanceResponse.model_validate(record)}


@router.post("/check-out")
async def check_out(
    body: CheckOutRequest = CheckOutRequest(),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = await attendance_service.check_out(db, current_user, body.location, body.notes)
    hours, minutes = divmod(record.working_minutes, 60)
    return {
        "success": True,
        "message": f"Checked out after {hours}h {minutes}m",
        "attendance": AttendanceResponse.model_validate(record),
    }


@router.post("/apply-leave", status_code=201)
async def apply_leave(
    body: LeaveRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: EmailNotifier = Depends(get_notifier),
):
    record = await attendance_service.apply_leave(db, current_user, body.date, body.leave_type, body.reason)

    profile = (await db.execute(select(Profile).where(Profile.user_id == current_user.id))).scalar_one_or_none()
    subject, html = leave_application_email(
        profile.name if profile else current_user.username,
        (profile.department if profile else None) or "N/A",
        body.date.isoformat(),
        body.leave_type,
        body.reason,
    )
    notifier.dispatch(notifier.admin_email, subject, html)
    return {
        "success": True,
        "message": "Leave application submitted for approval",
        "attendance": AttendanceResponse.model_validate(record),
    }


@router.get("/today")
async def attendance_today(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = await attendance_service.get_record(db, current_user.id, today())
    if record is None:
        return {"success": True, "status": "not_checked_in", "attendance": None}
    if record.check_in_at is None:
        state = record.status
    elif record.check_out_at is None:
        state = "checked_in"
    else:
        state = "checked_out"
    return {"success": True, "status": state, "attendance": AttendanceResponse.model_validate(record)}


@router.get("/history")
async def attendance_history(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    limit: int = Query(31, ge=1, le=366),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = select(Attendance).where(Attendance.user_id == current_user.id)
    if start_date:
        query = query.where(Attendance.date >= start_date)
    if end_date:
        query = query.where(Attendance.date <= end_date)
    if status:
        query = query.where(Attendance.status == status)
    result = await db.execute(query.order_by(Attendance.date.desc()).limit(limit))
    records = result.scalars().all()

    summary = {s: 0 for s in ("present", "late", "absent", "half-day", "leave")}
    for r in records:
        summary[r.status] = summary.get(r.status, 0) + 1
    return {
        "success": True,
        "records": [AttendanceResponse.model_validate(r) for r in records],
        "summary": summary,
        "total_working_hours": round(sum(r.working_minutes for r in records) / 60, 1),
    }


@router.get("/admin/pending-leaves")
async def pending_leaves(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    result = await db.execute(
        select(Attendance, User.username, Profile.name, Profile.department)
        .join(User, User.id == Attendance.user_id)
        .outerjoin(Profile, Profile.user_id == User.id)
        .where(Attendance.status == "leave")
        .where(Attendance.is_approved.is_(None))
        .order_by(Attendance.date)
    )
    return {
        "success": True,
        "leaves": [
            {
                **AttendanceResponse.model_validate(record).model_dump(),
                "username": username,
                "name": name,
                "department": department,
            }
            for record, username, name, department in result.all()
        ],
    }


@router.post("/admin/approve-leave")
async def approve_leave(
    body: LeaveDecision,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
    notifier: EmailNotifier = Depends(get_notifier),
):
    record = await attendance_service.decide_leave(db, body.attendance_id, body.approve, admin, body.notes)

    user = await db.get(User, record.user_id)
    if user is not None:
        subject, html = leave_status_email(
            user.username, record.date.isoformat(), record.leave_type or "leave", body.approve, body.notes,
        )
        notifier.dispatch(user.email, subject, html)
    return {
        "success": True,
        "message": f"Leave {'approved' if body.approve else 'rejected'}",
        "attendance": AttendanceResponse.model_validate(record) if body.approve else None,
    }


@router.get("/admin/today-summary")
async def admin_today_summary(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return {"success": True, "summary": await attendance_service.today_summary(db)}


@router.post("/admin/mark-absent")
async def admin_mark_absent(
    body: MarkAbsentRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    record = await attendance_service.mark_absent(db, body.user_id, body.date, body.reason, admin)
    return {"success": True, "attendance": AttendanceResponse.model_validate(record)}
