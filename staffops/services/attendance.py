"""
Attendance rules: presence lookups, check-in lateness, leave workflow and the
auto-absent sweep.

Working hours come from the user's profile (``work_start``/``work_end``,
"HH:MM" in UTC) and fall back to ``DEFAULT_WORK_START``/``DEFAULT_WORK_END``.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.config import settings
from staffops.core.exceptions import Conflict, InvalidState, NotFound, ValidationError
from staffops.models.attendance import Attendance, PRESENT_STATUSES
from staffops.models.user import Profile, User
from staffops.utils.time import minutes_of_day, parse_hhmm, today, utcnow

logger = logging.getLogger(__name__)

PresencePredicate = Callable[[AsyncSession, int, date], Awaitable[bool]]


async def is_user_present(db: AsyncSession, user_id: int, day: date) -> bool:
    """A user counts as present when the day's record is present, late or half-day."""
    result = await db.execute(
        select(Attendance.status)
        .where(Attendance.user_id == user_id)
        .where(Attendance.date == day)
    )
    status = result.scalar_one_or_none()
    return status in PRESENT_STATUSES


async def get_working_hours(db: AsyncSession, user_id: int) -> tuple[str, str]:
    result = await db.execute(
        select(Profile.work_start, Profile.work_end).where(Profile.user_id == user_id)
    )
    row = result.first()
    if row and row.work_start:
        return row.work_start, row.work_end or settings.DEFAULT_WORK_END
    return settings.DEFAULT_WORK_START, settings.DEFAULT_WORK_END


@dataclass
class CheckInVerdict:
    status: str  # present, late, absent
    delay_minutes: int

    @property
    def delay_text(self) -> str:
        hours, minutes = divmod(max(self.delay_minutes, 0), 60)
        return f"{hours}h {minutes}m" if hours else f"{minutes}m"


def evaluate_check_in(
    check_in_at: datetime,
    work_start: str,
    grace_minutes: int = settings.LATE_GRACE_MINUTES,
    absent_after_minutes: int = settings.ABSENT_AFTER_MINUTES,
) -> CheckInVerdict:
    delay = minutes_of_day(check_in_at) - minutes_of_day(parse_hhmm(work_start))
    if delay > absent_after_minutes:
        return CheckInVerdict("absent", delay)
    if delay > grace_minutes:
        return CheckInVerdict("late", delay)
    return CheckInVerdict("present", delay)


async def get_record(db: AsyncSession, user_id: int, day: date) -> Optional[Attendance]:
    result = await db.execute(
        select(Attendance)
        .where(Attendance.user_id == user_id)
        .where(Attendance.date == day)
    )
    return result.scalar_one_or_none()


async def check_in(
    db: AsyncSession,
    user: User,
    location: Optional[str] = None,
    ip_address: Optional[str] = None,
    device_info: Optional[str] = None,
    notes: Optional[str] = None,
) -> tuple[Attendance, CheckInVerdict]:
    now = utcnow()
    day = now.date()
    record = await get_record(db, user.id, day)
    if record is not None:
        if record.status == "leave":
            raise InvalidState("Cannot check in - you have leave recorded for today")
        if record.check_in_at is not None:
            raise Conflict("Already checked in today")

    work_start, _ = await get_working_hours(db, user.id)
    verdict = evaluate_check_in(now, work_start)

    if record is None:
        record = Attendance(user_id=user.id, date=day, created_by=user.id)
        db.add(record)

    if verdict.status == "absent":
        record.status = "absent"
        record.clear_presence()
        record.absent_reason = f"Excessive delay - {verdict.delay_text} late"
        record.notes = f"Attempted check-in at {now:%H:%M} - marked absent due to excessive delay"
        record.is_manual_entry = True
        await _commit_unique(db, "Attendance already recorded for today")
        logger.info("User %s marked absent on check-in (%s late)", user.id, verdict.delay_text)
        raise InvalidState(
            f"Cannot check in - marked as absent due to excessive delay ({verdict.delay_text} late). "
            "Contact admin for manual correction."
        )

    record.status = verdict.status
    record.check_in_at = now
    record.check_in_location = location or "Office"
    record.check_in_ip = ip_address
    record.check_in_device = device_info
    if verdict.status == "late":
        record.notes = f"Late arrival - {verdict.delay_text} after start time"
    if notes:
        record.notes = f"{record.notes}\n{notes}" if record.notes else notes
    await _commit_unique(db, "Already checked in today")
    logger.info("User %s checked in (%s)", user.id, record.status)
    return record, verdict


async def _commit_unique(db: AsyncSession, conflict_message: str) -> None:
    # Two concurrent first check-ins race on uq_attendance_user_date; the loser lands here.
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(conflict_message)


async def check_out(
    db: AsyncSession,
    user: User,
    location: Optional[str] = None,
    notes: Optional[str] = None,
) -> Attendance:
    now = utcnow()
    record = await get_record(db, user.id, now.date())
    if record is None or record.check_in_at is None:
        raise InvalidState("No check-in record found for today")
    if record.check_out_at is not None:
        raise Conflict("Already checked out today")

    record.check_out_at = now
    record.check_out_location = location or "Office"
    if notes:
        record.notes = f"{record.notes}\n{notes}" if record.notes else notes
    record.working_minutes = int((now - record.check_in_at).total_seconds() // 60)
    await db.commit()
    logger.info("User %s checked out after %s minutes", user.id, record.working_minutes)
    return record


async def apply_leave(
    db: AsyncSession,
    user: User,
    leave_date: date,
    leave_type: str,
    reason: str,
) -> Attendance:
    if leave_date <= today():
        raise ValidationError(
            "Leave can only be applied for future dates. For today or past dates, contact your admin directly."
        )
    if await get_record(db, user.id, leave_date) is not None:
        raise Conflict("Attendance already marked for this date")

    record = Attendance(
        user_id=user.id,
        date=leave_date,
        status="leave",
        notes=f"Leave Application - Type: {leave_type}, Reason: {reason}",
        leave_reason=reason,
        leave_type=leave_type,
        is_approved=None,
        created_by=user.id,
    )
    db.add(record)
    await _commit_unique(db, "Attendance already marked for this date")
    logger.info("User %s applied for %s leave on %s", user.id, leave_type, leave_date)
    return record


async def decide_leave(
    db: AsyncSession,
    attendance_id: int,
    approve: bool,
    admin: User,
    notes: Optional[str] = None,
) -> Attendance:
    """Approve keeps the leave row; reject deletes it. Returns the (possibly detached) row."""
    record = await db.get(Attendance, attendance_id)
    if record is None:
        raise NotFound("Attendance record not found")
    if record.status != "leave":
        raise InvalidState("This is not a leave request")
    if record.is_approved is not None:
        raise InvalidState(f"Leave request already {'approved' if record.is_approved else 'rejected'}")

    now = utcnow()
    record.is_approved = approve
    record.approved_by = admin.id
    record.approval_date = now
    record.approval_notes = notes or ""
    verdict = "APPROVED" if approve else "REJECTED"
    record.notes = (record.notes or "") + (
        f"\n--- ADMIN ACTION ---\n{verdict} by {admin.username} on {now:%Y-%m-%d %H:%M}\nNotes: {notes or 'None'}"
    )
    if not approve:
        await db.delete(record)
    await db.commit()
    logger.info("Leave %s for user %s on %s: %s", attendance_id, record.user_id, record.date, verdict)
    return record


async def auto_mark_absent(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Create absent rows for staff with no record once their start time plus grace has passed."""
    now = now or utcnow()
    day = now.date()
    result = await db.execute(
        select(User.id, Profile.work_start)
        .outerjoin(Profile, Profile.user_id == User.id)
        .where(User.role == "user")
        .where(User.verified.is_(True))
        .where(User.is_active.is_(True))
        .where(~select(Attendance.id)
               .where(Attendance.user_id == User.id)
               .where(Attendance.date == day)
               .exists())
        .order_by(User.id)
    )
    marked = 0
    for user_id, work_start in result.all():
        start = work_start or settings.DEFAULT_WORK_START
        if minutes_of_day(now) <= minutes_of_day(parse_hhmm(start)) + settings.LATE_GRACE_MINUTES:
            continue
        db.add(Attendance(
            user_id=user_id,
            date=day,
            status="absent",
            notes=f"Auto-marked absent - No check-in after {start} + {settings.LATE_GRACE_MINUTES} min grace period",
            absent_reason="Auto-marked for late arrival",
            is_manual_entry=False,
        ))
        try:
            await db.commit()
        except IntegrityError:
            # checked in between the query and the insert
            await db.rollback()
            continue
        marked += 1
    if marked:
        logger.info("Auto-marked %s users absent for %s", marked, day)
    return marked


async def mark_absent(db: AsyncSession, user_id: int, day: date, reason: str, admin: User) -> Attendance:
    """Manual admin entry; overwrites an existing non-leave record for the day."""
    if await db.get(User, user_id) is None:
        raise NotFound("User not found")
    record = await get_record(db, user_id, day)
    if record is not None and record.status == "leave":
        raise InvalidState("User has a leave record for this date")
    if record is None:
        record = Attendance(user_id=user_id, date=day)
        db.add(record)
    record.status = "absent"
    record.clear_presence()
    record.absent_reason = reason
    record.is_manual_entry = True
    record.created_by = admin.id
    await _commit_unique(db, "Attendance already recorded for this date")
    return record


async def today_summary(db: AsyncSession, day: Optional[date] = None) -> dict:
    day = day or today()
    rows = await db.execute(
        select(Attendance.status, func.count(Attendance.id))
        .where(Attendance.date == day)
        .group_by(Attendance.status)
    )
    by_status = {status: count for status, count in rows.all()}
    total_staff = (await db.execute(
        select(func.count(User.id))
        .where(User.role == "user")
        .where(User.is_active.is_(True))
    )).scalar_one()
    recorded = sum(by_status.values())
    return {
        "date": day.isoformat(),
        "total_staff": total_staff,
        "present": by_status.get("present", 0),
        "late": by_status.get("late", 0),
        "half_day": by_status.get("half-day", 0),
        "absent": by_status.get("absent", 0),
        "on_leave": by_status.get("leave", 0),
        "not_marked": max(total_staff - recorded, 0),
    }
