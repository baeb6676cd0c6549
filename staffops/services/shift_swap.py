"""
Shift-swap state machine.

    pending --target accepts--> accepted (admin pending) --admin approves--> executed
    pending --target accepts, no admin step--> executed
    pending --target declines--> rejected
    accepted --admin rejects--> rejected
    pending --requester cancels / expiry--> cancelled

Every transition is a compare-and-swap ``UPDATE ... WHERE status = <expected>``
so that of two concurrent responses only the first applies. Execution swaps
the owners of both schedules in the same transaction as the transition.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.config import settings
from staffops.core.exceptions import Conflict, DomainError, Forbidden, InvalidState, NotFound, ValidationError
from staffops.models.schedule import Schedule
from staffops.models.shift_swap import ShiftSwap
from staffops.models.user import Profile, User
from staffops.services.notifications import create_system_alert
from staffops.utils.time import utcnow

logger = logging.getLogger(__name__)


async def _get_swap(db: AsyncSession, swap_id: int) -> ShiftSwap:
    swap = await db.get(ShiftSwap, swap_id)
    if swap is None:
        raise NotFound("Swap request not found")
    return swap


async def _pending_swap_for(db: AsyncSession, schedule_ids: list[int]) -> Optional[ShiftSwap]:
    result = await db.execute(
        select(ShiftSwap)
        .where(ShiftSwap.status == "pending")
        .where(or_(
            ShiftSwap.requester_schedule_id.in_(schedule_ids),
            ShiftSwap.target_schedule_id.in_(schedule_ids),
        ))
    )
    return result.scalars().first()


async def _has_other_schedule(db: AsyncSession, user_id: int, day, exclude_id: int) -> bool:
    result = await db.execute(
        select(Schedule.id)
        .where(Schedule.user_id == user_id)
        .where(Schedule.date == day)
        .where(Schedule.id != exclude_id)
    )
    return result.first() is not None


async def _transition(db: AsyncSession, swap_id: int, expected: dict, values: dict) -> None:
    stmt = update(ShiftSwap).where(ShiftSwap.id == swap_id)
    for column, value in expected.items():
        stmt = stmt.where(getattr(ShiftSwap, column) == value)
    result = await db.execute(stmt.values(**values))
    if result.rowcount != 1:
        await db.rollback()
        raise Conflict("Swap request was already processed")


async def request_swap(
    db: AsyncSession,
    requester: User,
    target_user_id: int,
    requester_schedule_id: int,
    target_schedule_id: int,
    reason: str,
    admin_required: bool = True,
) -> ShiftSwap:
    if target_user_id == requester.id:
        raise ValidationError("Cannot swap shifts with yourself")
    target = await db.get(User, target_user_id)
    if target is None or not target.is_active:
        raise NotFound("Target user not found")

    # Row locks serialise concurrent requests on the same schedules (no-op on SQLite).
    mine = await db.get(Schedule, requester_schedule_id, with_for_update=True)
    theirs = await db.get(Schedule, target_schedule_id, with_for_update=True)
    if mine is None or theirs is None:
        raise NotFound("Schedule not found")
    if mine.user_id != requester.id:
        raise Forbidden("You can only offer your own schedule")
    if theirs.user_id != target_user_id:
        raise ValidationError("Target schedule does not belong to the target user")
    if mine.status != "scheduled" or theirs.status != "scheduled":
        raise InvalidState("Only scheduled shifts can be swapped")

    if await _pending_swap_for(db, [mine.id, theirs.id]) is not None:
        raise Conflict("One of these schedules already has a pending swap request")
    if mine.date != theirs.date:
        if await _has_other_schedule(db, requester.id, theirs.date, mine.id):
            raise Conflict(f"You already have a shift on {theirs.date}")
        if await _has_other_schedule(db, target_user_id, mine.date, theirs.id):
            raise Conflict(f"Target user already has a shift on {mine.date}")

    swap = ShiftSwap(
        requester_id=requester.id,
        target_user_id=target_user_id,
        requester_schedule_id=mine.id,
        target_schedule_id=theirs.id,
        reason=reason,
        status="pending",
        admin_required=admin_required,
        admin_status="pending",
        expires_at=utcnow() + timedelta(hours=settings.SWAP_EXPIRY_HOURS),
    )
    db.add(swap)
    try:
        await db.commit()
    except IntegrityError:
        # lost the race on a uq_shift_swaps_pending_* index
        await db.rollback()
        raise Conflict("One of these schedules already has a pending swap request")
    logger.info("Swap %s requested: schedule %s <-> %s", swap.id, mine.id, theirs.id)

    await create_system_alert(
        db,
        "swap_request",
        target_user_id,
        "New Shift Swap Request",
        f"{requester.username} wants to swap their {mine.shift} shift on {mine.date} "
        f"for your {theirs.shift} shift on {theirs.date}.",
        priority="medium",
        action_required=True,
        related_id=swap.id,
        related_model="ShiftSwap",
        expires_in_days=1,
    )
    return swap


async def execute_swap(db: AsyncSession, swap: ShiftSwap) -> tuple[Schedule, Schedule]:
    """Exchange owners of both schedules. Does not commit."""
    mine = await db.get(Schedule, swap.requester_schedule_id)
    theirs = await db.get(Schedule, swap.target_schedule_id)
    if mine is None or theirs is None:
        raise NotFound("Schedule not found")
    if mine.user_id != swap.requester_id or theirs.user_id != swap.target_user_id:
        raise InvalidState("Schedules changed hands since the request was made")
    if mine.status != "scheduled" or theirs.status != "scheduled":
        raise InvalidState("Only scheduled shifts can be swapped")

    mine.user_id, theirs.user_id = theirs.user_id, mine.user_id
    for schedule in (mine, theirs):
        schedule.status = "swapped"
        schedule.swap_request_id = swap.id
    return mine, theirs


async def _execute_and_commit(db: AsyncSession, swap: ShiftSwap) -> None:
    try:
        await execute_swap(db, swap)
        await db.commit()
    except DomainError:
        await db.rollback()
        raise
    logger.info("Swap %s executed", swap.id)


async def respond(
    db: AsyncSession,
    swap_id: int,
    responder: User,
    accept: bool,
    message: Optional[str] = None,
) -> ShiftSwap:
    swap = await _get_swap(db, swap_id)
    if swap.target_user_id != responder.id:
        raise Forbidden("Only the requested user can respond to this swap")
    if swap.status != "pending":
        raise InvalidState(f"Swap request is already {swap.status}")

    now = utcnow()
    if now > swap.expires_at:
        await _transition(db, swap.id, {"status": "pending"},
                          {"status": "cancelled", "response_message": "Expired before a response"})
        await db.commit()
        raise InvalidState("Swap request has expired")

    if not accept:
        await _transition(db, swap.id, {"status": "pending"},
                          {"status": "rejected", "response_message": message, "responded_at": now})
        await db.commit()
    elif swap.admin_required:
        await _transition(db, swap.id, {"status": "pending"},
                          {"status": "accepted", "admin_status": "pending",
                           "response_message": message, "responded_at": now})
        await db.commit()
    else:
        await _transition(db, swap.id, {"status": "pending"},
                          {"status": "accepted", "admin_status": "approved",
                           "response_message": message, "responded_at": now})
        await _execute_and_commit(db, swap)

    await db.refresh(swap)
    logger.info("Swap %s answered by %s: %s", swap.id, responder.id, swap.status)
    await create_system_alert(
        db,
        "swap_request",
        swap.requester_id,
        f"Shift Swap {swap.status.title()}",
        f"{responder.username} {'accepted' if accept else 'declined'} your swap request."
        + (" Waiting for admin approval." if accept and swap.admin_required else ""),
        related_id=swap.id,
        related_model="ShiftSwap",
    )
    return swap


async def admin_decide(
    db: AsyncSession,
    swap_id: int,
    admin: User,
    approve: bool,
    notes: Optional[str] = None,
) -> ShiftSwap:
    swap = await _get_swap(db, swap_id)
    if not (swap.status == "accepted" and swap.admin_required and swap.admin_status == "pending"):
        raise InvalidState("Swap request is not waiting for admin approval")

    now = utcnow()
    expected = {"status": "accepted", "admin_status": "pending"}
    if approve:
        await _transition(db, swap.id, expected,
                          {"admin_status": "approved", "admin_id": admin.id,
                           "admin_decided_at": now, "admin_notes": notes})
        await _execute_and_commit(db, swap)
    else:
        await _transition(db, swap.id, expected,
                          {"status": "rejected", "admin_status": "rejected", "admin_id": admin.id,
                           "admin_decided_at": now, "admin_notes": notes,
                           "response_message": f"Rejected by admin: {notes or 'No reason given'}"})
        await db.commit()

    await db.refresh(swap)
    logger.info("Swap %s %s by admin %s", swap.id, swap.admin_status, admin.id)
    for user_id in (swap.requester_id, swap.target_user_id):
        await create_system_alert(
            db,
            "swap_request",
            user_id,
            f"Shift Swap {'Approved' if approve else 'Rejected'}",
            "The admin approved the shift swap." if approve else swap.response_message,
            related_id=swap.id,
            related_model="ShiftSwap",
        )
    return swap


async def cancel(db: AsyncSession, swap_id: int, requester: User) -> ShiftSwap:
    swap = await _get_swap(db, swap_id)
    if swap.requester_id != requester.id:
        raise Forbidden("Only the requester can cancel this swap")
    if swap.status != "pending":
        raise InvalidState(f"Swap request is already {swap.status}")
    await _transition(db, swap.id, {"status": "pending"},
                      {"status": "cancelled", "response_message": "Cancelled by requester"})
    await db.commit()
    await db.refresh(swap)
    return swap


async def expire_stale(db: AsyncSession, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    result = await db.execute(
        update(ShiftSwap)
        .where(ShiftSwap.status == "pending")
        .where(ShiftSwap.expires_at < now)
        .values(status="cancelled", response_message="Expired before a response")
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount:
        logger.info("Expired %s stale swap requests", result.rowcount)
    return result.rowcount


async def my_requests(db: AsyncSession, user_id: int) -> dict:
    sent = await db.execute(
        select(ShiftSwap).where(ShiftSwap.requester_id == user_id).order_by(ShiftSwap.created_at.desc())
    )
    received = await db.execute(
        select(ShiftSwap).where(ShiftSwap.target_user_id == user_id).order_by(ShiftSwap.created_at.desc())
    )
    return {"sent": list(sent.scalars().all()), "received": list(received.scalars().all())}


async def available_partners(db: AsyncSession, user: User, schedule_id: int) -> list[dict]:
    mine = await db.get(Schedule, schedule_id)
    if mine is None:
        raise NotFound("Schedule not found")
    if mine.user_id != user.id:
        raise Forbidden("You can only look up partners for your own schedule")

    busy = (
        select(ShiftSwap.requester_schedule_id).where(ShiftSwap.status == "pending")
        .union(select(ShiftSwap.target_schedule_id).where(ShiftSwap.status == "pending"))
    )
    result = await db.execute(
        select(Schedule, User.username, Profile.name, Profile.department)
        .join(User, User.id == Schedule.user_id)
        .outerjoin(Profile, Profile.user_id == User.id)
        .where(Schedule.date == mine.date)
        .where(Schedule.user_id != user.id)
        .where(Schedule.status == "scheduled")
        .where(User.is_active.is_(True))
        .where(Schedule.id.not_in(busy))
        .order_by(Schedule.id)
    )
    return [
        {
            "schedule_id": schedule.id,
            "user_id": schedule.user_id,
            "username": username,
            "name": name,
            "department": department,
            "shift": schedule.shift,
            "start_time": schedule.start_time,
            "end_time": schedule.end_time,
        }
        for schedule, username, name, department in result.all()
    ]


async def list_swaps(db: AsyncSession, status: Optional[str] = None, admin_status: Optional[str] = None) -> list[ShiftSwap]:
    query = select(ShiftSwap).order_by(ShiftSwap.created_at.desc(), ShiftSwap.id.desc())
    if status:
        query = query.where(ShiftSwap.status == status)
    if admin_status:
        query = query.where(ShiftSwap.admin_status == admin_status)
    return list((await db.execute(query)).scalars().all())
