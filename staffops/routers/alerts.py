import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.core.auth import get_current_admin, get_current_user
from staffops.core.exceptions import Forbidden, NotFound, Upstream
from staffops.database import get_db
from staffops.models.alert import Alert
from staffops.models.user import Profile, User
from staffops.schemas.alert import AlertCreate, AlertResponse, BroadcastCreate, BulkAction
from staffops.services.notifications import create_system_alert
from staffops.utils.time import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/alerts", tags=["alerts"])

PRIORITIES = ("urgent", "high", "medium", "low")


async def _own_alert(db: AsyncSession, alert_id: int, user: User) -> Alert:
    alert = await db.get(Alert, alert_id)
    if alert is None:
        raise NotFound("Alert not found")
    if alert.user_id != user.id and not user.is_admin:
        raise Forbidden("Not your alert")
    return alert


@router.get("/my-alerts")
async def my_alerts(
    type: Optional[str] = None,
    priority: Optional[str] = None,
    is_read: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    now = utcnow()
    query = select(Alert).where(Alert.user_id == current_user.id).where(Alert.expires_at > now)
    if type:
        query = query.where(Alert.type == type)
    if priority:
        query = query.where(Alert.priority == priority)
    if is_read is not None:
        query = query.where(Alert.is_read.is_(is_read))
    result = await db.execute(query.order_by(Alert.created_at.desc(), Alert.id.desc()).limit(50))
    alerts = [AlertResponse.model_validate(a) for a in result.scalars().all()]

    unread = (await db.execute(
        select(func.count(Alert.id))
        .where(Alert.user_id == current_user.id)
        .where(Alert.expires_at > now)
        .where(Alert.is_read.is_(False))
    )).scalar_one()

    grouped = {p: [a for a in alerts if a.priority == p] for p in PRIORITIES}
    return {"success": True, "alerts": alerts, "grouped": grouped, "unread_count": unread}


@router.put("/mark-read/{alert_id}")
async def mark_read(
    alert_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    alert = await db.get(Alert, alert_id)
    if alert is None:
        raise NotFound("Alert not found")
    if alert.user_id != current_user.id:
        raise Forbidden("Not your alert")
    alert.is_read = True
    await db.commit()
    return {"success": True, "alert": AlertResponse.model_validate(alert)}


@router.put("/mark-all-read")
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = await db.execute(
        update(Alert)
        .where(Alert.user_id == current_user.id)
        .where(Alert.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return {"success": True, "updated": result.rowcount}


@router.post("/admin/create", status_code=201)
async def admin_create_alert(
    body: AlertCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    if await db.get(User, body.user_id) is None:
        raise NotFound("User not found")
    alert = await create_system_alert(
        db,
        body.type,
        body.user_id,
        body.title,
        body.message,
        priority=body.priority,
        action_required=body.action_required,
        action_url=body.action_url,
        related_id=body.related_id,
        related_model=body.related_model,
        expires_in_days=body.expires_in_days,
    )
    if alert is None:
        raise Upstream("Alert could not be stored")
    return {"success": True, "alert": AlertResponse.model_validate(alert)}


@router.post("/admin/broadcast", status_code=201)
async def broadcast(
    body: BroadcastCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    query = select(User.id).where(User.is_active.is_(True)).where(User.verified.is_(True))
    if body.department:
        query = query.join(Profile, Profile.user_id == User.id).where(Profile.department == body.department)
    user_ids = (await db.execute(query.order_by(User.id))).scalars().all()

    expires_at = utcnow() + timedelta(days=body.expires_in_days)
    db.add_all([
        Alert(
            user_id=uid,
            type=body.type,
            title=body.title,
            message=body.message,
            priority=body.priority,
            expires_at=expires_at,
        )
        for uid in user_ids
    ])
    await db.commit()
    logger.info("Broadcast %r sent to %s users", body.title, len(user_ids))
    return {"success": True, "recipients": len(user_ids)}


@router.get("/admin/all")
async def admin_all_alerts(
    type: Optional[str] = None,
    user_id: Optional[int] = None,
    is_read: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    query = select(Alert)
    if type:
        query = query.where(Alert.type == type)
    if user_id:
        query = query.where(Alert.user_id == user_id)
    if is_read is not None:
        query = query.where(Alert.is_read.is_(is_read))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    unread = (await db.execute(
        select(func.count()).select_from(query.where(Alert.is_read.is_(False)).subquery())
    )).scalar_one()
    result = await db.execute(
        query.order_by(Alert.created_at.desc(), Alert.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    return {
        "success": True,
        "alerts": [AlertResponse.model_validate(a) for a in result.scalars().all()],
        "pagination": {"page": page, "limit": limit, "total": total},
        "stats": {"total": total, "unread": unread, "read": total - unread},
    }


@router.get("/admin/statistics")
async def alert_statistics(
    days: int = Query(7, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    since = utcnow() - timedelta(days=days)
    by_type = dict((await db.execute(
        select(Alert.type, func.count(Alert.id)).where(Alert.created_at >= since).group_by(Alert.type)
    )).all())
    by_priority = dict((await db.execute(
        select(Alert.priority, func.count(Alert.id)).where(Alert.created_at >= since).group_by(Alert.priority)
    )).all())
    read = (await db.execute(
        select(func.count(Alert.id)).where(Alert.created_at >= since).where(Alert.is_read.is_(True))
    )).scalar_one()
    total = sum(by_type.values())
    return {
        "success": True,
        "statistics": {
            "days": days,
            "total": total,
            "read": read,
            "unread": total - read,
            "read_rate": round(read / total * 100, 1) if total else 0.0,
            "by_type": by_type,
            "by_priority": by_priority,
        },
    }


@router.delete("/admin/cleanup-expired")
async def cleanup_expired(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    result = await db.execute(
        delete(Alert).where(Alert.expires_at <= utcnow()).execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info("Removed %s expired alerts", result.rowcount)
    return {"success": True, "deleted": result.rowcount}


@router.post("/admin/bulk-action")
async def bulk_action(
    body: BulkAction,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    if body.action == "mark_read":
        stmt = update(Alert).where(Alert.id.in_(body.alert_ids)).values(is_read=True)
    else:
        stmt = delete(Alert).where(Alert.id.in_(body.alert_ids))
    result = await db.execute(stmt.execution_options(synchronize_session=False))
    await db.commit()
    return {"success": True, "action": body.action, "affected": result.rowcount}


@router.delete("/{alert_id}")
async def delete_alert(
    alert_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    alert = await _own_alert(db, alert_id, current_user)
    await db.delete(alert)
    await db.commit()
    return {"success": True, "message": "Alert deleted"}
