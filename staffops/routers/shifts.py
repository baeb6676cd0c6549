from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.core.auth import get_current_admin, get_current_user
from staffops.database import get_db
from staffops.models.user import User
from staffops.schemas.schedule import ShiftSwapResponse, SwapAdminDecision, SwapRequest, SwapResponse
from staffops.services import shift_swap

router = APIRouter(prefix="/shifts", tags=["shifts"])


@router.post("/request-swap", status_code=201)
async def request_swap(
    body: SwapRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    swap = await shift_swap.request_swap(
        db,
        current_user,
        body.target_user_id,
        body.requester_schedule_id,
        body.target_schedule_id,
        body.reason,
    )
    return {"success": True, "swap": ShiftSwapResponse.model_validate(swap)}


@router.post("/respond/{swap_id}")
async def respond_to_swap(
    swap_id: int,
    body: SwapResponse,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    swap = await shift_swap.respond(db, swap_id, current_user, body.accept, body.message)
    return {"success": True, "swap": ShiftSwapResponse.model_validate(swap)}


@router.post("/cancel/{swap_id}")
async def cancel_swap(
    swap_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    swap = await shift_swap.cancel(db, swap_id, current_user)
    return {"success": True, "swap": ShiftSwapResponse.model_validate(swap)}


@router.get("/my-requests")
async def my_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    requests = await shift_swap.my_requests(db, current_user.id)
    return {
        "success": True,
        "sent": [ShiftSwapResponse.model_validate(s) for s in requests["sent"]],
        "received": [ShiftSwapResponse.model_validate(s) for s in requests["received"]],
    }


@router.get("/available-partners/{schedule_id}")
async def available_partners(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    partners = await shift_swap.available_partners(db, current_user, schedule_id)
    return {"success": True, "partners": partners}


@router.get("/admin/all")
async def all_swaps(
    status: Optional[str] = None,
    admin_status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    swaps = await shift_swap.list_swaps(db, status, admin_status)
    return {"success": True, "swaps": [ShiftSwapResponse.model_validate(s) for s in swaps]}


@router.post("/admin/approve/{swap_id}")
async def decide_swap(
    swap_id: int,
    body: SwapAdminDecision,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    swap = await shift_swap.admin_decide(db, swap_id, admin, body.approve, body.notes)
    return {"success": True, "swap": ShiftSwapResponse.model_validate(swap)}
