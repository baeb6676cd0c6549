from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Literal, Optional

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class ScheduleCreate(BaseModel):
    user_id: int
    date: date
    shift: Literal["Morning", "Evening", "Night", "Flexible"]
    start_time: str = Field(..., pattern=HHMM)
    end_time: str = Field(..., pattern=HHMM)
    department: Optional[str] = None
    notes: Optional[str] = None


class ScheduleResponse(BaseModel):
    id: int
    user_id: int
    date: date
    shift: str
    start_time: str
    end_time: str
    department: Optional[str]
    status: str
    swap_request_id: Optional[int]
    notes: Optional[str]

    model_config = {"from_attributes": True}


class SwapRequest(BaseModel):
    target_user_id: int
    requester_schedule_id: int
    target_schedule_id: int
    reason: str = Field(..., min_length=1, max_length=500)


class SwapResponse(BaseModel):
    accept: bool
    message: Optional[str] = Field(None, max_length=500)


class SwapAdminDecision(BaseModel):
    approve: bool
    notes: Optional[str] = Field(None, max_length=500)


class ShiftSwapResponse(BaseModel):
    id: int
    requester_id: int
    target_user_id: int
    requester_schedule_id: int
    target_schedule_id: int
    reason: str
    status: str
    response_message: Optional[str]
    responded_at: Optional[datetime]
    admin_required: bool
    admin_status: str
    admin_notes: Optional[str]
    expires_at: datetime
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}
