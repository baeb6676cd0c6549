from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Literal, Optional

LeaveType = Literal["sick", "personal", "vacation", "emergency", "other"]


class CheckInRequest(BaseModel):
    location: Optional[str] = None
    device_info: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class CheckOutRequest(BaseModel):
    location: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class LeaveRequest(BaseModel):
    date: date
    leave_type: LeaveType
    reason: str = Field(..., min_length=3, max_length=500)


class LeaveDecision(BaseModel):
    attendance_id: int
    approve: bool
    notes: Optional[str] = Field(None, max_length=500)


class MarkAbsentRequest(BaseModel):
    user_id: int
    date: date
    reason: str = Field(..., min_length=3, max_length=500)


class AttendanceResponse(BaseModel):
    id: int
    user_id: int
    date: date
    status: str
    check_in_at: Optional[datetime]
    check_in_location: Optional[str]
    check_out_at: Optional[datetime]
    check_out_location: Optional[str]
    working_minutes: int
    notes: Optional[str]
    absent_reason: Optional[str]
    leave_reason: Optional[str]
    leave_type: Optional[str]
    is_approved: Optional[bool]
    approval_notes: Optional[str]
    is_manual_entry: bool

    model_config = {"from_attributes": True}
