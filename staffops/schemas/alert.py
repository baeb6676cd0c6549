from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Literal, Optional

AlertType = Literal[
    "shift_reminder", "task_assigned", "swap_request",
    "emergency_cleanup", "attendance_missing", "performance_review",
]
AlertPriority = Literal["low", "medium", "high", "urgent"]
RelatedModel = Literal["Task", "Schedule", "ShiftSwap", "Attendance"]


class AlertCreate(BaseModel):
    user_id: int
    type: AlertType
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=500)
    priority: AlertPriority = "medium"
    action_required: bool = False
    action_url: Optional[str] = None
    related_id: Optional[int] = None
    related_model: Optional[RelatedModel] = None
    expires_in_days: int = Field(7, ge=1, le=365)


class BroadcastCreate(BaseModel):
    type: AlertType
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=500)
    priority: AlertPriority = "medium"
    department: Optional[str] = None
    expires_in_days: int = Field(7, ge=1, le=365)


class BulkAction(BaseModel):
    alert_ids: List[int] = Field(..., min_length=1)
    action: Literal["mark_read", "delete"]


class AlertResponse(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    priority: str
    is_read: bool
    action_required: bool
    action_url: Optional[str]
    related_id: Optional[int]
    related_model: Optional[str]
    expires_at: datetime
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}
