from pydantic import BaseModel, Field
import datetime as dt
from datetime import date, datetime
from typing import List, Literal, Optional

TaskPriority = Literal["low", "medium", "high", "urgent"]
TaskCategory = Literal[
    "Security", "Maintenance", "Cleaning", "Administrative",
    "Customer Service", "Inspection", "Training", "Emergency Response",
]
ReassignmentReason = Literal["user_absent", "user_overloaded", "manual_override"]


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = None
    assigned_to_id: int
    date: date
    priority: TaskPriority = "medium"
    category: TaskCategory
    location: Optional[str] = None
    estimated_duration: int = Field(60, ge=1, le=24 * 60)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = None
    date: Optional[dt.date] = None
    priority: Optional[TaskPriority] = None
    category: Optional[TaskCategory] = None
    location: Optional[str] = None
    estimated_duration: Optional[int] = Field(None, ge=1, le=24 * 60)


class TaskUpdateStatus(BaseModel):
    status: Literal["pending", "in-progress", "completed", "cancelled"]
    completion_notes: Optional[str] = None


class TaskRate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = None


class ReassignRequest(BaseModel):
    task_id: int
    reason: ReassignmentReason = "user_absent"


class ManualReassignRequest(BaseModel):
    task_id: int
    new_user_id: int
    reason: ReassignmentReason = "manual_override"


class ReassignmentEventResponse(BaseModel):
    from_user_id: int
    to_user_id: int
    reason: str
    timestamp: datetime

    model_config = {"from_attributes": True}


class TaskResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    assigned_to_id: int
    original_assignee_id: Optional[int]
    assigned_by_id: Optional[int]
    date: date
    priority: str
    category: str
    location: Optional[str]
    estimated_duration: int
    status: str
    completed_at: Optional[datetime]
    completion_notes: Optional[str]
    rating: Optional[int]
    feedback: Optional[str]
    is_reassigned: bool
    reassignment_reason: Optional[str]
    reassigned_at: Optional[datetime]
    reassignment_history: List[ReassignmentEventResponse] = []
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class ReassignmentDetailsResponse(BaseModel):
    task_id: int
    from_user_id: int
    to_user_id: int
    reason: str
    new_user_workload: Optional[int] = None
    reassigned_at: datetime

    model_config = {"from_attributes": True}
