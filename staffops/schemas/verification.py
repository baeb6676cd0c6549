from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, List, Literal, Optional


class TeamCreate(BaseModel):
    team_name: str = Field(..., min_length=1, max_length=50)
    member_ids: List[int] = Field(..., min_length=3, max_length=3)


class TeamStatusUpdate(BaseModel):
    is_active: bool


class AssignVerificationRequest(BaseModel):
    task_id: int


class IssueReport(BaseModel):
    category: Literal["cleanliness", "incomplete", "damage", "safety", "other"]
    description: str = Field(..., min_length=1, max_length=200)
    severity: Literal["low", "medium", "high"] = "medium"


class VerificationSubmit(BaseModel):
    # Left untyped; the scorer answers anything but an int in 1-5 (2.5, 4.0, "3") with invalid_rating.
    cleanliness: Any
    completeness: Any
    quality: Any
    comments: Optional[str] = Field(None, max_length=500)
    issues: List[IssueReport] = []


class IssueResponse(BaseModel):
    category: str
    description: str
    severity: str

    model_config = {"from_attributes": True}


class VerificationResponse(BaseModel):
    id: int
    task_id: int
    team_id: int
    status: str
    cleanliness: Optional[int]
    completeness: Optional[int]
    quality: Optional[int]
    overall_score: Optional[float]
    result: Optional[str]
    comments: Optional[str]
    location: Optional[str]
    priority: str
    assigned_at: datetime
    verified_at: Optional[datetime]
    deadline: datetime
    issues: List[IssueResponse] = []

    model_config = {"from_attributes": True}
