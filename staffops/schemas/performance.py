from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Literal, Optional

MONTH = r"^\d{4}-(0[1-9]|1[0-2])$"


class RecalculateRequest(BaseModel):
    month: Optional[str] = Field(None, pattern=MONTH)
    user_id: Optional[int] = None


class RecordTarget(BaseModel):
    user_id: int
    month: Optional[str] = Field(None, pattern=MONTH)


class AchievementCreate(RecordTarget):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    category: Literal["performance", "attendance", "teamwork", "innovation", "customer_service", "leadership"] = "performance"
    points: int = Field(0, ge=0)


class ImprovementAreaCreate(RecordTarget):
    area: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    priority: Literal["low", "medium", "high", "critical"] = "medium"
    target_date: Optional[date] = None


class PerformanceIssueCreate(RecordTarget):
    category: Literal["attendance", "punctuality", "task_completion", "quality", "behavior", "other"]
    description: str = Field(..., min_length=1, max_length=500)
    severity: Literal["minor", "moderate", "major", "critical"] = "moderate"


class ResolveIssueRequest(RecordTarget):
    issue_id: int
    resolution_notes: Optional[str] = None


class WarningCreate(RecordTarget):
    action_type: Literal["verbal_warning", "written_warning", "suspension", "final_warning", "termination"]
    reason: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    expiry_date: Optional[datetime] = None


class Objective(BaseModel):
    description: str = Field(..., min_length=1)
    target_date: Optional[date] = None


class ImprovementPlanCreate(RecordTarget):
    objectives: List[Objective] = Field(..., min_length=1)
    duration_months: int = Field(3, ge=1, le=12)


class AutoCheckRequest(BaseModel):
    month: Optional[str] = Field(None, pattern=MONTH)
    dry_run: bool = False


class AcknowledgeRequest(BaseModel):
    action_id: int
    comments: Optional[str] = None


class DisciplinaryActionResponse(BaseModel):
    id: int
    action_type: str
    reason: str
    description: Optional[str]
    warning_level: Optional[str]
    effective_date: datetime
    expiry_date: Optional[datetime]
    is_active: bool
    auto_generated: bool
    acknowledged: bool
    acknowledged_at: Optional[datetime]
    employee_comments: Optional[str]

    model_config = {"from_attributes": True}


class AchievementResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    category: str
    points: int

    model_config = {"from_attributes": True}


class ImprovementAreaResponse(BaseModel):
    id: int
    area: str
    description: Optional[str]
    priority: str
    target_date: Optional[date]
    progress: str

    model_config = {"from_attributes": True}


class PerformanceIssueResponse(BaseModel):
    id: int
    category: str
    description: str
    severity: str
    resolved: bool
    resolved_at: Optional[datetime]
    resolution_notes: Optional[str]

    model_config = {"from_attributes": True}


class ImprovementPlanResponse(BaseModel):
    is_active: bool
    start_date: date
    end_date: date
    objectives: list

    model_config = {"from_attributes": True}


class PerformanceRecordResponse(BaseModel):
    id: int
    user_id: int
    month: str
    attendance_score: int
    punctuality_score: int
    task_completion_rate: int
    average_task_rating: float
    total_work_days: int
    present_days: int
    late_days: int
    absent_days: int
    leave_days: int
    total_working_hours: float
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    in_progress_tasks: int
    cancelled_tasks: int
    overall_score: int
    grade: str
    performance_level: str
    low_performance: bool
    attendance_issue: bool
    task_delay: bool
    improvement_required: bool
    review_due: bool
    attendance_trend: str
    task_trend: str
    punctuality_trend: str
    overall_trend: str
    attendance_change: Optional[float]
    task_change: Optional[float]
    punctuality_change: Optional[float]
    overall_change: Optional[float]
    warnings_count: int
    has_active_warnings: bool
    warning_level: str
    last_warning_date: Optional[datetime]
    status: str
    calculated_at: Optional[datetime]
    disciplinary_actions: List[DisciplinaryActionResponse] = []
    achievements: List[AchievementResponse] = []
    improvement_areas: List[ImprovementAreaResponse] = []
    performance_issues: List[PerformanceIssueResponse] = []
    improvement_plan: Optional[ImprovementPlanResponse] = None

    model_config = {"from_attributes": True}
