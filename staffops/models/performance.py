# staffops/models/performance.py
from sqlalchemy import (
    Column, Integer, Float, String, Text, Date, DateTime, Boolean, JSON, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from staffops.database import Base
from staffops.utils.time import utcnow

WARNING_ACTION_TYPES = ("verbal_warning", "written_warning", "final_warning")


class PerformanceRecord(Base):
    __tablename__ = "performance_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(String(7), nullable=False, index=True)  # YYYY-MM
    period_start = Column(Date, nullable=True)
    period_end = Column(Date, nullable=True)

    # Component metrics
    attendance_score = Column(Integer, default=0, nullable=False)
    punctuality_score = Column(Integer, default=0, nullable=False)
    task_completion_rate = Column(Integer, default=0, nullable=False)
    average_task_rating = Column(Float, default=0.0, nullable=False)
    total_work_days = Column(Integer, default=0)
    present_days = Column(Integer, default=0)
    late_days = Column(Integer, default=0)
    absent_days = Column(Integer, default=0)
    leave_days = Column(Integer, default=0)
    total_working_hours = Column(Float, default=0.0)
    total_tasks = Column(Integer, default=0)
    completed_tasks = Column(Integer, default=0)
    pending_tasks = Column(Integer, default=0)
    in_progress_tasks = Column(Integer, default=0)
    cancelled_tasks = Column(Integer, default=0)

    # Derived on every save
    overall_score = Column(Integer, default=0, nullable=False, index=True)
    grade = Column(String(2), default="F", nullable=False)
    performance_level = Column(String, default="poor", nullable=False)
    low_performance = Column(Boolean, default=False, nullable=False)
    attendance_issue = Column(Boolean, default=False, nullable=False)
    task_delay = Column(Boolean, default=False, nullable=False)
    improvement_required = Column(Boolean, default=False, nullable=False)
    review_due = Column(Boolean, default=False, nullable=False)

    # Trends vs. previous month
    attendance_trend = Column(String, default="stable", nullable=False)
    task_trend = Column(String, default="stable", nullable=False)
    punctuality_trend = Column(String, default="stable", nullable=False)
    overall_trend = Column(String, default="stable", nullable=False)
    attendance_change = Column(Float, nullable=True)
    task_change = Column(Float, nullable=True)
    punctuality_change = Column(Float, nullable=True)
    overall_change = Column(Float, nullable=True)

    # Warnings
    warnings_count = Column(Integer, default=0, nullable=False)
    has_active_warnings = Column(Boolean, default=False, nullable=False)
    warning_level = Column(String, default="none", nullable=False)  # none, first_warning, second_warning, final_warning
    last_warning_date = Column(DateTime, nullable=True)

    status = Column(String, default="draft", nullable=False)  # draft, finalized, under_review, needs_attention
    calculated_at = Column(DateTime, default=utcnow)

    disciplinary_actions = relationship(
        "DisciplinaryAction", cascade="all, delete-orphan", order_by="DisciplinaryAction.id", lazy="selectin",
    )
    achievements = relationship(
        "Achievement", cascade="all, delete-orphan", order_by="Achievement.id", lazy="selectin",
    )
    improvement_areas = relationship(
        "ImprovementArea", cascade="all, delete-orphan", order_by="ImprovementArea.id", lazy="selectin",
    )
    performance_issues = relationship(
        "PerformanceIssue", cascade="all, delete-orphan", order_by="PerformanceIssue.id", lazy="selectin",
    )
    improvement_plan = relationship(
        "ImprovementPlan", cascade="all, delete-orphan", uselist=False, lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "month", name="uq_performance_user_month"),
    )


class DisciplinaryAction(Base):
    __tablename__ = "disciplinary_actions"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(Integer, ForeignKey("performance_records.id", ondelete="CASCADE"), nullable=False, index=True)
    action_type = Column(String, nullable=False)  # verbal_warning, written_warning, suspension, final_warning, termination
    reason = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    warning_level = Column(String, nullable=True)
    issued_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    effective_date = Column(DateTime, default=utcnow, nullable=False)
    expiry_date = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    auto_generated = Column(Boolean, default=False, nullable=False)
    acknowledged = Column(Boolean, default=False, nullable=False)
    acknowledged_at = Column(DateTime, nullable=True)
    employee_comments = Column(Text, nullable=True)


class Achievement(Base):
    __tablename__ = "performance_achievements"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(Integer, ForeignKey("performance_records.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    category = Column(String, default="performance", nullable=False)
    points = Column(Integer, default=0, nullable=False)
    added_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)


class ImprovementArea(Base):
    __tablename__ = "performance_improvement_areas"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(Integer, ForeignKey("performance_records.id", ondelete="CASCADE"), nullable=False, index=True)
    area = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    priority = Column(String, default="medium", nullable=False)
    target_date = Column(Date, nullable=True)
    progress = Column(String, default="not_started", nullable=False)
    added_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)


class PerformanceIssue(Base):
    __tablename__ = "performance_issues"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(Integer, ForeignKey("performance_records.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String, nullable=False)
    description = Column(String(500), nullable=False)
    severity = Column(String, default="moderate", nullable=False)
    reported_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reported_at = Column(DateTime, default=utcnow)
    resolved = Column(Boolean, default=False, nullable=False)
    resolved_at = Column(DateTime, nullable=True)
    resolution_notes = Column(Text, nullable=True)


class ImprovementPlan(Base):
    __tablename__ = "performance_improvement_plans"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(Integer, ForeignKey("performance_records.id", ondelete="CASCADE"), unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    objectives = Column(JSON, default=list)  # [{"description": str, "target_date": "YYYY-MM-DD"}]
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)
