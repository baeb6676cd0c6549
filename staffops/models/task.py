from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from staffops.database import Base
from staffops.utils.time import utcnow

TASK_CATEGORIES = (
    "Security",
    "Maintenance",
    "Cleaning",
    "Administrative",
    "Customer Service",
    "Inspection",
    "Training",
    "Emergency Response",
)
ACTIVE_STATUSES = ("pending", "in-progress")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)      # Who does it
    original_assignee_id = Column(Integer, ForeignKey("users.id"), nullable=True)             # First assignee, set on first reassignment
    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)                   # Who created it
    date = Column(Date, nullable=False, index=True)
    priority = Column(String, default="medium", nullable=False)  # low, medium, high, urgent
    category = Column(String, nullable=False)
    location = Column(String, nullable=True)
    estimated_duration = Column(Integer, default=60, nullable=False)  # minutes
    status = Column(String, default="pending", nullable=False, index=True)  # pending, in-progress, completed, cancelled, reassigned

    completed_at = Column(DateTime, nullable=True)
    completion_notes = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True)     # 1–5
    feedback = Column(Text, nullable=True)
    rated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    is_reassigned = Column(Boolean, default=False, nullable=False)
    reassignment_reason = Column(String, nullable=True)  # user_absent, user_overloaded, manual_override
    reassigned_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    reassignment_history = relationship(
        "ReassignmentEvent",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="ReassignmentEvent.id",
        lazy="selectin",
    )


class ReassignmentEvent(Base):
    __tablename__ = "task_reassignments"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reason = Column(String, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    task = relationship("Task", back_populates="reassignment_history")
