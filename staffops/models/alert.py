from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from staffops.database import Base
from staffops.utils.time import utcnow

ALERT_TYPES = (
    "shift_reminder",
    "task_assigned",
    "swap_request",
    "emergency_cleanup",
    "attendance_missing",
    "performance_review",
)


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String(100), nullable=False)
    message = Column(String(500), nullable=False)
    priority = Column(String, default="medium", nullable=False)  # low, medium, high, urgent
    is_read = Column(Boolean, default=False, nullable=False)
    action_required = Column(Boolean, default=False, nullable=False)
    action_url = Column(String, nullable=True)
    related_id = Column(Integer, nullable=True)
    related_model = Column(String, nullable=True)  # Task, Schedule, ShiftSwap, Attendance
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
