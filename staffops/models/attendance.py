from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Boolean, UniqueConstraint
from staffops.database import Base
from staffops.utils.time import utcnow

PRESENT_STATUSES = ("present", "late", "half-day")


class Attendance(Base):
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(String, nullable=False, default="present")  # present, late, absent, half-day, leave

    check_in_at = Column(DateTime, nullable=True)
    check_in_location = Column(String, nullable=True)
    check_in_ip = Column(String, nullable=True)
    check_in_device = Column(String, nullable=True)
    check_out_at = Column(DateTime, nullable=True)
    check_out_location = Column(String, nullable=True)
    working_minutes = Column(Integer, default=0, nullable=False)

    notes = Column(Text, nullable=True)
    absent_reason = Column(String(500), nullable=True)
    leave_reason = Column(String(500), nullable=True)
    leave_type = Column(String, nullable=True)  # sick, personal, vacation, emergency, other
    is_approved = Column(Boolean, nullable=True)  # None = pending
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approval_date = Column(DateTime, nullable=True)
    approval_notes = Column(String(500), nullable=True)

    is_manual_entry = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
    )

    @property
    def is_absent_or_leave(self) -> bool:
        return self.status in ("absent", "leave")

    def clear_presence(self) -> None:
        """Absent and leave rows never carry check-in/out data."""
        self.check_in_at = None
        self.check_in_location = None
        self.check_in_ip = None
        self.check_in_device = None
        self.check_out_at = None
        self.check_out_location = None
        self.working_minutes = 0
