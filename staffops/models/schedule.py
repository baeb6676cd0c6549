from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Index
from staffops.database import Base
from staffops.utils.time import utcnow


class Schedule(Base):
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    shift = Column(String, nullable=False)  # Morning, Evening, Night, Flexible
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    department = Column(String, nullable=True)
    assigned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    status = Column(String, default="scheduled", nullable=False)  # scheduled, completed, missed, swapped
    swap_request_id = Column(Integer, nullable=True)  # shift_swaps.id of the swap that moved it
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_schedules_user_date", "user_id", "date"),
    )
