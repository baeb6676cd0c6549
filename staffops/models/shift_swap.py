from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Index, text
from staffops.database import Base
from staffops.utils.time import utcnow


class ShiftSwap(Base):
    __tablename__ = "shift_swaps"

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    target_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    requester_schedule_id = Column(Integer, ForeignKey("schedules.id"), nullable=False)
    target_schedule_id = Column(Integer, ForeignKey("schedules.id"), nullable=False)
    reason = Column(String(500), nullable=False)
    status = Column(String, default="pending", nullable=False, index=True)  # pending, accepted, rejected, cancelled
    response_message = Column(String(500), nullable=True)
    responded_at = Column(DateTime, nullable=True)

    admin_required = Column(Boolean, default=True, nullable=False)
    admin_status = Column(String, default="pending", nullable=False)  # pending, approved, rejected
    admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    admin_decided_at = Column(DateTime, nullable=True)
    admin_notes = Column(String(500), nullable=True)

    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    # A schedule may sit in at most one pending request on each side.
    __table_args__ = (
        Index(
            "uq_shift_swaps_pending_requester_schedule_id", "requester_schedule_id", unique=True,
            sqlite_where=text("status = 'pending'"), postgresql_where=text("status = 'pending'"),
        ),
        Index(
            "uq_shift_swaps_pending_target_schedule_id", "target_schedule_id", unique=True,
            sqlite_where=text("status = 'pending'"), postgresql_where=text("status = 'pending'"),
        ),
    )
