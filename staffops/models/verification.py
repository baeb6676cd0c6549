from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, Boolean, Float, CheckConstraint,
)
from sqlalchemy.orm import relationship
from staffops.database import Base
from staffops.utils.time import utcnow

TEAM_SIZE = 3
OPEN_VERIFICATION_STATUSES = ("pending", "in-progress")


class SecretTeam(Base):
    __tablename__ = "secret_teams"

    id = Column(Integer, primary_key=True, index=True)
    team_name = Column(String(50), nullable=False)
    team_code = Column(String(5), unique=True, nullable=False)  # ST###
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    last_rotation = Column(DateTime, default=utcnow)
    created_at = Column(DateTime, default=utcnow)

    members = relationship(
        "TeamMember",
        back_populates="team",
        cascade="all, delete-orphan",
        order_by="TeamMember.id",
        lazy="selectin",
    )

    @property
    def active_members(self) -> list["TeamMember"]:
        return [m for m in self.members if m.is_active]


class TeamMember(Base):
    __tablename__ = "secret_team_members"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("secret_teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assigned_at = Column(DateTime, default=utcnow)
    is_active = Column(Boolean, default=True, nullable=False)

    team = relationship("SecretTeam", back_populates="members")


class VerificationTask(Base):
    __tablename__ = "verification_tasks"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), unique=True, nullable=False)
    original_staff_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_verifier_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("secret_teams.id"), nullable=False, index=True)
    status = Column(String, default="pending", nullable=False, index=True)  # pending, in-progress, completed, overdue

    cleanliness = Column(Integer, nullable=True)
    completeness = Column(Integer, nullable=True)
    quality = Column(Integer, nullable=True)
    overall_score = Column(Float, nullable=True)
    result = Column(String, nullable=True)  # pass, recheck, fail
    comments = Column(String(500), nullable=True)

    location = Column(String, nullable=True)
    priority = Column(String, default="medium", nullable=False)
    is_anonymous = Column(Boolean, default=True, nullable=False)
    assigned_at = Column(DateTime, default=utcnow, nullable=False)
    verified_at = Column(DateTime, nullable=True)
    deadline = Column(DateTime, nullable=False)

    issues = relationship(
        "VerificationIssue",
        back_populates="verification",
        cascade="all, delete-orphan",
        order_by="VerificationIssue.id",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("deadline > assigned_at", name="ck_verification_deadline_after_assignment"),
    )


class VerificationIssue(Base):
    __tablename__ = "verification_issues"

    id = Column(Integer, primary_key=True, index=True)
    verification_id = Column(Integer, ForeignKey("verification_tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String, nullable=False)  # cleanliness, incomplete, damage, safety, other
    description = Column(Text, nullable=False)
    severity = Column(String, default="medium", nullable=False)  # low, medium, high

    verification = relationship("VerificationTask", back_populates="issues")
