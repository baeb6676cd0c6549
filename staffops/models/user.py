from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, JSON
from staffops.database import Base
from staffops.utils.time import utcnow

ADMIN_ROLES = ("admin", "super_admin")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, default="user", nullable=False)  # user, admin, super_admin
    is_active = Column(Boolean, default=True, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)

    verification_code = Column(String(6), nullable=True)
    verification_code_expires = Column(DateTime, nullable=True)
    reset_token = Column(String, nullable=True)
    reset_token_expires = Column(DateTime, nullable=True)

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String(50), nullable=False)
    phone = Column(String(20), nullable=True)
    department = Column(String, nullable=True, index=True)
    job_title = Column(String, nullable=True, index=True)
    work_start = Column(String(5), nullable=True)  # "HH:MM"
    work_end = Column(String(5), nullable=True)
    skills = Column(JSON, default=list)
    years_worked = Column(Integer, default=0)
    shift_flexibility = Column(Boolean, default=False)

    emergency_contact_name = Column(String, nullable=True)
    emergency_contact_relationship = Column(String, nullable=True)
    emergency_contact_phone = Column(String, nullable=True)

    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    profile_complete = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
