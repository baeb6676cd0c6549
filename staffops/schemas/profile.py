from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = Field(None, max_length=20)
    department: Optional[str] = None
    job_title: Optional[str] = None
    work_start: Optional[str] = Field(None, pattern=HHMM)
    work_end: Optional[str] = Field(None, pattern=HHMM)
    skills: Optional[List[str]] = None
    years_worked: Optional[int] = Field(None, ge=0, le=50)
    shift_flexibility: Optional[bool] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("skills")
    @classmethod
    def strip_skills(cls, v):
        if v is None:
            return v
        return [s.strip() for s in v if s and s.strip()]


class AdminProfileUpdate(ProfileUpdate):
    is_active: Optional[bool] = None


class ProfileResponse(BaseModel):
    id: int
    user_id: int
    name: str
    phone: Optional[str]
    department: Optional[str]
    job_title: Optional[str]
    work_start: Optional[str]
    work_end: Optional[str]
    skills: Optional[List[str]] = []
    years_worked: Optional[int] = 0
    shift_flexibility: Optional[bool] = False
    emergency_contact_name: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    profile_complete: Optional[bool] = False
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
