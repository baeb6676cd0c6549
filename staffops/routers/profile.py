from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staffops.core.auth import get_current_user
from staffops.core.exceptions import NotFound, ValidationError
from staffops.database import get_db
from staffops.models.user import Profile, User
from staffops.schemas.profile import ProfileResponse, ProfileUpdate

router = APIRouter(prefix="/profile", tags=["profile"])

REQUIRED_FIELDS = ("name", "phone", "department", "job_title", "work_start", "work_end")


def is_complete(profile: Profile) -> bool:
    return all(getattr(profile, f) for f in REQUIRED_FIELDS)


async def get_profile(db: AsyncSession, user_id: int):
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    return result.scalar_one_or_none()


def apply_profile_update(profile: Profile, data: dict) -> None:
    for field, value in data.items():
        setattr(profile, field, value)
    if profile.work_start and profile.work_end and profile.work_end <= profile.work_start:
        raise ValidationError("work_end must be after work_start")
    profile.profile_complete = is_complete(profile)


@router.get("")
async def read_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    profile = await get_profile(db, current_user.id)
    if profile is None:
        raise NotFound("Profile not found")
    return {"success": True, "profile": ProfileResponse.model_validate(profile)}


@router.put("")
async def update_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = body.model_dump(exclude_unset=True)
    profile = await get_profile(db, current_user.id)
    if profile is None:
        profile = Profile(user_id=current_user.id, name=data.pop("name", None) or current_user.username, skills=[])
        db.add(profile)
    apply_profile_update(profile, data)
    await db.commit()
    return {"success": True, "profile": ProfileResponse.model_validate(profile)}
