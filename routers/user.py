from fastapi import APIRouter, Depends, HTTPException
from fastapi.params import Path
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user
from models.user import User
from schemas.user import MeRead, ProfileUpdate, UserRead
from utils.user_helpers import to_user_read

router = APIRouter(prefix="/users", tags=["users"])

MIN_AGE = 18
MAX_AGE = 100


def _clean_value(value):
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


@router.get(
    "/me",
    response_model=MeRead,
    summary="Own account and profile"
)
async def read_my_profile(
    current_user: User = Depends(get_current_user),
):
    return MeRead.model_validate(current_user)


@router.put(
    "/me",
    response_model=MeRead,
    summary="Update own profile"
)
async def update_my_profile(
    payload: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    fields = payload.model_dump(exclude_unset=True)

    if fields.get("age") is not None and not MIN_AGE <= fields["age"] <= MAX_AGE:
        raise HTTPException(status_code=400, detail=f"Age must be between {MIN_AGE} and {MAX_AGE}")

    if "first_name" in fields and fields["first_name"] is not None:
        current_user.first_name = fields["first_name"]
    if "last_name" in fields and fields["last_name"] is not None:
        current_user.last_name = fields["last_name"]
    if fields.get("age") is not None:
        current_user.age = fields["age"]
    if fields.get("gender"):
        current_user.gender = fields["gender"]
    # Empty bio/location clears the field
    if "bio" in fields:
        current_user.bio = _clean_value(fields["bio"])
    if "location" in fields:
        current_user.location = _clean_value(fields["location"])

    db.add(current_user)
    await db.commit()
    await db.refresh(current_user)
    return MeRead.model_validate(current_user)


@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="Public profile of another user"
)
async def read_user_profile(
    user_id: int = Path(..., description="User id"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = await db.get(User, user_id)
    if not user or user.is_banned:
        raise HTTPException(404, "User not found")
    return to_user_read(user)
