from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, not_
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.security import get_current_user
from models.interaction import Interaction, InteractionStatus
from models.user import User
from schemas.user import UserRead
from utils.user_helpers import to_user_reads

router = APIRouter(prefix="/discover", tags=["discover"])


@router.get(
    "",
    response_model=List[UserRead],
    summary="Profiles to swipe on"
)
async def get_feed(
    min_age: Optional[int] = Query(None, alias="minAge", ge=18, le=100),
    max_age: Optional[int] = Query(None, alias="maxAge", ge=18, le=100),
    gender: Optional[str] = Query(None, description="Gender filter, 'all' for no filter"),
    location: Optional[str] = Query(None, description="Case-insensitive substring of location"),
    limit: int = Query(settings.DISCOVER_PAGE_SIZE, ge=1, le=50),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[UserRead]:
    # Exclude everyone we already liked or passed, and everyone whose like we reciprocated
    sub_acted = select(Interaction.receiver_id).where(Interaction.initiator_id == current_user.id)
    sub_matched = select(Interaction.initiator_id).where(
        Interaction.receiver_id == current_user.id,
        Interaction.status == InteractionStatus.ACCEPTED,
    )
    stmt = select(User).where(
        User.id != current_user.id,
        User.is_active.is_(True),
        User.is_banned.is_(False),
        User.age.is_not(None),
        User.gender.is_not(None),
        not_(User.id.in_(sub_acted)),
        not_(User.id.in_(sub_matched)),
    )

    if min_age is not None:
        stmt = stmt.where(User.age >= min_age)
    if max_age is not None:
        stmt = stmt.where(User.age <= max_age)
    if gender and gender != "all":
        stmt = stmt.where(User.gender == gender)
    if location:
        stmt = stmt.where(User.location.ilike(f"%{location.strip()}%"))

    stmt = stmt.order_by(User.created_at.desc(), User.id.asc()).offset(offset).limit(limit)
    result = await db.execute(stmt)
    return to_user_reads(result.scalars().all())
