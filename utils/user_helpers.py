"""Helpers for turning user rows into Pydantic schemas."""
from collections.abc import Iterable
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from schemas.user import UserRead


def to_user_read(user: User) -> UserRead:
    return UserRead.model_validate(user)


def to_user_reads(users: Iterable[User]) -> List[UserRead]:
    return [to_user_read(user) for user in users]


async def load_users(user_ids: Iterable[int], db: AsyncSession) -> Dict[int, User]:
    """Load several users in one query, keyed by id."""
    ids = list(set(user_ids))
    if not ids:
        return {}
    res = await db.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in res.scalars().all()}
