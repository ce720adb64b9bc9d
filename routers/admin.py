import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_admin
from models.interaction import Interaction, InteractionStatus
from models.message import Message
from models.user import User, UserRole
from schemas.admin import (
    AdminActionResponse,
    AdminStats,
    AdminUserPage,
    AdminUserRead,
    BanRequest,
    EngagementStats,
    RoleRequest,
    UnbanRequest,
    UserStats,
)

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = logging.getLogger("uvicorn.error")

DEFAULT_BAN_REASON = "Violation of terms of service"


async def _count(db: AsyncSession, stmt) -> int:
    res = await db.execute(stmt)
    return res.scalar_one()


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get(
    "/stats",
    response_model=AdminStats,
    summary="User and engagement counters",
)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
) -> AdminStats:
    now = datetime.now(timezone.utc)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = now - timedelta(days=7)

    count_users = select(func.count(User.id))
    count_interactions = select(func.count(Interaction.id))

    total_users = await _count(db, count_users)
    active_users = await _count(
        db, count_users.where(User.is_active.is_(True), User.is_banned.is_(False))
    )
    banned_users = await _count(db, count_users.where(User.is_banned.is_(True)))
    new_today = await _count(db, count_users.where(User.created_at >= start_of_day))
    new_week = await _count(db, count_users.where(User.created_at >= week_ago))
    premium_users = await _count(db, count_users.where(User.is_premium.is_(True)))

    total_matches = await _count(
        db, count_interactions.where(Interaction.status == InteractionStatus.ACCEPTED)
    )
    pending_likes = await _count(
        db, count_interactions.where(Interaction.status == InteractionStatus.PENDING)
    )
    total_passes = await _count(
        db, count_interactions.where(Interaction.status == InteractionStatus.REJECTED)
    )
    total_messages = await _count(db, select(func.count(Message.id)))

    avg_messages = round(total_messages / total_users, 2) if total_users else 0.0

    return AdminStats(
        users=UserStats(
            total=total_users,
            active=active_users,
            banned=banned_users,
            new_today=new_today,
            new_this_week=new_week,
        ),
        engagement=EngagementStats(
            total_matches=total_matches,
            pending_likes=pending_likes,
            total_passes=total_passes,
            total_messages=total_messages,
            avg_messages_per_user=avg_messages,
        ),
        premium_users=premium_users,
    )


@router.get(
    "/users",
    response_model=AdminUserPage,
    summary="Paginated user list with search and status filter",
)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = Query(""),
    filter: str = Query("all", pattern="^(all|active|banned|premium)$"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
) -> AdminUserPage:
    conditions = []
    search = search.strip()
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(
            User.email.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
        ))

    if filter == "active":
        conditions += [User.is_active.is_(True), User.is_banned.is_(False)]
    elif filter == "banned":
        conditions.append(User.is_banned.is_(True))
    elif filter == "premium":
        conditions.append(User.is_premium.is_(True))

    total = await _count(db, select(func.count(User.id)).where(*conditions))
    res = await db.execute(
        select(User)
        .where(*conditions)
        .order_by(User.created_at.desc(), User.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    users = [AdminUserRead.model_validate(u) for u in res.scalars().all()]
    return AdminUserPage(users=users, total=total, page=page, limit=limit)


@router.post(
    "/users/ban",
    response_model=AdminActionResponse,
    summary="Ban a user",
)
async def ban_user(
    payload: BanRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
) -> AdminActionResponse:
    if payload.user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot ban yourself")

    user = await _get_user_or_404(db, payload.user_id)
    user.is_banned = True
    user.is_active = False
    user.banned_at = datetime.now(timezone.utc)
    user.banned_reason = payload.reason or DEFAULT_BAN_REASON
    await db.commit()
    await db.refresh(user)

    logger.info("User %s banned by %s: %s", user.id, admin.id, user.banned_reason)
    return AdminActionResponse(
        message="User banned successfully",
        user=AdminUserRead.model_validate(user),
    )


@router.delete(
    "/users/ban",
    response_model=AdminActionResponse,
    summary="Lift a ban",
)
async def unban_user(
    payload: UnbanRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
) -> AdminActionResponse:
    user = await _get_user_or_404(db, payload.user_id)
    user.is_banned = False
    user.is_active = True
    user.banned_at = None
    user.banned_reason = None
    await db.commit()
    await db.refresh(user)

    logger.info("User %s unbanned by %s", user.id, admin.id)
    return AdminActionResponse(
        message="User unbanned successfully",
        user=AdminUserRead.model_validate(user),
    )


@router.post(
    "/users/role",
    response_model=AdminActionResponse,
    summary="Change a user's role",
)
async def set_role(
    payload: RoleRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
) -> AdminActionResponse:
    try:
        role = UserRole(payload.role)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid role")

    user = await _get_user_or_404(db, payload.user_id)
    user.role = role
    await db.commit()
    await db.refresh(user)

    logger.info("User %s role set to %s by %s", user.id, role.value, admin.id)
    return AdminActionResponse(
        message=f"User role updated to {role.value}",
        user=AdminUserRead.model_validate(user),
    )
