# routers/messages.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.exceptions import MatchingError, NotFound
from core.security import get_current_user
from models.message import Message
from models.user import User
from schemas.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessageCreate,
    MessageList,
    MessageRead,
    MessageSent,
    UnreadCount,
)
from services.matching import InteractionLedger, ensure_can_message

router = APIRouter(prefix="/messages", tags=["messages"])
logger = logging.getLogger("uvicorn.error")


async def _check_conversation(db: AsyncSession, current_user: User, other_id: int) -> None:
    """404 for an unknown user, 403 unless the two users are matched."""
    ledger = InteractionLedger(db)
    try:
        if not await ledger.user_exists(other_id):
            raise NotFound()
        await ensure_can_message(ledger, current_user.id, other_id)
    except MatchingError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


@router.get(
    "",
    response_model=MessageList,
    summary="Message history with a matched user, oldest first",
)
async def get_messages(
    user_id: int = Query(..., alias="userId", description="The other user"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageList:
    await _check_conversation(db, current_user, user_id)

    res = await db.execute(
        select(Message)
        .where(
            or_(
                and_(Message.sender_id == current_user.id, Message.receiver_id == user_id),
                and_(Message.sender_id == user_id, Message.receiver_id == current_user.id),
            )
        )
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    messages = res.scalars().all()
    return MessageList(messages=[MessageRead.model_validate(m) for m in messages])


@router.post(
    "",
    response_model=MessageSent,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message to a matched user",
)
async def send_message(
    payload: MessageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageSent:
    content = payload.content.strip()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message cannot be empty")

    await _check_conversation(db, current_user, payload.receiver_id)

    message = Message(sender_id=current_user.id, receiver_id=payload.receiver_id, content=content)
    db.add(message)
    await db.commit()
    await db.refresh(message)

    return MessageSent(success=True, message=MessageRead.model_validate(message))


@router.get(
    "/unread",
    response_model=UnreadCount,
    summary="Number of unread messages addressed to you",
)
async def unread_count(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UnreadCount:
    res = await db.execute(
        select(func.count(Message.id)).where(
            Message.receiver_id == current_user.id,
            Message.is_read.is_(False),
        )
    )
    return UnreadCount(unread_count=res.scalar_one())


@router.put(
    "/unread",
    response_model=MarkReadResponse,
    summary="Mark every message from a matched user as read",
)
async def mark_as_read(
    payload: MarkReadRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MarkReadResponse:
    await _check_conversation(db, current_user, payload.sender_id)

    res = await db.execute(
        update(Message)
        .where(
            Message.sender_id == payload.sender_id,
            Message.receiver_id == current_user.id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return MarkReadResponse(success=True, updated=res.rowcount)
