# routers/conversations.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user
from models.message import Message
from models.user import User
from schemas.message import ConversationList, ConversationRead, MessageRead
from services.matching import InteractionLedger, matches_for
from utils.user_helpers import load_users, to_user_read

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get(
    "",
    response_model=ConversationList,
    summary="One conversation per match, with the last message and unread count",
)
async def get_conversations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ConversationList:
    me = current_user.id
    views = await matches_for(InteractionLedger(db), me)
    users = await load_users((v.counterpart_id for v in views), db)
    other_ids = list(users)
    if not other_ids:
        return ConversationList(conversations=[])

    # Latest message per counterpart, in one query
    counterpart = case((Message.sender_id == me, Message.receiver_id), else_=Message.sender_id)
    ranked = (
        select(
            Message.id.label("message_id"),
            counterpart.label("counterpart_id"),
            func.row_number()
            .over(partition_by=counterpart, order_by=(Message.created_at.desc(), Message.id.desc()))
            .label("rn"),
        )
        .where(
            or_(
                and_(Message.sender_id == me, Message.receiver_id.in_(other_ids)),
                and_(Message.receiver_id == me, Message.sender_id.in_(other_ids)),
            )
        )
        .subquery()
    )
    res = await db.execute(
        select(Message, ranked.c.counterpart_id)
        .join(ranked, Message.id == ranked.c.message_id)
        .where(ranked.c.rn == 1)
    )
    last_messages = {other_id: message for message, other_id in res.all()}

    res = await db.execute(
        select(Message.sender_id, func.count(Message.id))
        .where(
            Message.receiver_id == me,
            Message.sender_id.in_(other_ids),
            Message.is_read.is_(False),
        )
        .group_by(Message.sender_id)
    )
    unread_counts = {sender_id: count for sender_id, count in res.all()}

    conversations: List[ConversationRead] = []
    for view in views:
        other = users.get(view.counterpart_id)
        if other is None:
            continue
        last_message = last_messages.get(other.id)
        conversations.append(ConversationRead(
            user=to_user_read(other),
            last_message=MessageRead.model_validate(last_message) if last_message else None,
            matched_at=view.matched_at,
            unread_count=unread_counts.get(other.id, 0),
        ))

    # Most recent activity first: last message, or the match itself
    conversations.sort(
        key=lambda c: c.last_message.created_at if c.last_message else c.matched_at,
        reverse=True,
    )
    return ConversationList(conversations=conversations)
