from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.user import UserRead


class MessageCreate(BaseModel):
    receiver_id: int = Field(..., alias="receiverId")
    content: str = Field(..., description="Message text, trimmed before saving")

    class Config:
        validate_by_name = True


class MessageRead(BaseModel):
    id: int
    sender_id: int = Field(..., alias="senderId")
    receiver_id: int = Field(..., alias="receiverId")
    content: str
    is_read: bool = Field(..., alias="isRead")
    created_at: datetime = Field(..., alias="createdAt")

    class Config:
        from_attributes = True
        validate_by_name = True


class MessageList(BaseModel):
    messages: List[MessageRead]


class MessageSent(BaseModel):
    success: bool = True
    message: MessageRead


class UnreadCount(BaseModel):
    unread_count: int = Field(..., alias="unreadCount")

    class Config:
        validate_by_name = True


class MarkReadRequest(BaseModel):
    sender_id: int = Field(..., alias="senderId")

    class Config:
        validate_by_name = True


class MarkReadResponse(BaseModel):
    success: bool = True
    updated: int


class ConversationRead(BaseModel):
    user: UserRead
    last_message: Optional[MessageRead] = Field(None, alias="lastMessage")
    matched_at: datetime = Field(..., alias="matchedAt")
    unread_count: int = Field(..., alias="unreadCount")

    class Config:
        validate_by_name = True


class ConversationList(BaseModel):
    conversations: List[ConversationRead]
