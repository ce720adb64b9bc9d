from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models.user import UserRole


class UserStats(BaseModel):
    total: int
    active: int
    banned: int
    new_today: int = Field(..., alias="newToday")
    new_this_week: int = Field(..., alias="newThisWeek")

    class Config:
        validate_by_name = True


class EngagementStats(BaseModel):
    total_matches: int = Field(..., alias="totalMatches")
    pending_likes: int = Field(..., alias="pendingLikes")
    total_passes: int = Field(..., alias="totalPasses")
    total_messages: int = Field(..., alias="totalMessages")
    avg_messages_per_user: float = Field(..., alias="avgMessagesPerUser")

    class Config:
        validate_by_name = True


class AdminStats(BaseModel):
    users: UserStats
    engagement: EngagementStats
    premium_users: int = Field(..., alias="premiumUsers")

    class Config:
        validate_by_name = True


class AdminUserRead(BaseModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole
    is_active: bool
    is_banned: bool
    banned_reason: Optional[str] = None
    is_premium: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AdminUserPage(BaseModel):
    users: List[AdminUserRead]
    total: int
    page: int
    limit: int


class BanRequest(BaseModel):
    user_id: int = Field(..., alias="userId")
    reason: Optional[str] = Field(None, max_length=255)

    class Config:
        validate_by_name = True


class UnbanRequest(BaseModel):
    user_id: int = Field(..., alias="userId")

    class Config:
        validate_by_name = True


class RoleRequest(BaseModel):
    user_id: int = Field(..., alias="userId")
    role: str = Field(..., description="USER, MODERATOR or ADMIN")

    class Config:
        validate_by_name = True


class AdminActionResponse(BaseModel):
    success: bool = True
    message: str
    user: AdminUserRead
