from typing import Optional
from datetime import datetime

from pydantic import BaseModel, Field

from models.user import UserRole


class UserRead(BaseModel):
    """Public view of a user, shown in discover, matches and conversations."""
    user_id: int = Field(..., alias="id", description="Primary key")

    first_name: Optional[str] = Field(None, description="First name")
    last_name: Optional[str] = Field(None, description="Last name")
    age: Optional[int] = Field(None, description="Age")
    gender: Optional[str] = Field(None, description="Gender")
    location: Optional[str] = Field(None, description="Free-form location")
    bio: Optional[str] = Field(None, description="About")

    is_premium: bool = Field(False, description="Premium flag")
    created_at: datetime = Field(..., description="Account creation time")

    class Config:
        from_attributes = True
        validate_by_name = True


class MeRead(UserRead):
    email: str = Field(..., description="Login email")
    role: UserRole = Field(..., description="USER, MODERATOR or ADMIN")
    is_active: bool
    is_banned: bool
    last_login_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100, description="First name")
    last_name: Optional[str] = Field(None, max_length=100, description="Last name")
    age: Optional[int] = Field(None, description="Age, 18 to 100")
    gender: Optional[str] = Field(None, max_length=20, description="Gender")
    location: Optional[str] = Field(None, max_length=128, description="Location")
    bio: Optional[str] = Field(None, description="About")
