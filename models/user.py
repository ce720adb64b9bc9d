# models/user.py
import enum

from sqlalchemy import Column, BigInteger, DateTime, Boolean, String, Text, Integer, Enum as SAEnum
from sqlalchemy.sql import func

from .base import Base


class UserRole(str, enum.Enum):
    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id = Column(BigInteger, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    # Profile
    age = Column(Integer, nullable=True)
    gender = Column(String(20), nullable=True)
    location = Column(String(128), nullable=True)
    bio = Column(Text, nullable=True)

    # Moderation
    role = Column(SAEnum(UserRole, name="user_role"), default=UserRole.USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_banned = Column(Boolean, default=False, nullable=False)
    banned_at = Column(DateTime(timezone=True), nullable=True)
    banned_reason = Column(String(255), nullable=True)

    is_premium = Column(Boolean, default=False, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User id={self.id} email={self.email}>"
