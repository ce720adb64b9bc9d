from typing import Literal, Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """
    Registration payload. The email is normalised (trimmed, lower-cased)
    and validated by the router.
    """
    email: str = Field(..., max_length=255)
    password: str
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    """
    Response on successful login.
    """
    access_token: str
    token_type: Literal["bearer"]
    has_profile: bool
    expires_in_ms: int
