from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from schemas.user import UserRead


class InteractionRequest(BaseModel):
    # action stays a plain string: unknown values are rejected by the engine
    target_user_id: int = Field(..., alias="targetUserId")
    action: str = Field(..., description="LIKE or PASS")

    class Config:
        validate_by_name = True


class InteractionResponse(BaseModel):
    success: bool = True
    matched: bool


class MatchRead(BaseModel):
    match_id: int = Field(..., alias="matchId")
    matched_at: datetime = Field(..., alias="matchedAt")
    user: UserRead

    class Config:
        validate_by_name = True


class MatchList(BaseModel):
    matches: List[MatchRead]
