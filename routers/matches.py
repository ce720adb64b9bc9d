# routers/matches.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.exceptions import MatchingError
from core.security import get_current_user
from models.user import User
from schemas.interaction import InteractionRequest, InteractionResponse, MatchList, MatchRead
from services.matching import InteractionLedger, MatchDecisionEngine, matches_for
from utils.user_helpers import load_users, to_user_read

router = APIRouter(prefix="/matches", tags=["matches"])
logger = logging.getLogger("uvicorn.error")


@router.post(
    "",
    response_model=InteractionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Like or pass on a user and find out whether it is a match",
)
async def act_on_user(
    payload: InteractionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> InteractionResponse:
    engine = MatchDecisionEngine(InteractionLedger(db))
    try:
        outcome = await engine.decide(current_user.id, payload.target_user_id, payload.action)
    except MatchingError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)

    return InteractionResponse(success=True, matched=outcome.matched)


@router.get(
    "",
    response_model=MatchList,
    summary="Users you have a mutual match with, most recent first",
)
async def get_my_matches(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MatchList:
    views = await matches_for(InteractionLedger(db), current_user.id)
    users = await load_users((v.counterpart_id for v in views), db)

    out = []
    for view in views:
        other = users.get(view.counterpart_id)
        if other is None:
            continue
        out.append(MatchRead(
            match_id=view.interaction_id,
            matched_at=view.matched_at,
            user=to_user_read(other),
        ))
    return MatchList(matches=out)
