"""Like/Pass/Match decision engine and its read-side views.

All match state lives in the ``interactions`` table. A like is a PENDING row,
a pass is a REJECTED row, and a mutual match is the first liker's PENDING row
flipped in place to ACCEPTED when the other side likes back. No second row is
written for the reciprocating side, except briefly when two first likes cross
and are merged back into one row.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    DuplicateInteraction,
    InvalidAction,
    MessagingRestricted,
    NotFound,
    SelfInteraction,
    Unauthenticated,
)
from models.interaction import Interaction, InteractionAction, InteractionStatus
from models.user import User

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class Outcome:
    matched: bool
    interaction: Interaction


@dataclass(frozen=True)
class MatchView:
    interaction_id: int
    counterpart_id: int
    matched_at: datetime


class InteractionLedger:
    """Persistence access for interaction rows. The only writer of match state."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def user_exists(self, user_id: int) -> bool:
        res = await self.db.execute(select(User.id).where(User.id == user_id))
        return res.scalar_one_or_none() is not None

    async def find_interaction(
        self,
        initiator_id: int,
        receiver_id: int,
        status: Optional[InteractionStatus] = None,
    ) -> Optional[Interaction]:
        stmt = select(Interaction).where(
            Interaction.initiator_id == initiator_id,
            Interaction.receiver_id == receiver_id,
        )
        if status is not None:
            stmt = stmt.where(Interaction.status == status)
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def lock_interaction(self, initiator_id: int, receiver_id: int) -> Optional[Interaction]:
        """
        Fresh read of one ordered-pair row taken with ``FOR UPDATE``. The lock
        is held until the caller commits, so every decision on the pair that
        reads this row runs one at a time.
        """
        res = await self.db.execute(
            select(Interaction)
            .where(
                Interaction.initiator_id == initiator_id,
                Interaction.receiver_id == receiver_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return res.scalar_one_or_none()

    async def release(self) -> None:
        """Ends the current transaction without writing, dropping row locks."""
        if self.db.in_transaction():
            await self.db.commit()

    async def insert_interaction(
        self,
        initiator_id: int,
        receiver_id: int,
        status: InteractionStatus,
    ) -> Interaction:
        row = Interaction(initiator_id=initiator_id, receiver_id=receiver_id, status=status)
        self.db.add(row)
        try:
            await self.db.commit()
        except IntegrityError:
            # (initiator_id, receiver_id) is unique: a concurrent request got there first
            await self.db.rollback()
            raise DuplicateInteraction()
        await self.db.refresh(row)
        return row

    async def update_interaction_status(
        self,
        interaction_id: int,
        new_status: InteractionStatus,
        expected_status: Optional[InteractionStatus] = None,
    ) -> Optional[Interaction]:
        """
        Sets the status of one row. With ``expected_status`` the update only
        applies while the row still has that status; ``None`` is returned when
        nothing was updated.
        """
        stmt = update(Interaction).where(Interaction.id == interaction_id)
        if expected_status is not None:
            stmt = stmt.where(Interaction.status == expected_status)
        stmt = stmt.values(status=new_status).execution_options(synchronize_session=False)

        res = await self.db.execute(stmt)
        await self.db.commit()
        if res.rowcount == 0:
            return None
        return await self.db.get(Interaction, interaction_id, populate_existing=True)

    async def merge_crossed_likes(self, keep_id: int, drop_id: int) -> Optional[Interaction]:
        """
        Collapses two PENDING likes of the same pair into one match: the row
        ``drop_id`` is removed and ``keep_id`` becomes ACCEPTED, in a single
        commit. Both statements only touch rows that are still PENDING, so a
        second caller doing the same merge changes nothing. Returns the fresh
        ``keep_id`` row.
        """
        await self.db.execute(
            delete(Interaction)
            .where(
                Interaction.id == drop_id,
                Interaction.status == InteractionStatus.PENDING,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            update(Interaction)
            .where(
                Interaction.id == keep_id,
                Interaction.status == InteractionStatus.PENDING,
            )
            .values(status=InteractionStatus.ACCEPTED)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return await self.db.get(Interaction, keep_id, populate_existing=True)

    async def list_accepted_interactions_for(self, user_id: int) -> List[Interaction]:
        res = await self.db.execute(
            select(Interaction)
            .where(
                Interaction.status == InteractionStatus.ACCEPTED,
                or_(
                    Interaction.initiator_id == user_id,
                    Interaction.receiver_id == user_id,
                ),
            )
            .order_by(Interaction.created_at.desc(), Interaction.id.asc())
        )
        return list(res.scalars().all())

    async def find_accepted_between(self, user_a: int, user_b: int) -> Optional[Interaction]:
        res = await self.db.execute(
            select(Interaction).where(
                Interaction.status == InteractionStatus.ACCEPTED,
                or_(
                    and_(Interaction.initiator_id == user_a, Interaction.receiver_id == user_b),
                    and_(Interaction.initiator_id == user_b, Interaction.receiver_id == user_a),
                ),
            )
        )
        return res.scalars().first()


def parse_action(action: Union[str, InteractionAction, None]) -> InteractionAction:
    if isinstance(action, InteractionAction):
        return action
    try:
        return InteractionAction(action)
    except ValueError:
        raise InvalidAction()


class MatchDecisionEngine:
    def __init__(self, ledger: InteractionLedger):
        self.ledger = ledger

    async def decide(
        self,
        actor_id: Optional[int],
        target_id: int,
        action: Union[str, InteractionAction, None],
    ) -> Outcome:
        if actor_id is None:
            raise Unauthenticated()
        if target_id == actor_id:
            raise SelfInteraction()
        action = parse_action(action)
        if not await self.ledger.user_exists(target_id):
            raise NotFound()

        # The target's row is read under a row lock and stays locked until the
        # write below commits. Two decisions by the actor on this pair cannot
        # both see it PENDING.
        reverse = await self.ledger.lock_interaction(target_id, actor_id)

        # 1) One action per ordered pair. A match formed by the actor's own
        # reciprocating like is stored on the target's row, so it counts too.
        try:
            if reverse is not None and reverse.status == InteractionStatus.ACCEPTED:
                raise DuplicateInteraction()
            if await self.ledger.find_interaction(actor_id, target_id):
                raise DuplicateInteraction()
        except DuplicateInteraction:
            await self.ledger.release()
            raise

        # 2) Pass
        if action is InteractionAction.PASS:
            row = await self.ledger.insert_interaction(actor_id, target_id, InteractionStatus.REJECTED)
            return Outcome(matched=False, interaction=row)

        # 3) Like: flip the target's pending like, or leave our own
        if reverse is not None and reverse.status == InteractionStatus.PENDING:
            row = await self.ledger.update_interaction_status(
                reverse.id,
                InteractionStatus.ACCEPTED,
                expected_status=InteractionStatus.PENDING,
            )
            if row is None:
                raise DuplicateInteraction()
            logger.info("Match formed between %s and %s", row.initiator_id, row.receiver_id)
            return Outcome(matched=True, interaction=row)

        row = await self.ledger.insert_interaction(actor_id, target_id, InteractionStatus.PENDING)

        # Both users may have liked each other at the same time, each before
        # the other's row existed.
        crossed = await self.ledger.find_interaction(target_id, actor_id, InteractionStatus.PENDING)
        if crossed is None:
            return Outcome(matched=False, interaction=row)
        return await self._merge_crossed(row, crossed)

    async def _merge_crossed(self, own: Interaction, crossed: Interaction) -> Outcome:
        # Both sides pick the same survivor: the earlier like.
        keep, drop = sorted((own, crossed), key=lambda r: (r.created_at, r.id))
        row = await self.ledger.merge_crossed_likes(keep.id, drop.id)
        if row is None or row.status != InteractionStatus.ACCEPTED:
            return Outcome(matched=False, interaction=own)
        logger.info("Match formed between %s and %s", row.initiator_id, row.receiver_id)
        return Outcome(matched=True, interaction=row)


async def matches_for(ledger: InteractionLedger, user_id: int) -> List[MatchView]:
    """Confirmed matches of a user, most recent first."""
    rows = await ledger.list_accepted_interactions_for(user_id)
    return [
        MatchView(
            interaction_id=row.id,
            counterpart_id=row.receiver_id if row.initiator_id == user_id else row.initiator_id,
            matched_at=row.created_at,
        )
        for row in rows
    ]


async def can_message(ledger: InteractionLedger, user_a: int, user_b: int) -> bool:
    if user_a == user_b:
        return False
    return await ledger.find_accepted_between(user_a, user_b) is not None


async def ensure_can_message(ledger: InteractionLedger, user_a: int, user_b: int) -> None:
    if not await can_message(ledger, user_a, user_b):
        raise MessagingRestricted()
