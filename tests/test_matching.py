from datetime import datetime

import pytest
from sqlalchemy import select

from core.exceptions import (
    DuplicateInteraction,
    InvalidAction,
    MessagingRestricted,
    NotFound,
    SelfInteraction,
    Unauthenticated,
)
from models.interaction import Interaction, InteractionAction, InteractionStatus
from services.matching import (
    InteractionLedger,
    MatchDecisionEngine,
    can_message,
    ensure_can_message,
    matches_for,
)


@pytest.fixture
def ledger(db):
    return InteractionLedger(db)


@pytest.fixture
def engine_(ledger):
    return MatchDecisionEngine(ledger)


@pytest.fixture
async def users(make_user):
    a = await make_user(first_name="Alice")
    b = await make_user(first_name="Bob")
    c = await make_user(first_name="Carol")
    return a, b, c


async def _rows(db):
    res = await db.execute(
        select(Interaction).execution_options(populate_existing=True)
    )
    return res.scalars().all()


@pytest.mark.parametrize("action", ["LIKE", "PASS"])
async def test_self_interaction_is_rejected(engine_, users, action):
    a, _, _ = users
    with pytest.raises(SelfInteraction):
        await engine_.decide(a.id, a.id, action)


@pytest.mark.parametrize("action", ["SUPERLIKE", "like", "", None])
async def test_unknown_action_is_rejected(engine_, users, action):
    a, b, _ = users
    with pytest.raises(InvalidAction):
        await engine_.decide(a.id, b.id, action)


async def test_missing_actor_is_unauthenticated(engine_, users):
    _, b, _ = users
    with pytest.raises(Unauthenticated):
        await engine_.decide(None, b.id, "LIKE")


async def test_unknown_target_is_not_found(engine_, users):
    a, _, _ = users
    with pytest.raises(NotFound):
        await engine_.decide(a.id, 123, "LIKE")


async def test_enum_action_is_accepted(engine_, users):
    a, b, _ = users
    outcome = await engine_.decide(a.id, b.id, InteractionAction.LIKE)
    assert outcome.matched is False
    assert outcome.interaction.status == InteractionStatus.PENDING


async def test_like_without_reciprocation_is_pending(db, engine_, users):
    a, b, _ = users
    outcome = await engine_.decide(a.id, b.id, "LIKE")

    assert outcome.matched is False
    rows = await _rows(db)
    assert [(r.initiator_id, r.receiver_id, r.status) for r in rows] == [
        (a.id, b.id, InteractionStatus.PENDING)
    ]


async def test_second_like_on_same_target_is_duplicate(engine_, users):
    a, b, _ = users
    await engine_.decide(a.id, b.id, "LIKE")
    with pytest.raises(DuplicateInteraction):
        await engine_.decide(a.id, b.id, "LIKE")


async def test_like_after_pass_is_duplicate(engine_, users):
    a, b, _ = users
    await engine_.decide(a.id, b.id, "PASS")
    with pytest.raises(DuplicateInteraction):
        await engine_.decide(a.id, b.id, "LIKE")


async def test_mutual_like_flips_original_row(db, engine_, users):
    a, b, _ = users
    first = await engine_.decide(a.id, b.id, "LIKE")
    second = await engine_.decide(b.id, a.id, "LIKE")

    assert second.matched is True
    assert second.interaction.id == first.interaction.id

    rows = await _rows(db)
    assert len(rows) == 1
    row = rows[0]
    assert row.initiator_id == a.id
    assert row.receiver_id == b.id
    assert row.status == InteractionStatus.ACCEPTED


async def test_repeating_a_reciprocating_like_is_duplicate(db, engine_, users):
    a, b, _ = users
    await engine_.decide(a.id, b.id, "LIKE")
    assert (await engine_.decide(b.id, a.id, "LIKE")).matched is True

    with pytest.raises(DuplicateInteraction):
        await engine_.decide(b.id, a.id, "LIKE")
    with pytest.raises(DuplicateInteraction):
        await engine_.decide(b.id, a.id, "PASS")
    with pytest.raises(DuplicateInteraction):
        await engine_.decide(a.id, b.id, "LIKE")

    assert len(await _rows(db)) == 1


async def test_pass_does_not_block_reciprocal_like(db, engine_, users):
    a, b, _ = users
    await engine_.decide(a.id, b.id, "PASS")
    outcome = await engine_.decide(b.id, a.id, "LIKE")

    assert outcome.matched is False
    rows = {(r.initiator_id, r.receiver_id): r.status for r in await _rows(db)}
    assert rows == {
        (a.id, b.id): InteractionStatus.REJECTED,
        (b.id, a.id): InteractionStatus.PENDING,
    }


async def test_pass_on_pending_liker_leaves_their_like_pending(db, engine_, users):
    a, b, _ = users
    await engine_.decide(a.id, b.id, "LIKE")
    outcome = await engine_.decide(b.id, a.id, "PASS")

    assert outcome.matched is False
    rows = {(r.initiator_id, r.receiver_id): r.status for r in await _rows(db)}
    assert rows == {
        (a.id, b.id): InteractionStatus.PENDING,
        (b.id, a.id): InteractionStatus.REJECTED,
    }
    assert await can_message(InteractionLedger(db), a.id, b.id) is False


async def test_uniqueness_violation_maps_to_duplicate(db, engine_, ledger, users, monkeypatch):
    a, b, _ = users
    await engine_.decide(a.id, b.id, "LIKE")

    # Simulate a concurrent request that passed the existence check
    async def _not_found(*args, **kwargs):
        return None

    monkeypatch.setattr(ledger, "find_interaction", _not_found)
    with pytest.raises(DuplicateInteraction):
        await engine_.decide(a.id, b.id, "PASS")

    monkeypatch.undo()
    rows = await _rows(db)
    assert len(rows) == 1
    assert rows[0].status == InteractionStatus.PENDING


async def test_pass_after_own_reciprocating_like_is_duplicate_with_stale_lookup(
    db, engine_, ledger, users, monkeypatch
):
    a, b, _ = users
    await engine_.decide(a.id, b.id, "LIKE")
    assert (await engine_.decide(b.id, a.id, "LIKE")).matched is True

    # A second request by b read the pair before the match committed; only the
    # locked read of a's row is fresh
    async def _not_found(*args, **kwargs):
        return None

    monkeypatch.setattr(ledger, "find_interaction", _not_found)
    with pytest.raises(DuplicateInteraction):
        await engine_.decide(b.id, a.id, "PASS")

    monkeypatch.undo()
    rows = await _rows(db)
    assert len(rows) == 1
    assert (rows[0].initiator_id, rows[0].receiver_id) == (a.id, b.id)
    assert rows[0].status == InteractionStatus.ACCEPTED


async def test_crossed_first_likes_still_form_a_match(db, engine_, ledger, users, monkeypatch):
    a, b, _ = users

    # b's like lands after a's request took its locked read of the pair
    async def _nothing_yet(*args, **kwargs):
        await ledger.insert_interaction(b.id, a.id, InteractionStatus.PENDING)
        return None

    monkeypatch.setattr(ledger, "lock_interaction", _nothing_yet)
    outcome = await engine_.decide(a.id, b.id, "LIKE")
    monkeypatch.undo()

    assert outcome.matched is True
    rows = await _rows(db)
    assert len(rows) == 1
    assert {rows[0].initiator_id, rows[0].receiver_id} == {a.id, b.id}
    assert rows[0].status == InteractionStatus.ACCEPTED
    assert outcome.interaction.id == rows[0].id

    with pytest.raises(DuplicateInteraction):
        await engine_.decide(b.id, a.id, "LIKE")
    with pytest.raises(DuplicateInteraction):
        await engine_.decide(a.id, b.id, "PASS")


async def test_merging_crossed_likes_twice_is_harmless(db, ledger, users):
    a, b, _ = users
    first = await ledger.insert_interaction(a.id, b.id, InteractionStatus.PENDING)
    second = await ledger.insert_interaction(b.id, a.id, InteractionStatus.PENDING)

    merged = await ledger.merge_crossed_likes(first.id, second.id)
    assert merged.status == InteractionStatus.ACCEPTED
    again = await ledger.merge_crossed_likes(first.id, second.id)
    assert again.status == InteractionStatus.ACCEPTED

    rows = await _rows(db)
    assert [(r.id, r.status) for r in rows] == [(first.id, InteractionStatus.ACCEPTED)]


async def test_conditional_update_skips_already_accepted_row(db, ledger, users):
    a, b, _ = users
    row = await ledger.insert_interaction(a.id, b.id, InteractionStatus.PENDING)

    updated = await ledger.update_interaction_status(
        row.id, InteractionStatus.ACCEPTED, expected_status=InteractionStatus.PENDING
    )
    assert updated.status == InteractionStatus.ACCEPTED

    again = await ledger.update_interaction_status(
        row.id, InteractionStatus.ACCEPTED, expected_status=InteractionStatus.PENDING
    )
    assert again is None


async def test_match_visibility_is_symmetric(db, engine_, users):
    a, b, _ = users
    await engine_.decide(a.id, b.id, "LIKE")
    await engine_.decide(b.id, a.id, "LIKE")

    ledger = InteractionLedger(db)
    assert [m.counterpart_id for m in await matches_for(ledger, a.id)] == [b.id]
    assert [m.counterpart_id for m in await matches_for(ledger, b.id)] == [a.id]
    assert await can_message(ledger, a.id, b.id) is True
    assert await can_message(ledger, b.id, a.id) is True


async def test_gate_fails_closed_without_match(db, engine_, users):
    a, b, c = users
    ledger = InteractionLedger(db)
    await engine_.decide(a.id, b.id, "LIKE")

    assert await can_message(ledger, a.id, b.id) is False
    assert await can_message(ledger, a.id, c.id) is False
    assert await can_message(ledger, a.id, a.id) is False
    with pytest.raises(MessagingRestricted):
        await ensure_can_message(ledger, b.id, a.id)


async def test_scenario_two_matches_for_the_same_user(db, engine_, users):
    a, b, c = users
    assert (await engine_.decide(a.id, b.id, "LIKE")).matched is False
    assert (await engine_.decide(c.id, b.id, "LIKE")).matched is False
    assert (await engine_.decide(b.id, a.id, "LIKE")).matched is True
    assert (await engine_.decide(b.id, c.id, "LIKE")).matched is True

    rows = await _rows(db)
    statuses = [r.status for r in rows]
    assert statuses.count(InteractionStatus.ACCEPTED) == 2
    assert statuses.count(InteractionStatus.PENDING) == 0
    assert {(r.initiator_id, r.receiver_id) for r in rows} == {(a.id, b.id), (c.id, b.id)}

    views = await matches_for(InteractionLedger(db), b.id)
    assert {v.counterpart_id for v in views} == {a.id, c.id}


async def test_matches_are_most_recent_first_with_id_tiebreak(db, make_user):
    me = await make_user()
    others = [await make_user() for _ in range(3)]
    older = datetime(2024, 1, 1, 12, 0, 0)
    newer = datetime(2024, 6, 1, 12, 0, 0)

    db.add_all([
        Interaction(id=30, initiator_id=others[0].id, receiver_id=me.id,
                    status=InteractionStatus.ACCEPTED, created_at=older),
        Interaction(id=20, initiator_id=me.id, receiver_id=others[1].id,
                    status=InteractionStatus.ACCEPTED, created_at=newer),
        Interaction(id=10, initiator_id=others[2].id, receiver_id=me.id,
                    status=InteractionStatus.ACCEPTED, created_at=newer),
    ])
    await db.commit()

    views = await matches_for(InteractionLedger(db), me.id)
    assert [v.interaction_id for v in views] == [10, 20, 30]
    assert [v.counterpart_id for v in views] == [others[2].id, others[1].id, others[0].id]

    # Same answer when queried again
    again = await matches_for(InteractionLedger(db), me.id)
    assert again == views
