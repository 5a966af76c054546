import logging

import pytest

from bookforum_feed import BatchOperation, Post, VoteDirection, VoteEngine, VoteOutcome, VoteStatus, plan_vote


async def cast(engine, store, post_id, direction, user="alice"):
    """Vote the way the view does: with the post as currently stored."""
    post = store.post(post_id)
    return await engine.apply_vote(post_id, post.voters, direction, post, user)


# -----------------------------------------------------------------------------
# Planning
# -----------------------------------------------------------------------------
def test_plan_fresh_vote():
    post = Post(id="p1", upVotes=3)
    plan = plan_vote("alice", None, VoteDirection.UP, post)

    assert plan.previous is None
    assert plan.current == VoteDirection.UP
    assert plan.changes == [
        Post.up_votes.increment(1),
        Post.interactions.increment(1),
        Post.voters.child("alice").set(VoteDirection.UP),
    ]


def test_plan_toggle_off_retracts():
    post = Post(id="p1", upVotes=4, voters={"alice": "up"})
    plan = plan_vote("alice", VoteDirection.UP, VoteDirection.UP, post)

    assert plan.current is None
    assert plan.changes == [
        Post.up_votes.increment(-1),
        Post.interactions.increment(-1),
        Post.voters.child("alice").delete(),
    ]


def test_plan_switch_is_collapsed():
    post = Post(id="p1", upVotes=4, downVotes=1, voters={"alice": "up"})
    plan = plan_vote("alice", VoteDirection.UP, VoteDirection.DOWN, post)

    assert plan.current == VoteDirection.DOWN
    assert plan.changes == [
        Post.up_votes.increment(-1),
        Post.down_votes.increment(1),
        Post.voters.child("alice").set(VoteDirection.DOWN),
    ]


def test_plan_keeps_old_vote_when_tally_is_empty(caplog):
    post = Post(id="p1", downVotes=0, interactions=4, voters={"alice": "down"})
    with caplog.at_level(logging.WARNING):
        plan = plan_vote("alice", VoteDirection.DOWN, VoteDirection.DOWN, post)

    assert plan.changes == []
    assert plan.current == VoteDirection.DOWN
    assert "already 0" in caplog.text


def test_plan_switch_from_empty_tally_only_adds():
    post = Post(id="p1", downVotes=0, upVotes=2, voters={"alice": "down"})
    plan = plan_vote("alice", VoteDirection.DOWN, VoteDirection.UP, post)

    assert plan.current == VoteDirection.UP
    assert plan.changes == [
        Post.up_votes.increment(1),
        Post.interactions.increment(1),
        Post.voters.child("alice").set(VoteDirection.UP),
    ]


# -----------------------------------------------------------------------------
# Engine against a store
# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_vote_toggle_sequence(store):
    post_id = store.add_post(up_votes=3, down_votes=1)
    engine = VoteEngine(store)

    outcome = await cast(engine, store, post_id, "up")
    assert outcome.status == VoteStatus.COMMITTED
    assert store.raw(post_id)["upVotes"] == 4
    assert store.raw(post_id)["voters"] == {"alice": "up"}

    outcome = await cast(engine, store, post_id, VoteDirection.UP)
    assert outcome.current is None
    assert store.raw(post_id)["upVotes"] == 3
    assert store.raw(post_id)["voters"] == {}

    await cast(engine, store, post_id, "down")
    raw = store.raw(post_id)
    assert (raw["upVotes"], raw["downVotes"]) == (3, 2)
    assert raw["voters"] == {"alice": "down"}
    assert raw["interactions"] == 1
    assert len(store.batches) == 3


@pytest.mark.asyncio
async def test_tallies_match_ledger_for_several_users(store):
    post_id = store.add_post()
    engine = VoteEngine(store)

    await cast(engine, store, post_id, "up", user="alice")
    await cast(engine, store, post_id, "down", user="bob")
    await cast(engine, store, post_id, "up", user="carol")
    await cast(engine, store, post_id, "down", user="alice")
    await cast(engine, store, post_id, "down", user="bob")

    post = store.post(post_id)
    assert post.voters == {"alice": VoteDirection.DOWN, "carol": VoteDirection.UP}
    assert post.up_votes == 1
    assert post.down_votes == 1
    assert post.interactions == 2


@pytest.mark.asyncio
async def test_stale_snapshot_never_drives_tally_negative(store):
    post_id = store.add_post(down_votes=0, up_votes=2, interactions=4)
    engine = VoteEngine(store)
    stale = Post(id=post_id, downVotes=0, upVotes=2, interactions=4, voters={"alice": "down"})

    await engine.apply_vote(post_id, stale.voters, "up", stale, "alice")

    raw = store.raw(post_id)
    assert raw["downVotes"] == 0
    assert raw["upVotes"] == 3
    assert raw["interactions"] == 5
    assert raw["voters"] == {"alice": "up"}


@pytest.mark.asyncio
async def test_retract_against_empty_tally_writes_nothing(store):
    post_id = store.add_post(down_votes=0, interactions=4, voters={"alice": "down"})

    outcome = await cast(VoteEngine(store), store, post_id, "down")

    assert outcome.status == VoteStatus.IGNORED
    assert outcome.current == VoteDirection.DOWN
    assert store.batches == []
    raw = store.raw(post_id)
    assert (raw["downVotes"], raw["interactions"]) == (0, 4)
    assert raw["voters"] == {"alice": "down"}


@pytest.mark.asyncio
async def test_signed_out_vote_is_ignored(store):
    post_id = store.add_post(up_votes=1)
    before = dict(store.raw(post_id))
    post = store.post(post_id)

    outcome = await VoteEngine(store).apply_vote(post_id, post.voters, "up", post, None)

    assert outcome.status == VoteStatus.IGNORED
    assert store.batches == []
    assert store.raw(post_id) == before


@pytest.mark.asyncio
async def test_failed_commit_is_reported_not_retried(store, caplog):
    post_id = store.add_post(up_votes=1)
    store.fail("atomic_batch")

    with caplog.at_level(logging.ERROR):
        outcome = await cast(VoteEngine(store), store, post_id, "up")

    assert outcome.status == VoteStatus.FAILED
    assert store.batches == []
    assert store.raw(post_id)["upVotes"] == 1
    assert "Error updating vote" in caplog.text


@pytest.mark.asyncio
async def test_unknown_direction_is_rejected(store):
    post_id = store.add_post()
    with pytest.raises(ValueError):
        await cast(VoteEngine(store), store, post_id, "sideways")


@pytest.mark.asyncio
async def test_outcome_projects_onto_local_post(store):
    post_id = store.add_post(up_votes=4, down_votes=1, voters={"alice": "up"}, interactions=5)
    held = store.post(post_id)

    outcome = await VoteEngine(store).apply_vote(post_id, held.voters, "down", held, "alice")
    projected = outcome.apply_to(held)

    assert projected.up_votes == 3
    assert projected.down_votes == 2
    assert projected.interactions == 5
    assert projected.voters == {"alice": VoteDirection.DOWN}
    assert held.up_votes == 4
    stored = store.post(post_id)
    assert (stored.up_votes, stored.down_votes, stored.voters) == (3, 2, projected.voters)


def test_outcome_projection_ignores_uncommitted():
    post = Post(id="p1", upVotes=1)
    plan = plan_vote("alice", None, VoteDirection.UP, post)
    outcome = VoteOutcome(VoteStatus.FAILED, "p1", plan.previous, plan.current, tuple(plan.changes))
    assert outcome.apply_to(post) is post
    assert all(change.op != BatchOperation.DELETE for change in outcome.changes)
