"""
Vote state machine.

A user's vote lives in ``Post.voters[uid]``; ``upVotes``, ``downVotes`` and
``interactions`` are aggregates over it. Moving one user from one state to
another is planned locally and committed as a single atomic batch:

===========  ==========  =============================================
previous     requested   changes
===========  ==========  =============================================
none         up          upVotes +1, interactions +1, voters.uid = up
up           up          upVotes -1, interactions -1, voters.uid deleted
up           down        upVotes -1, downVotes +1, voters.uid = down
===========  ==========  =============================================

Removing the old vote is guarded by the tally the caller's copy of the post
shows: when that tally is already 0, neither the tally, ``interactions`` nor
the ledger entry is touched, so a stale copy can never push a tally below
zero. The guard reads a local snapshot rather than a server-side value, so
racing voters may still leave tallies approximate.
"""

import logging
from typing import Dict, List, Mapping, NamedTuple, Optional, Tuple, Union

from .enums import BatchOperation, VoteDirection, VoteStatus
from .firestore_fields import FieldChange
from .models import Post
from .pydantic_compat import model_copy_compat
from .store import DocumentStore, StoreError

logger = logging.getLogger(__name__)

_COUNTER_ATTRS = {
    str(Post.up_votes): "up_votes",
    str(Post.down_votes): "down_votes",
    str(Post.interactions): "interactions",
}


class VotePlan(NamedTuple):
    previous: Optional[VoteDirection]
    current: Optional[VoteDirection]
    changes: List[FieldChange]


class VoteOutcome(NamedTuple):
    status: VoteStatus
    post_id: str
    previous: Optional[VoteDirection] = None
    current: Optional[VoteDirection] = None
    changes: Tuple[FieldChange, ...] = ()

    def apply_to(self, post: Post) -> Post:
        """Project the committed changes onto a local copy of ``post``."""
        if self.status != VoteStatus.COMMITTED:
            return post

        update = {}
        voters = dict(post.voters)
        for change in self.changes:
            if change.field[0] == str(Post.voters):
                if change.op == BatchOperation.DELETE:
                    voters.pop(change.field[1], None)
                else:
                    voters[change.field[1]] = change.value
                continue
            attr = _COUNTER_ATTRS[change.field[0]]
            update[attr] = update.get(attr, getattr(post, attr)) + change.value
        update["voters"] = voters
        return model_copy_compat(post, update=update)


def _stage(staged: Dict[Tuple[str, ...], FieldChange], change: FieldChange) -> None:
    existing = staged.pop(change.field, None)
    if (
        existing is not None
        and existing.op == BatchOperation.INCREMENT
        and change.op == BatchOperation.INCREMENT
    ):
        total = existing.value + change.value
        if total:
            staged[change.field] = existing._replace(value=total)
        return
    staged[change.field] = change


def plan_vote(
    acting_user: str,
    previous: Optional[VoteDirection],
    requested: VoteDirection,
    post: Post,
) -> VotePlan:
    """
    Compute the minimal set of field changes moving ``acting_user`` from
    ``previous`` to ``requested`` (or retracting when they are equal).

    Opposite increments on the same field cancel out and a ledger delete
    followed by a set collapses into the set.
    """
    staged: Dict[Tuple[str, ...], FieldChange] = {}
    ledger_entry = Post.voters.child(acting_user)

    current = previous
    if previous is not None:
        if post.tally(previous) > 0:
            _stage(staged, getattr(Post, previous.tally_field).increment(-1))
            _stage(staged, Post.interactions.increment(-1))
            _stage(staged, ledger_entry.delete())
            current = None
        else:
            logger.warning(
                f"Post {post.id}: {previous.value} tally is already 0 while {acting_user} "
                f"holds a {previous.value} vote; leaving the old vote in place"
            )

    if requested != previous:
        _stage(staged, getattr(Post, requested.tally_field).increment(1))
        _stage(staged, Post.interactions.increment(1))
        _stage(staged, ledger_entry.set(requested))
        current = requested

    return VotePlan(previous, current, list(staged.values()))


class VoteEngine:
    def __init__(self, store: DocumentStore):
        self._store = store

    async def apply_vote(
        self,
        post_id: str,
        current_voters: Optional[Mapping[str, Union[VoteDirection, str]]],
        requested: Union[VoteDirection, str],
        post: Post,
        acting_user: Optional[str],
    ) -> VoteOutcome:
        """
        Move ``acting_user``'s vote on ``post_id`` towards ``requested``.

        Signed-out callers, and retractions the tally guard refuses, are
        ignored without touching the store. A failed commit is logged and
        reported as :attr:`VoteStatus.FAILED`; it is not retried, the next
        live snapshot shows the stored state.
        """
        if not acting_user:
            logger.debug(f"Ignoring vote on post {post_id}: nobody is signed in")
            return VoteOutcome(VoteStatus.IGNORED, post_id)

        requested = VoteDirection(requested)
        previous = (current_voters or {}).get(acting_user)
        previous = VoteDirection(previous) if previous else None

        plan = plan_vote(acting_user, previous, requested, post)
        if not plan.changes:
            return VoteOutcome(VoteStatus.IGNORED, post_id, plan.previous, plan.current)
        try:
            await self._store.atomic_batch([(Post.document_path(post_id), plan.changes)])
        except StoreError as exc:
            logger.error(f"Error updating vote of {acting_user} on post {post_id}: {exc}")
            return VoteOutcome(VoteStatus.FAILED, post_id, plan.previous, plan.current, tuple(plan.changes))

        logger.debug(
            f"Vote on post {post_id} by {acting_user}: "
            f"{getattr(plan.previous, 'value', None)} -> {getattr(plan.current, 'value', None)}"
        )
        return VoteOutcome(VoteStatus.COMMITTED, post_id, plan.previous, plan.current, tuple(plan.changes))
