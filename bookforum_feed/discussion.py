import logging
from typing import Callable, Optional, Union

from .config import FeedSettings
from .enums import SharePlatform, VoteDirection, VoteStatus
from .feed import FeedSynchronizer, FeedWindow
from .identity import Identity
from .models import Post
from .reconciler import CommentCountReconciler
from .share import share_link
from .store import DocumentStore, StoreError
from .votes import VoteEngine, VoteOutcome

logger = logging.getLogger(__name__)


class DiscussionFeed:
    """
    What the "recent discussions" view talks to.

    Usage::

        feed = DiscussionFeed(FirestoreStore(db), Identity("uid-1"))
        await feed.subscribe_feed()
        await feed.vote(feed.window.posts[0].id, "up")
        await feed.load_more()
        feed.close()
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: Optional[Identity] = None,
        settings: Optional[FeedSettings] = None,
        clipboard: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.identity = identity or Identity()
        self.settings = settings or FeedSettings()
        self.reconciler = CommentCountReconciler(store)
        self.synchronizer = FeedSynchronizer(store, self.reconciler, self.settings)
        self.votes = VoteEngine(store)
        self._clipboard = clipboard

    @property
    def window(self) -> FeedWindow:
        return self.synchronizer.window

    async def subscribe_feed(self, on_change: Optional[Callable[[FeedWindow], None]] = None) -> FeedWindow:
        """Start the live window and wait for its first snapshot."""
        if not await self.synchronizer.subscribe(on_change):
            return self.window
        return await self.synchronizer.wait_ready()

    async def load_more(self) -> FeedWindow:
        return await self.synchronizer.load_more()

    async def vote(self, post_id: str, direction: Union[VoteDirection, str]) -> VoteOutcome:
        """
        Cast, switch or retract the current user's vote on ``post_id``.

        Callers may ignore the result; failures are logged, never raised.
        """
        acting_user = self.identity.current_user
        if not acting_user:
            return await self.votes.apply_vote(post_id, None, direction, None, None)

        post = self.synchronizer.find(post_id)
        if post is None:
            try:
                post = await self.store.get(Post, post_id)
            except StoreError as exc:
                logger.error(f"Could not read post {post_id} before voting: {exc}")
                return VoteOutcome(VoteStatus.FAILED, post_id)
        if post is None:
            logger.warning(f"Ignoring vote on unknown post {post_id}")
            return VoteOutcome(VoteStatus.IGNORED, post_id)

        outcome = await self.votes.apply_vote(post_id, post.voters, direction, post, acting_user)
        if outcome.status == VoteStatus.COMMITTED:
            self.synchronizer.replace_post(post, outcome.apply_to(post))
        return outcome

    def share_link(self, post_id: str, platform: Union[SharePlatform, str]) -> Optional[str]:
        post = self.synchronizer.find(post_id)
        if post is None:
            logger.warning(f"Cannot share post {post_id}: not in the feed window")
            return None
        return share_link(post, platform, self.settings, clipboard=self._clipboard)

    def level_for(self, post: Post) -> int:
        return self.identity.level_for_interactions(post.interactions or 0)

    async def settled(self) -> None:
        await self.synchronizer.settled()

    def close(self) -> None:
        """Tear the live window down. In-flight writes still complete."""
        self.synchronizer.unsubscribe()
