"""
Live, paginated window over the most recent posts.

The first page is a live query: every snapshot replaces the whole window.
Further pages are one-shot queries resumed from the cursor and appended to
the end of the window. Both paths run each post through the comment-count
reconciler before exposing it.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from .config import FeedSettings
from .enums import FeedState
from .models import Post
from .pydantic_compat import BaseModel, Field
from .reconciler import CommentCountReconciler
from .store import Cursor, DocumentStore, LiveSubscription, StoreError

logger = logging.getLogger(__name__)

# Newest first; the document id breaks createdAt ties so pages never overlap.
FEED_ORDER = [Post.created_at.desc(), Post.id.desc()]


class FeedWindow(BaseModel):
    posts: List[Post] = Field(default_factory=list)
    cursor: Optional[Any] = None
    has_more: bool = False
    loading: bool = False
    ready: bool = False

    def index_of(self, post_id: str) -> Optional[int]:
        for index, post in enumerate(self.posts):
            if post.id == post_id:
                return index
        return None


class FeedSynchronizer:
    """
    Owns one :class:`FeedWindow`. Not meant to be shared between views.

    ``idle → subscribed ⇄ extending``; :meth:`unsubscribe` moves to the
    terminal ``unsubscribed`` state, after which the window never changes.
    """

    def __init__(
        self,
        store: DocumentStore,
        reconciler: Optional[CommentCountReconciler] = None,
        settings: Optional[FeedSettings] = None,
    ):
        self._store = store
        self._reconciler = reconciler or CommentCountReconciler(store)
        self._settings = settings or FeedSettings()
        self.window = FeedWindow()
        self.state = FeedState.IDLE
        self._subscription: Optional[LiveSubscription] = None
        self._on_change: Optional[Callable[[FeedWindow], None]] = None
        self._ready: Optional[asyncio.Event] = None

    @property
    def page_size(self) -> int:
        return self._settings.page_size

    @property
    def reconciler(self) -> CommentCountReconciler:
        return self._reconciler

    # --------------------------------------------------------------------------
    # Live window
    # --------------------------------------------------------------------------
    async def subscribe(self, on_change: Optional[Callable[[FeedWindow], None]] = None) -> bool:
        """
        Open the live query over the newest ``page_size`` posts.

        Returns ``False`` (and stays idle, so the call can be retried) when the
        store refuses the subscription.
        """
        if self.state != FeedState.IDLE:
            raise RuntimeError(f"Cannot subscribe a feed in state {self.state.value}.")

        self._on_change = on_change
        self._ready = asyncio.Event()
        try:
            self._subscription = await self._store.live_query(
                Post, FEED_ORDER, self.page_size, self._on_snapshot
            )
        except StoreError as exc:
            logger.error(f"Error subscribing to posts: {exc}")
            return False

        self.state = FeedState.SUBSCRIBED
        return True

    async def _on_snapshot(self, posts: List[Post]) -> None:
        reconciled = await self._reconciler.reconcile_many(posts)
        if self.state == FeedState.UNSUBSCRIBED:
            return

        window = self.window
        window.posts = reconciled
        window.cursor = Cursor.after(reconciled[-1], FEED_ORDER) if reconciled else None
        window.has_more = len(posts) == self.page_size
        window.ready = True
        self._ready.set()
        logger.debug(f"Feed window replaced with {len(reconciled)} posts (has_more={window.has_more})")
        self._notify()

    async def wait_ready(self) -> FeedWindow:
        """Wait for the first live snapshot to be applied."""
        if self._ready is None:
            raise RuntimeError("Feed is not subscribed.")
        await self._ready.wait()
        return self.window

    async def settled(self) -> None:
        """
        Wait until pending live deliveries and comment-count repairs are done.

        A repair write can itself trigger a new snapshot, hence the loop.
        """
        while True:
            if self._subscription is not None:
                await self._subscription.settled()
            await self._reconciler.drain()
            subscription_idle = self._subscription is None or self._subscription.idle
            if subscription_idle and not self._reconciler.pending_repairs:
                return

    # --------------------------------------------------------------------------
    # Pagination
    # --------------------------------------------------------------------------
    async def load_more(self) -> FeedWindow:
        """
        Append the next page after the cursor.

        Ignored while nothing more is available, a load is in flight, or the
        first snapshot has not arrived yet. A failed query leaves the window
        untouched and clears ``loading`` so the caller can retry.
        """
        window = self.window
        if self.state != FeedState.SUBSCRIBED or not window.ready:
            logger.debug(f"Ignoring load_more in state {self.state.value}")
            return window
        if not window.has_more or window.loading:
            logger.debug("Ignoring load_more: nothing more to load or a load is in flight")
            return window

        window.loading = True
        self.state = FeedState.EXTENDING
        try:
            page = await self._store.paged_query(Post, FEED_ORDER, self.page_size, after=window.cursor)
            posts = await self._reconciler.reconcile_many(page.items)
        except StoreError as exc:
            logger.error(f"Error loading more posts: {exc}")
            return window
        finally:
            window.loading = False
            if self.state == FeedState.EXTENDING:
                self.state = FeedState.SUBSCRIBED

        if self.state == FeedState.UNSUBSCRIBED:
            return window

        # A live replacement may have landed meanwhile; the page is appended
        # to whatever the window holds now.
        window.posts = window.posts + posts
        if page.cursor is not None:
            window.cursor = page.cursor
        window.has_more = page.fetched == self.page_size
        logger.debug(f"Feed window extended by {len(posts)} posts (has_more={window.has_more})")
        self._notify()
        return window

    # --------------------------------------------------------------------------
    # Window access
    # --------------------------------------------------------------------------
    def find(self, post_id: str) -> Optional[Post]:
        index = self.window.index_of(post_id)
        return None if index is None else self.window.posts[index]

    def replace_post(self, held: Post, updated: Post) -> bool:
        """
        Swap ``held`` for ``updated`` if the window still holds that exact
        object; a newer snapshot wins over a local projection.
        """
        if self.state == FeedState.UNSUBSCRIBED:
            return False
        for index, post in enumerate(self.window.posts):
            if post is held:
                posts = list(self.window.posts)
                posts[index] = updated
                self.window.posts = posts
                self._notify()
                return True
        return False

    def unsubscribe(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
        self.state = FeedState.UNSUBSCRIBED
        if self._ready is not None:
            # Release anyone still waiting for a first snapshot.
            self._ready.set()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.window)
