"""
Repair-on-read for ``Post.commentCount``.

Comments are created through paths that do not reliably keep the cached
counter current, so the cache is never trusted: each read counts the
``posts/{id}/comments`` subcollection and heals the cache when it drifted.
"""

import asyncio
import logging
from typing import List, Sequence, Set

from .models import Comment, Post
from .pydantic_compat import model_copy_compat
from .store import DocumentStore, StoreError

logger = logging.getLogger(__name__)


class CommentCountReconciler:
    def __init__(self, store: DocumentStore):
        self._store = store
        self._repairs: Set[asyncio.Task] = set()

    @property
    def pending_repairs(self) -> int:
        return len(self._repairs)

    async def reconcile(self, post: Post) -> Post:
        """
        Return ``post`` with ``comment_count`` equal to the live number of comments.

        A mismatch schedules a background write of the corrected count; the
        returned copy carries the corrected value whether or not that write
        succeeds. If the count itself cannot be read, ``post`` is returned as is.
        """
        try:
            actual = await self._store.count_children(post.path, Comment.get_collection_name())
        except StoreError as exc:
            logger.error(f"Could not count comments of post {post.id}: {exc}")
            return post

        if actual == post.comment_count:
            return post

        logger.info(f"Comment count of post {post.id} drifted: cached={post.comment_count}, actual={actual}")
        self._schedule_repair(post, actual)
        return model_copy_compat(post, update={"comment_count": actual})

    async def reconcile_many(self, posts: Sequence[Post]) -> List[Post]:
        """Reconcile concurrently, keeping the input order."""
        return list(await asyncio.gather(*(self.reconcile(post) for post in posts)))

    async def drain(self) -> None:
        """Wait for every scheduled repair write to finish."""
        while self._repairs:
            await asyncio.gather(*list(self._repairs))

    def _schedule_repair(self, post: Post, actual: int) -> None:
        task = asyncio.ensure_future(self._persist(post, actual))
        self._repairs.add(task)
        task.add_done_callback(self._repairs.discard)

    async def _persist(self, post: Post, actual: int) -> None:
        try:
            await self._store.atomic_batch([(post.path, [Post.comment_count.set(actual)])])
        except StoreError as exc:
            # The next reconciliation of this post retries implicitly.
            logger.error(f"Could not repair comment count of post {post.id}: {exc}")
