"""
Document store contract consumed by the feed.

The feed, the reconciler and the vote engine only talk to storage through
:class:`DocumentStore`; :mod:`bookforum_feed.firestore_store` implements it on
top of Google Cloud Firestore.
"""

import abc
import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, List, NamedTuple, Optional, Sequence, Tuple, Type, TypeVar

from .firestore_fields import FieldChange
from .firestore_model import BaseFirestoreModel, FieldOrderType

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseFirestoreModel)

SnapshotHandler = Callable[[List[Any]], Awaitable[None]]
# (document_path, changes) pairs committed as one batch
BatchWrites = Sequence[Tuple[str, Sequence[FieldChange]]]


class StoreError(RuntimeError):
    """A store round-trip failed (network, permission, aborted commit...)."""


class Cursor(NamedTuple):
    """Resume point: ordering values of the last document of a page."""

    values: Tuple[Any, ...]

    @classmethod
    def after(cls, document: BaseFirestoreModel, order_by: List[FieldOrderType]) -> "Cursor":
        return cls(document.cursor_values(order_by))


class Page(NamedTuple):
    items: List[Any]
    cursor: Optional[Cursor]
    # Documents the query returned, including any that failed to parse.
    fetched: int


class LiveSubscription(Generic[ModelT]):
    """
    Delivery side of a standing query.

    Producers call :meth:`push` with the full ordered result set whenever it
    changes. The handler runs one delivery at a time; snapshots pushed while
    it is busy are coalesced so that only the newest one is delivered next.
    """

    def __init__(self, handler: SnapshotHandler, on_cancel: Optional[Callable[[], None]] = None):
        self._handler = handler
        self.on_cancel = on_cancel
        self._latest: Optional[List[ModelT]] = None
        self._pending = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self.active = True
        self.deliveries = 0
        self._task = asyncio.ensure_future(self._run())

    def push(self, documents: Sequence[ModelT]) -> None:
        if not self.active:
            return
        self._latest = list(documents)
        self._idle.clear()
        self._pending.set()

    async def _run(self) -> None:
        while True:
            await self._pending.wait()
            self._pending.clear()
            documents, self._latest = self._latest, None
            if documents is not None and self.active:
                try:
                    await self._handler(documents)
                except Exception:  # noqa: BLE001
                    logger.exception("Live query handler failed; waiting for the next snapshot.")
                self.deliveries += 1
            if not self._pending.is_set():
                self._idle.set()

    @property
    def idle(self) -> bool:
        return self._idle.is_set()

    async def settled(self) -> None:
        """Wait until every pushed snapshot has been handled."""
        await self._idle.wait()

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._latest = None
        self._idle.set()
        self._task.cancel()
        if self.on_cancel is not None:
            self.on_cancel()


class DocumentStore(abc.ABC):
    """Small operation set the feed needs from a document database."""

    @abc.abstractmethod
    async def get(self, model: Type[ModelT], doc_id: str) -> Optional[ModelT]:
        """Point read; ``None`` when the document does not exist."""

    @abc.abstractmethod
    async def live_query(
        self,
        model: Type[ModelT],
        order_by: List[FieldOrderType],
        limit: int,
        handler: SnapshotHandler,
    ) -> LiveSubscription:
        """Deliver the whole ordered result set to ``handler`` on every change."""

    @abc.abstractmethod
    async def paged_query(
        self,
        model: Type[ModelT],
        order_by: List[FieldOrderType],
        limit: int,
        after: Optional[Cursor] = None,
    ) -> Page:
        """One page of results strictly after ``after``."""

    @abc.abstractmethod
    async def count_children(self, parent_path: str, child_collection: str) -> int:
        """Number of documents in ``{parent_path}/{child_collection}``."""

    @abc.abstractmethod
    async def atomic_batch(self, writes: BatchWrites) -> None:
        """Apply every change of every document, or none of them."""
