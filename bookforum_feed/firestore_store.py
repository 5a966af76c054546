import asyncio
import logging
from enum import Enum
from typing import Any, List, Optional, Type

from google.api_core.exceptions import GoogleAPIError
from google.cloud.firestore_v1 import DELETE_FIELD, Increment
from google.cloud.firestore_v1.field_path import FieldPath

from .enums import BatchOperation
from .firestore_client import FirestoreDB
from .firestore_fields import FieldChange
from .firestore_model import FieldOrderType
from .pydantic_compat import ValidationError
from .store import BatchWrites, Cursor, DocumentStore, LiveSubscription, ModelT, Page, SnapshotHandler, StoreError

logger = logging.getLogger(__name__)


class FirestoreStore(DocumentStore):
    """
    :class:`DocumentStore` backed by Google Cloud Firestore.

    SDK failures surface as :class:`StoreError`.
    """

    def __init__(self, db: FirestoreDB):
        if db is None:
            raise RuntimeError("Database must be initialized before using the store.")
        self._db = db

    # --------------------------------------------------------------------------
    # Internal query helpers
    # --------------------------------------------------------------------------
    @staticmethod
    def _apply_order(query, order_by: List[FieldOrderType]):
        for field, direction in order_by:
            query = query.order_by(str(field), direction=str(direction))
        return query

    @staticmethod
    def _start_values(collection_ref, order_by: List[FieldOrderType], cursor: Cursor) -> List[Any]:
        values = []
        for (field, _direction), value in zip(order_by, cursor.values):
            # Document-id ordering needs a reference, not the bare id.
            if str(field) == FieldPath.document_id():
                value = collection_ref.document(value)
            values.append(value)
        return values

    @staticmethod
    def _cursor_of(doc, order_by: List[FieldOrderType]) -> Cursor:
        # Built from the raw snapshot so a skipped document still advances paging.
        data = doc.to_dict() or {}
        return Cursor(tuple(
            doc.id if str(field) == FieldPath.document_id() else data.get(str(field))
            for field, _direction in order_by
        ))

    @staticmethod
    def _to_models(model: Type[ModelT], docs) -> List[ModelT]:
        items = []
        for doc in docs:
            try:
                items.append(model.from_document(doc.id, doc.to_dict()))
            except ValidationError as exc:
                logger.error(f"Skipping malformed {model.get_collection_name()}/{doc.id}: {exc}")
        return items

    @staticmethod
    def _encode_change(change: FieldChange) -> Any:
        if change.op == BatchOperation.INCREMENT:
            return Increment(change.value)
        if change.op == BatchOperation.DELETE:
            return DELETE_FIELD
        if isinstance(change.value, Enum):
            return change.value.value
        return change.value

    # --------------------------------------------------------------------------
    # DocumentStore
    # --------------------------------------------------------------------------
    async def get(self, model: Type[ModelT], doc_id: str) -> Optional[ModelT]:
        doc_ref = self._db.client.collection(model.collection_path()).document(doc_id)
        try:
            doc_snap = await doc_ref.get()
        except GoogleAPIError as exc:
            raise StoreError(f"Reading {model.get_collection_name()}/{doc_id} failed: {exc}") from exc

        if not doc_snap.exists:
            return None
        try:
            return model.from_document(doc_snap.id, doc_snap.to_dict())
        except ValidationError as exc:
            raise StoreError(f"Malformed {model.get_collection_name()}/{doc_id}: {exc}") from exc

    async def live_query(
        self,
        model: Type[ModelT],
        order_by: List[FieldOrderType],
        limit: int,
        handler: SnapshotHandler,
    ) -> LiveSubscription:
        loop = asyncio.get_running_loop()
        collection_ref = self._db.listen_client.collection(model.collection_path())
        query = self._apply_order(collection_ref, order_by).limit(limit)
        subscription = LiveSubscription(handler)

        # Runs on the listener's background thread.
        def on_snapshot(docs, changes, read_time):
            documents = self._to_models(model, docs)
            if subscription.active and not loop.is_closed():
                loop.call_soon_threadsafe(subscription.push, documents)

        try:
            watch = query.on_snapshot(on_snapshot)
        except GoogleAPIError as exc:
            subscription.cancel()
            raise StoreError(f"Listening to {model.collection_path()} failed: {exc}") from exc

        subscription.on_cancel = watch.unsubscribe
        logger.debug(f"Live query opened on {model.collection_path()} (limit={limit})")
        return subscription

    async def paged_query(
        self,
        model: Type[ModelT],
        order_by: List[FieldOrderType],
        limit: int,
        after: Optional[Cursor] = None,
    ) -> Page:
        collection_ref = self._db.client.collection(model.collection_path())
        query = self._apply_order(collection_ref, order_by)
        if after is not None:
            query = query.start_after(self._start_values(collection_ref, order_by, after))
        query = query.limit(limit)

        try:
            docs = [doc async for doc in query.stream()]
        except GoogleAPIError as exc:
            raise StoreError(f"Paging {model.collection_path()} failed: {exc}") from exc

        items = self._to_models(model, docs)
        cursor = self._cursor_of(docs[-1], order_by) if docs else None
        return Page(items, cursor, len(docs))

    async def count_children(self, parent_path: str, child_collection: str) -> int:
        query = self._db.client.collection(f"{parent_path}/{child_collection}")
        try:
            try:
                count_snapshot = await query.count().get()
                return count_snapshot[0][0].value
            except AttributeError:
                logger.warning("Firestore: Performing count by fetching all items with empty select")
                docs = await query.select([]).get()
                return len(docs)
        except GoogleAPIError as exc:
            raise StoreError(f"Counting {parent_path}/{child_collection} failed: {exc}") from exc

    async def atomic_batch(self, writes: BatchWrites) -> None:
        db_client = self._db.client
        batch = db_client.batch()

        staged = 0
        for document_path, changes in writes:
            updates = {
                FieldPath(*change.field).to_api_repr(): self._encode_change(change)
                for change in changes
            }
            if not updates:
                continue
            logger.debug(f"Batch update: {document_path} - updates={updates}")
            batch.update(db_client.document(document_path), updates)
            staged += 1

        if not staged:
            return
        try:
            await batch.commit()
        except GoogleAPIError as exc:
            raise StoreError(f"Batch commit failed: {exc}") from exc
