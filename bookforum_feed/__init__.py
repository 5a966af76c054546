# bookforum_feed/__init__.py
from .config import FeedSettings
from .discussion import DiscussionFeed
from .enums import BatchOperation, FeedState, OrderByDirection, SharePlatform, VoteDirection, VoteStatus
from .feed import FEED_ORDER, FeedSynchronizer, FeedWindow
from .firestore_client import FirestoreDB
from .firestore_fields import FieldChange, FirestoreField
from .firestore_model import BaseFirestoreModel
from .firestore_store import FirestoreStore
from .identity import Identity
from .models import Comment, Post
from .reconciler import CommentCountReconciler
from .share import share_link
from .store import Cursor, DocumentStore, LiveSubscription, Page, StoreError
from .votes import VoteEngine, VoteOutcome, plan_vote


def init_bookforum_feed(
    database: FirestoreDB,
    identity: Identity = None,
    settings: FeedSettings = None,
) -> DiscussionFeed:
    """Build a :class:`DiscussionFeed` backed by ``database``."""
    return DiscussionFeed(FirestoreStore(database), identity=identity, settings=settings)


__all__ = [
    "BaseFirestoreModel",
    "BatchOperation",
    "Comment",
    "CommentCountReconciler",
    "Cursor",
    "DiscussionFeed",
    "DocumentStore",
    "FEED_ORDER",
    "FeedSettings",
    "FeedState",
    "FeedSynchronizer",
    "FeedWindow",
    "FieldChange",
    "FirestoreDB",
    "FirestoreField",
    "FirestoreStore",
    "Identity",
    "LiveSubscription",
    "OrderByDirection",
    "Page",
    "Post",
    "SharePlatform",
    "StoreError",
    "VoteDirection",
    "VoteEngine",
    "VoteOutcome",
    "VoteStatus",
    "init_bookforum_feed",
    "plan_vote",
    "share_link",
]
