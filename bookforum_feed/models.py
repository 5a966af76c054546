from datetime import datetime
from typing import Dict, Optional

from .enums import VoteDirection
from .firestore_model import BaseFirestoreModel
from .pydantic_compat import Field, before_validator

_VOTE_VALUES = {direction.value for direction in VoteDirection}


class Post(BaseFirestoreModel):
    """A discussion thread about one book."""

    class Settings:
        name = "posts"
        parent = None

    title: str = ""
    content: str = ""
    book_title: str = Field(default="", alias="bookTitle")
    book_author: str = Field(default="", alias="bookAuthor")
    user_id: Optional[str] = Field(default=None, alias="userId")
    user_name: str = Field(default="", alias="userName")
    user_photo: Optional[str] = Field(default=None, alias="userPhoto")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    # Vote tallies are aggregates of ``voters``.
    up_votes: int = Field(default=0, alias="upVotes")
    down_votes: int = Field(default=0, alias="downVotes")
    interactions: int = 0
    # Cache of the comments subcollection size, repaired on read.
    comment_count: int = Field(default=0, alias="commentCount")
    voters: Dict[str, VoteDirection] = Field(default_factory=dict)

    # Older documents carry nulls here, and the occasional unknown vote value.
    @before_validator("up_votes", "down_votes", "interactions", "comment_count")
    @classmethod
    def null_counter_is_zero(cls, value):
        return 0 if value is None else value

    @before_validator("voters")
    @classmethod
    def known_votes_only(cls, value):
        if not isinstance(value, dict):
            return {}
        return {uid: vote for uid, vote in value.items() if isinstance(vote, str) and vote in _VOTE_VALUES}

    def vote_of(self, user_id: Optional[str]) -> Optional[VoteDirection]:
        if not user_id:
            return None
        return self.voters.get(user_id)

    def tally(self, direction: VoteDirection) -> int:
        return getattr(self, direction.tally_field) or 0


class Comment(BaseFirestoreModel):
    class Settings:
        name = "comments"
        parent = Post

    text: str = ""
    user_id: Optional[str] = Field(default=None, alias="userId")
    user_name: str = Field(default="", alias="userName")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


Post.initialize_fields()
Comment.initialize_fields()
