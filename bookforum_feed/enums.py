from enum import Enum


class BatchOperation(str, Enum):
    SET = "set"
    INCREMENT = "increment"
    DELETE = "delete"


class OrderByDirection(str, Enum):
    DESCENDING = "DESCENDING"
    ASCENDING = "ASCENDING"

    def __str__(self):
        return self.value


class VoteDirection(str, Enum):
    UP = "up"
    DOWN = "down"

    @property
    def tally_field(self) -> str:
        """Name of the ``Post`` attribute counting votes in this direction."""
        return f"{self.value}_votes"


class VoteStatus(str, Enum):
    IGNORED = "ignored"
    COMMITTED = "committed"
    FAILED = "failed"


class FeedState(str, Enum):
    IDLE = "idle"
    SUBSCRIBED = "subscribed"
    EXTENDING = "extending"
    UNSUBSCRIBED = "unsubscribed"


class SharePlatform(str, Enum):
    TWITTER = "twitter"
    FACEBOOK = "facebook"
    COPY = "copy"
