import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def default_level(interactions: int) -> int:
    """One level per ten interactions, starting at level 1."""
    return 1 + max(interactions or 0, 0) // 10


class Identity:
    """
    Session collaborator: who is signed in, and how interaction counts map
    to the level badge shown next to an author.
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        level_for_interactions: Callable[[int], int] = default_level,
    ):
        self._user_id = user_id
        self._level_for_interactions = level_for_interactions

    @property
    def current_user(self) -> Optional[str]:
        return self._user_id

    def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("Cannot sign in without a user id.")
        self._user_id = user_id
        logger.debug(f"Signed in as {user_id}")

    def sign_out(self) -> None:
        self._user_id = None

    def level_for_interactions(self, interactions: int) -> int:
        return self._level_for_interactions(interactions)
