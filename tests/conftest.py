import pytest

from bookforum_feed import FeedSettings

from .fakes import InMemoryStore


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def settings():
    return FeedSettings()
