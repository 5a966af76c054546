"""
Fixtures for the emulator-backed tests.

These tests only run against a local Firestore emulator:

    FIRESTORE_EMULATOR_HOST=localhost:8080 pytest tests/integration
"""

import os

import httpx
import pytest
import pytest_asyncio

from bookforum_feed import FirestoreDB, FirestoreStore

EMULATOR_HOST = os.environ.get("FIRESTORE_EMULATOR_HOST", "").strip()
DATABASE = os.environ.get("DATABASE", None) or None
# An unset CI secret expands to "", so fall through with ``or``.
PROJECT_ID = os.environ.get("GOOGLE_CLOUD_PROJECT") or "test-project"

IS_EMULATOR = bool(EMULATOR_HOST)


@pytest.fixture()
def firestore_db():
    """
    Function-scoped so each test gets a fresh AsyncClient bound to the
    current event loop.
    """
    return FirestoreDB(project_id=PROJECT_ID, database=DATABASE, emulator_host=EMULATOR_HOST)


@pytest.fixture()
def raw_client(firestore_db):
    """Raw AsyncClient pointing at the same emulator as the store."""
    return firestore_db.client


@pytest.fixture()
def firestore_store(firestore_db):
    return FirestoreStore(firestore_db)


@pytest_asyncio.fixture(autouse=True)
async def clean_firestore():
    """Wipe the emulator before and after each test."""
    await _wipe_emulator()
    yield
    await _wipe_emulator()


async def _wipe_emulator():
    db_name = DATABASE or "(default)"
    url = (
        f"http://{EMULATOR_HOST}/emulator/v1/projects/"
        f"{PROJECT_ID}/databases/{db_name}/documents"
    )
    async with httpx.AsyncClient() as client:
        await client.delete(url)
