# Tests/conftest.py
import pytest

from quizdeck.auth import AuthContext
from quizdeck.Constants import (
    COLLECTION_FLASHCARDS,
    COLLECTION_QUIZZES,
    COLLECTION_SESSIONS,
    LOCAL_KEY_FLASHCARDS,
    LOCAL_KEY_QUIZZES,
    LOCAL_KEY_SESSIONS,
    LOCAL_KEY_SETTINGS,
)
from quizdeck.DB.local_store import LocalCollection, LocalDocument
from quizdeck.DB.remote_store import InMemoryRemoteStore
from quizdeck.schemas import default_settings

from quizdeck_test_utils import MemoryKeyValueStore


# --- Fixtures ---

@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def remote():
    return InMemoryRemoteStore()


@pytest.fixture
def auth():
    return AuthContext(user_id="user-123", is_configured=True, display_name="Test User")


@pytest.fixture
def quizzes_local(kv_store):
    return LocalCollection(kv_store, LOCAL_KEY_QUIZZES, COLLECTION_QUIZZES)


@pytest.fixture
def sessions_local(kv_store):
    return LocalCollection(kv_store, LOCAL_KEY_SESSIONS, COLLECTION_SESSIONS)


@pytest.fixture
def flashcards_local(kv_store):
    return LocalCollection(kv_store, LOCAL_KEY_FLASHCARDS, COLLECTION_FLASHCARDS)


@pytest.fixture
def settings_local(kv_store):
    return LocalDocument(kv_store, LOCAL_KEY_SETTINGS, default_settings)
