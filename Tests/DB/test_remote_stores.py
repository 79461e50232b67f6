# Tests/DB/test_remote_stores.py
import asyncio
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as google_exceptions

from quizdeck.DB.firestore_store import FirestoreRemoteStore, _translate_error
from quizdeck.DB.remote_store import InMemoryRemoteStore, WriteOp, split_path
from quizdeck.Sync.exceptions import (
    NotAuthenticatedError,
    PermissionDeniedError,
    RemoteStoreError,
    SyncBlockedError,
    SyncConnectionError,
)

SESSIONS = "users/u1/sessions"


def test_split_path():
    assert split_path("users/u1/sessions/s1") == ("users/u1/sessions", "s1")
    with pytest.raises(ValueError):
        split_path("users")


class TestInMemoryRemoteStore:
    async def test_documents_and_collections(self, remote):
        await remote.set_document(f"{SESSIONS}/s1", {"score": 1})
        await remote.set_document(f"{SESSIONS}/s2", {"score": 2})
        await remote.set_document(f"{SESSIONS}/s1/answers/a1", {"nested": True})

        docs = await remote.list_collection(SESSIONS)
        assert sorted(d["id"] for d in docs) == ["s1", "s2"]
        assert await remote.has_documents(SESSIONS) is True
        assert await remote.has_documents("users/u1/quizzes") is False
        assert await remote.get_document(f"{SESSIONS}/missing") is None

    async def test_merge_write_keeps_other_fields(self, remote):
        await remote.set_document("users/u1/metadata/app", {"createdAt": "t0", "lastSync": "t0"})
        await remote.set_document("users/u1/metadata/app", {"lastSync": "t1"}, merge=True)
        assert await remote.get_document("users/u1/metadata/app") == {"createdAt": "t0", "lastSync": "t1"}

    async def test_batch_produces_one_snapshot_per_subscription(self, remote):
        sub = remote.subscribe_collection(SESSIONS)
        assert await sub.__anext__() == []

        await remote.batch_write([WriteOp(f"{SESSIONS}/s1", {"score": 1}), WriteOp(f"{SESSIONS}/s2", {"score": 2})])
        await remote.batch_write([WriteOp(f"{SESSIONS}/s1")])

        first = await sub.__anext__()
        second = await sub.__anext__()
        assert sorted(d["id"] for d in first) == ["s1", "s2"]
        assert [d["id"] for d in second] == ["s2"]
        sub.unsubscribe()
        assert remote.subscriber_count(SESSIONS) == 0

    async def test_document_subscription(self, remote):
        sub = remote.subscribe_document("users/u1/settings/app")
        assert await sub.__anext__() is None

        await remote.set_document("users/u1/settings/app", {"theme": "dark"})
        assert await sub.__anext__() == {"theme": "dark"}
        sub.unsubscribe()

    async def test_snapshots_are_copies(self, remote):
        await remote.set_document(f"{SESSIONS}/s1", {"tags": ["a"]})
        doc = await remote.get_document(f"{SESSIONS}/s1")
        doc["tags"].append("b")
        assert (await remote.get_document(f"{SESSIONS}/s1"))["tags"] == ["a"]


# --- Firestore adapter ---

@pytest.fixture
def client():
    return MagicMock(name="firestore_client")


@pytest.fixture
def firestore_store(client):
    return FirestoreRemoteStore(client)


def fake_doc(doc_id, data, exists=True):
    doc = MagicMock()
    doc.id = doc_id
    doc.exists = exists
    doc.to_dict.return_value = data if exists else None
    return doc


class TestFirestoreRemoteStore:
    async def test_get_document(self, firestore_store, client):
        client.document.return_value.get.return_value = fake_doc("app", {"theme": "dark"})
        assert await firestore_store.get_document("users/u1/settings/app") == {"theme": "dark"}
        client.document.assert_called_with("users/u1/settings/app")

    async def test_missing_document_is_none(self, firestore_store, client):
        client.document.return_value.get.return_value = fake_doc("app", None, exists=False)
        assert await firestore_store.get_document("users/u1/settings/app") is None

    async def test_list_collection_folds_in_ids(self, firestore_store, client):
        client.collection.return_value.stream.return_value = [fake_doc("s1", {"score": 3})]
        assert await firestore_store.list_collection(SESSIONS) == [{"score": 3, "id": "s1"}]

    async def test_has_documents_reads_at_most_one_document(self, firestore_store, client):
        client.collection.return_value.limit.return_value.stream.return_value = iter([])
        assert await firestore_store.has_documents(SESSIONS) is False
        client.collection.return_value.limit.assert_called_once_with(1)

    async def test_large_batches_are_split_into_chunks(self, firestore_store, client):
        ops = [WriteOp(f"{SESSIONS}/s{i}", {"i": i}) for i in range(1000)] + [WriteOp(f"{SESSIONS}/gone")]

        await firestore_store.batch_write(ops)

        batch = client.batch.return_value
        assert client.batch.call_count == 3
        assert batch.commit.call_count == 3
        assert batch.set.call_count == 1000
        batch.delete.assert_called_once()

    async def test_permission_denied_is_translated(self, firestore_store, client):
        client.document.return_value.get.side_effect = google_exceptions.PermissionDenied("denied")
        with pytest.raises(PermissionDeniedError):
            await firestore_store.get_document("users/u1/settings/app")

    async def test_collection_snapshots_are_bridged_to_the_loop(self, firestore_store, client):
        sub = firestore_store.subscribe_collection(SESSIONS)
        callback = client.collection.return_value.on_snapshot.call_args.args[0]

        await asyncio.to_thread(callback, [fake_doc("s1", {"score": 1})], [], None)

        assert await asyncio.wait_for(sub.__anext__(), 1) == [{"score": 1, "id": "s1"}]
        sub.unsubscribe()
        client.collection.return_value.on_snapshot.return_value.unsubscribe.assert_called_once()

    async def test_document_snapshot_of_missing_document(self, firestore_store, client):
        sub = firestore_store.subscribe_document("users/u1/settings/app")
        callback = client.document.return_value.on_snapshot.call_args.args[0]

        callback([fake_doc("app", None, exists=False)], [], None)

        assert await asyncio.wait_for(sub.__anext__(), 1) is None
        sub.unsubscribe()


@pytest.mark.parametrize("exc, expected", [
    (google_exceptions.PermissionDenied("denied"), PermissionDeniedError),
    (google_exceptions.Unauthenticated("expired"), NotAuthenticatedError),
    (google_exceptions.ServiceUnavailable("down"), SyncConnectionError),
    (google_exceptions.DeadlineExceeded("slow"), SyncConnectionError),
    (google_exceptions.NotFound("nope"), RemoteStoreError),
    (Exception("net::ERR_BLOCKED_BY_CLIENT"), SyncBlockedError),
])
def test_translate_error(exc, expected):
    assert isinstance(_translate_error(exc), expected)
