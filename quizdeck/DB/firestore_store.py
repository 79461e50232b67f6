# firestore_store.py
# Description: RemoteStore backed by Cloud Firestore through firebase-admin
#
# Imports
import asyncio
from typing import Any, Callable, List, Optional, Sequence
#
# 3rd-Party Imports
import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from loguru import logger
#
# Local Imports
from quizdeck.Constants import FIRESTORE_BATCH_LIMIT
from quizdeck.DB.remote_store import Document, RemoteStore, WriteOp
from quizdeck.Sync.exceptions import (
    NotAuthenticatedError,
    PermissionDeniedError,
    RemoteStoreError,
    SyncBlockedError,
    SyncConnectionError,
    SyncError,
    classify_sync_error,
)
from quizdeck.Sync.subscription import Subscription
#
########################################################################################################################
#
# Functions:

DEFAULT_APP_NAME = "[DEFAULT]"


def _translate_error(exc: BaseException) -> SyncError:
    """Maps google-api-core / transport errors onto the sync error taxonomy."""
    classified = classify_sync_error(exc)
    if isinstance(classified, SyncBlockedError):
        return classified
    if isinstance(exc, google_exceptions.PermissionDenied):
        return PermissionDeniedError(str(exc))
    if isinstance(exc, google_exceptions.Unauthenticated):
        return NotAuthenticatedError(str(exc))
    if isinstance(exc, (google_exceptions.ServiceUnavailable, google_exceptions.DeadlineExceeded,
                        google_exceptions.RetryError)):
        return SyncConnectionError(str(exc))
    if isinstance(exc, google_exceptions.GoogleAPICallError):
        return RemoteStoreError(str(exc), code=str(exc.code) if exc.code is not None else None)
    return classified


def initialize_firestore_client(credentials_path: Optional[str] = None, project_id: Optional[str] = None,
                                app_name: str = DEFAULT_APP_NAME) -> Any:
    """Returns a Firestore client, initialising the firebase-admin app on first use."""
    try:
        app = firebase_admin.get_app(app_name)
    except ValueError:
        cred = credentials.Certificate(credentials_path) if credentials_path else credentials.ApplicationDefault()
        options = {"projectId": project_id} if project_id else None
        app = firebase_admin.initialize_app(cred, options, name=app_name)
        logger.info(f"Initialised firebase-admin app '{app_name}' (project: {project_id or 'from credentials'})")
    return firestore.client(app)


class FirestoreRemoteStore(RemoteStore):
    """
    Firestore-backed remote store.

    The firebase-admin client is blocking, so every call runs in a worker
    thread. `on_snapshot` callbacks arrive on Firestore's watch thread and are
    handed to the subscribing event loop with `call_soon_threadsafe`.
    """

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_config(cls, credentials_path: Optional[str], project_id: Optional[str]) -> "FirestoreRemoteStore":
        return cls(initialize_firestore_client(credentials_path, project_id))

    async def _call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except Exception as e:
            translated = _translate_error(e)
            logger.error(f"Firestore call {getattr(fn, '__name__', fn)} failed: {translated}")
            raise translated from e

    # --- Reads ---

    async def get_document(self, path: str) -> Optional[Document]:
        def _get():
            snap = self._client.document(path).get()
            return snap.to_dict() if snap.exists else None
        return await self._call(_get)

    async def list_collection(self, path: str) -> List[Document]:
        def _list():
            return [{**(doc.to_dict() or {}), "id": doc.id} for doc in self._client.collection(path).stream()]
        return await self._call(_list)

    async def has_documents(self, path: str) -> bool:
        def _first_document():
            return any(True for _ in self._client.collection(path).limit(1).stream())
        return await self._call(_first_document)

    # --- Writes ---

    async def set_document(self, path: str, data: Document, merge: bool = False) -> None:
        await self._call(lambda: self._client.document(path).set(data, merge=merge))

    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        def _commit(chunk: Sequence[WriteOp]):
            batch = self._client.batch()
            for op in chunk:
                ref = self._client.document(op.path)
                if op.is_delete:
                    batch.delete(ref)
                else:
                    batch.set(ref, op.data, merge=op.merge)
            batch.commit()

        for start in range(0, len(ops), FIRESTORE_BATCH_LIMIT):
            chunk = list(ops[start:start + FIRESTORE_BATCH_LIMIT])
            await self._call(_commit, chunk)
        logger.debug(f"Firestore batch committed {len(ops)} write(s)")

    # --- Live subscriptions ---

    def subscribe_collection(self, path: str) -> Subscription[List[Document]]:
        loop = asyncio.get_running_loop()
        watch = None

        def _detach():
            if watch is not None:
                watch.unsubscribe()

        sub: Subscription = Subscription(path, on_unsubscribe=_detach)

        def _on_snapshot(docs, changes, read_time):
            snapshot = [{**(doc.to_dict() or {}), "id": doc.id} for doc in docs]
            loop.call_soon_threadsafe(sub.push, snapshot)

        try:
            watch = self._client.collection(path).on_snapshot(_on_snapshot)
        except Exception as e:
            raise _translate_error(e) from e
        return sub

    def subscribe_document(self, path: str) -> Subscription[Optional[Document]]:
        loop = asyncio.get_running_loop()
        watch = None

        def _detach():
            if watch is not None:
                watch.unsubscribe()

        sub: Subscription = Subscription(path, on_unsubscribe=_detach)

        def _on_snapshot(doc_snapshots, changes, read_time):
            snap = doc_snapshots[0] if doc_snapshots else None
            data = snap.to_dict() if snap is not None and snap.exists else None
            loop.call_soon_threadsafe(sub.push, data)

        try:
            watch = self._client.document(path).on_snapshot(_on_snapshot)
        except Exception as e:
            raise _translate_error(e) from e
        return sub

    async def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            await asyncio.to_thread(close)

#
# End of firestore_store.py
########################################################################################################################
