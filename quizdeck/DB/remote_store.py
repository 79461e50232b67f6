# remote_store.py
# Description: Cloud document store interface and an in-process reference backend
#
# Imports
import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from quizdeck.Sync.subscription import Subscription
#
########################################################################################################################
#
# Functions:

Document = Dict[str, Any]


@dataclass(frozen=True)
class WriteOp:
    """One entry of a batched write. `data=None` deletes the document."""
    path: str
    data: Optional[Document] = None
    merge: bool = False

    @property
    def is_delete(self) -> bool:
        return self.data is None


def split_path(path: str) -> Tuple[str, str]:
    """Splits a document path into (collection path, document id)."""
    parent, _, doc_id = path.strip("/").rpartition("/")
    if not parent or not doc_id:
        raise ValueError(f"'{path}' is not a document path")
    return parent, doc_id


class RemoteStore(ABC):
    """
    Per-user document collections in a cloud database.

    Collection snapshots are lists of documents with their document id folded
    in under `id`. A missing document reads as `None`, a missing collection as
    an empty list.
    """

    @abstractmethod
    async def get_document(self, path: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def set_document(self, path: str, data: Document, merge: bool = False) -> None:
        ...

    @abstractmethod
    async def list_collection(self, path: str) -> List[Document]:
        ...

    @abstractmethod
    async def has_documents(self, path: str) -> bool:
        ...

    @abstractmethod
    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        ...

    @abstractmethod
    def subscribe_collection(self, path: str) -> Subscription[List[Document]]:
        """Live snapshots of a collection; the current state is delivered first."""
        ...

    @abstractmethod
    def subscribe_document(self, path: str) -> Subscription[Optional[Document]]:
        """Live snapshots of one document (`None` while it does not exist)."""
        ...

    async def close(self) -> None:
        pass


class InMemoryRemoteStore(RemoteStore):
    """
    Process-local document store with live notifications.

    Used when no cloud backend is configured and as the backend in tests. Every
    committed write (a single set or a whole batch) produces exactly one
    snapshot per affected collection or document subscription.
    """

    def __init__(self):
        self._docs: Dict[str, Document] = {}
        self._collection_subs: Dict[str, List[Subscription]] = {}
        self._document_subs: Dict[str, List[Subscription]] = {}

    # --- Reads ---

    async def get_document(self, path: str) -> Optional[Document]:
        doc = self._docs.get(path.strip("/"))
        return copy.deepcopy(doc) if doc is not None else None

    async def list_collection(self, path: str) -> List[Document]:
        return self._snapshot_collection(path.strip("/"))

    async def has_documents(self, path: str) -> bool:
        prefix = path.strip("/") + "/"
        return any(p.startswith(prefix) and "/" not in p[len(prefix):] for p in self._docs)

    # --- Writes ---

    async def set_document(self, path: str, data: Document, merge: bool = False) -> None:
        await self.batch_write([WriteOp(path, data, merge=merge)])

    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        touched = set()
        for op in ops:
            key = op.path.strip("/")
            split_path(key)
            if op.is_delete:
                self._docs.pop(key, None)
            elif op.merge and key in self._docs:
                self._docs[key] = {**self._docs[key], **copy.deepcopy(op.data)}
            else:
                self._docs[key] = copy.deepcopy(op.data)
            touched.add(key)
        logger.debug(f"InMemoryRemoteStore committed {len(ops)} write(s)")
        self._notify(touched)

    # --- Live subscriptions ---

    def subscribe_collection(self, path: str) -> Subscription[List[Document]]:
        key = path.strip("/")
        sub = self._register(self._collection_subs, key)
        sub.push(self._snapshot_collection(key))
        return sub

    def subscribe_document(self, path: str) -> Subscription[Optional[Document]]:
        key = path.strip("/")
        sub = self._register(self._document_subs, key)
        doc = self._docs.get(key)
        sub.push(copy.deepcopy(doc) if doc is not None else None)
        return sub

    def fail_subscriptions(self, path: str, exc: BaseException) -> None:
        """Delivers a server-side error to every subscriber of `path`."""
        key = path.strip("/")
        for sub in list(self._collection_subs.get(key, [])) + list(self._document_subs.get(key, [])):
            sub.fail(exc)

    def subscriber_count(self, path: str) -> int:
        key = path.strip("/")
        return len(self._collection_subs.get(key, [])) + len(self._document_subs.get(key, []))

    # --- Internals ---

    @staticmethod
    def _register(registry: Dict[str, List[Subscription]], key: str) -> Subscription:
        subs = registry.setdefault(key, [])

        def _detach():
            if sub in subs:
                subs.remove(sub)

        sub: Subscription = Subscription(key, on_unsubscribe=_detach)
        subs.append(sub)
        return sub

    def _snapshot_collection(self, key: str) -> List[Document]:
        prefix = key + "/"
        snapshot = []
        for path, doc in self._docs.items():
            if path.startswith(prefix) and "/" not in path[len(prefix):]:
                snapshot.append({**copy.deepcopy(doc), "id": path[len(prefix):]})
        return snapshot

    def _notify(self, touched_paths) -> None:
        collections = {split_path(p)[0] for p in touched_paths}
        for collection in collections:
            for sub in list(self._collection_subs.get(collection, [])):
                sub.push(self._snapshot_collection(collection))
        for path in touched_paths:
            for sub in list(self._document_subs.get(path, [])):
                doc = self._docs.get(path)
                sub.push(copy.deepcopy(doc) if doc is not None else None)

#
# End of remote_store.py
########################################################################################################################
