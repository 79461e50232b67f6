# quizdeck/Sync/__init__.py
from .exceptions import (
    SyncError, SyncConnectionError, SyncBlockedError, NotAuthenticatedError,
    BackendNotConfiguredError, PermissionDeniedError, RemoteStoreError,
    LocalStoreError, SyncInProgressError, classify_sync_error
)
from .reconciler import merge_records, fingerprint, strip_default

__all__ = [
    "SyncError", "SyncConnectionError", "SyncBlockedError", "NotAuthenticatedError",
    "BackendNotConfiguredError", "PermissionDeniedError", "RemoteStoreError",
    "LocalStoreError", "SyncInProgressError", "classify_sync_error",
    "merge_records", "fingerprint", "strip_default",
]
