# quizdeck/Sync/exceptions.py
#
#
# Imports
from typing import Optional
#
# Local Imports
from quizdeck.Constants import (
    MSG_BLOCKED,
    MSG_NOT_CONFIGURED,
    MSG_NOT_SIGNED_IN,
    MSG_PERMISSION_DENIED,
)
#
#######################################################################################################################
#
# Functions:

BLOCKED_MARKERS = ("ERR_BLOCKED_BY_CLIENT", "blocked by client", "net::ERR_BLOCKED")
PERMISSION_MARKERS = ("permission-denied", "PERMISSION_DENIED", "Missing or insufficient permissions")
UNAUTHENTICATED_MARKERS = ("unauthenticated", "UNAUTHENTICATED")


class SyncError(Exception):
    """Base exception for sync errors."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or f"Sync failed: {message}"


class SyncConnectionError(SyncError):
    """Raised when the cloud store cannot be reached."""
    pass


class SyncBlockedError(SyncConnectionError):
    """Raised when a content blocker or network filter drops the request."""

    def __init__(self, message: str):
        super().__init__(message, user_message=MSG_BLOCKED)


class NotAuthenticatedError(SyncError):
    """Raised when a sync action is attempted without a signed-in user."""

    def __init__(self, message: str = MSG_NOT_SIGNED_IN):
        super().__init__(message, user_message=MSG_NOT_SIGNED_IN)


class BackendNotConfiguredError(SyncError):
    """Raised when the cloud backend has no configuration."""

    def __init__(self, message: str = MSG_NOT_CONFIGURED):
        super().__init__(message, user_message=MSG_NOT_CONFIGURED)


class PermissionDeniedError(SyncError):
    """Raised when the cloud store's access rules reject a request."""

    def __init__(self, message: str):
        super().__init__(message, user_message=MSG_PERMISSION_DENIED)


class RemoteStoreError(SyncError):
    """Raised for any other failure reported by the cloud store."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class LocalStoreError(SyncError):
    """Raised when on-device storage cannot be read or written."""
    pass


class SyncInProgressError(SyncError):
    """Raised when a bulk sync action is started while another is running."""

    def __init__(self, message: str = "A sync operation is already running"):
        super().__init__(message, user_message="Sync is already in progress, please wait.")


def classify_sync_error(exc: BaseException) -> SyncError:
    """
    Maps an arbitrary exception onto the sync error taxonomy.

    Store backends already raise `SyncError` subclasses; anything else is
    classified by its `code` attribute or by recognisable message markers.
    """
    if isinstance(exc, SyncError):
        return exc

    message = str(exc) or exc.__class__.__name__
    code = str(getattr(exc, "code", "") or "")

    if any(marker in message for marker in BLOCKED_MARKERS):
        return SyncBlockedError(message)
    if code == "permission-denied" or any(marker in message for marker in PERMISSION_MARKERS):
        return PermissionDeniedError(message)
    if code == "unauthenticated" or any(marker in message for marker in UNAUTHENTICATED_MARKERS):
        return NotAuthenticatedError(message)
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return SyncConnectionError(message)
    return RemoteStoreError(message, code=code or None)

#
# End of quizdeck/Sync/exceptions.py
########################################################################################################################
