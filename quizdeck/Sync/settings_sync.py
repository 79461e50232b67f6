# settings_sync.py
# Description: Continuous sync of the single settings document, with the API key encrypted in the cloud copy
#
# Imports
from typing import Any, Callable, Mapping, Optional, Sequence
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from quizdeck.auth import AuthContext
from quizdeck.Constants import (
    DEFAULT_DEBOUNCE_SECONDS,
    SECRET_SETTINGS_FIELD,
    SECRET_SETTINGS_HASH_FIELD,
    VOLATILE_FIELDS,
    settings_path,
)
from quizdeck.DB.local_store import LocalDocument
from quizdeck.DB.remote_store import RemoteStore
from quizdeck.Sync.reconciler import document_fingerprint
from quizdeck.Sync.subscription import Subscription
from quizdeck.Sync.sync_engine import BaseSyncEngine
from quizdeck.Utils.common import utc_now_iso
from quizdeck.Utils.encryption import ApiKeyCipher, EncryptionError
#
########################################################################################################################
#
# Functions:


def settings_to_remote(settings: Mapping[str, Any], user_id: str, cipher: ApiKeyCipher) -> dict:
    """Cloud form of the settings: secret encrypted, its digest alongside, `updatedAt` stamped."""
    remote = dict(settings)
    secret = remote.get(SECRET_SETTINGS_FIELD) or ""
    if secret:
        remote[SECRET_SETTINGS_FIELD] = cipher.encrypt(secret, user_id)
        remote[SECRET_SETTINGS_HASH_FIELD] = cipher.hash(secret)
    else:
        remote[SECRET_SETTINGS_FIELD] = ""
        remote.pop(SECRET_SETTINGS_HASH_FIELD, None)
    remote["updatedAt"] = utc_now_iso()
    return remote


def settings_from_remote(document: Mapping[str, Any], user_id: str, cipher: ApiKeyCipher) -> dict:
    """Local form of a cloud settings document: metadata stripped, secret decrypted."""
    local = {k: v for k, v in document.items() if k not in ("updatedAt", SECRET_SETTINGS_HASH_FIELD)}
    encrypted = local.get(SECRET_SETTINGS_FIELD) or ""
    if encrypted:
        try:
            local[SECRET_SETTINGS_FIELD] = cipher.decrypt(encrypted, user_id)
        except EncryptionError as e:
            logger.warning(f"Could not decrypt the synced API key ({e}); it has to be entered again on this device")
            local[SECRET_SETTINGS_FIELD] = ""
    return local


class SettingsSyncEngine(BaseSyncEngine):
    """
    Keeps the settings document in sync.

    Unlike the collections there is nothing to merge: when the cloud copy exists
    it replaces the local one on load, otherwise the local copy stays and is
    uploaded once the load settles. Pushes use a merge-write so fields this
    build does not know about survive.
    """

    def __init__(self,
                 local: LocalDocument,
                 remote: RemoteStore,
                 auth: AuthContext,
                 cipher: Optional[ApiKeyCipher] = None,
                 debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
                 volatile_fields: Sequence[str] = VOLATILE_FIELDS,
                 enabled: bool = False):
        super().__init__("settings", remote, auth, debounce_seconds, volatile_fields, enabled)
        self.local = local
        self.cipher = cipher or ApiKeyCipher()

    @property
    def path(self) -> str:
        return settings_path(self.auth.user_id)

    def _with_defaults(self, document: Mapping[str, Any]) -> dict:
        return {**self.local.defaults(), **document}

    async def _read_remote(self) -> Optional[dict]:
        document = await self.remote.get_document(self.path)
        if document is None:
            return None
        return self._with_defaults(settings_from_remote(document, self.auth.user_id, self.cipher))

    async def _read_local(self) -> dict:
        return await self.local.get()

    def _reconcile(self, local_value: dict, remote_value: Optional[dict]) -> dict:
        return remote_value if remote_value is not None else local_value

    async def _write_local(self, value: dict) -> None:
        await self.local.set(value)

    async def _write_remote(self, value: dict, last_remote: Any) -> None:
        await self.remote.set_document(self.path, settings_to_remote(value, self.auth.user_id, self.cipher), merge=True)

    def _fingerprint(self, value: Optional[Mapping[str, Any]]) -> Optional[str]:
        if value is None:
            return None
        return document_fingerprint(self._with_defaults(value),
                                    tuple(self.volatile_fields) + (SECRET_SETTINGS_HASH_FIELD,))

    def _normalize_snapshot(self, snapshot: Optional[Mapping[str, Any]]) -> Optional[dict]:
        if snapshot is None:
            return None
        return self._with_defaults(settings_from_remote(snapshot, self.auth.user_id, self.cipher))

    def _subscribe(self) -> Subscription:
        return self.remote.subscribe_document(self.path)

    def _add_local_listener(self, listener: Callable[[Any], None]) -> Callable[[], None]:
        return self.local.add_listener(listener)

#
# End of settings_sync.py
########################################################################################################################
