# sync_manager.py
# Description: One-time reconciliation of local and cloud data when a user signs in
#
# On sign-in the manager classifies the situation (new or returning user, local
# data present, cloud data present), either completes on its own or asks the
# user to choose upload / download / merge / cancel, runs that action once, and
# then enables the continuous sync engines for the rest of the session.
#
# Imports
import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from quizdeck.auth import AuthContext
from quizdeck.Constants import (
    COLLECTION_FLASHCARDS,
    COLLECTION_QUIZZES,
    COLLECTION_SESSIONS,
    DEFAULT_QUIZ_ID,
    VOLATILE_FIELDS,
    collection_path,
    metadata_path,
    record_path,
    settings_path,
)
from quizdeck.DB.local_store import LocalCollection, LocalDocument
from quizdeck.DB.remote_store import RemoteStore, WriteOp
from quizdeck.schemas import SyncAction
from quizdeck.Sync.exceptions import (
    BackendNotConfiguredError,
    NotAuthenticatedError,
    SyncError,
    SyncInProgressError,
    classify_sync_error,
)
from quizdeck.Sync.reconciler import fingerprint, has_settings_difference, merge_records, strip_default
from quizdeck.Sync.settings_sync import settings_from_remote, settings_to_remote
from quizdeck.Sync.sync_engine import BaseSyncEngine
from quizdeck.Utils.common import utc_now_iso
from quizdeck.Utils.encryption import ApiKeyCipher
#
########################################################################################################################
#
# Functions:

SyncPrompt = Callable[["SyncDecision"], Awaitable[Optional[SyncAction]]]


@dataclass
class SyncState:
    is_new_user: bool = False
    has_local_data: bool = False
    has_cloud_data: bool = False
    sync_complete: bool = False
    syncing: bool = False
    show_dialog: bool = False


@dataclass(frozen=True)
class SyncDecision:
    """What the user is asked; `options` is empty when no prompt is needed."""
    is_new_user: bool
    has_local_data: bool
    has_cloud_data: bool
    options: List[SyncAction] = field(default_factory=list)

    @property
    def needs_prompt(self) -> bool:
        return bool(self.options)


def available_actions(is_new_user: bool, has_local_data: bool, has_cloud_data: bool) -> List[SyncAction]:
    """The decision table: which actions the prompt offers (an empty list means auto-complete)."""
    if is_new_user:
        return ["upload", "cancel"] if has_local_data else []
    if has_local_data and has_cloud_data:
        return ["merge", "download", "upload", "cancel"]
    if has_cloud_data:
        return ["download", "cancel"]
    if has_local_data:
        return ["upload", "cancel"]
    return []


class SyncManager:
    """
    Owns the per-session `SyncState` and the one-time bulk reconciliation.

    The continuous engines handed in stay disabled until `sync_complete`; the
    manager enables them when the chosen action (or the automatic completion)
    is done, so bulk writes and background pushes never overlap.
    """

    def __init__(self,
                 auth: AuthContext,
                 remote: RemoteStore,
                 quizzes: LocalCollection,
                 sessions: LocalCollection,
                 flashcards: LocalCollection,
                 settings: LocalDocument,
                 cipher: Optional[ApiKeyCipher] = None,
                 engines: Iterable[BaseSyncEngine] = (),
                 default_quiz_id: str = DEFAULT_QUIZ_ID):
        self.auth = auth
        self.remote = remote
        self.collections: Dict[str, LocalCollection] = {
            COLLECTION_QUIZZES: quizzes,
            COLLECTION_SESSIONS: sessions,
            COLLECTION_FLASHCARDS: flashcards,
        }
        self.settings = settings
        self.cipher = cipher or ApiKeyCipher()
        self.engines: List[BaseSyncEngine] = list(engines)
        self.default_quiz_id = default_quiz_id
        self.state = SyncState()

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    async def classify(self) -> SyncDecision:
        """
        Inspects local and cloud state once and decides whether to prompt.

        Store failures here never reach the caller: the session simply
        continues with `sync_complete` set.
        """
        if self.state.sync_complete or not self.auth.can_sync:
            return self._decision([])

        try:
            metadata = await self.remote.get_document(metadata_path(self.auth.user_id))
            is_new_user = metadata is None
            has_local_data = await self.has_local_data()

            if is_new_user and not has_local_data:
                logger.info(f"New user {self.auth.user_id} with no local data; creating metadata")
                now = utc_now_iso()
                await self.remote.set_document(metadata_path(self.auth.user_id), {"createdAt": now, "lastSync": now})
                self.state.is_new_user = True
                await self._complete()
                return self._decision([])

            has_cloud_data = False if is_new_user else await self.has_cloud_data()
        except Exception as e:
            error = classify_sync_error(e)
            logger.error(f"Error checking sync status: {error}. Continuing without the initial sync.")
            await self._complete()
            return self._decision([])

        self.state.is_new_user = is_new_user
        self.state.has_local_data = has_local_data
        self.state.has_cloud_data = has_cloud_data
        options = available_actions(is_new_user, has_local_data, has_cloud_data)
        if not options:
            logger.info("Nothing to reconcile; sync complete")
            await self._complete()
            return self._decision([])

        self.state.show_dialog = True
        logger.info(f"Sync decision needed (new_user={is_new_user}, local={has_local_data}, cloud={has_cloud_data}): {options}")
        return self._decision(options)

    def _decision(self, options: List[SyncAction]) -> SyncDecision:
        return SyncDecision(self.state.is_new_user, self.state.has_local_data, self.state.has_cloud_data, options)

    async def has_local_data(self) -> bool:
        for name, local in self.collections.items():
            records = await local.get_all()
            if name == COLLECTION_QUIZZES:
                records = strip_default(records, self.default_quiz_id)
            if records:
                return True
        return has_settings_difference(await self.settings.get(), self.settings.defaults())

    async def has_cloud_data(self) -> bool:
        for name in self.collections:
            if await self.remote.has_documents(collection_path(self.auth.user_id, name)):
                return True
        return await self.remote.get_document(settings_path(self.auth.user_id)) is not None

    # ------------------------------------------------------------------
    # Bulk actions
    # ------------------------------------------------------------------

    async def perform(self, action: SyncAction) -> SyncState:
        """
        Runs the chosen action once, then marks the sync complete.

        Raises `NotAuthenticatedError` / `BackendNotConfiguredError` before any
        I/O, `SyncInProgressError` when an action is already running, and a
        classified `SyncError` when the action itself fails (the state is left
        incomplete so the user can try again).
        """
        if not self.auth.is_signed_in:
            raise NotAuthenticatedError()
        if not self.auth.is_configured:
            raise BackendNotConfiguredError()
        if self.state.syncing:
            raise SyncInProgressError()
        if self.state.sync_complete:
            logger.warning(f"Ignoring '{action}': the initial sync already completed for this session")
            return self.state

        handlers = {
            "upload": self.upload_local_data,
            "download": self.download_cloud_data,
            "merge": self.merge_data,
            "cancel": self.skip_sync,
        }
        if action not in handlers:
            raise ValueError(f"Unknown sync action: {action!r}")

        self.state.syncing = True
        try:
            await handlers[action]()
        except asyncio.CancelledError:
            raise
        except SyncError as e:
            logger.error(f"Sync action '{action}' failed: {e}")
            raise
        except Exception as e:
            error = classify_sync_error(e)
            logger.error(f"Sync action '{action}' failed: {error}")
            raise error from e
        finally:
            self.state.syncing = False

        logger.info(f"Sync action '{action}' completed for user {self.auth.user_id}")
        await self._complete()
        return self.state

    async def run(self, prompt: SyncPrompt) -> SyncState:
        """Classifies, asks `prompt` when a decision is needed, and performs the answer."""
        decision = await self.classify()
        if not decision.needs_prompt:
            return self.state
        action = await prompt(decision) or "cancel"
        if action not in decision.options:
            raise ValueError(f"'{action}' is not one of the offered actions {decision.options}")
        return await self.perform(action)

    async def upload_local_data(self) -> None:
        uid = self.auth.user_id
        ops: List[WriteOp] = []
        for name, records in (await self._local_collections()).items():
            ops.extend(self._record_writes(name, records))
        local_settings = await self.settings.get()
        ops.append(WriteOp(settings_path(uid), settings_to_remote(local_settings, uid, self.cipher)))
        ops.append(self._metadata_write())
        await self.remote.batch_write(ops)
        logger.info(f"Uploaded local data ({len(ops) - 2} record(s)) to the cloud")

    async def download_cloud_data(self) -> None:
        uid = self.auth.user_id
        cloud = await self._cloud_collections()
        cloud_settings = await self.remote.get_document(settings_path(uid))

        for name, records in cloud.items():
            await self.collections[name].set_all(records)
        if cloud_settings is not None:
            local_settings = settings_from_remote(cloud_settings, uid, self.cipher)
            await self.settings.set({**self.settings.defaults(), **local_settings})

        await self.remote.set_document(metadata_path(uid), {"lastSync": utc_now_iso()}, merge=True)
        logger.info("Downloaded cloud data to this device")

    async def merge_data(self) -> None:
        uid = self.auth.user_id
        local = await self._local_collections()
        cloud = await self._cloud_collections()

        ops: List[WriteOp] = []
        merged: Dict[str, List[dict]] = {}
        for name in self.collections:
            merged[name] = merge_records(local[name], cloud[name])
            # Skip collections the cloud already holds exactly
            if fingerprint(merged[name], VOLATILE_FIELDS) != fingerprint(cloud[name], VOLATILE_FIELDS):
                ops.extend(self._record_writes(name, merged[name]))

        cloud_settings_doc = await self.remote.get_document(settings_path(uid))
        local_settings = await self.settings.get()
        cloud_settings = settings_from_remote(cloud_settings_doc, uid, self.cipher) if cloud_settings_doc else {}
        # Settings are a shallow overlay where the device's values win
        merged_settings = {**cloud_settings, **local_settings}
        ops.append(WriteOp(settings_path(uid), settings_to_remote(merged_settings, uid, self.cipher)))
        ops.append(self._metadata_write())

        await self.remote.batch_write(ops)
        for name, records in merged.items():
            await self.collections[name].set_all(records)
        await self.settings.set(merged_settings)
        logger.info("Merged local and cloud data")

    async def skip_sync(self) -> None:
        if self.state.is_new_user:
            now = utc_now_iso()
            await self.remote.set_document(metadata_path(self.auth.user_id), {"createdAt": now, "lastSync": now})
        logger.info("Initial sync skipped; keeping data as is")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _complete(self) -> None:
        self.state.sync_complete = True
        self.state.show_dialog = False
        for engine in self.engines:
            await engine.set_enabled(True)

    async def sign_out(self) -> None:
        """Detaches every engine and forgets this session's state."""
        for engine in self.engines:
            await engine.detach()
        self.state = SyncState()
        logger.info("Sync session reset after sign-out")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _local_collections(self) -> Dict[str, List[dict]]:
        result = {}
        for name, local in self.collections.items():
            result[name] = strip_default(await local.get_all(), self.default_quiz_id)
        return result

    async def _cloud_collections(self) -> Dict[str, List[dict]]:
        result = {}
        for name in self.collections:
            records = await self.remote.list_collection(collection_path(self.auth.user_id, name))
            result[name] = strip_default(records, self.default_quiz_id)
        return result

    def _record_writes(self, name: str, records: Sequence[dict]) -> List[WriteOp]:
        stamp = utc_now_iso()
        return [WriteOp(record_path(self.auth.user_id, name, r["id"]), {**r, "updatedAt": stamp}) for r in records]

    def _metadata_write(self) -> WriteOp:
        now = utc_now_iso()
        if self.state.is_new_user:
            return WriteOp(metadata_path(self.auth.user_id), {"createdAt": now, "lastSync": now})
        return WriteOp(metadata_path(self.auth.user_id), {"lastSync": now}, merge=True)

#
# End of sync_manager.py
########################################################################################################################
