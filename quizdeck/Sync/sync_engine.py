# sync_engine.py
# Description: Continuous bidirectional sync of one local collection with its cloud copy
#
# State machine per engine:  IDLE -> LOADING -> LISTENING <-> PUSHING
#
#   * LOADING    one full remote read, merged into the local copy (remote wins)
#   * LISTENING  live subscription; snapshots that differ from the last-known
#                remote state replace the local copy
#   * PUSHING    debounced upload of the local copy after it stops changing
#
# Fingerprints (content hashes without volatile fields) are what keeps the two
# directions from feeding each other: the engine records the fingerprint of
# what it just loaded or pushed, so the snapshot echoing its own write, and the
# local write caused by its own pull, both compare equal and are ignored.
#
# Imports
import asyncio
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from quizdeck.auth import AuthContext
from quizdeck.Constants import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_QUIZ_ID,
    VOLATILE_FIELDS,
    collection_path,
    record_path,
)
from quizdeck.DB.local_store import LocalCollection
from quizdeck.DB.remote_store import RemoteStore, WriteOp
from quizdeck.Sync.exceptions import PermissionDeniedError, SyncError, classify_sync_error
from quizdeck.Sync.reconciler import fingerprint, merge_records, record_ids, strip_default
from quizdeck.Sync.scheduling import Debouncer
from quizdeck.Sync.subscription import Subscription
from quizdeck.Utils.common import utc_now, utc_now_iso
#
########################################################################################################################
#
# Classes:


class SyncEngineState(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    LISTENING = "LISTENING"
    PUSHING = "PUSHING"


class BaseSyncEngine:
    """
    Shared state machine of the collection and settings engines.

    Subclasses supply the data-shape specific hooks (`_read_remote`,
    `_read_local`, `_reconcile`, `_write_local`, `_write_remote`,
    `_fingerprint`, `_normalize_snapshot`, `_subscribe`, `_add_local_listener`).

    Nothing happens while `enabled` is false; the sync manager keeps every
    engine disabled until its one-time reconciliation has finished.
    """

    def __init__(self,
                 name: str,
                 remote: RemoteStore,
                 auth: AuthContext,
                 debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
                 volatile_fields: Sequence[str] = VOLATILE_FIELDS,
                 enabled: bool = False):
        self.name = name
        self.remote = remote
        self.auth = auth
        self.volatile_fields = tuple(volatile_fields)
        self.last_sync: Optional[datetime] = None
        self.last_error: Optional[SyncError] = None

        self._enabled = enabled
        self._state = SyncEngineState.IDLE
        self._loaded = False
        self._loading = False
        # Bumped on every teardown; work started under an older generation is discarded
        self._generation = 0

        self._local_fp: Optional[str] = None
        self._remote_fp: Optional[str] = None
        self._last_remote: Any = None

        self._debouncer = Debouncer(debounce_seconds, name=f"{name}-push")
        self._push_lock = asyncio.Lock()
        self._subscription: Optional[Subscription] = None
        self._listen_task: Optional[asyncio.Task] = None
        self._remove_listener: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def state(self) -> SyncEngineState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def syncing(self) -> bool:
        return self._state in (SyncEngineState.LOADING, SyncEngineState.PUSHING)

    @property
    def push_pending(self) -> bool:
        return self._debouncer.pending

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def set_enabled(self, enabled: bool) -> bool:
        """Enables (and starts) or disables (and pauses) the engine."""
        self._enabled = enabled
        if enabled:
            return await self.start()
        await self.stop()
        return False

    async def start(self) -> bool:
        """Loads once per session, then starts listening. Returns True when listening."""
        if not self._enabled:
            logger.debug(f"[{self.name}] start skipped: engine disabled")
            return False
        if not self.auth.can_sync:
            logger.debug(f"[{self.name}] start skipped: no signed-in user or backend not configured")
            return False
        if self._listen_task is not None:
            return True

        generation = self._generation
        if self._remove_listener is None:
            self._remove_listener = self._add_local_listener(self._on_local_change)

        if not self._loaded and not await self._run_load(generation):
            return False
        if generation != self._generation or not self._enabled:
            return False
        if not self._start_listening():
            return False
        if self._local_fp != self._remote_fp:
            # Local-only records from the load still have to reach the cloud
            self._debouncer.schedule(self._push)
        return True

    async def stop(self) -> None:
        """Tears down the subscription and any pending push. Safe to call repeatedly."""
        self._generation += 1
        await self._debouncer.shutdown()
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        task, self._listen_task = self._listen_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._state = SyncEngineState.IDLE
        logger.debug(f"[{self.name}] stopped")

    async def detach(self) -> None:
        """Stops the engine for good (sign-out); the next session starts from a fresh load."""
        self._enabled = False
        await self.stop()
        self._loaded = False
        self._local_fp = self._remote_fp = None
        self._last_remote = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _run_load(self, generation: int) -> bool:
        self._state = SyncEngineState.LOADING
        self._loading = True
        try:
            remote_value = await self._read_remote()
            local_value = await self._read_local()
            if generation != self._generation:
                return False
            merged = self._reconcile(local_value, remote_value)
            self._last_remote = remote_value
            self._remote_fp = self._fingerprint(remote_value) if remote_value is not None else None
            self._local_fp = self._fingerprint(merged)
            if self._fingerprint(local_value) != self._local_fp:
                await self._write_local(merged)
            self._loaded = True
            self.last_sync = utc_now()
            logger.info(f"[{self.name}] initial load complete")
            return True
        except Exception as e:
            self.last_error = classify_sync_error(e)
            logger.error(f"[{self.name}] initial load failed: {self.last_error}")
            return False
        finally:
            self._loading = False
            if self._state == SyncEngineState.LOADING:
                self._state = SyncEngineState.IDLE

    # ------------------------------------------------------------------
    # Pull (live subscription)
    # ------------------------------------------------------------------

    def _start_listening(self) -> bool:
        try:
            self._subscription = self._subscribe()
        except Exception as e:
            self.last_error = classify_sync_error(e)
            logger.error(f"[{self.name}] could not subscribe to remote changes: {self.last_error}")
            return False
        self._state = SyncEngineState.LISTENING
        self._listen_task = asyncio.get_running_loop().create_task(
            self._listen(self._subscription, self._generation), name=f"{self.name}-listen")
        return True

    async def _listen(self, subscription: Subscription, generation: int) -> None:
        try:
            async for snapshot in subscription:
                if generation != self._generation:
                    break
                if self._loading:
                    continue
                try:
                    await self._apply_remote_snapshot(snapshot)
                except Exception as e:
                    self.last_error = classify_sync_error(e)
                    logger.error(f"[{self.name}] failed to apply remote snapshot: {self.last_error}")
        except Exception as e:
            self.last_error = classify_sync_error(e)
            if isinstance(self.last_error, PermissionDeniedError):
                # Not retried: the security rules will keep rejecting us
                logger.error(f"[{self.name}] permission denied on live subscription; live sync stopped. "
                             f"Check the cloud security rules.")
            else:
                logger.error(f"[{self.name}] live subscription ended with an error: {self.last_error}")
        finally:
            if generation == self._generation and self._state == SyncEngineState.LISTENING:
                self._state = SyncEngineState.IDLE

    async def _apply_remote_snapshot(self, snapshot: Any) -> None:
        value = self._normalize_snapshot(snapshot)
        if value is None:
            return
        fp = self._fingerprint(value)
        if fp == self._remote_fp:
            return
        unpushed = self._local_fp != self._remote_fp
        self._remote_fp = fp
        self._last_remote = value
        if unpushed:
            # Local changes not yet pushed are merged in, not overwritten
            value = self._reconcile(await self._read_local(), value)
        merged_fp = self._fingerprint(value)
        if merged_fp != self._local_fp:
            logger.info(f"[{self.name}] remote change received; updating local copy")
            self._local_fp = merged_fp
            await self._write_local(value)
            self.last_sync = utc_now()
        if merged_fp != fp and not self._debouncer.pending:
            self._debouncer.schedule(self._push)

    # ------------------------------------------------------------------
    # Push (debounced)
    # ------------------------------------------------------------------

    def _on_local_change(self, value: Any) -> None:
        if not self._enabled or not self._loaded or self._loading:
            return
        fp = self._fingerprint(value)
        if fp == self._local_fp:
            return
        self._local_fp = fp
        logger.debug(f"[{self.name}] local change detected; push scheduled in {self._debouncer.delay}s")
        self._debouncer.schedule(self._push)

    async def sync_now(self) -> bool:
        """Pushes the local copy immediately instead of waiting for the debounce timer."""
        if not self._enabled or not self._loaded:
            return False
        self._debouncer.cancel()
        return await self._push()

    async def _push(self) -> bool:
        async with self._push_lock:
            if not self._enabled or not self._loaded or not self.auth.can_sync:
                return False
            generation = self._generation
            self._state = SyncEngineState.PUSHING
            try:
                local_value = await self._read_local()
                fp = self._fingerprint(local_value)
                if fp == self._remote_fp:
                    self._local_fp = fp
                    return True
                saved = (self._local_fp, self._remote_fp, self._last_remote)
                # Record the pushed state first so the echoing snapshot is recognised as our own
                self._local_fp = self._remote_fp = fp
                try:
                    await self._write_remote(local_value, saved[2])
                except Exception:
                    if generation == self._generation:
                        self._local_fp, self._remote_fp, self._last_remote = saved
                    raise
                self._last_remote = local_value
                self.last_sync = utc_now()
                logger.info(f"[{self.name}] pushed local changes to the cloud")
                return True
            except Exception as e:
                self.last_error = classify_sync_error(e)
                logger.error(f"[{self.name}] push failed: {self.last_error}")
                return False
            finally:
                if self._state == SyncEngineState.PUSHING:
                    listening = self._listen_task is not None and not self._listen_task.done()
                    self._state = SyncEngineState.LISTENING if listening else SyncEngineState.IDLE

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    async def _read_remote(self) -> Any:
        raise NotImplementedError

    async def _read_local(self) -> Any:
        raise NotImplementedError

    def _reconcile(self, local_value: Any, remote_value: Any) -> Any:
        raise NotImplementedError

    async def _write_local(self, value: Any) -> None:
        raise NotImplementedError

    async def _write_remote(self, value: Any, last_remote: Any) -> None:
        raise NotImplementedError

    def _fingerprint(self, value: Any) -> Optional[str]:
        raise NotImplementedError

    def _normalize_snapshot(self, snapshot: Any) -> Any:
        return snapshot

    def _subscribe(self) -> Subscription:
        raise NotImplementedError

    def _add_local_listener(self, listener: Callable[[Any], None]) -> Callable[[], None]:
        raise NotImplementedError


class CollectionSyncEngine(BaseSyncEngine):
    """
    Keeps one record collection (quizzes, sessions or flashcard decks) in sync.

    Loading merges the remote collection into the local one with remote
    winning on shared ids. A push writes every local record in one batch and
    deletes only remote records this engine had already seen remotely and that
    have since been removed locally; records another device added and this one
    never saw are left alone.
    """

    def __init__(self,
                 collection_name: str,
                 local: LocalCollection,
                 remote: RemoteStore,
                 auth: AuthContext,
                 debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
                 volatile_fields: Sequence[str] = VOLATILE_FIELDS,
                 enabled: bool = False,
                 default_id: str = DEFAULT_QUIZ_ID):
        super().__init__(collection_name, remote, auth, debounce_seconds, volatile_fields, enabled)
        self.collection_name = collection_name
        self.local = local
        self.default_id = default_id

    @property
    def path(self) -> str:
        return collection_path(self.auth.user_id, self.collection_name)

    async def _read_remote(self) -> List[dict]:
        return strip_default(await self.remote.list_collection(self.path), self.default_id)

    async def _read_local(self) -> List[dict]:
        return strip_default(await self.local.get_all(), self.default_id)

    def _reconcile(self, local_value: List[dict], remote_value: List[dict]) -> List[dict]:
        return merge_records(local_value, remote_value)

    async def _write_local(self, value: List[dict]) -> None:
        await self.local.set_all(value)

    async def _write_remote(self, value: List[dict], last_remote: Optional[List[dict]]) -> None:
        stamp = utc_now_iso()
        ops = [WriteOp(record_path(self.auth.user_id, self.collection_name, r["id"]), {**r, "updatedAt": stamp})
               for r in value]
        removed = record_ids(last_remote or []) - record_ids(value)
        ops.extend(WriteOp(record_path(self.auth.user_id, self.collection_name, rid)) for rid in sorted(removed))
        if not ops:
            return
        await self.remote.batch_write(ops)
        logger.debug(f"[{self.name}] wrote {len(value)} record(s), deleted {len(removed)}")

    def _fingerprint(self, value: List[dict]) -> str:
        return fingerprint(strip_default(value or [], self.default_id), self.volatile_fields)

    def _normalize_snapshot(self, snapshot: List[dict]) -> List[dict]:
        return strip_default(snapshot or [], self.default_id)

    def _subscribe(self) -> Subscription:
        return self.remote.subscribe_collection(self.path)

    def _add_local_listener(self, listener: Callable[[Any], None]) -> Callable[[], None]:
        return self.local.add_listener(listener)

#
# End of sync_engine.py
########################################################################################################################
