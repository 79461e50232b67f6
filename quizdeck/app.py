# app.py
# Description: Composition root wiring stores, libraries, sync engines and the sync manager
#
# Imports
import dataclasses
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from quizdeck.auth import SIGNED_OUT, AuthContext
from quizdeck.config import (
    firebase_settings_from_config,
    get_data_dir,
    is_firebase_configured,
    load_settings,
    sync_settings_from_config,
)
from quizdeck.Constants import (
    COLLECTION_FLASHCARDS,
    COLLECTION_QUIZZES,
    COLLECTION_SESSIONS,
    DEFAULT_QUIZ_ID,
    LOCAL_KEY_FLASHCARDS,
    LOCAL_KEY_QUIZZES,
    LOCAL_KEY_SESSIONS,
    LOCAL_KEY_SETTINGS,
)
from quizdeck.DB.firestore_store import FirestoreRemoteStore
from quizdeck.DB.local_store import JsonFileStore, LocalCollection, LocalDocument
from quizdeck.DB.remote_store import InMemoryRemoteStore, RemoteStore
from quizdeck.Library.Flashcard_Library import FlashcardLibrary
from quizdeck.Library.Quiz_Library import QuizLibrary
from quizdeck.Library.Session_Library import SessionHistory
from quizdeck.Library.Settings_Library import SettingsLibrary
from quizdeck.Logging_Config import configure_logging
from quizdeck.schemas import SyncConfig, default_settings
from quizdeck.Sync.settings_sync import SettingsSyncEngine
from quizdeck.Sync.sync_engine import BaseSyncEngine, CollectionSyncEngine
from quizdeck.Sync.sync_manager import SyncManager, SyncPrompt, SyncState
from quizdeck.Utils.encryption import ApiKeyCipher
#
########################################################################################################################
#
# Classes:


class StudyApp:
    """
    One user's study data on this device, plus its cloud sync.

    Engines and the sync manager are created per sign-in; signing out tears
    them down and leaves the local data in place.
    """

    def __init__(self,
                 store: JsonFileStore,
                 remote: RemoteStore,
                 sync_config: Optional[SyncConfig] = None,
                 remote_configured: bool = True,
                 cipher: Optional[ApiKeyCipher] = None):
        self.store = store
        self.remote = remote
        self.sync_config = sync_config or SyncConfig()
        self.remote_configured = remote_configured
        self.cipher = cipher or ApiKeyCipher()

        self.quiz_collection = LocalCollection(store, LOCAL_KEY_QUIZZES, COLLECTION_QUIZZES)
        self.session_collection = LocalCollection(store, LOCAL_KEY_SESSIONS, COLLECTION_SESSIONS)
        self.flashcard_collection = LocalCollection(store, LOCAL_KEY_FLASHCARDS, COLLECTION_FLASHCARDS)
        self.settings_document = LocalDocument(store, LOCAL_KEY_SETTINGS, default_settings)

        self.quizzes = QuizLibrary(self.quiz_collection)
        self.sessions = SessionHistory(self.session_collection)
        self.flashcards = FlashcardLibrary(self.flashcard_collection)
        self.settings = SettingsLibrary(self.settings_document)

        self.auth: AuthContext = SIGNED_OUT
        self.engines: List[BaseSyncEngine] = []
        self.manager: Optional[SyncManager] = None

    @classmethod
    def from_config(cls, data_dir: Optional[Union[str, Path]] = None, setup_logging: bool = True) -> "StudyApp":
        """Builds the app from the user's config file (Firestore when `[firebase]` is filled in)."""
        app_config = load_settings()
        if setup_logging:
            configure_logging(app_config)
        store = JsonFileStore(data_dir or get_data_dir())
        sync_config = sync_settings_from_config()

        if sync_config.enabled and is_firebase_configured():
            firebase = firebase_settings_from_config()
            remote: RemoteStore = FirestoreRemoteStore.from_config(firebase["credentials_path"], firebase["project_id"])
            configured = True
        else:
            logger.info("Cloud sync is not configured; data stays on this device")
            remote = InMemoryRemoteStore()
            configured = False
        return cls(store, remote, sync_config, remote_configured=configured)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def build_engines(self, auth: AuthContext) -> List[BaseSyncEngine]:
        options = dict(debounce_seconds=self.sync_config.debounce_seconds,
                       volatile_fields=self.sync_config.volatile_fields)
        return [
            CollectionSyncEngine(COLLECTION_QUIZZES, self.quiz_collection, self.remote, auth, **options),
            CollectionSyncEngine(COLLECTION_SESSIONS, self.session_collection, self.remote, auth, **options),
            CollectionSyncEngine(COLLECTION_FLASHCARDS, self.flashcard_collection, self.remote, auth, **options),
            SettingsSyncEngine(self.settings_document, self.remote, auth, self.cipher, **options),
        ]

    async def sign_in(self, auth: AuthContext, prompt: SyncPrompt) -> SyncState:
        """Starts a sync session for `auth`; `prompt` is asked when the initial sync needs a decision."""
        if self.manager is not None:
            await self.sign_out()
        configured = auth.is_configured and self.remote_configured and self.sync_config.enabled
        self.auth = dataclasses.replace(auth, is_configured=configured)
        self.engines = self.build_engines(self.auth)
        self.manager = SyncManager(self.auth, self.remote,
                                   self.quiz_collection, self.session_collection, self.flashcard_collection,
                                   self.settings_document, cipher=self.cipher, engines=self.engines,
                                   default_quiz_id=(self.quizzes.default_quiz or {}).get("id", DEFAULT_QUIZ_ID))
        logger.info(f"Signed in as {self.auth.display_name or self.auth.user_id} (cloud sync: {configured})")
        if not self.auth.can_sync:
            return self.manager.state
        return await self.manager.run(prompt)

    async def sign_out(self) -> None:
        if self.manager is not None:
            await self.manager.sign_out()
        self.manager = None
        self.engines = []
        self.auth = SIGNED_OUT
        logger.info("Signed out")

    # ------------------------------------------------------------------
    # Sync status and manual sync
    # ------------------------------------------------------------------

    @property
    def syncing(self) -> bool:
        return bool(self.manager and self.manager.state.syncing) or any(e.syncing for e in self.engines)

    @property
    def last_sync(self) -> Optional[datetime]:
        stamps = [e.last_sync for e in self.engines if e.last_sync is not None]
        return max(stamps) if stamps else None

    async def sync_now(self) -> bool:
        """Pushes every collection immediately. True when all pushes succeeded."""
        if not self.engines or not self.auth.can_sync:
            return False
        results = [await engine.sync_now() for engine in self.engines]
        return all(results)

    async def close(self) -> None:
        await self.sign_out()
        await self.remote.close()

#
# End of app.py
########################################################################################################################
