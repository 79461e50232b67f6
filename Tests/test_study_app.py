# test_study_app.py
#
# Imports
import asyncio

import pytest
#
# Local Imports
from quizdeck.app import StudyApp
from quizdeck.auth import AuthContext
from quizdeck.Constants import COLLECTION_QUIZZES, DEFAULT_QUIZ_ID, collection_path
from quizdeck.DB.local_store import JsonFileStore
from quizdeck.DB.remote_store import InMemoryRemoteStore
from quizdeck.schemas import SyncConfig
from quizdeck.Sync.reconciler import record_ids
from quizdeck.Sync.sync_engine import SyncEngineState
#
########################################################################################################################
#
# Fixtures

USER = AuthContext(user_id="user-9", is_configured=True, display_name="Ada")


@pytest.fixture
async def study_app(tmp_path):
    app = StudyApp(JsonFileStore(tmp_path / "data"), InMemoryRemoteStore(), SyncConfig(debounce_seconds=0.05))
    yield app
    await app.close()

#
# Tests


async def test_first_sign_in_uploads_after_prompt(study_app, mocker):
    quiz = await study_app.quizzes.create_quiz({"name": "Local quiz"})
    prompt = mocker.AsyncMock(return_value="upload")

    state = await study_app.sign_in(USER, prompt)

    assert state.sync_complete is True
    prompt.assert_awaited_once()
    remote_ids = record_ids(await study_app.remote.list_collection(collection_path("user-9", COLLECTION_QUIZZES)))
    assert remote_ids == {quiz["id"]}
    assert DEFAULT_QUIZ_ID not in remote_ids
    assert all(engine.state == SyncEngineState.LISTENING for engine in study_app.engines)


async def test_changes_after_sign_in_are_pushed(study_app, mocker):
    await study_app.sign_in(USER, mocker.AsyncMock(return_value="cancel"))

    quiz = await study_app.quizzes.create_quiz({"name": "Made while online"})
    await asyncio.sleep(0.25)

    remote_ids = record_ids(await study_app.remote.list_collection(collection_path("user-9", COLLECTION_QUIZZES)))
    assert remote_ids == {quiz["id"]}
    assert study_app.last_sync is not None
    assert study_app.syncing is False


async def test_sync_now(study_app, mocker):
    await study_app.sign_in(USER, mocker.AsyncMock(return_value="cancel"))
    quiz = await study_app.quizzes.create_quiz({"name": "Right now"})

    assert await study_app.sync_now() is True
    remote_ids = record_ids(await study_app.remote.list_collection(collection_path("user-9", COLLECTION_QUIZZES)))
    assert quiz["id"] in remote_ids


async def test_unconfigured_backend_keeps_data_local(tmp_path, mocker):
    app = StudyApp(JsonFileStore(tmp_path / "data"), InMemoryRemoteStore(), remote_configured=False)
    try:
        prompt = mocker.AsyncMock()
        await app.quizzes.create_quiz({"name": "Offline"})

        state = await app.sign_in(USER, prompt)

        prompt.assert_not_called()
        assert state.sync_complete is False
        assert app.auth.can_sync is False
        assert await app.sync_now() is False
    finally:
        await app.close()


async def test_sign_out_stops_engines(study_app, mocker):
    await study_app.sign_in(USER, mocker.AsyncMock(return_value="cancel"))
    engines = list(study_app.engines)

    await study_app.sign_out()

    assert study_app.manager is None
    assert not study_app.auth.is_signed_in
    assert all(engine.state == SyncEngineState.IDLE and not engine.enabled for engine in engines)

#
# End of test_study_app.py
########################################################################################################################
