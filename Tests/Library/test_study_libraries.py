# Tests/Library/test_study_libraries.py
# Flashcard decks, session history and settings
import pytest
from pydantic import ValidationError

from quizdeck.Constants import SECRET_SETTINGS_FIELD
from quizdeck.Library.Flashcard_Library import FlashcardLibrary
from quizdeck.Library.Session_Library import SessionHistory
from quizdeck.Library.Settings_Library import SettingsLibrary
from quizdeck.schemas import default_settings

from quizdeck_test_utils import make_session


class TestFlashcardLibrary:
    @pytest.fixture
    def library(self, flashcards_local):
        return FlashcardLibrary(flashcards_local)

    async def test_create_deck_stamps_cards(self, library):
        deck = await library.create_deck({
            "name": "Spanish",
            "cards": [{"front": "hola", "back": "hello"}, {"front": "adios", "back": "goodbye", "difficulty": "easy"}],
        })

        assert deck["id"].startswith("deck-")
        ids = [card["id"] for card in deck["cards"]]
        assert len(set(ids)) == 2
        assert all(card["deckId"] == deck["id"] for card in deck["cards"])
        assert deck["cards"][1]["difficulty"] == "easy"
        assert await library.get_deck(deck["id"]) == deck

    async def test_update_deck_keeps_existing_card_ids(self, library):
        deck = await library.create_deck({"name": "Spanish", "cards": [{"front": "hola", "back": "hello"}]})
        card = deck["cards"][0]

        updated = await library.update_deck(deck["id"], {
            "name": "Spanish 101",
            "cards": [card, {"front": "gracias", "back": "thanks"}],
        })

        assert updated["name"] == "Spanish 101"
        assert updated["cards"][0]["id"] == card["id"]
        assert updated["cards"][0]["createdAt"] == card["createdAt"]
        assert len(updated["cards"]) == 2

    async def test_update_missing_deck(self, library):
        assert await library.update_deck("deck-missing", {"name": "x"}) is None

    async def test_invalid_difficulty_is_rejected(self, library):
        with pytest.raises(ValidationError):
            await library.create_deck({"name": "Bad", "cards": [{"front": "a", "back": "b", "difficulty": "extreme"}]})

    async def test_delete_deck(self, library):
        deck = await library.create_deck({"name": "Temp"})
        assert await library.delete_deck(deck["id"]) is True
        assert await library.list_decks() == []
        assert await library.delete_deck(deck["id"]) is False


class TestSessionHistory:
    @pytest.fixture
    def history(self, sessions_local):
        return SessionHistory(sessions_local)

    async def test_record_session_assigns_id_and_question_count(self, history):
        session = {k: v for k, v in make_session("ignored").items() if k not in ("id", "totalQuestions")}
        session["questions"] = [{"question": "q1"}, {"question": "q2"}, {"question": "q3"}]

        record = await history.record_session(session)

        assert record["id"].startswith("session-")
        assert record["totalQuestions"] == 3
        assert await history.get_session(record["id"]) == record

    async def test_re_recording_replaces_session(self, history):
        await history.record_session(make_session("s1", score=10))
        await history.record_session(make_session("s1", score=80))

        sessions = await history.list_sessions()
        assert len(sessions) == 1
        assert sessions[0]["score"] == 80

    async def test_list_newest_first_and_filter_by_quiz(self, history):
        await history.record_session(make_session("old", startTime="2024-01-01T00:00:00+00:00"))
        await history.record_session(make_session("new", startTime="2024-06-01T00:00:00+00:00"))
        await history.record_session(make_session("other", quizId="quiz-2"))

        assert [s["id"] for s in await history.list_sessions("quiz-1")] == ["new", "old"]
        assert [s["id"] for s in await history.list_sessions("quiz-2")] == ["other"]

    async def test_delete_session(self, history):
        await history.record_session(make_session("s1"))
        assert await history.delete_session("s1") is True
        assert await history.delete_session("s1") is False


class TestSettingsLibrary:
    @pytest.fixture
    def settings(self, settings_local):
        return SettingsLibrary(settings_local)

    async def test_defaults(self, settings):
        assert await settings.get() == default_settings()
        assert await settings.is_default() is True

    async def test_update_validates_and_persists(self, settings):
        updated = await settings.update({"theme": "dark", SECRET_SETTINGS_FIELD: "sk-123"})

        assert updated["theme"] == "dark"
        assert (await settings.get())[SECRET_SETTINGS_FIELD] == "sk-123"
        assert await settings.is_default() is False

    async def test_invalid_theme_is_rejected(self, settings):
        with pytest.raises(ValidationError):
            await settings.update({"theme": "neon"})
        assert await settings.is_default() is True

    async def test_reset(self, settings):
        await settings.update({"showTimer": False})
        assert await settings.reset() == default_settings()
        assert await settings.is_default() is True
