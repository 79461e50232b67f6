# Tests/Library/test_quiz_library.py
import pytest
from pydantic import ValidationError

from quizdeck.Constants import DEFAULT_QUIZ_ID
from quizdeck.Library.Quiz_Library import QuizLibrary, load_default_quiz

from quizdeck_test_utils import make_quiz

QUESTION = {"type": "singleSelect", "question": "Capital of France?", "options": ["Paris", "Rome"], "answer": [0]}


@pytest.fixture
def library(quizzes_local):
    return QuizLibrary(quizzes_local)


def test_bundled_default_quiz_loads():
    quiz = load_default_quiz()
    assert quiz["id"] == DEFAULT_QUIZ_ID
    assert quiz["isDefault"] is True
    assert len(quiz["questions"]) >= 1
    assert load_default_quiz("no-such-file.json") is None


class TestQuizLibrary:
    async def test_default_quiz_is_listed_but_not_stored(self, library, quizzes_local):
        await library.create_quiz({"name": "Geography", "questions": [QUESTION]})

        all_quizzes = await library.all_quizzes()
        assert all_quizzes[0]["id"] == DEFAULT_QUIZ_ID
        assert [q["name"] for q in all_quizzes[1:]] == ["Geography"]
        assert all(q["id"] != DEFAULT_QUIZ_ID for q in await quizzes_local.get_all())

    async def test_create_assigns_id_and_timestamps(self, library):
        quiz = await library.create_quiz({"name": "Geography", "questions": [QUESTION], "tags": ["geo"]})

        assert quiz["id"].startswith("quiz-")
        assert quiz["createdAt"] == quiz["updatedAt"]
        assert quiz["questions"][0]["question"] == "Capital of France?"
        assert await library.get_quiz(quiz["id"]) == quiz

    async def test_invalid_quiz_is_rejected(self, library):
        with pytest.raises(ValidationError):
            await library.create_quiz({"questions": [QUESTION]})

    async def test_update_quiz(self, library):
        quiz = await library.create_quiz({"name": "Old", "questions": [QUESTION]})
        updated = await library.update_quiz(quiz["id"], {"name": "New"})

        assert updated["name"] == "New"
        assert updated["createdAt"] == quiz["createdAt"]
        assert (await library.get_quiz(quiz["id"]))["name"] == "New"

    async def test_default_quiz_cannot_be_changed(self, library):
        assert await library.update_quiz(DEFAULT_QUIZ_ID, {"name": "Hacked"}) is None
        assert await library.delete_quiz(DEFAULT_QUIZ_ID) is False
        assert (await library.get_quiz(DEFAULT_QUIZ_ID))["name"] != "Hacked"

    async def test_delete_quiz(self, library):
        quiz = await library.create_quiz({"name": "Temp"})
        assert await library.delete_quiz(quiz["id"]) is True
        assert await library.delete_quiz(quiz["id"]) is False
        assert await library.get_quiz(quiz["id"]) is None

    async def test_duplicate_default_quiz_creates_custom_copy(self, library):
        copy_ = await library.duplicate_quiz(DEFAULT_QUIZ_ID)

        assert copy_["name"].endswith(" (Copy)")
        assert copy_["id"] != DEFAULT_QUIZ_ID
        assert "isDefault" not in copy_
        assert len(await library.custom_quizzes()) == 1

    async def test_stored_default_copies_are_ignored(self, library, quizzes_local):
        await quizzes_local.set_all([make_quiz(DEFAULT_QUIZ_ID, isDefault=True), make_quiz("q1")])
        assert [q["id"] for q in await library.custom_quizzes()] == ["q1"]
