# Quiz_Library.py
# Description: Service layer for the user's custom quizzes plus the bundled default quiz
#
# Imports
import copy
import json
from importlib import resources
from typing import Any, Dict, List, Mapping, Optional, Union
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from quizdeck.Constants import DEFAULT_QUIZ_ID, DEFAULT_QUIZ_RESOURCE
from quizdeck.DB.local_store import LocalCollection
from quizdeck.schemas import CustomQuiz, QuizCreationData
from quizdeck.Sync.reconciler import is_default_record
from quizdeck.Utils.common import new_record_id, utc_now_iso
#
########################################################################################################################
#
# Functions:


def load_default_quiz(resource_name: str = DEFAULT_QUIZ_RESOURCE) -> Optional[Dict[str, Any]]:
    """Reads the bundled default quiz from `quizdeck/data`. Returns None if it cannot be loaded."""
    try:
        text = resources.files("quizdeck.data").joinpath(resource_name).read_text(encoding="utf-8")
        quiz = CustomQuiz.model_validate(json.loads(text)).to_record()
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load default quiz '{resource_name}': {e}")
        return None
    quiz["isDefault"] = True
    return quiz


class QuizLibrary:
    """
    Custom quiz CRUD over the local `quizzes` collection.

    The default quiz is never stored in the collection; it is prepended to
    reads only, and refuses updates and deletes.
    """

    def __init__(self, collection: LocalCollection, default_quiz: Optional[Mapping[str, Any]] = None):
        self.collection = collection
        self.default_quiz = dict(default_quiz) if default_quiz is not None else load_default_quiz()

    async def custom_quizzes(self) -> List[Dict[str, Any]]:
        return [q for q in await self.collection.get_all() if not is_default_record(q)]

    async def all_quizzes(self) -> List[Dict[str, Any]]:
        quizzes = await self.custom_quizzes()
        if self.default_quiz and not any(q["id"] == self.default_quiz["id"] for q in quizzes):
            quizzes.insert(0, copy.deepcopy(self.default_quiz))
        return quizzes

    async def get_quiz(self, quiz_id: str) -> Optional[Dict[str, Any]]:
        if self.default_quiz and quiz_id == self.default_quiz.get("id", DEFAULT_QUIZ_ID):
            return copy.deepcopy(self.default_quiz)
        return next((q for q in await self.custom_quizzes() if q["id"] == quiz_id), None)

    async def create_quiz(self, quiz_data: Union[QuizCreationData, Mapping[str, Any]]) -> Dict[str, Any]:
        data = quiz_data if isinstance(quiz_data, QuizCreationData) else QuizCreationData.model_validate(quiz_data)
        now = utc_now_iso()
        quiz = CustomQuiz(id=new_record_id("quiz"), created_at=now, updated_at=now,
                          **data.model_dump(exclude_none=True)).to_record()
        quizzes = await self.custom_quizzes()
        quizzes.append(quiz)
        await self.collection.set_all(quizzes)
        logger.info(f"Created quiz '{quiz['name']}' ({quiz['id']}) with {len(quiz['questions'])} question(s)")
        return quiz

    async def update_quiz(self, quiz_id: str, updates: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Applies `updates` to a custom quiz. Returns None for the default quiz or an unknown id."""
        quizzes = await self.custom_quizzes()
        existing = next((q for q in quizzes if q["id"] == quiz_id), None)
        if existing is None or quiz_id == DEFAULT_QUIZ_ID:
            logger.warning(f"Cannot update quiz '{quiz_id}': default or not found")
            return None
        partial = QuizCreationData.model_validate({**existing, **updates}).to_record()
        updated = {**existing, **{k: partial[k] for k in updates if k in partial}, "updatedAt": utc_now_iso()}
        await self.collection.set_all([updated if q["id"] == quiz_id else q for q in quizzes])
        return updated

    async def delete_quiz(self, quiz_id: str) -> bool:
        quizzes = await self.custom_quizzes()
        if quiz_id == DEFAULT_QUIZ_ID or not any(q["id"] == quiz_id for q in quizzes):
            logger.warning(f"Cannot delete quiz '{quiz_id}': default or not found")
            return False
        await self.collection.set_all([q for q in quizzes if q["id"] != quiz_id])
        logger.info(f"Deleted quiz {quiz_id}")
        return True

    async def duplicate_quiz(self, quiz_id: str, new_name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        original = await self.get_quiz(quiz_id)
        if original is None:
            return None
        return await self.create_quiz({
            "name": new_name or f"{original['name']} (Copy)",
            "description": original.get("description", ""),
            "questions": original.get("questions", []),
            "tags": original.get("tags"),
        })

#
# End of Quiz_Library.py
########################################################################################################################
