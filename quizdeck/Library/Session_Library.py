# Session_Library.py
# Description: History of completed quiz sessions
#
# Imports
from typing import Any, Dict, List, Mapping, Optional, Union
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from quizdeck.DB.local_store import LocalCollection
from quizdeck.schemas import QuizSession
from quizdeck.Utils.common import new_record_id
#
########################################################################################################################
#
# Functions:


class SessionHistory:

    def __init__(self, collection: LocalCollection):
        self.collection = collection

    async def record_session(self, session: Union[QuizSession, Mapping[str, Any]]) -> Dict[str, Any]:
        """Appends a finished session, assigning an id when the caller did not."""
        if not isinstance(session, QuizSession):
            session = QuizSession.model_validate({"id": new_record_id("session"), **session})
        record = session.to_record()
        if not record.get("totalQuestions"):
            record["totalQuestions"] = len(record.get("questions", []))
        sessions = [s for s in await self.collection.get_all() if s["id"] != record["id"]]
        sessions.append(record)
        await self.collection.set_all(sessions)
        logger.info(f"Recorded session {record['id']} for quiz '{record['quizName']}' (score {record['score']})")
        return record

    async def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        return next((s for s in await self.collection.get_all() if s["id"] == session_id), None)

    async def list_sessions(self, quiz_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Newest first, optionally only the sessions of one quiz."""
        sessions = await self.collection.get_all()
        if quiz_id is not None:
            sessions = [s for s in sessions if s.get("quizId") == quiz_id]
        return sorted(sessions, key=lambda s: str(s.get("startTime", "")), reverse=True)

    async def delete_session(self, session_id: str) -> bool:
        sessions = await self.collection.get_all()
        remaining = [s for s in sessions if s["id"] != session_id]
        if len(remaining) == len(sessions):
            return False
        await self.collection.set_all(remaining)
        return True

#
# End of Session_Library.py
########################################################################################################################
