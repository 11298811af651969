import logging
from typing import Optional

from sqlalchemy.orm import Session

from quizpath.core.session_store import SessionStore, create_session_store
from quizpath.crud.attempt import attempt as crud_attempt
from quizpath.schemas.session import Leaderboard, LeaderboardEntry, QuizSessionState

logger = logging.getLogger(__name__)


class QuizSessionService:
    """
    Live participants per questionnaire, kept in an injected store.

    Every change is a read-modify-write of one key held under the store's
    lock for that key, so concurrent joins and leaves never drop each other.
    """

    def __init__(self, store: Optional[SessionStore] = None):
        self.store = store or create_session_store()

    @staticmethod
    def _key(questionnaire_id: int) -> str:
        return f"quiz_session:{questionnaire_id}"

    async def get_session(self, questionnaire_id: int) -> QuizSessionState:
        data = await self.store.get(self._key(questionnaire_id))
        if not data:
            return QuizSessionState(questionnaire_id=questionnaire_id)
        return QuizSessionState.model_validate(data)

    async def _save(self, state: QuizSessionState):
        if not state.participants:
            await self.store.delete(self._key(state.questionnaire_id))
            return
        await self.store.set(self._key(state.questionnaire_id), state.model_dump())

    async def join(self, questionnaire_id: int, user_id: int, attempt_id: int) -> QuizSessionState:
        async with self.store.lock(self._key(questionnaire_id)):
            state = await self.get_session(questionnaire_id)
            state.participants[str(user_id)] = attempt_id
            state.current_questions.setdefault(str(attempt_id), None)
            await self._save(state)
        logger.info(f"User {user_id} joined live session for questionnaire {questionnaire_id}")
        return state

    async def leave(self, questionnaire_id: int, user_id: int) -> QuizSessionState:
        async with self.store.lock(self._key(questionnaire_id)):
            state = await self.get_session(questionnaire_id)
            attempt_id = state.participants.pop(str(user_id), None)
            if attempt_id is not None:
                state.current_questions.pop(str(attempt_id), None)
                logger.info(f"User {user_id} left live session for questionnaire {questionnaire_id}")
            await self._save(state)
        return state

    async def set_current_question(self, questionnaire_id: int, attempt_id: int,
                                   question_id: Optional[int]) -> QuizSessionState:
        async with self.store.lock(self._key(questionnaire_id)):
            state = await self.get_session(questionnaire_id)
            if str(attempt_id) not in state.current_questions:
                logger.warning(
                    f"Attempt {attempt_id} is not part of the live session for questionnaire {questionnaire_id}"
                )
                return state
            state.current_questions[str(attempt_id)] = question_id
            await self._save(state)
        return state

    async def clear(self, questionnaire_id: int) -> bool:
        return await self.store.delete(self._key(questionnaire_id))

    async def get_leaderboard(self, db: Session, questionnaire_id: int, limit: int = 10,
                              current_user_id: Optional[int] = None) -> Leaderboard:
        attempts = crud_attempt.get_completed_ranked(db, questionnaire_id=questionnaire_id, limit=limit)
        state = await self.get_session(questionnaire_id)
        entries = [
            LeaderboardEntry(
                rank=rank,
                user_id=attempt.user_id,
                attempt_id=attempt.id,
                score=attempt.score,
                percentage=attempt.percentage,
                time_spent=attempt.time_spent or 0,
                is_current_user=current_user_id is not None and attempt.user_id == current_user_id,
            )
            for rank, attempt in enumerate(attempts, start=1)
        ]
        return Leaderboard(
            questionnaire_id=questionnaire_id,
            entries=entries,
            active_participants=len(state.participants),
        )


quiz_session_service = QuizSessionService()
