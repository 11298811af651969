import asyncio

import pytest

from quizpath.core.constants import AttemptStatusEnum
from quizpath.core.session_store import MemorySessionStore
from quizpath.crud.attempt import attempt as crud_attempt
from quizpath.services.quiz_session import QuizSessionService
from tests.helpers.factories import make_questionnaire


class YieldingStore(MemorySessionStore):
    """Gives other tasks a turn on every read, as a networked store would."""

    async def get(self, key):
        await asyncio.sleep(0)
        return await super().get(key)


@pytest.mark.asyncio
async def test_join_and_track_current_question(sessions):
    await sessions.join(1, user_id=10, attempt_id=100)
    await sessions.join(1, user_id=11, attempt_id=101)
    await sessions.set_current_question(1, attempt_id=100, question_id=5)

    state = await sessions.get_session(1)
    assert state.participants == {"10": 100, "11": 101}
    assert state.current_questions == {"100": 5, "101": None}

@pytest.mark.asyncio
async def test_leave_removes_participant_and_empty_session(sessions):
    await sessions.join(2, user_id=10, attempt_id=100)
    state = await sessions.leave(2, user_id=10)
    assert state.participants == {}
    assert await sessions.store.get("quiz_session:2") is None

@pytest.mark.asyncio
async def test_current_question_for_unknown_attempt_is_ignored(sessions):
    await sessions.join(3, user_id=10, attempt_id=100)
    state = await sessions.set_current_question(3, attempt_id=555, question_id=1)
    assert "555" not in state.current_questions

@pytest.mark.asyncio
async def test_sessions_are_isolated_per_questionnaire(sessions):
    await sessions.join(4, user_id=10, attempt_id=100)
    assert (await sessions.get_session(5)).participants == {}
    assert await sessions.clear(4)
    assert (await sessions.get_session(4)).participants == {}

@pytest.mark.asyncio
async def test_leaderboard_ranks_completed_attempts(db_session, sessions):
    questionnaire = make_questionnaire(db_session, allow_retake=True)
    rows = [
        (1, 8, 120, AttemptStatusEnum.COMPLETED),
        (2, 9, 300, AttemptStatusEnum.COMPLETED),
        (3, 8, 90, AttemptStatusEnum.COMPLETED),
        (4, 10, 10, AttemptStatusEnum.ABANDONED),
    ]
    for user_id, score, time_spent, status in rows:
        crud_attempt.create(db_session, obj_in={
            "user_id": user_id,
            "questionnaire_id": questionnaire.id,
            "status": status,
            "score": score,
            "max_score": 10,
            "percentage": score * 10,
            "time_spent": time_spent,
        })
    await sessions.join(questionnaire.id, user_id=5, attempt_id=99)

    leaderboard = await sessions.get_leaderboard(db_session, questionnaire.id, limit=10, current_user_id=3)
    assert [entry.user_id for entry in leaderboard.entries] == [2, 3, 1]
    assert [entry.rank for entry in leaderboard.entries] == [1, 2, 3]
    assert leaderboard.entries[1].is_current_user
    assert leaderboard.active_participants == 1

@pytest.mark.asyncio
async def test_concurrent_joins_keep_every_participant():
    sessions = QuizSessionService(store=YieldingStore())
    await asyncio.gather(*(sessions.join(6, user_id=user_id, attempt_id=100 + user_id) for user_id in range(5)))

    state = await sessions.get_session(6)
    assert len(state.participants) == 5

    await asyncio.gather(sessions.leave(6, user_id=0), sessions.leave(6, user_id=1),
                         sessions.set_current_question(6, attempt_id=102, question_id=7))
    state = await sessions.get_session(6)
    assert sorted(state.participants) == ["2", "3", "4"]
    assert state.current_questions == {"102": 7, "103": None, "104": None}
