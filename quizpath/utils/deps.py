from fastapi import Header
from quizpath.core.database import get_db
from quizpath.services.attempt import AttemptService, attempt_service
from quizpath.services.questionnaire import QuestionnaireService, questionnaire_service
from quizpath.services.quiz_session import QuizSessionService, quiz_session_service

__all__ = [
    "get_db",
    "get_current_user_id",
    "get_attempt_service",
    "get_questionnaire_service",
    "get_quiz_session_service",
]

def get_current_user_id(x_user_id: int = Header(..., alias="X-User-Id")) -> int:
    """Caller identity as forwarded by the gateway that authenticated the request."""
    return x_user_id

def get_attempt_service() -> AttemptService:
    return attempt_service

def get_questionnaire_service() -> QuestionnaireService:
    return questionnaire_service

def get_quiz_session_service() -> QuizSessionService:
    return quiz_session_service
