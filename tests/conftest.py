import sys
import os
import logging
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from quizpath.core.session_store import MemorySessionStore
from quizpath.core.config import settings
from quizpath.core.database import Base, get_db
from quizpath.core.exceptions import DependencyFailure
from quizpath.models import questionnaire, question, attempt, submission  # noqa: F401 registers tables
from quizpath.schemas.ai import AIValidationResponse, FeedbackResponse
from quizpath.services.answer_validation import AnswerValidationService
from quizpath.services.attempt import AttemptService
from quizpath.services.feedback import FeedbackService
from quizpath.services.quiz_session import QuizSessionService
from quizpath.utils import deps as deps_utils
import main

test_db_url = settings.TEST_DATABASE_URL or "sqlite://"


class FakeOracle:
    """Stands in for the AI scoring service; records every call it receives."""

    def __init__(self):
        self.validate_response = AIValidationResponse(is_valid=True, score=1.0, confidence=0.95, feedback="Looks right")
        self.feedback_response = FeedbackResponse(
            overall_feedback="Solid attempt",
            strengths=["Clear answers"],
            areas_for_improvement=["Show your working"],
            recommendations=["Review chapter 2"],
        )
        self.fail_validate = False
        self.fail_feedback = False
        self.validate_calls = []
        self.feedback_calls = []

    async def validate(self, **kwargs):
        self.validate_calls.append(kwargs)
        if self.fail_validate:
            raise DependencyFailure("AI service timed out")
        return self.validate_response

    async def generate_feedback(self, attempt_summary, submission_summaries):
        self.feedback_calls.append((attempt_summary, submission_summaries))
        if self.fail_feedback:
            raise DependencyFailure("AI service unavailable")
        return self.feedback_response


@pytest.fixture(autouse=True)
def propagate_app_logs():
    # App startup applies LOGGING_CONFIG, which stops propagation to the root logger caplog listens on
    for name in ("quizpath", "quizpath.services.ai_client"):
        logging.getLogger(name).propagate = True
    yield

@pytest.fixture(scope="session")
def database_engine():
    if test_db_url.startswith("sqlite"):
        engine = create_engine(test_db_url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(test_db_url)
    yield engine
    engine.dispose()

@pytest.fixture(scope="function")
def session_factory(database_engine):
    Base.metadata.create_all(bind=database_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    Base.metadata.drop_all(bind=database_engine)

@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture
def fake_oracle():
    return FakeOracle()

@pytest.fixture
def validator(fake_oracle):
    return AnswerValidationService(oracle=fake_oracle)

@pytest.fixture
def feedback(fake_oracle, session_factory):
    return FeedbackService(oracle=fake_oracle, session_factory=session_factory)

@pytest.fixture
def service(validator, feedback):
    return AttemptService(validator=validator, feedback=feedback)

@pytest.fixture
def sessions():
    return QuizSessionService(store=MemorySessionStore())

@pytest.fixture(scope="function")
def client(db_session, service, sessions):
    main.app.dependency_overrides[get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_attempt_service] = lambda: service
    main.app.dependency_overrides[deps_utils.get_quiz_session_service] = lambda: sessions
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()
