import asyncio
import logging
from typing import Callable, List, Optional, Set

from sqlalchemy.orm import Session

from quizpath.core.config import settings
from quizpath.core.constants import ValidationStatusEnum
from quizpath.core.database import SessionLocal
from quizpath.crud.attempt import attempt as crud_attempt
from quizpath.crud.submission import submission as crud_submission
from quizpath.models.attempt import Attempt
from quizpath.schemas.ai import FeedbackResponse
from quizpath.services.ai_client import ai_service

logger = logging.getLogger(__name__)


class FeedbackService:
    """Generates AI feedback for completed attempts in detached background tasks."""

    def __init__(self, oracle=None, session_factory: Optional[Callable[[], Session]] = None):
        self.oracle = oracle or ai_service
        self.session_factory = session_factory or SessionLocal
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, attempt_id: int) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, skipping feedback generation for attempt {attempt_id}")
            return None

        task = loop.create_task(self.generate_for_attempt(attempt_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_for_pending(self):
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def generate_for_attempt(self, attempt_id: int):
        db = self.session_factory()
        try:
            attempt = crud_attempt.get(db, id=attempt_id)
            if not attempt:
                logger.warning(f"Attempt {attempt_id} disappeared before feedback could be generated")
                return

            try:
                response = await self.oracle.generate_feedback(
                    self._attempt_summary(attempt),
                    self._submission_summaries(db, attempt),
                )
                text = self.format(response)
            except Exception as e:
                logger.error(f"Feedback generation failed for attempt {attempt_id}: {e}", exc_info=True)
                text = settings.FEEDBACK_UNAVAILABLE_TEXT

            crud_attempt.update(db, db_obj=attempt, obj_in={"ai_generated_feedback": text})
            logger.info(f"Stored generated feedback for attempt {attempt_id}")
        except Exception as e:
            db.rollback()
            logger.error(f"Could not store feedback for attempt {attempt_id}: {e}", exc_info=True)
        finally:
            db.close()

    @staticmethod
    def _attempt_summary(attempt: Attempt) -> dict:
        return {
            "score": attempt.score,
            "max_score": attempt.max_score,
            "percentage": attempt.percentage,
            "time_spent": attempt.time_spent,
            "status": attempt.status.value,
            "result": attempt.result.value,
        }

    @staticmethod
    def _submission_summaries(db: Session, attempt: Attempt) -> List[dict]:
        summaries = []
        for submission in crud_submission.get_all_by_attempt(db, attempt_id=attempt.id):
            result = submission.validation_result or {}
            content = submission.question.content if submission.question else {}
            summaries.append({
                "question_text": content.get("text", "Unknown question"),
                "user_answer": submission.user_answer,
                "is_correct": submission.validation_status == ValidationStatusEnum.CORRECT,
                "score": result.get("score", 0),
                "max_score": result.get("max_score", 0),
                "time_spent": submission.time_spent,
            })
        return summaries

    @staticmethod
    def format(response: FeedbackResponse) -> str:
        sections = []
        if response.overall_feedback:
            sections.append(f"## Overall Feedback\n{response.overall_feedback}")
        for title, items in (
            ("Strengths", response.strengths),
            ("Areas for Improvement", response.areas_for_improvement),
            ("Recommendations", response.recommendations),
        ):
            if items:
                bullets = "\n".join(f"- {item}" for item in items)
                sections.append(f"## {title}\n{bullets}")
        return "\n\n".join(sections)


feedback_service = FeedbackService()
