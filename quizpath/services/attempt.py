import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quizpath.core.constants import AttemptStatusEnum, AttemptResultEnum, ValidationStatusEnum
from quizpath.core.exceptions import InvalidStateError, NotFoundError
from quizpath.crud.attempt import attempt as crud_attempt
from quizpath.crud.question import question as crud_question
from quizpath.crud.submission import submission as crud_submission
from quizpath.models.attempt import Attempt
from quizpath.models.question import Question
from quizpath.models.submission import Submission
from quizpath.schemas.attempt import AttemptCreate, AttemptScore
from quizpath.schemas.path import Resolution
from quizpath.schemas.submission import SubmissionCreate, ValidationResult
from quizpath.services.answer_validation import answer_validation_service
from quizpath.services.feedback import feedback_service
from quizpath.services.path_resolver import path_resolver
from quizpath.services.questionnaire import questionnaire_service, utcnow, as_aware
from quizpath.services.scoring import calculate_attempt_score, determine_result

logger = logging.getLogger(__name__)


class AttemptService:

    def __init__(self, validator=None, feedback=None, resolver=None):
        self.validator = validator or answer_validation_service
        self.feedback = feedback or feedback_service
        self.resolver = resolver or path_resolver
        self.questionnaires = questionnaire_service

    def _get_owned_attempt(self, db: Session, attempt_id: int, user_id: int) -> Attempt:
        attempt = crud_attempt.get(db, id=attempt_id)
        if not attempt or attempt.user_id != user_id:
            raise NotFoundError("Attempt not found or does not belong to you.")
        return attempt

    def _require_in_progress(self, attempt: Attempt):
        if attempt.status != AttemptStatusEnum.IN_PROGRESS:
            raise InvalidStateError(f"Attempt {attempt.id} is {attempt.status.value}, not in progress.")

    def _require_within_time_limit(self, db: Session, attempt: Attempt):
        time_limit = attempt.questionnaire.time_limit
        if not time_limit or not attempt.started_at:
            return
        elapsed = (utcnow() - as_aware(attempt.started_at)).total_seconds()
        if elapsed > time_limit:
            self._finish(db, attempt, AttemptStatusEnum.TIMED_OUT)
            raise InvalidStateError(f"Time limit of {time_limit} seconds exceeded; attempt {attempt.id} has timed out.")

    def start_attempt(self, db: Session, questionnaire_id: int, user_id: int,
                      metadata: Optional[Dict[str, Any]] = None) -> Attempt:
        questionnaire = self.questionnaires.get_questionnaire(db, questionnaire_id)
        if not self.questionnaires.is_available(questionnaire):
            raise InvalidStateError("Questionnaire is not available.")

        in_progress = crud_attempt.get_by_user_and_questionnaire(
            db, user_id=user_id, questionnaire_id=questionnaire_id, status=AttemptStatusEnum.IN_PROGRESS
        )
        if in_progress:
            raise InvalidStateError(
                "You already have an in-progress attempt for this questionnaire. Complete or abandon it first."
            )

        if not questionnaire.allow_retake:
            completed = crud_attempt.get_by_user_and_questionnaire(
                db, user_id=user_id, questionnaire_id=questionnaire_id, status=AttemptStatusEnum.COMPLETED
            )
            if completed:
                raise InvalidStateError("Retakes are not allowed for this questionnaire.")
        elif questionnaire.max_retakes:
            total = crud_attempt.count_by_user_and_questionnaire(db, user_id=user_id, questionnaire_id=questionnaire_id)
            if total >= questionnaire.max_retakes:
                raise InvalidStateError(f"Maximum number of attempts ({questionnaire.max_retakes}) reached.")

        attempt_in = AttemptCreate(
            user_id=user_id,
            questionnaire_id=questionnaire_id,
            attempt_metadata=metadata or {},
            started_at=utcnow(),
        )
        try:
            new_attempt = crud_attempt.create(db, obj_in=attempt_in)
        except IntegrityError:
            db.rollback()
            raise InvalidStateError(
                "You already have an in-progress attempt for this questionnaire. Complete or abandon it first."
            )

        logger.info(f"User {user_id} started attempt {new_attempt.id} on questionnaire {questionnaire_id}")
        return new_attempt

    def get_next_question(self, db: Session, attempt_id: int, user_id: int,
                          current_question_id: Optional[int] = None,
                          answer_key: Any = None) -> Tuple[Resolution, Optional[Question]]:
        attempt = self._get_owned_attempt(db, attempt_id, user_id)
        self._require_in_progress(attempt)
        self._require_within_time_limit(db, attempt)

        graph = self.questionnaires.get_graph(attempt.questionnaire)
        if graph is not None:
            if current_question_id is None:
                first = graph.first_question_id()
                resolution = Resolution.next_question(first) if first is not None else Resolution.end()
            else:
                resolution = self.resolver.resolve(graph, current_question_id, answer_key)
        else:
            resolution = self._next_in_order(db, attempt.questionnaire_id, current_question_id)

        question = None
        if resolution.question_id is not None:
            question = crud_question.get_in_questionnaire(
                db, questionnaire_id=attempt.questionnaire_id, question_id=resolution.question_id
            )
            if not question:
                raise NotFoundError(f"Question {resolution.question_id} not found in this questionnaire.")
        return resolution, question

    def _next_in_order(self, db: Session, questionnaire_id: int, current_question_id: Optional[int]) -> Resolution:
        question_ids = self.questionnaires.get_question_order(db, questionnaire_id)
        if current_question_id is None:
            return Resolution.next_question(question_ids[0]) if question_ids else Resolution.end()
        if current_question_id not in question_ids:
            raise NotFoundError(f"Question {current_question_id} is not part of this questionnaire.")
        index = question_ids.index(current_question_id)
        if index + 1 < len(question_ids):
            return Resolution.next_question(question_ids[index + 1])
        return Resolution.end()

    async def submit_answer(self, db: Session, attempt_id: int, user_id: int, question_id: int,
                            user_answer: Any, hints_used: Optional[List[int]] = None,
                            time_spent: Optional[int] = None,
                            flagged_for_review: bool = False) -> Tuple[Submission, ValidationResult]:
        attempt = self._get_owned_attempt(db, attempt_id, user_id)
        self._require_in_progress(attempt)
        self._require_within_time_limit(db, attempt)

        question = crud_question.get(db, id=question_id)
        if not question:
            raise NotFoundError("Question not found.")
        if question.questionnaire_id != attempt.questionnaire_id:
            raise InvalidStateError("Question does not belong to this questionnaire.")
        if crud_submission.get_by_attempt_and_question(db, attempt_id=attempt_id, question_id=question_id):
            raise InvalidStateError("Answer already submitted for this question.")

        result = await self.validator.validate(question, user_answer, hints_used)

        submission_in = SubmissionCreate(
            attempt_id=attempt_id,
            question_id=question_id,
            user_answer=user_answer,
            hints_used=hints_used or [],
            time_spent=time_spent,
            flagged_for_review=flagged_for_review or result.status == ValidationStatusEnum.PENDING,
            validation_status=result.status,
            validation_result=result.model_dump(mode="json"),
            validated_at=utcnow(),
        )
        try:
            new_submission = crud_submission.create(db, obj_in=submission_in, commit=False)
            self._update_question_statistics(db, question, result)
            score = attempt.score + result.score
            max_score = attempt.max_score + result.max_score
            crud_attempt.update(db, db_obj=attempt, obj_in={
                "path_taken": list(attempt.path_taken or []) + [question_id],
                "time_spent": (attempt.time_spent or 0) + (time_spent or 0),
                "score": score,
                "max_score": max_score,
                "percentage": round(score / max_score * 100, 2) if max_score > 0 else 0.0,
            }, commit=False)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise InvalidStateError("Answer already submitted for this question.")

        db.refresh(new_submission)
        logger.info(
            f"Attempt {attempt_id} answered question {question_id}: {result.status.value} "
            f"({result.score}/{result.max_score})"
        )
        return new_submission, result

    def _update_question_statistics(self, db: Session, question: Question, result: ValidationResult):
        total = question.total_attempts or 0
        new_total = total + 1
        correct = (question.correct_attempts or 0) + (1 if result.status == ValidationStatusEnum.CORRECT else 0)
        average = ((question.average_score or 0) * total + result.score) / new_total
        crud_question.update(db, db_obj=question, obj_in={
            "total_attempts": new_total,
            "correct_attempts": correct,
            "average_score": average,
        }, commit=False)

    def score_attempt(self, db: Session, attempt: Attempt) -> AttemptScore:
        submissions = crud_submission.get_all_by_attempt(db, attempt_id=attempt.id)
        results = [s.validation_result for s in submissions if s.validation_result]
        return calculate_attempt_score(results, attempt.questionnaire.points)

    def _grade(self, db: Session, attempt: Attempt) -> Dict[str, Any]:
        totals = self.score_attempt(db, attempt)
        questionnaire = attempt.questionnaire
        return {
            "score": totals.score,
            "max_score": totals.max_score,
            "percentage": totals.percentage,
            "result": determine_result(
                totals.score, totals.exact_percentage, questionnaire.pass_percentage, questionnaire.pass_points
            ),
        }

    async def complete_attempt(self, db: Session, attempt_id: int, user_id: int,
                               time_spent: Optional[int] = None, feedback: Optional[str] = None,
                               metadata: Optional[Dict[str, Any]] = None) -> Attempt:
        attempt = self._get_owned_attempt(db, attempt_id, user_id)
        self._require_in_progress(attempt)
        self._require_within_time_limit(db, attempt)

        update_data = self._grade(db, attempt)
        update_data.update({
            "status": AttemptStatusEnum.COMPLETED,
            "completed_at": utcnow(),
            "time_spent": time_spent if time_spent is not None else attempt.time_spent,
            "feedback": feedback,
        })
        if metadata:
            update_data["attempt_metadata"] = {**(attempt.attempt_metadata or {}), **metadata}

        attempt = crud_attempt.update(db, db_obj=attempt, obj_in=update_data)
        logger.info(
            f"Attempt {attempt.id} completed: {attempt.result.value} "
            f"({attempt.score}/{attempt.max_score}, {attempt.percentage}%)"
        )

        self.feedback.schedule(attempt.id)
        return attempt

    def _finish(self, db: Session, attempt: Attempt, status: AttemptStatusEnum) -> Attempt:
        attempt = crud_attempt.update(db, db_obj=attempt, obj_in={"status": status, "completed_at": utcnow()})
        logger.info(f"Attempt {attempt.id} moved to {status.value}")
        return attempt

    def abandon_attempt(self, db: Session, attempt_id: int, user_id: int) -> Attempt:
        attempt = self._get_owned_attempt(db, attempt_id, user_id)
        self._require_in_progress(attempt)
        return self._finish(db, attempt, AttemptStatusEnum.ABANDONED)

    def time_out_attempt(self, db: Session, attempt_id: int, user_id: int) -> Attempt:
        attempt = self._get_owned_attempt(db, attempt_id, user_id)
        self._require_in_progress(attempt)
        return self._finish(db, attempt, AttemptStatusEnum.TIMED_OUT)

    def review_submission(self, db: Session, submission_id: int, validation_result: ValidationResult,
                          review_notes: Optional[str] = None) -> Submission:
        submission = crud_submission.get(db, id=submission_id)
        if not submission:
            raise NotFoundError("Submission not found.")

        crud_submission.update(db, db_obj=submission, obj_in={
            "validation_status": validation_result.status,
            "validation_result": validation_result.model_dump(mode="json"),
            "review_notes": review_notes,
            "validated_at": utcnow(),
            "flagged_for_review": False,
        }, commit=False)

        attempt = submission.attempt
        if attempt.status == AttemptStatusEnum.COMPLETED:
            crud_attempt.update(db, db_obj=attempt, obj_in=self._grade(db, attempt), commit=False)
        elif attempt.status == AttemptStatusEnum.IN_PROGRESS:
            totals = calculate_attempt_score(
                s.validation_result for s in crud_submission.get_all_by_attempt(db, attempt_id=attempt.id)
                if s.validation_result
            )
            crud_attempt.update(db, db_obj=attempt, obj_in=totals.model_dump(), commit=False)

        db.commit()
        db.refresh(submission)
        logger.info(f"Submission {submission_id} reviewed as {validation_result.status.value}")
        return submission

    def result_text(self, attempt: Attempt) -> Optional[str]:
        if attempt.result == AttemptResultEnum.PASS:
            return attempt.questionnaire.pass_text
        if attempt.result == AttemptResultEnum.FAIL:
            return attempt.questionnaire.fail_text
        return None

    def get_attempt(self, db: Session, attempt_id: int, user_id: int) -> Attempt:
        return self._get_owned_attempt(db, attempt_id, user_id)

    def get_attempts(self, db: Session, user_id: int, questionnaire_id: Optional[int] = None,
                     status: Optional[AttemptStatusEnum] = None, result: Optional[AttemptResultEnum] = None,
                     skip: int = 0, limit: int = 100) -> List[Attempt]:
        return crud_attempt.get_filtered(
            db, user_id=user_id, questionnaire_id=questionnaire_id, status=status, result=result,
            skip=skip, limit=limit
        )

    def get_questionnaire_attempts(self, db: Session, questionnaire_id: int,
                                   status: Optional[AttemptStatusEnum] = None,
                                   result: Optional[AttemptResultEnum] = None,
                                   skip: int = 0, limit: int = 100) -> List[Attempt]:
        """Every user's attempts on one questionnaire, for educators reviewing results."""
        self.questionnaires.get_questionnaire(db, questionnaire_id)
        return crud_attempt.get_filtered(
            db, questionnaire_id=questionnaire_id, status=status, result=result, skip=skip, limit=limit
        )

    def is_end_of_path(self, db: Session, attempt_id: int, user_id: int) -> bool:
        attempt = self._get_owned_attempt(db, attempt_id, user_id)
        questionnaire = attempt.questionnaire

        if not questionnaire.path_logic:
            answered = len(crud_submission.get_all_by_attempt(db, attempt_id=attempt.id))
            return answered >= len(self.questionnaires.get_question_order(db, questionnaire.id))

        path_taken = attempt.path_taken or []
        if not path_taken:
            return False
        info = self.questionnaires.get_path_map(questionnaire).get(path_taken[-1])
        return info.is_end_node if info else False

    def get_submissions(self, db: Session, attempt_id: int, user_id: int) -> List[Submission]:
        attempt = self._get_owned_attempt(db, attempt_id, user_id)
        return crud_submission.get_all_by_attempt(db, attempt_id=attempt.id)

    def get_flagged_submissions(self, db: Session, skip: int = 0, limit: int = 100) -> List[Submission]:
        return crud_submission.get_flagged(db, skip=skip, limit=limit)


attempt_service = AttemptService()
