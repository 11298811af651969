from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from quizpath.core.constants import AttemptStatusEnum, AttemptResultEnum
from quizpath.models.question import Question as QuestionModel
from quizpath.schemas.attempt import (
    Attempt,
    AttemptResult,
    CompleteAttemptRequest,
    EndOfPathResponse,
    NextQuestionRequest,
    NextQuestionResponse,
    StartAttemptRequest,
)
from quizpath.schemas.question import PublicQuestion, QuestionContent
from quizpath.schemas.response import APIResponse
from quizpath.schemas.submission import ReviewSubmissionRequest, Submission, SubmitAnswerRequest, SubmitAnswerResponse
from quizpath.services.attempt import AttemptService
from quizpath.services.quiz_session import QuizSessionService
from quizpath.utils import deps

router = APIRouter()

def _public_question(question: Optional[QuestionModel]) -> Optional[PublicQuestion]:
    if question is None:
        return None
    content = QuestionContent.model_validate(question.content)
    return PublicQuestion(
        id=question.id,
        text=content.text,
        answers=[answer.text for answer in content.answers],
        hint_count=len(content.hints),
        points=question.points,
    )

def _attempt_result(service: AttemptService, attempt) -> AttemptResult:
    return AttemptResult.model_validate(attempt).model_copy(update={"result_text": service.result_text(attempt)})


@router.post("/", response_model=APIResponse[Attempt], status_code=status.HTTP_201_CREATED)
async def start_attempt(
    *,
    db: Session = Depends(deps.get_db),
    request: StartAttemptRequest,
    user_id: int = Depends(deps.get_current_user_id),
    service: AttemptService = Depends(deps.get_attempt_service),
    sessions: QuizSessionService = Depends(deps.get_quiz_session_service)
):
    attempt = service.start_attempt(db, request.questionnaire_id, user_id, metadata=request.metadata)
    await sessions.join(attempt.questionnaire_id, user_id, attempt.id)
    return APIResponse(message="Attempt started successfully", data=Attempt.model_validate(attempt))


@router.get("/", response_model=APIResponse[List[Attempt]])
async def get_attempts(
    db: Session = Depends(deps.get_db),
    user_id: int = Depends(deps.get_current_user_id),
    service: AttemptService = Depends(deps.get_attempt_service),
    questionnaire_id: Optional[int] = Query(None),
    attempt_status: Optional[AttemptStatusEnum] = Query(None, alias="status"),
    result: Optional[AttemptResultEnum] = Query(None),
    skip: int = 0,
    limit: int = 100
):
    attempts = service.get_attempts(
        db, user_id, questionnaire_id=questionnaire_id, status=attempt_status, result=result, skip=skip, limit=limit
    )
    return APIResponse(message="Attempts retrieved successfully", data=[Attempt.model_validate(a) for a in attempts])


@router.get("/submissions/flagged", response_model=APIResponse[List[Submission]])
async def get_flagged_submissions(
    db: Session = Depends(deps.get_db),
    service: AttemptService = Depends(deps.get_attempt_service),
    skip: int = 0,
    limit: int = 100
):
    submissions = service.get_flagged_submissions(db, skip=skip, limit=limit)
    return APIResponse(message="Flagged submissions retrieved successfully",
                       data=[Submission.model_validate(s) for s in submissions])


@router.put("/submissions/{submission_id}/review", response_model=APIResponse[Submission])
async def review_submission(
    *,
    db: Session = Depends(deps.get_db),
    submission_id: int,
    request: ReviewSubmissionRequest,
    service: AttemptService = Depends(deps.get_attempt_service)
):
    submission = service.review_submission(
        db, submission_id, request.validation_result, review_notes=request.review_notes
    )
    return APIResponse(message="Submission reviewed successfully", data=Submission.model_validate(submission))


@router.get("/{attempt_id}", response_model=APIResponse[AttemptResult])
async def get_attempt(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    user_id: int = Depends(deps.get_current_user_id),
    service: AttemptService = Depends(deps.get_attempt_service)
):
    attempt = service.get_attempt(db, attempt_id, user_id)
    return APIResponse(message="Attempt retrieved successfully", data=_attempt_result(service, attempt))


@router.post("/{attempt_id}/next", response_model=APIResponse[NextQuestionResponse])
async def get_next_question(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    request: NextQuestionRequest,
    user_id: int = Depends(deps.get_current_user_id),
    service: AttemptService = Depends(deps.get_attempt_service),
    sessions: QuizSessionService = Depends(deps.get_quiz_session_service)
):
    resolution, question = service.get_next_question(
        db, attempt_id, user_id,
        current_question_id=request.current_question_id,
        answer_key=request.answer_key,
    )
    attempt = service.get_attempt(db, attempt_id, user_id)
    await sessions.set_current_question(attempt.questionnaire_id, attempt_id, resolution.question_id)
    return APIResponse(
        message="Next question resolved",
        data=NextQuestionResponse(resolution=resolution, question=_public_question(question)),
    )


@router.post("/{attempt_id}/answers", response_model=APIResponse[SubmitAnswerResponse], status_code=status.HTTP_201_CREATED)
async def submit_answer(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    request: SubmitAnswerRequest,
    user_id: int = Depends(deps.get_current_user_id),
    service: AttemptService = Depends(deps.get_attempt_service)
):
    submission, result = await service.submit_answer(
        db, attempt_id, user_id,
        question_id=request.question_id,
        user_answer=request.user_answer,
        hints_used=request.hints_used,
        time_spent=request.time_spent,
        flagged_for_review=request.flagged_for_review,
    )
    attempt = service.get_attempt(db, attempt_id, user_id)
    return APIResponse(
        message="Answer submitted successfully",
        data=SubmitAnswerResponse(
            submission=Submission.model_validate(submission),
            validation_result=result,
            attempt_score=attempt.score,
            attempt_max_score=attempt.max_score,
        ),
    )


@router.get("/{attempt_id}/submissions", response_model=APIResponse[List[Submission]])
async def get_submissions(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    user_id: int = Depends(deps.get_current_user_id),
    service: AttemptService = Depends(deps.get_attempt_service)
):
    submissions = service.get_submissions(db, attempt_id, user_id)
    return APIResponse(message="Submissions retrieved successfully",
                       data=[Submission.model_validate(s) for s in submissions])


@router.get("/{attempt_id}/end-of-path", response_model=APIResponse[EndOfPathResponse])
async def get_end_of_path(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    user_id: int = Depends(deps.get_current_user_id),
    service: AttemptService = Depends(deps.get_attempt_service)
):
    is_end = service.is_end_of_path(db, attempt_id, user_id)
    return APIResponse(message="Path position retrieved successfully",
                       data=EndOfPathResponse(attempt_id=attempt_id, is_end_of_path=is_end))


@router.post("/{attempt_id}/complete", response_model=APIResponse[AttemptResult])
async def complete_attempt(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    request: CompleteAttemptRequest,
    user_id: int = Depends(deps.get_current_user_id),
    service: AttemptService = Depends(deps.get_attempt_service),
    sessions: QuizSessionService = Depends(deps.get_quiz_session_service)
):
    attempt = await service.complete_attempt(
        db, attempt_id, user_id, time_spent=request.time_spent, feedback=request.feedback,
        metadata=request.metadata
    )
    await sessions.leave(attempt.questionnaire_id, user_id)
    return APIResponse(message="Attempt completed successfully", data=_attempt_result(service, attempt))


@router.post("/{attempt_id}/abandon", response_model=APIResponse[Attempt])
async def abandon_attempt(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    user_id: int = Depends(deps.get_current_user_id),
    service: AttemptService = Depends(deps.get_attempt_service),
    sessions: QuizSessionService = Depends(deps.get_quiz_session_service)
):
    attempt = service.abandon_attempt(db, attempt_id, user_id)
    await sessions.leave(attempt.questionnaire_id, user_id)
    return APIResponse(message="Attempt abandoned", data=Attempt.model_validate(attempt))
