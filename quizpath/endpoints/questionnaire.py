from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quizpath.core.constants import AttemptResultEnum, AttemptStatusEnum
from quizpath.schemas.attempt import Attempt
from quizpath.schemas.path import PathValidationRequest, PathValidationResult
from quizpath.schemas.response import APIResponse
from quizpath.schemas.session import Leaderboard
from quizpath.services.attempt import AttemptService
from quizpath.services.questionnaire import QuestionnaireService
from quizpath.services.quiz_session import QuizSessionService
from quizpath.utils import deps

router = APIRouter()

@router.post("/path-logic/validate", response_model=APIResponse[PathValidationResult])
async def validate_path_logic(
    *,
    request: PathValidationRequest,
    service: QuestionnaireService = Depends(deps.get_questionnaire_service)
):
    result = service.validate_path_logic(request.path_logic)
    message = "Path logic is valid" if result.valid else "Path logic is invalid"
    return APIResponse(message=message, data=result)


@router.get("/{questionnaire_id}/paths", response_model=APIResponse[List[List[int]]])
async def get_all_paths(
    *,
    db: Session = Depends(deps.get_db),
    questionnaire_id: int,
    start_question_id: Optional[int] = Query(None),
    service: QuestionnaireService = Depends(deps.get_questionnaire_service)
):
    paths = service.enumerate_paths(db, questionnaire_id=questionnaire_id, start_question_id=start_question_id)
    return APIResponse(message="Paths retrieved successfully", data=paths)


@router.get("/{questionnaire_id}/leaderboard", response_model=APIResponse[Leaderboard])
async def get_leaderboard(
    *,
    db: Session = Depends(deps.get_db),
    questionnaire_id: int,
    limit: int = Query(10, ge=1, le=100),
    user_id: int = Depends(deps.get_current_user_id),
    service: QuestionnaireService = Depends(deps.get_questionnaire_service),
    sessions: QuizSessionService = Depends(deps.get_quiz_session_service)
):
    service.get_questionnaire(db, questionnaire_id)
    leaderboard = await sessions.get_leaderboard(db, questionnaire_id, limit=limit, current_user_id=user_id)
    return APIResponse(message="Leaderboard retrieved successfully", data=leaderboard)


@router.get("/{questionnaire_id}/attempts", response_model=APIResponse[List[Attempt]])
async def get_questionnaire_attempts(
    *,
    db: Session = Depends(deps.get_db),
    questionnaire_id: int,
    attempt_status: Optional[AttemptStatusEnum] = Query(None, alias="status"),
    result: Optional[AttemptResultEnum] = Query(None),
    skip: int = 0,
    limit: int = 100,
    service: AttemptService = Depends(deps.get_attempt_service)
):
    attempts = service.get_questionnaire_attempts(
        db, questionnaire_id, status=attempt_status, result=result, skip=skip, limit=limit
    )
    return APIResponse(message="Attempts retrieved successfully", data=[Attempt.model_validate(a) for a in attempts])
