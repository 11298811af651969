from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Any, Dict
from datetime import datetime

from quizpath.core.constants import AttemptStatusEnum, AttemptResultEnum
from quizpath.schemas.path import Resolution
from quizpath.schemas.question import PublicQuestion

class AttemptBase(BaseModel):
    user_id: int
    questionnaire_id: int
    status: AttemptStatusEnum = Field(default=AttemptStatusEnum.IN_PROGRESS)
    result: AttemptResultEnum = Field(default=AttemptResultEnum.PENDING)
    attempt_metadata: Optional[Dict[str, Any]] = None

class AttemptCreate(AttemptBase):
    started_at: Optional[datetime] = None

class AttemptUpdate(BaseModel):
    status: Optional[AttemptStatusEnum] = None
    result: Optional[AttemptResultEnum] = None
    score: Optional[float] = None
    max_score: Optional[float] = None
    percentage: Optional[float] = None
    path_taken: Optional[List[int]] = None
    time_spent: Optional[int] = None
    feedback: Optional[str] = None
    ai_generated_feedback: Optional[str] = None
    completed_at: Optional[datetime] = None

class Attempt(AttemptBase):
    id: int
    score: float = 0
    max_score: float = 0
    percentage: float = 0
    path_taken: List[int] = []
    time_spent: int = 0
    feedback: Optional[str] = None
    ai_generated_feedback: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class AttemptResult(Attempt):
    result_text: Optional[str] = Field(None, description="Questionnaire pass or fail text matching the result.")

class StartAttemptRequest(BaseModel):
    questionnaire_id: int
    metadata: Optional[Dict[str, Any]] = None

class NextQuestionRequest(BaseModel):
    current_question_id: Optional[int] = None
    answer_key: Any = None

class NextQuestionResponse(BaseModel):
    resolution: Resolution
    question: Optional[PublicQuestion] = None

class CompleteAttemptRequest(BaseModel):
    time_spent: Optional[int] = Field(None, ge=0)
    feedback: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

class AttemptScore(BaseModel):
    score: float
    max_score: float
    percentage: float

    @property
    def exact_percentage(self) -> float:
        """Unrounded percentage, used for pass/fail comparisons."""
        return self.score / self.max_score * 100 if self.max_score > 0 else 0.0

class EndOfPathResponse(BaseModel):
    attempt_id: int
    is_end_of_path: bool
