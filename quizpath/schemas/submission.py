from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List, Any, Union
from datetime import datetime

from quizpath.core.constants import ValidationStatusEnum

UserAnswerValue = Union[str, int, float, List[Union[str, int, float]], None]

class AIAnalysis(BaseModel):
    confidence: float = 0
    reasoning: str = ""
    suggestions: List[str] = []

class ValidationResult(BaseModel):
    status: ValidationStatusEnum
    score: float = Field(default=0, ge=0)
    max_score: float = Field(default=0, ge=0)
    explanation: str = ""
    ai_analysis: Optional[AIAnalysis] = None
    keyword_matches: Optional[List[str]] = None
    hints_used: int = 0
    hint_cost_deducted: float = 0

    @model_validator(mode="after")
    def check_score_bounds(self):
        if self.score > self.max_score:
            raise ValueError(f"score {self.score} exceeds max_score {self.max_score}")
        return self

class SubmissionBase(BaseModel):
    attempt_id: int
    question_id: int
    user_answer: UserAnswerValue = None
    hints_used: List[int] = []
    time_spent: Optional[int] = None
    flagged_for_review: bool = False

class SubmissionCreate(SubmissionBase):
    validation_status: ValidationStatusEnum
    validation_result: Optional[dict] = None
    validated_at: Optional[datetime] = None

class SubmissionUpdate(BaseModel):
    validation_status: Optional[ValidationStatusEnum] = None
    validation_result: Optional[dict] = None
    flagged_for_review: Optional[bool] = None
    review_notes: Optional[str] = None
    validated_at: Optional[datetime] = None

class Submission(SubmissionBase):
    id: int
    hints_used: Optional[List[int]] = None
    validation_status: ValidationStatusEnum
    validation_result: Optional[ValidationResult] = None
    review_notes: Optional[str] = None
    submitted_at: Optional[datetime] = None
    validated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class SubmitAnswerRequest(BaseModel):
    question_id: int
    user_answer: UserAnswerValue = None
    hints_used: List[int] = []
    time_spent: Optional[int] = Field(None, ge=0)
    flagged_for_review: bool = False

class ReviewSubmissionRequest(BaseModel):
    validation_result: ValidationResult
    review_notes: Optional[str] = None

class SubmitAnswerResponse(BaseModel):
    submission: Submission
    validation_result: ValidationResult
    attempt_score: float
    attempt_max_score: float
