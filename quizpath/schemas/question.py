from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from quizpath.core.constants import CheckTypeEnum, AICheckTypeEnum

class AnswerOption(BaseModel):
    id: Optional[str] = None
    text: str
    is_correct: bool = False

class Hint(BaseModel):
    text: str
    cost: float = Field(default=0, ge=0)

class QuestionFeedback(BaseModel):
    correct: Optional[str] = None
    incorrect: Optional[str] = None
    partial: Optional[str] = None

class QuestionContent(BaseModel):
    text: str
    answers: List[AnswerOption] = []
    hints: List[Hint] = []
    feedback: Optional[QuestionFeedback] = None

class KeywordsCheckConfig(BaseModel):
    keywords: List[str] = []
    case_sensitive: bool = False
    partial: bool = Field(default=False, description="Match keywords as substrings instead of whole words.")
    min_matches: Optional[int] = Field(None, ge=0, description="Matches needed for a correct grade; all keywords when unset.")

class AICheckConfig(BaseModel):
    type: AICheckTypeEnum = AICheckTypeEnum.MEANING
    sensitivity: Optional[float] = Field(None, ge=0, le=1)
    prompt: Optional[str] = None

class QuestionBase(BaseModel):
    questionnaire_id: int
    position: int = 0
    check_type: CheckTypeEnum = CheckTypeEnum.EXACT
    check_config: Optional[dict] = None
    points: float = Field(default=1, ge=0)
    content: QuestionContent

class QuestionCreate(QuestionBase):
    pass

class QuestionUpdate(BaseModel):
    position: Optional[int] = None
    check_type: Optional[CheckTypeEnum] = None
    check_config: Optional[dict] = None
    points: Optional[float] = None
    content: Optional[QuestionContent] = None
    total_attempts: Optional[int] = None
    correct_attempts: Optional[int] = None
    average_score: Optional[float] = None

class Question(QuestionBase):
    id: int
    total_attempts: int = 0
    correct_attempts: int = 0
    average_score: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class PublicQuestion(BaseModel):
    """Question as shown to a participant: no correctness flags, no grading config."""
    id: int
    text: str
    answers: List[str] = []
    hint_count: int = 0
    points: float
