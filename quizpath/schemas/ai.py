from pydantic import BaseModel, Field
from typing import List, Optional

class AIValidationRequest(BaseModel):
    question_text: str
    reference_answer: Optional[str] = None
    user_answer: str
    sensitivity: float
    prompt: Optional[str] = None

class AIValidationResponse(BaseModel):
    is_valid: bool = False
    score: float = Field(..., description="Similarity score, nominally 0..1.")
    confidence: float = 0
    feedback: str = ""
    suggestions: List[str] = []

class FeedbackRequest(BaseModel):
    attempt_summary: dict
    submission_summaries: List[dict]

class FeedbackResponse(BaseModel):
    overall_feedback: str
    strengths: List[str] = []
    areas_for_improvement: List[str] = []
    recommendations: List[str] = []
