from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

from quizpath.core.constants import NodeTypeEnum, ResolutionKindEnum

class PathNode(BaseModel):
    """One node of a questionnaire's branching structure, as authored."""
    type: NodeTypeEnum
    question_id: Optional[int] = None
    label: Optional[str] = None
    goto: Optional[str] = Field(None, description="Target label of a goto node.")
    answers: Optional[Dict[str, "PathNode"]] = Field(
        None, description="Answer key to the child node taken when that answer is given."
    )

    model_config = ConfigDict(frozen=True)

PathNode.model_rebuild()

class PathValidationResult(BaseModel):
    valid: bool
    errors: List[str] = []
    warnings: List[str] = []

class PathValidationRequest(BaseModel):
    path_logic: List[Dict[str, Any]] = Field(..., description="Raw nodes; malformed ones are reported, not rejected.")

class QuestionPathInfo(BaseModel):
    question_id: int
    possible_next_questions: List[int] = []
    is_end_node: bool = True

class Resolution(BaseModel):
    kind: ResolutionKindEnum
    question_id: Optional[int] = Field(None, description="Question to show next, if any.")
    label: Optional[str] = Field(None, description="Goto label followed for redirects.")

    @classmethod
    def next_question(cls, question_id: int) -> "Resolution":
        return cls(kind=ResolutionKindEnum.NEXT_QUESTION, question_id=question_id)

    @classmethod
    def redirect(cls, label: str, question_id: Optional[int]) -> "Resolution":
        return cls(kind=ResolutionKindEnum.REDIRECT, label=label, question_id=question_id)

    @classmethod
    def break_out(cls, question_id: Optional[int]) -> "Resolution":
        return cls(kind=ResolutionKindEnum.BREAK, question_id=question_id)

    @classmethod
    def end(cls) -> "Resolution":
        return cls(kind=ResolutionKindEnum.END)

    @property
    def is_terminal(self) -> bool:
        return self.question_id is None
