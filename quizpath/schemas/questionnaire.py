from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from quizpath.schemas.path import PathNode

class QuestionnaireBase(BaseModel):
    name: str
    description: Optional[str] = None
    path_logic: Optional[List[PathNode]] = None
    points: Optional[float] = Field(None, description="Explicit max score; the summed question points are used when unset.")
    pass_percentage: Optional[float] = Field(None, ge=0, le=100)
    pass_points: Optional[float] = Field(None, ge=0)
    pass_text: Optional[str] = None
    fail_text: Optional[str] = None
    time_limit: Optional[int] = Field(None, gt=0, description="Seconds allowed per attempt.")
    is_active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    allow_retake: bool = False
    max_retakes: Optional[int] = Field(None, ge=1)

class QuestionnaireCreate(QuestionnaireBase):
    pass

class QuestionnaireUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    path_logic: Optional[List[PathNode]] = None
    points: Optional[float] = None
    pass_percentage: Optional[float] = None
    pass_points: Optional[float] = None
    pass_text: Optional[str] = None
    fail_text: Optional[str] = None
    time_limit: Optional[int] = None
    is_active: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    allow_retake: Optional[bool] = None
    max_retakes: Optional[int] = None

class Questionnaire(QuestionnaireBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
