from pydantic import BaseModel
from typing import List, Optional, Dict

class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    attempt_id: int
    score: float
    percentage: float
    time_spent: int
    is_current_user: bool = False

class Leaderboard(BaseModel):
    questionnaire_id: int
    entries: List[LeaderboardEntry] = []
    active_participants: int = 0

class QuizSessionState(BaseModel):
    questionnaire_id: int
    participants: Dict[str, int] = {} # user id -> attempt id
    current_questions: Dict[str, Optional[int]] = {} # attempt id -> question id
