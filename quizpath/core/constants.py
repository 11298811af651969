from enum import Enum


class NodeTypeEnum(str, Enum):
    QUESTION = "question"
    PATH = "path"
    BREAK = "break"
    END = "end"
    GOTO = "goto"

class CheckTypeEnum(str, Enum):
    EXACT = "exact"
    KEYWORDS = "keywords"
    AI = "ai"
    MANUAL = "manual"

class AICheckTypeEnum(str, Enum):
    MEANING = "meaning"
    CUSTOM = "custom"

class AttemptStatusEnum(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    TIMED_OUT = "timed_out"

class AttemptResultEnum(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    PENDING = "pending"
    NO_GRADING = "no_grading"

class ValidationStatusEnum(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    PARTIAL = "partial"
    PENDING = "pending"
    NO_GRADING = "no_grading"

class ResolutionKindEnum(str, Enum):
    NEXT_QUESTION = "next_question"
    REDIRECT = "redirect"
    BREAK = "break"
    END = "end"


TERMINAL_ATTEMPT_STATUSES = {
    AttemptStatusEnum.COMPLETED,
    AttemptStatusEnum.ABANDONED,
    AttemptStatusEnum.TIMED_OUT,
}

# Oracle score thresholds for the AI strategy
AI_CORRECT_THRESHOLD = 0.9
AI_PARTIAL_THRESHOLD = 0.5

# Multi-select answers that overlap the correct set earn this share of the points
EXACT_PARTIAL_CREDIT = 0.5
