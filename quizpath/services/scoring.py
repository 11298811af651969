from typing import Iterable, Optional, Union

from quizpath.core.constants import AttemptResultEnum
from quizpath.schemas.attempt import AttemptScore
from quizpath.schemas.submission import ValidationResult


def _as_result(result: Union[ValidationResult, dict]) -> ValidationResult:
    return result if isinstance(result, ValidationResult) else ValidationResult.model_validate(result)


def calculate_attempt_score(results: Iterable[Union[ValidationResult, dict]],
                            explicit_max_score: Optional[float] = None) -> AttemptScore:
    """
    Sum graded results into an attempt total.

    A positive `explicit_max_score` (the questionnaire's own points) replaces
    the summed max. The percentage is rounded to two decimals and is 0 when
    nothing can be scored. Compare thresholds against `exact_percentage`.
    """
    score = 0.0
    max_score = 0.0
    for result in results:
        result = _as_result(result)
        score += result.score
        max_score += result.max_score

    if explicit_max_score is not None and explicit_max_score > 0:
        max_score = float(explicit_max_score)

    percentage = round(score / max_score * 100, 2) if max_score > 0 else 0.0
    return AttemptScore(score=score, max_score=max_score, percentage=percentage)


def determine_result(score: float, percentage: float, pass_percentage: Optional[float] = None,
                     pass_points: Optional[float] = None) -> AttemptResultEnum:
    # Expects the unrounded percentage
    if pass_percentage is not None:
        return AttemptResultEnum.PASS if percentage >= pass_percentage else AttemptResultEnum.FAIL
    if pass_points is not None:
        return AttemptResultEnum.PASS if score >= pass_points else AttemptResultEnum.FAIL
    return AttemptResultEnum.NO_GRADING
