import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set

from quizpath.core.config import settings
from quizpath.core.constants import (
    AI_CORRECT_THRESHOLD,
    AI_PARTIAL_THRESHOLD,
    EXACT_PARTIAL_CREDIT,
    CheckTypeEnum,
    ValidationStatusEnum,
)
from quizpath.core.exceptions import DependencyFailure
from quizpath.schemas.question import AICheckConfig, KeywordsCheckConfig, QuestionContent
from quizpath.schemas.submission import AIAnalysis, ValidationResult
from quizpath.services.ai_client import ai_service

logger = logging.getLogger(__name__)


def _normalize(value: Any) -> str:
    return str(value).strip().casefold()


def _answer_text(user_answer: Any) -> str:
    if user_answer is None:
        return ""
    if isinstance(user_answer, (list, tuple)):
        return " ".join(str(item) for item in user_answer)
    return str(user_answer)


class ValidationStrategy(ABC):
    """Grades one answer for one check type. Hint costs are applied afterwards by the service."""

    @abstractmethod
    async def validate(self, content: QuestionContent, check_config: Optional[dict],
                       user_answer: Any, max_score: float) -> ValidationResult:
        pass


class ExactMatchStrategy(ValidationStrategy):

    async def validate(self, content, check_config, user_answer, max_score):
        correct = [index for index, option in enumerate(content.answers) if option.is_correct]
        if not correct:
            return ValidationResult(
                status=ValidationStatusEnum.NO_GRADING,
                explanation="This question has no correct answer and is not graded.",
            )

        if isinstance(user_answer, (list, tuple)):
            return self._validate_selection(content, set(correct), user_answer, max_score)

        given = _normalize(_answer_text(user_answer))
        if given and given in self._accepted_values(content, correct):
            return ValidationResult(status=ValidationStatusEnum.CORRECT, score=max_score, max_score=max_score,
                                    explanation="Correct answer.")
        return ValidationResult(status=ValidationStatusEnum.INCORRECT, max_score=max_score,
                                explanation="Incorrect answer.")

    @staticmethod
    def _accepted_values(content: QuestionContent, indices: Iterable[int]) -> Set[str]:
        accepted = set()
        for index in indices:
            option = content.answers[index]
            accepted.add(_normalize(option.text))
            if option.id is not None:
                accepted.add(_normalize(option.id))
        return accepted

    def _validate_selection(self, content: QuestionContent, correct: Set[int],
                            user_answer: List[Any], max_score: float) -> ValidationResult:
        lookup: Dict[str, int] = {}
        for index, option in enumerate(content.answers):
            lookup.setdefault(_normalize(option.text), index)
            if option.id is not None:
                lookup.setdefault(_normalize(option.id), index)

        # Selections that match no option stay in the set so it can never equal the correct one
        selected = set()
        for item in user_answer:
            key = _normalize(item)
            selected.add(lookup.get(key, f"unknown:{key}"))

        if selected == correct:
            return ValidationResult(status=ValidationStatusEnum.CORRECT, score=max_score, max_score=max_score,
                                    explanation="All correct options selected.")
        if selected & correct:
            return ValidationResult(status=ValidationStatusEnum.PARTIAL, score=max_score * EXACT_PARTIAL_CREDIT,
                                    max_score=max_score, explanation="Some of the selected options are correct.")
        return ValidationResult(status=ValidationStatusEnum.INCORRECT, max_score=max_score,
                                explanation="None of the selected options are correct.")


class KeywordsStrategy(ValidationStrategy):

    async def validate(self, content, check_config, user_answer, max_score):
        config = KeywordsCheckConfig.model_validate(check_config or {})
        keywords = [keyword for keyword in config.keywords if keyword]
        if not keywords:
            return ValidationResult(
                status=ValidationStatusEnum.NO_GRADING,
                explanation="No keywords are configured for this question.",
            )

        text = _answer_text(user_answer)
        matches = [keyword for keyword in keywords if self._matches(keyword, text, config)]
        required = config.min_matches if config.min_matches is not None else len(keywords)
        score = max_score * len(matches) / len(keywords)

        if len(matches) >= required:
            status = ValidationStatusEnum.CORRECT
        elif matches:
            status = ValidationStatusEnum.PARTIAL
        else:
            status = ValidationStatusEnum.INCORRECT

        return ValidationResult(
            status=status,
            score=score,
            max_score=max_score,
            explanation=f"Matched {len(matches)} of {len(keywords)} keywords.",
            keyword_matches=matches,
        )

    @staticmethod
    def _matches(keyword: str, text: str, config: KeywordsCheckConfig) -> bool:
        if config.partial:
            if config.case_sensitive:
                return keyword in text
            return keyword.casefold() in text.casefold()
        flags = 0 if config.case_sensitive else re.IGNORECASE
        return re.search(rf"\b{re.escape(keyword)}\b", text, flags) is not None


class AIStrategy(ValidationStrategy):

    def __init__(self, oracle):
        self.oracle = oracle

    async def validate(self, content, check_config, user_answer, max_score):
        config = AICheckConfig.model_validate(check_config or {})
        sensitivity = config.sensitivity if config.sensitivity is not None else settings.AI_DEFAULT_SENSITIVITY
        reference = next((option.text for option in content.answers if option.is_correct), None)
        if isinstance(user_answer, (list, tuple)):
            answer_text = json.dumps(user_answer)
        else:
            answer_text = _answer_text(user_answer)

        try:
            response = await self.oracle.validate(
                question_text=content.text,
                reference_answer=reference,
                user_answer=answer_text,
                sensitivity=sensitivity,
                prompt=config.prompt,
            )
        except DependencyFailure as e:
            logger.warning(f"AI validation failed, leaving answer pending: {e}")
            return ValidationResult(
                status=ValidationStatusEnum.PENDING,
                max_score=max_score,
                explanation="AI validation failed; the answer will be reviewed manually.",
                ai_analysis=AIAnalysis(confidence=0, reasoning=str(e)),
            )

        ratio = min(max(response.score, 0.0), 1.0)
        if ratio >= AI_CORRECT_THRESHOLD:
            status = ValidationStatusEnum.CORRECT
        elif ratio >= AI_PARTIAL_THRESHOLD:
            status = ValidationStatusEnum.PARTIAL
        else:
            status = ValidationStatusEnum.INCORRECT

        return ValidationResult(
            status=status,
            score=max_score * ratio,
            max_score=max_score,
            explanation=response.feedback or f"AI similarity score {ratio:.2f}.",
            ai_analysis=AIAnalysis(
                confidence=response.confidence,
                reasoning=response.feedback,
                suggestions=response.suggestions,
            ),
        )


class ManualStrategy(ValidationStrategy):

    async def validate(self, content, check_config, user_answer, max_score):
        return ValidationResult(
            status=ValidationStatusEnum.PENDING,
            max_score=max_score,
            explanation="This answer requires manual review by an educator.",
        )


class AnswerValidationService:

    def __init__(self, oracle=None):
        self.strategies: Dict[CheckTypeEnum, ValidationStrategy] = {
            CheckTypeEnum.EXACT: ExactMatchStrategy(),
            CheckTypeEnum.KEYWORDS: KeywordsStrategy(),
            CheckTypeEnum.AI: AIStrategy(oracle or ai_service),
            CheckTypeEnum.MANUAL: ManualStrategy(),
        }

    def register(self, check_type: CheckTypeEnum, strategy: ValidationStrategy):
        self.strategies[check_type] = strategy

    async def validate(self, question, user_answer: Any, hints_used: Optional[List[int]] = None) -> ValidationResult:
        """
        Grade `user_answer` against `question` (model or schema) and apply hint costs.

        The strategy is picked from the question's check type. Feedback strings
        configured on the question replace the default explanation for the
        matching status.
        """
        content = question.content if isinstance(question.content, QuestionContent) \
            else QuestionContent.model_validate(question.content)
        strategy = self.strategies[CheckTypeEnum(question.check_type)]

        result = await strategy.validate(content, question.check_config, user_answer, float(question.points or 0))
        result = self._apply_feedback(content, result)
        return self._apply_hint_costs(content, result, hints_used or [])

    @staticmethod
    def _apply_feedback(content: QuestionContent, result: ValidationResult) -> ValidationResult:
        if not content.feedback:
            return result
        override = {
            ValidationStatusEnum.CORRECT: content.feedback.correct,
            ValidationStatusEnum.INCORRECT: content.feedback.incorrect,
            ValidationStatusEnum.PARTIAL: content.feedback.partial,
        }.get(result.status)
        if override:
            return result.model_copy(update={"explanation": override})
        return result

    @staticmethod
    def _apply_hint_costs(content: QuestionContent, result: ValidationResult, hints_used: List[int]) -> ValidationResult:
        used = sorted({index for index in hints_used if 0 <= index < len(content.hints)})
        cost = sum(content.hints[index].cost for index in used)
        return result.model_copy(update={
            "score": max(0.0, result.score - cost),
            "hints_used": len(used),
            "hint_cost_deducted": cost,
        })


answer_validation_service = AnswerValidationService()
