import asyncio
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from quizpath.core.config import settings
from quizpath.core.exceptions import DependencyFailure
from quizpath.schemas.ai import AIValidationRequest, AIValidationResponse, FeedbackRequest, FeedbackResponse

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class AIService:
    """
    HTTP client for the AI scoring oracle.

    Every failure mode (unconfigured url, timeout, transport error, non-2xx
    response, malformed body) surfaces as `DependencyFailure`; callers decide
    how to degrade.
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None, max_retries: Optional[int] = None,
                 backoff_seconds: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url if base_url is not None else settings.AI_SERVICE_URL or "").rstrip("/")
        self.api_key = api_key if api_key is not None else settings.AI_API_KEY
        self.timeout = timeout if timeout is not None else settings.AI_TIMEOUT_SECONDS
        self.max_retries = max_retries if max_retries is not None else settings.AI_MAX_RETRIES
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.AI_RETRY_BACKOFF_SECONDS
        self._transport = transport

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, path: str, payload: dict) -> dict:
        if not self.base_url:
            raise DependencyFailure("AI service URL is not configured")

        url = f"{self.base_url}{path}"
        last_error: Optional[str] = None

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for attempt in range(self.max_retries + 1):
                if attempt:
                    delay = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.warning(f"Retrying AI request to {path} in {delay:.2f}s (attempt {attempt + 1}): {last_error}")
                    await asyncio.sleep(delay)

                try:
                    response = await client.post(url, json=payload, headers=self._headers())
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    last_error = f"HTTP {e.response.status_code}: {e.response.text[:200]}"
                    if e.response.status_code not in RETRYABLE_STATUS_CODES:
                        break
                    continue
                except httpx.TimeoutException as e:
                    last_error = f"Timed out after {self.timeout}s: {e}"
                    continue
                except httpx.RequestError as e:
                    last_error = f"Network error: {e}"
                    continue

                try:
                    return response.json()
                except ValueError as e:
                    last_error = f"Malformed JSON body: {e}"
                    break

        raise DependencyFailure(f"AI request to {path} failed: {last_error}")

    async def validate(self, question_text: str, reference_answer: Optional[str], user_answer: str,
                       sensitivity: float, prompt: Optional[str] = None) -> AIValidationResponse:
        request = AIValidationRequest(
            question_text=question_text,
            reference_answer=reference_answer,
            user_answer=user_answer,
            sensitivity=sensitivity,
            prompt=prompt,
        )
        body = await self._post("/validate", request.model_dump())
        try:
            return AIValidationResponse.model_validate(body)
        except ValidationError as e:
            raise DependencyFailure(f"Unexpected AI validation response: {e}") from e

    async def generate_feedback(self, attempt_summary: dict, submission_summaries: List[dict]) -> FeedbackResponse:
        request = FeedbackRequest(attempt_summary=attempt_summary, submission_summaries=submission_summaries)
        body = await self._post("/feedback", request.model_dump(mode="json"))
        try:
            return FeedbackResponse.model_validate(body)
        except ValidationError as e:
            raise DependencyFailure(f"Unexpected AI feedback response: {e}") from e


ai_service = AIService()
