import httpx
import pytest

from quizpath.core.exceptions import DependencyFailure
from quizpath.services.ai_client import AIService


def _service(handler, **kwargs):
    return AIService(
        base_url="http://oracle.test",
        api_key="secret",
        timeout=1,
        max_retries=kwargs.pop("max_retries", 2),
        backoff_seconds=0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_validate_posts_request_with_bearer_token():
    seen = {}

    def handler(request: httpx.Request):
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        return httpx.Response(200, json={"is_valid": True, "score": 0.8, "confidence": 0.9, "feedback": "ok"})

    response = await _service(handler).validate("Q?", "ref", "answer", 0.7)
    assert response.score == 0.8
    assert seen == {"auth": "Bearer secret", "path": "/validate"}

@pytest.mark.asyncio
async def test_retries_server_errors_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json={"overall_feedback": "Nice"})

    response = await _service(handler).generate_feedback({"score": 1}, [])
    assert response.overall_feedback == "Nice"
    assert len(calls) == 3

@pytest.mark.asyncio
async def test_gives_up_after_bounded_retries():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(DependencyFailure):
        await _service(handler, max_retries=1).validate("Q?", None, "a", 0.5)
    assert len(calls) == 2

@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, text="bad request")

    with pytest.raises(DependencyFailure):
        await _service(handler).validate("Q?", None, "a", 0.5)
    assert len(calls) == 1

@pytest.mark.asyncio
async def test_malformed_body_is_a_dependency_failure():
    def handler(request):
        return httpx.Response(200, json={"unexpected": True})

    with pytest.raises(DependencyFailure):
        await _service(handler).validate("Q?", None, "a", 0.5)

@pytest.mark.asyncio
async def test_unconfigured_url_is_a_dependency_failure():
    with pytest.raises(DependencyFailure):
        await AIService(base_url="").validate("Q?", None, "a", 0.5)
