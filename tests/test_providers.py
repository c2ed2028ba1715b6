"""Tests for the Gemini and OpenRouter providers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from jobtrack.config import Settings
from jobtrack.llm.base import ModelInvocationError
from jobtrack.llm.fallback import classify_error
from jobtrack.llm.gemini import GeminiProvider
from jobtrack.llm.openrouter import OpenRouterProvider
from jobtrack.models import FailureKind


def _settings() -> Settings:
    return Settings(_env_file=None, GEMINI_API_KEY="g-key", OPENROUTER_API_KEY="or-key")


def _mock_response(data: dict, status_code: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = data
    resp.text = ""
    resp.reason_phrase = "Error"
    return resp


def _mock_client(response: MagicMock | None = None, error: Exception | None = None) -> AsyncMock:
    client = AsyncMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    client.post = AsyncMock(return_value=response, side_effect=error)
    return client


class TestGeminiProvider:
    @pytest.mark.asyncio
    async def test_returns_joined_candidate_text(self):
        payload = {
            "candidates": [
                {"content": {"parts": [{"text": "Hello "}, {"text": "world"}]}, "finishReason": "STOP"}
            ]
        }
        client = _mock_client(_mock_response(payload))

        with patch("jobtrack.llm.gemini.httpx.AsyncClient", return_value=client):
            response = await GeminiProvider(_settings()).generate("gemini-2.5-flash", "Say hi")

        assert response.content == "Hello world"
        assert response.model == "gemini-2.5-flash"
        path = client.post.call_args.args[0]
        assert path == "/models/gemini-2.5-flash:generateContent"
        kwargs = client.post.call_args.kwargs
        assert kwargs["headers"]["x-goog-api-key"] == "g-key"
        assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "Say hi"

    @pytest.mark.asyncio
    async def test_quota_error_is_rate_limit_classified(self):
        body = {"error": {"code": 429, "message": "Quota exceeded for metric", "status": "RESOURCE_EXHAUSTED"}}
        client = _mock_client(_mock_response(body, status_code=429))

        with patch("jobtrack.llm.gemini.httpx.AsyncClient", return_value=client):
            with pytest.raises(ModelInvocationError) as excinfo:
                await GeminiProvider(_settings()).generate("gemini-2.5-pro", "x")

        message = str(excinfo.value)
        assert "429" in message
        assert "RESOURCE EXHAUSTED" in message
        assert excinfo.value.status_code == 429
        assert classify_error(message) is FailureKind.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_bad_request_is_other_error(self):
        body = {"error": {"code": 400, "message": "Invalid model name", "status": "INVALID_ARGUMENT"}}
        client = _mock_client(_mock_response(body, status_code=400))

        with patch("jobtrack.llm.gemini.httpx.AsyncClient", return_value=client):
            with pytest.raises(ModelInvocationError) as excinfo:
                await GeminiProvider(_settings()).generate("bogus", "x")

        assert classify_error(str(excinfo.value)) is FailureKind.OTHER_ERROR

    @pytest.mark.asyncio
    async def test_blocked_prompt_raises(self):
        client = _mock_client(_mock_response({"promptFeedback": {"blockReason": "SAFETY"}}))

        with patch("jobtrack.llm.gemini.httpx.AsyncClient", return_value=client):
            with pytest.raises(ModelInvocationError, match="SAFETY"):
                await GeminiProvider(_settings()).generate("gemini-2.5-flash", "x")

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self):
        client = _mock_client(error=httpx.ConnectError("connection refused"))

        with patch("jobtrack.llm.gemini.httpx.AsyncClient", return_value=client):
            with pytest.raises(ModelInvocationError, match="connection refused"):
                await GeminiProvider(_settings()).generate("gemini-2.5-flash", "x")


class TestOpenRouterProvider:
    @pytest.mark.asyncio
    async def test_returns_message_content(self):
        payload = {"choices": [{"message": {"content": "An insight."}, "finish_reason": "stop"}]}
        client = _mock_client(_mock_response(payload))

        with patch("jobtrack.llm.openrouter.httpx.AsyncClient", return_value=client):
            response = await OpenRouterProvider(_settings()).generate("google/gemini-2.5-flash", "prompt")

        assert response.content == "An insight."
        kwargs = client.post.call_args.kwargs
        assert kwargs["json"] == {
            "model": "google/gemini-2.5-flash",
            "messages": [{"role": "user", "content": "prompt"}],
        }
        assert kwargs["headers"]["Authorization"] == "Bearer or-key"

    @pytest.mark.asyncio
    async def test_429_is_not_retried(self):
        body = {"error": {"message": "Rate limit exceeded: free-models-per-day"}}
        client = _mock_client(_mock_response(body, status_code=429))

        with patch("jobtrack.llm.openrouter.httpx.AsyncClient", return_value=client):
            with pytest.raises(ModelInvocationError) as excinfo:
                await OpenRouterProvider(_settings()).generate("m", "prompt")

        assert client.post.call_count == 1
        assert classify_error(str(excinfo.value)) is FailureKind.RATE_LIMITED
