"""OpenRouter implementation of LLMProvider."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from jobtrack.config import Settings
from jobtrack.llm.base import LLMProvider, ModelInvocationError, error_detail
from jobtrack.models import LLMResponse

_LOGGER = logging.getLogger(__name__)


class OpenRouterProvider(LLMProvider):
    """LLM provider using OpenRouter's OpenAI-compatible chat endpoint."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def generate(self, model: str, prompt: str) -> LLMResponse:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
        }

        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        async with httpx.AsyncClient(base_url=self._settings.openrouter_base_url, timeout=timeout) as client:
            try:
                response = await client.post(
                    "/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self._settings.openrouter_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
            except httpx.HTTPError as exc:
                raise ModelInvocationError(f"OpenRouter request for {model} failed: {exc}", model) from exc
            if response.status_code >= 400:
                raise ModelInvocationError(
                    f"OpenRouter returned {response.status_code} for {model}: {error_detail(response)}",
                    model,
                    status_code=response.status_code,
                )
            data = response.json()

        choices = data.get("choices") or []
        if not choices:
            raise ModelInvocationError(f"OpenRouter response for {model} has no choices", model)
        content = choices[0].get("message", {}).get("content") or ""
        _LOGGER.info(
            "LLM response: model=%s finish_reason=%r content=%r",
            model,
            choices[0].get("finish_reason"),
            content[:200],
        )
        return LLMResponse(content=content, model=model, raw=data)
