"""Google Gemini implementation of LLMProvider."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from jobtrack.config import Settings
from jobtrack.llm.base import LLMProvider, ModelInvocationError, error_detail
from jobtrack.models import LLMResponse

_LOGGER = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """LLM provider calling the Gemini ``generateContent`` REST endpoint."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def generate(self, model: str, prompt: str) -> LLMResponse:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        }

        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        async with httpx.AsyncClient(base_url=self._settings.gemini_base_url, timeout=timeout) as client:
            try:
                response = await client.post(
                    f"/models/{model}:generateContent",
                    headers={
                        "x-goog-api-key": self._settings.gemini_api_key,
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
            except httpx.HTTPError as exc:
                raise ModelInvocationError(f"Gemini request for {model} failed: {exc}", model) from exc
            if response.status_code >= 400:
                raise ModelInvocationError(
                    f"Gemini returned {response.status_code} for {model}: {error_detail(response)}",
                    model,
                    status_code=response.status_code,
                )
            data = response.json()

        candidates = data.get("candidates") or []
        if not candidates:
            reason = data.get("promptFeedback", {}).get("blockReason", "no candidates")
            raise ModelInvocationError(f"Gemini response for {model} is empty ({reason})", model)
        parts = candidates[0].get("content", {}).get("parts", [])
        content = "".join(part.get("text", "") for part in parts)
        _LOGGER.info(
            "LLM response: model=%s finish_reason=%r content=%r",
            model,
            candidates[0].get("finishReason"),
            content[:200],
        )
        return LLMResponse(content=content, model=model, raw=data)
