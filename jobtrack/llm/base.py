"""LLM provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from jobtrack.models import LLMResponse


class ModelInvocationError(RuntimeError):
    """A single generation request failed.

    The message carries the HTTP status code and the provider's error text,
    which is all the fallback chain uses to classify the failure.
    """

    def __init__(self, message: str, model: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.model = model
        self.status_code = status_code


class LLMProvider(ABC):
    """Abstract model provider used by the fallback chain."""

    @abstractmethod
    async def generate(self, model: str, prompt: str) -> LLMResponse:
        """Send one prompt to one named model and return its text."""


def error_detail(response: httpx.Response) -> str:
    """Best-effort error text from a failed provider response."""

    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = str(error.get("message") or "").strip()
        # Google-style APIs put the canonical code (e.g. RESOURCE_EXHAUSTED) in "status".
        status = str(error.get("status") or "").replace("_", " ").strip()
        return " - ".join(part for part in (status, message) if part) or response.reason_phrase
    if isinstance(error, str):
        return error
    return response.text.strip() or response.reason_phrase
