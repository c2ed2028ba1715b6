"""Ordered model fallback for generation requests."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from jobtrack.llm.base import LLMProvider
from jobtrack.models import (
    FailureKind,
    GenerationFailure,
    GenerationOutcome,
    GenerationSuccess,
    LLMResponse,
)

LOGGER = logging.getLogger(__name__)

RATE_LIMIT_MARKERS = ("429", "503", "rate limit", "quota exceeded", "resource exhausted")
RETRY_HINT = "Free request rate limits may have been exceeded. Please try again later."
UNAVAILABLE_MESSAGE = "All AI models are currently unavailable."

RateLimitSink = Callable[[str], Awaitable[None]]


class AllModelsExhaustedError(RuntimeError):
    """Every model in the chain failed for one request."""


def classify_error(message: str) -> FailureKind:
    """Classify a failure by its message text."""

    lowered = message.lower()
    if any(marker in lowered for marker in RATE_LIMIT_MARKERS):
        return FailureKind.RATE_LIMITED
    return FailureKind.OTHER_ERROR


async def invoke_model(provider: LLMProvider, model: str, prompt: str) -> GenerationOutcome:
    """Make exactly one generation attempt against one model."""

    try:
        response = await provider.generate(model, prompt)
    except Exception as exc:  # noqa: BLE001
        message = str(exc) or type(exc).__name__
        return GenerationFailure(kind=classify_error(message), message=message, model=model)
    return GenerationSuccess(text=response.content, model=response.model or model)


class FallbackChain:
    """Tries each model in order until one produces a response."""

    def __init__(
        self,
        provider: LLMProvider,
        models: Sequence[str],
        on_rate_limit: RateLimitSink | None = None,
    ) -> None:
        self._provider = provider
        self._models = tuple(models)
        self._on_rate_limit = on_rate_limit

    @property
    def models(self) -> tuple[str, ...]:
        return self._models

    async def generate(self, prompt: str) -> LLMResponse:
        """Return the first successful response, or raise AllModelsExhaustedError."""

        last_message: str | None = None
        for model in self._models:
            outcome = await invoke_model(self._provider, model, prompt)
            if isinstance(outcome, GenerationSuccess):
                return LLMResponse(content=outcome.text, model=outcome.model)

            LOGGER.warning("Model %s failed (%s): %s", model, outcome.kind.value, outcome.message)
            last_message = outcome.message
            if outcome.kind is FailureKind.RATE_LIMITED:
                await self._report_rate_limit(model)

        raise AllModelsExhaustedError(f"{last_message or UNAVAILABLE_MESSAGE} {RETRY_HINT}")

    async def _report_rate_limit(self, model: str) -> None:
        if self._on_rate_limit is None:
            return
        try:
            await self._on_rate_limit(model)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Rate-limit sink failed for model %s", model)
