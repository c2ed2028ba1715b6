"""AI insights across a user's applications, cached per user."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone

from jobtrack.db import Database
from jobtrack.llm.fallback import FallbackChain
from jobtrack.models import Application, ApplicationStage, LLMResponse, UserInsights

LOGGER = logging.getLogger(__name__)

GUIDANCE_MESSAGE = (
    'Add more applications and move them beyond the "Applied" stage to get personalized insights.'
)
MAX_INSIGHTS = 4
DEFAULT_MAX_APPLICATIONS = 50
DEFAULT_REFRESH_DAYS = 7

_NUMBERED_LINE = re.compile(r"^\d+\.")

_PROMPT_TEMPLATE = """You are a job search analytics assistant. Analyze the following job applications and provide 2-4 concise, actionable insights.

Focus on patterns like:
- Which roles or industries are getting more interviews
- Response rates and timing patterns
- Follow-up recommendations for applications that haven't progressed
- Any trends in rejection vs success rates

Applications data:
{applications}

Provide exactly 2-4 insights. Each insight should be a single sentence starting with an observation or recommendation. Do not use bullet points or numbering in your response, just provide plain text insights separated by newlines."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def select_applications(
    applications: Sequence[Application], limit: int = DEFAULT_MAX_APPLICATIONS
) -> list[Application]:
    """Applications past the applied stage, most recent first, capped at ``limit``."""

    progressed = [app for app in applications if app.stage is not ApplicationStage.APPLIED]
    progressed.sort(key=lambda app: app.application_date, reverse=True)
    return progressed[:limit]


def build_insights_prompt(applications: Sequence[Application]) -> str:
    app_data = [
        {
            "company": app.company_name,
            "role": app.role,
            "stage": app.stage.value,
            "applicationDate": app.application_date.astimezone(timezone.utc).date().isoformat(),
        }
        for app in applications
    ]
    return _PROMPT_TEMPLATE.format(applications=json.dumps(app_data, indent=2))


def parse_insights(text: str) -> list[str]:
    """Split a model response into at most four plain insight lines."""

    insights = []
    for line in text.split("\n"):
        line = line.strip()
        if not line or line.startswith("-") or _NUMBERED_LINE.match(line):
            continue
        insights.append(line)
    return insights[:MAX_INSIGHTS]


async def generate_insights(
    applications: Sequence[Application],
    chain: FallbackChain,
    max_applications: int = DEFAULT_MAX_APPLICATIONS,
) -> tuple[list[str], str | None]:
    """Return ``(insights, model_used)``; ``model_used`` is None when no model was called."""

    selected = select_applications(applications, max_applications)
    if not selected:
        return [GUIDANCE_MESSAGE], None

    response: LLMResponse = await chain.generate(build_insights_prompt(selected))
    return parse_insights(response.content), response.model


class InsightsService:
    """Serves insights from ``users/<uid>/insights/latest`` while fresh, regenerating otherwise."""

    def __init__(
        self,
        db: Database,
        chain: FallbackChain,
        refresh_after: timedelta = timedelta(days=DEFAULT_REFRESH_DAYS),
        max_applications: int = DEFAULT_MAX_APPLICATIONS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._db = db
        self._chain = chain
        self._refresh_after = refresh_after
        self._max_applications = max_applications
        self._clock = clock

    def is_fresh(self, generated_at: datetime) -> bool:
        return self._clock() - generated_at < self._refresh_after

    def get_cached(self, user_id: str) -> UserInsights | None:
        try:
            data = self._db.get(_insights_path(user_id))
        except Exception:  # noqa: BLE001
            LOGGER.exception("Error fetching cached insights for user %s", user_id)
            return None
        if data is None:
            return None
        return UserInsights(
            insights=list(data.get("insights") or []),
            generated_at=data.get("generatedAt") or datetime.fromtimestamp(0, timezone.utc),
            model_used=data.get("modelUsed"),
        )

    async def get_insights(
        self,
        user_id: str,
        applications: Sequence[Application],
        force_refresh: bool = False,
    ) -> UserInsights:
        if not force_refresh:
            cached = self.get_cached(user_id)
            if cached is not None and self.is_fresh(cached.generated_at):
                LOGGER.debug("Insights cache hit for user %s", user_id)
                return cached

        LOGGER.info("Generating insights for user %s (forced=%s)", user_id, force_refresh)
        insights, model_used = await generate_insights(applications, self._chain, self._max_applications)
        result = UserInsights(insights=insights, generated_at=self._clock(), model_used=model_used)
        self._save(user_id, result)
        return result

    def _save(self, user_id: str, result: UserInsights) -> None:
        data: dict[str, object] = {"insights": result.insights, "generatedAt": result.generated_at}
        if result.model_used:
            data["modelUsed"] = result.model_used
        try:
            self._db.set(_insights_path(user_id), data)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Error saving insights for user %s", user_id)


def _insights_path(user_id: str) -> str:
    return f"users/{user_id}/insights/latest"
