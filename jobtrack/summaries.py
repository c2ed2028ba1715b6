"""AI summaries of an application's notes, cached per application."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone

from jobtrack.db import Database
from jobtrack.llm.fallback import FallbackChain
from jobtrack.models import Note, NoteSummary

LOGGER = logging.getLogger(__name__)

EMPTY_NOTES_SUMMARY = "No notes to summarize yet. Add notes about your interviews and interactions."
UNABLE_TO_SUMMARIZE = "Unable to generate summary."
DEFAULT_REFRESH_DAYS = 7

_SUMMARY_PREFIX = "SUMMARY:"
_TAKEAWAY_PREFIX = "TAKEAWAY:"

_PROMPT_TEMPLATE = """Summarize the following interview notes for a job application at {company} for the {role} position.

Notes:
{notes}

Provide your response in the following exact format:
SUMMARY: [1-2 sentence summary of the overall situation]
TAKEAWAY: [First key takeaway]
TAKEAWAY: [Second key takeaway]
TAKEAWAY: [Third key takeaway - optional]

Be concise and focus on the most important information from the notes."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_notes(notes: Sequence[Note]) -> str:
    """Render notes oldest first as ``[date]: content`` blocks."""

    ordered = sorted(notes, key=lambda note: note.created_at)
    return "\n\n".join(
        f"[{note.created_at.astimezone().strftime('%x')}]: {note.content}" for note in ordered
    )


def build_summary_prompt(notes: Sequence[Note], company_name: str, role: str) -> str:
    return _PROMPT_TEMPLATE.format(company=company_name, role=role, notes=format_notes(notes))


def parse_summary(text: str) -> NoteSummary:
    summary = ""
    takeaways: list[str] = []
    for line in text.split("\n"):
        line = line.strip()
        if line.startswith(_SUMMARY_PREFIX):
            summary = line[len(_SUMMARY_PREFIX):].strip()
        elif line.startswith(_TAKEAWAY_PREFIX):
            takeaways.append(line[len(_TAKEAWAY_PREFIX):].strip())

    if not summary:
        first_line = next((line.strip() for line in text.split("\n") if line.strip()), "")
        summary = first_line or UNABLE_TO_SUMMARIZE
    return NoteSummary(summary=summary, takeaways=takeaways)


async def summarize_notes(
    notes: Sequence[Note],
    company_name: str,
    role: str,
    chain: FallbackChain,
) -> NoteSummary:
    """Summarize notes through the fallback chain; no model call when there are no notes."""

    if not notes:
        return NoteSummary(summary=EMPTY_NOTES_SUMMARY, takeaways=[])

    response = await chain.generate(build_summary_prompt(notes, company_name, role))
    result = parse_summary(response.content)
    result.model_used = response.model
    return result


class SummaryService:
    """Caches note summaries at ``users/<uid>/applications/<app_id>/summary/latest``."""

    def __init__(
        self,
        db: Database,
        chain: FallbackChain,
        refresh_after: timedelta = timedelta(days=DEFAULT_REFRESH_DAYS),
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._db = db
        self._chain = chain
        self._refresh_after = refresh_after
        self._clock = clock

    def is_fresh(self, generated_at: datetime) -> bool:
        return self._clock() - generated_at < self._refresh_after

    def load(self, user_id: str, application_id: str) -> NoteSummary | None:
        """Return the stored summary regardless of age."""

        try:
            data = self._db.get(_summary_path(user_id, application_id))
        except Exception:  # noqa: BLE001
            LOGGER.exception("Error loading summary for application %s", application_id)
            return None
        if data is None:
            return None
        return NoteSummary(
            summary=data.get("summary", ""),
            takeaways=list(data.get("takeaways") or []),
            generated_at=data.get("generatedAt") or datetime.fromtimestamp(0, timezone.utc),
            model_used=data.get("modelUsed"),
        )

    async def get_summary(
        self,
        user_id: str,
        application_id: str,
        notes: Sequence[Note],
        company_name: str,
        role: str,
        force_refresh: bool = False,
    ) -> NoteSummary:
        # A stored summary describes notes that no longer exist; never serve it.
        if not notes:
            return NoteSummary(summary=EMPTY_NOTES_SUMMARY, takeaways=[], generated_at=self._clock())

        if not force_refresh:
            cached = self.load(user_id, application_id)
            if cached is not None and self.is_fresh(cached.generated_at):
                return cached

        result = await summarize_notes(notes, company_name, role, self._chain)
        result.generated_at = self._clock()
        self._save(user_id, application_id, result)
        return result

    def _save(self, user_id: str, application_id: str, result: NoteSummary) -> None:
        data: dict[str, object] = {
            "summary": result.summary,
            "takeaways": result.takeaways,
            "generatedAt": result.generated_at,
        }
        if result.model_used:
            data["modelUsed"] = result.model_used
        try:
            self._db.set(_summary_path(user_id, application_id), data)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Error saving summary for application %s", application_id)


def _summary_path(user_id: str, application_id: str) -> str:
    return f"users/{user_id}/applications/{application_id}/summary/latest"
