"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ApplicationStage(str, Enum):
    """Pipeline stage of a job application."""

    APPLIED = "applied"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"


STAGE_LABELS: dict[ApplicationStage, str] = {
    ApplicationStage.APPLIED: "Applied",
    ApplicationStage.INTERVIEW: "Interview",
    ApplicationStage.OFFER: "Offer",
    ApplicationStage.REJECTED: "Rejected",
}


def parse_stage(value: str | ApplicationStage) -> ApplicationStage:
    """Coerce user input into an ApplicationStage or raise ValueError."""

    if isinstance(value, ApplicationStage):
        return value
    try:
        return ApplicationStage(str(value).strip().lower())
    except ValueError as exc:
        valid = ", ".join(stage.value for stage in ApplicationStage)
        raise ValueError(f"Unknown stage {value!r} (expected one of: {valid})") from exc


@dataclass(slots=True)
class Application:
    """A tracked job application."""

    id: str
    company_name: str
    role: str
    stage: ApplicationStage
    application_date: datetime
    created_at: datetime
    updated_at: datetime
    job_link: str = ""


@dataclass(slots=True)
class Note:
    """Free-text note attached to an application."""

    id: str
    content: str
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class LLMResponse:
    """Result from one generation request."""

    content: str
    model: str
    raw: dict[str, Any] | None = None


class FailureKind(str, Enum):
    """Classification of a failed model invocation."""

    RATE_LIMITED = "rate_limited"
    OTHER_ERROR = "other_error"


@dataclass(slots=True, frozen=True)
class GenerationSuccess:
    text: str
    model: str


@dataclass(slots=True, frozen=True)
class GenerationFailure:
    kind: FailureKind
    message: str
    model: str


GenerationOutcome = GenerationSuccess | GenerationFailure


@dataclass(slots=True)
class RateLimitRecord:
    """Models throttled on one calendar day."""

    date: str
    failed_models: list[str]
    last_updated: datetime


@dataclass(slots=True)
class UserInsights:
    """Cached or freshly generated insights for a user."""

    insights: list[str]
    generated_at: datetime
    model_used: str | None = None


@dataclass(slots=True)
class NoteSummary:
    """Summary of an application's notes plus key takeaways."""

    summary: str
    takeaways: list[str] = field(default_factory=list)
    generated_at: datetime | None = None
    model_used: str | None = None
