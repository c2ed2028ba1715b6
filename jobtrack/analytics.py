"""Aggregate statistics over a user's applications."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field

from jobtrack.models import Application, ApplicationStage

MONTHS_SHOWN = 6


@dataclass(slots=True)
class ApplicationStats:
    total: int
    stage_counts: dict[ApplicationStage, int]
    response_rate: int
    interview_rate: int
    success_rate: int
    # (label, count) pairs, oldest month first.
    monthly: list[tuple[str, int]] = field(default_factory=list)


def _percent(count: int, total: int) -> int:
    if total == 0:
        return 0
    # halves round up
    return int(count * 100 / total + 0.5)


def compute_stats(applications: Sequence[Application]) -> ApplicationStats:
    total = len(applications)
    counts = Counter(app.stage for app in applications)
    stage_counts = {stage: counts.get(stage, 0) for stage in ApplicationStage}

    interview = stage_counts[ApplicationStage.INTERVIEW]
    offer = stage_counts[ApplicationStage.OFFER]
    rejected = stage_counts[ApplicationStage.REJECTED]

    by_month = Counter(
        (app.application_date.year, app.application_date.month) for app in applications
    )
    monthly = [
        (f"{_month_label(month)} {year}", by_month[(year, month)])
        for year, month in sorted(by_month)[-MONTHS_SHOWN:]
    ]

    return ApplicationStats(
        total=total,
        stage_counts=stage_counts,
        response_rate=_percent(interview + offer + rejected, total),
        interview_rate=_percent(interview + offer, total),
        success_rate=_percent(offer, total),
        monthly=monthly,
    )


def _month_label(month: int) -> str:
    return ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")[month - 1]
