from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from jobtrack.rate_limits import RateLimitLogger


class StepClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


@pytest.mark.asyncio
async def test_first_failure_creates_record(db):
    clock = StepClock(datetime(2026, 5, 4, 8, 0).astimezone())
    logger = RateLimitLogger(db, clock=clock)

    await logger.log("gemini-2.5-pro")

    raw = db.get("ai_rate_limits/2026-05-04")
    assert raw["date"] == "2026-05-04"
    assert raw["failedModels"] == ["gemini-2.5-pro"]
    assert raw["lastUpdated"] == clock.now


@pytest.mark.asyncio
async def test_same_model_twice_is_idempotent(db):
    clock = StepClock(datetime(2026, 5, 4, 8, 0).astimezone())
    logger = RateLimitLogger(db, clock=clock)

    await logger.log("gemini-2.5-pro")
    clock.now += timedelta(minutes=5)
    await logger.log("gemini-2.5-pro")

    record = logger.get_record()
    assert record.failed_models == ["gemini-2.5-pro"]
    assert record.last_updated == clock.now


@pytest.mark.asyncio
async def test_models_accumulate_within_a_day(db):
    logger = RateLimitLogger(db, clock=StepClock(datetime(2026, 5, 4, 8, 0).astimezone()))

    await logger("gemini-3-pro-preview")
    await logger("gemini-2.5-flash")

    assert logger.get_record(date(2026, 5, 4)).failed_models == ["gemini-3-pro-preview", "gemini-2.5-flash"]


@pytest.mark.asyncio
async def test_new_day_gets_new_record(db):
    clock = StepClock(datetime(2026, 5, 4, 23, 0).astimezone())
    logger = RateLimitLogger(db, clock=clock)

    await logger.log("m1")
    clock.now += timedelta(days=1)
    await logger.log("m2")

    assert logger.get_record(date(2026, 5, 4)).failed_models == ["m1"]
    assert logger.get_record(date(2026, 5, 5)).failed_models == ["m2"]


def test_missing_day_returns_none(db):
    assert RateLimitLogger(db).get_record(date(2020, 1, 1)) is None


@pytest.mark.asyncio
async def test_store_errors_are_swallowed(caplog):
    store = MagicMock()
    store.get.side_effect = RuntimeError("database is locked")
    logger = RateLimitLogger(store)

    await logger.log("m1")

    assert "Error logging rate limit" in caplog.text
