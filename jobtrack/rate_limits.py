"""Day-scoped log of models that hit rate limits."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime

from jobtrack.db import ArrayUnion, Database
from jobtrack.models import RateLimitRecord

LOGGER = logging.getLogger(__name__)

RATE_LIMIT_COLLECTION = "ai_rate_limits"


def _local_now() -> datetime:
    return datetime.now().astimezone()


class RateLimitLogger:
    """Records throttled models under ``ai_rate_limits/<YYYY-MM-DD>``.

    Usable directly as the fallback chain's rate-limit sink. Store failures
    are logged and swallowed.
    """

    def __init__(self, db: Database, clock: Callable[[], datetime] = _local_now) -> None:
        self._db = db
        self._clock = clock

    async def __call__(self, model: str) -> None:
        await self.log(model)

    async def log(self, model: str) -> None:
        now = self._clock()
        day = now.date().isoformat()
        path = f"{RATE_LIMIT_COLLECTION}/{day}"
        try:
            if self._db.get(path) is not None:
                self._db.update(path, {"failedModels": ArrayUnion(model), "lastUpdated": now})
            else:
                self._db.set(path, {"date": day, "failedModels": [model], "lastUpdated": now})
        except Exception:  # noqa: BLE001
            LOGGER.exception("Error logging rate limit for model %s", model)

    def get_record(self, day: date | None = None) -> RateLimitRecord | None:
        """Return the record for ``day`` (today by default), if any."""

        day_str = (day or self._clock().date()).isoformat()
        data = self._db.get(f"{RATE_LIMIT_COLLECTION}/{day_str}")
        if data is None:
            return None
        return RateLimitRecord(
            date=data.get("date", day_str),
            failed_models=list(data.get("failedModels") or []),
            last_updated=data.get("lastUpdated") or self._clock(),
        )
