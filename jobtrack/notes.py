"""Note CRUD over the document store."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from jobtrack.db import Database
from jobtrack.models import Note


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NoteService:
    """Stores notes under ``users/<uid>/applications/<app_id>/notes``."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = _utc_now) -> None:
        self._db = db
        self._clock = clock

    def list(self, user_id: str, application_id: str) -> list[Note]:
        """Notes for one application, newest first."""

        docs = self._db.list(_collection(user_id, application_id), order_by="createdAt", descending=True)
        return [
            Note(
                id=doc_id,
                content=data.get("content", ""),
                created_at=data.get("createdAt") or self._clock(),
                updated_at=data.get("updatedAt") or self._clock(),
            )
            for doc_id, data in docs
        ]

    def add(self, user_id: str, application_id: str, content: str) -> str:
        if not content.strip():
            raise ValueError("Note content is required")
        now = self._clock()
        return self._db.add(
            _collection(user_id, application_id),
            {"content": content, "createdAt": now, "updatedAt": now},
        )

    def update(self, user_id: str, application_id: str, note_id: str, content: str) -> None:
        if not content.strip():
            raise ValueError("Note content is required")
        self._db.update(
            f"{_collection(user_id, application_id)}/{note_id}",
            {"content": content, "updatedAt": self._clock()},
        )

    def delete(self, user_id: str, application_id: str, note_id: str) -> None:
        self._db.delete(f"{_collection(user_id, application_id)}/{note_id}")


def _collection(user_id: str, application_id: str) -> str:
    return f"users/{user_id}/applications/{application_id}/notes"
