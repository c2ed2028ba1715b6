"""SQLite-backed document store.

Documents live at slash-separated paths such as
``users/<uid>/applications/<app_id>``: an even number of segments names a
document, an odd number names a collection. Each document is a flat field map
stored as JSON; ``datetime`` values are tagged on write and materialized back
into timezone-aware ``datetime`` objects on read.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

SCHEMA_VERSION = 1

_TIMESTAMP_TAG = "__timestamp__"


class DocumentNotFoundError(KeyError):
    """Raised when updating a document that does not exist."""


@dataclass(frozen=True, init=False)
class ArrayUnion:
    """Field transform for ``Database.update``: add values to a list field, skipping ones already present."""

    values: tuple[Any, ...]

    def __init__(self, *values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


class Database:
    """Small SQLite wrapper exposing document-store semantics."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create or migrate schema."""

        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self._create_schema(conn)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            elif row["version"] != SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {row['version']} (expected {SCHEMA_VERSION})"
                )

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS documents (
                path TEXT PRIMARY KEY,
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                data_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);
            """
        )

    def get(self, path: str) -> dict[str, Any] | None:
        """Return the document's fields, or None if it does not exist."""

        path = _document_path(path)
        with self._connect() as conn:
            row = conn.execute("SELECT data_json FROM documents WHERE path = ?", (path,)).fetchone()
        return _decode(row["data_json"]) if row else None

    def set(self, path: str, data: dict[str, Any]) -> None:
        """Create or fully overwrite a document."""

        path = _document_path(path)
        collection, doc_id = path.rsplit("/", 1)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO documents(path, collection, doc_id, data_json, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    data_json=excluded.data_json,
                    updated_at=excluded.updated_at
                """,
                (path, collection, doc_id, _encode(data), _utc_now_iso()),
            )

    def update(self, path: str, fields: dict[str, Any]) -> None:
        """Patch named fields of an existing document.

        ``ArrayUnion`` values are merged into the existing list field.
        """
        path = _document_path(path)
        with self._connect() as conn:
            row = conn.execute("SELECT data_json FROM documents WHERE path = ?", (path,)).fetchone()
            if row is None:
                raise DocumentNotFoundError(path)
            data = _decode(row["data_json"])
            for name, value in fields.items():
                if isinstance(value, ArrayUnion):
                    current = list(data.get(name) or [])
                    for item in value.values:
                        if item not in current:
                            current.append(item)
                    data[name] = current
                else:
                    data[name] = value
            conn.execute(
                "UPDATE documents SET data_json = ?, updated_at = ? WHERE path = ?",
                (_encode(data), _utc_now_iso(), path),
            )

    def add(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a document with a generated id and return that id."""

        doc_id = uuid.uuid4().hex[:20]
        self.set(f"{_collection_path(collection)}/{doc_id}", data)
        return doc_id

    def delete(self, path: str, recursive: bool = False) -> None:
        """Delete a document; with ``recursive`` also delete its subcollections."""

        path = _document_path(path)
        with self._connect() as conn:
            conn.execute("DELETE FROM documents WHERE path = ?", (path,))
            if recursive:
                conn.execute(
                    "DELETE FROM documents WHERE substr(path, 1, ?) = ?",
                    (len(path) + 1, f"{path}/"),
                )

    def list(
        self,
        collection: str,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(doc_id, fields)`` pairs for direct children of a collection."""

        collection = _collection_path(collection)
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT doc_id, data_json FROM documents WHERE collection = ? ORDER BY rowid",
                (collection,),
            ).fetchall()
        docs = [(row["doc_id"], _decode(row["data_json"])) for row in rows]
        if order_by is not None:
            present = [doc for doc in docs if doc[1].get(order_by) is not None]
            missing = [doc for doc in docs if doc[1].get(order_by) is None]
            present.sort(key=lambda doc: doc[1][order_by], reverse=descending)
            docs = present + missing
        return docs


def _segments(path: str) -> list[str]:
    parts = [part for part in path.strip("/").split("/") if part]
    if not parts:
        raise ValueError("Empty document path")
    return parts


def _document_path(path: str) -> str:
    parts = _segments(path)
    if len(parts) % 2 != 0:
        raise ValueError(f"Not a document path: {path!r}")
    return "/".join(parts)


def _collection_path(path: str) -> str:
    parts = _segments(path)
    if len(parts) % 2 != 1:
        raise ValueError(f"Not a collection path: {path!r}")
    return "/".join(parts)


def _encode(data: dict[str, Any]) -> str:
    return json.dumps(data, default=_encode_value)


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {_TIMESTAMP_TAG: value.isoformat()}
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not storable")


def _decode(raw: str) -> dict[str, Any]:
    return json.loads(raw, object_hook=_decode_object)


def _decode_object(obj: dict[str, Any]) -> Any:
    if len(obj) == 1 and _TIMESTAMP_TAG in obj:
        return datetime.fromisoformat(obj[_TIMESTAMP_TAG])
    return obj


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
