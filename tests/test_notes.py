from datetime import datetime, timedelta, timezone

import pytest

from jobtrack.db import DocumentNotFoundError
from jobtrack.notes import NoteService


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 6, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


def test_add_list_update_delete(db):
    service = NoteService(db, clock=Clock())
    older = service.add("u1", "a1", "Recruiter call")
    newer = service.add("u1", "a1", "Onsite scheduled")

    notes = service.list("u1", "a1")
    assert [n.id for n in notes] == [newer, older]

    service.update("u1", "a1", older, "Recruiter call: salary range shared")
    updated = {n.id: n for n in service.list("u1", "a1")}[older]
    assert updated.content == "Recruiter call: salary range shared"
    assert updated.updated_at > updated.created_at

    service.delete("u1", "a1", newer)
    assert [n.id for n in service.list("u1", "a1")] == [older]


def test_notes_are_scoped_to_application(db):
    service = NoteService(db)
    service.add("u1", "a1", "one")

    assert service.list("u1", "a2") == []


def test_empty_note_rejected(db):
    with pytest.raises(ValueError):
        NoteService(db).add("u1", "a1", "   ")


def test_blank_update_rejected(db):
    service = NoteService(db)
    note_id = service.add("u1", "a1", "Recruiter call")

    with pytest.raises(ValueError, match="Note content is required"):
        service.update("u1", "a1", note_id, "  \n ")

    assert service.list("u1", "a1")[0].content == "Recruiter call"


def test_update_missing_note(db):
    with pytest.raises(DocumentNotFoundError):
        NoteService(db).update("u1", "a1", "missing", "text")
