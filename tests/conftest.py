"""Shared test fixtures for Jotboard tests."""

from datetime import datetime, timedelta, timezone

import pytest

from jotboard.client import StoreClient
from jotboard.db import Database
from jotboard.errors import BulkUpdateError, NotFoundError, StoreError
from jotboard.models import (
    BulkResult,
    Column,
    ColumnCreate,
    ColumnUpdate,
    Note,
    NoteCreate,
    NoteUpdate,
    OrderUpdate,
)

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_note(note_id: int, order: int, **fields) -> Note:
    """A note created `note_id` minutes after BASE_TIME."""
    fields.setdefault("title", f"Note {note_id}")
    fields.setdefault("created_at", BASE_TIME + timedelta(minutes=note_id))
    fields.setdefault("updated_at", fields["created_at"])
    return Note(id=note_id, order=order, **fields)


def make_column(column_id: int, position: int, name: str | None = None) -> Column:
    return Column(id=column_id, name=name or f"Column {column_id}", position=position)


class FakeStore(StoreClient):
    """
    In-memory store with failure injection.

    Put a method name in `fail` to make it raise StoreError without
    changing anything. `fail_columns` fails position updates for
    specific column ids only.
    """

    def __init__(self, notes=(), columns=()):
        self.notes: dict[int, Note] = {n.id: n for n in notes}
        self.columns: dict[int, Column] = {c.id: c for c in columns}
        self.fail: set[str] = set()
        self.fail_columns: set[int] = set()
        self.calls: list[tuple] = []

    def _check(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail:
            raise StoreError(f"{name} unavailable")

    def calls_to(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def list_notes(self) -> list[Note]:
        self._check("list_notes")
        return sorted(self.notes.values(), key=lambda n: (n.order, n.id))

    async def list_columns(self) -> list[Column]:
        self._check("list_columns")
        return sorted(self.columns.values(), key=lambda c: c.position)

    async def create_note(self, request: NoteCreate) -> Note:
        self._check("create_note", request)
        note_id = max(self.notes, default=0) + 1
        scope = [n.order for n in self.notes.values()
                 if n.section == request.section and n.state_id == request.state_id]
        note = Note(id=note_id, order=max(scope, default=-1) + 1, **request.model_dump())
        self.notes[note_id] = note
        return note

    async def update_note(self, request: NoteUpdate) -> Note:
        self._check("update_note", request)
        if request.id not in self.notes:
            raise NotFoundError(f"Note {request.id} not found")
        note = self.notes[request.id].model_copy(update=request.changes())
        self.notes[request.id] = note
        return note

    async def bulk_update_note_order(self, updates: list[OrderUpdate]) -> BulkResult:
        self._check("bulk_update_note_order", [(u.id, u.order) for u in updates])
        for u in updates:
            self.notes[u.id] = self.notes[u.id].model_copy(update={"order": u.order})
        return BulkResult(successful_count=len(updates))

    async def _bulk_set(self, name: str, note_ids: list[int], **changes) -> BulkResult:
        self._check(name, list(note_ids), *changes.values())
        result = BulkResult()
        for note_id in note_ids:
            if note_id in self.notes:
                self.notes[note_id] = self.notes[note_id].model_copy(update=changes)
                result.successful_count += 1
            else:
                result.failed_count += 1
                result.errors.append(f"Note {note_id} not found")
        if not result.ok:
            raise BulkUpdateError(f"{name}: {result.failed_count} failed", result)
        return result

    async def bulk_update_notes_done(self, note_ids: list[int], done: bool) -> BulkResult:
        return await self._bulk_set("bulk_update_notes_done", note_ids, done=done)

    async def bulk_update_notes_priority(self, note_ids: list[int], priority: int) -> BulkResult:
        return await self._bulk_set("bulk_update_notes_priority", note_ids, priority=priority)

    async def bulk_update_notes_state(self, note_ids: list[int], state_id: int | None) -> BulkResult:
        return await self._bulk_set("bulk_update_notes_state", note_ids, state_id=state_id)

    async def delete_note(self, note_id: int) -> None:
        self._check("delete_note", note_id)
        if note_id not in self.notes:
            raise NotFoundError(f"Note {note_id} not found")
        del self.notes[note_id]

    async def bulk_delete_notes(self, note_ids: list[int]) -> BulkResult:
        self._check("bulk_delete_notes", list(note_ids))
        for note_id in note_ids:
            self.notes.pop(note_id, None)
        return BulkResult(successful_count=len(note_ids))

    async def search_notes(self, query: str, limit: int = 50) -> list[Note]:
        self._check("search_notes", query)
        q = query.lower()
        return [n for n in self.notes.values() if q in n.title.lower()][:limit]

    async def create_column(self, request: ColumnCreate) -> Column:
        self._check("create_column", request)
        column_id = max(self.columns, default=0) + 1
        column = Column(id=column_id, name=request.name, color=request.color,
                        position=len(self.columns))
        self.columns[column_id] = column
        return column

    async def update_column(self, request: ColumnUpdate) -> Column:
        self._check("update_column", request.id)
        if request.id in self.fail_columns:
            raise StoreError(f"Column {request.id} rejected")
        if request.id not in self.columns:
            raise NotFoundError(f"Column {request.id} not found")
        column = self.columns[request.id].model_copy(update=request.changes())
        self.columns[request.id] = column
        return column

    async def delete_column(self, column_id: int) -> None:
        self._check("delete_column", column_id)
        if column_id not in self.columns:
            raise NotFoundError(f"Column {column_id} not found")
        del self.columns[column_id]
        for note in list(self.notes.values()):
            if note.state_id == column_id:
                self.notes[note.id] = note.model_copy(update={"state_id": None})
        ordered = sorted(self.columns.values(), key=lambda c: c.position)
        for i, column in enumerate(ordered):
            self.columns[column.id] = column.model_copy(update={"position": i})


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config and data out of the real home directory."""
    monkeypatch.setenv("JOTBOARD_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.delenv("JOTBOARD_LOG_LEVEL", raising=False)
    monkeypatch.setenv("NO_COLOR", "1")
    return tmp_path


@pytest.fixture
def db(tmp_path):
    return Database(tmp_path / "test.db")


@pytest.fixture
def empty_db(tmp_path):
    return Database(tmp_path / "empty.db", seed_columns=False)


@pytest.fixture
def three_notes():
    return [make_note(1, 0), make_note(2, 1), make_note(3, 2)]


@pytest.fixture
def columns():
    return [make_column(10, 0, "To Do"), make_column(11, 1, "Doing"), make_column(12, 2, "Done")]
