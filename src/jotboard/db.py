"""
Database module for Jotboard.

SQLite storage with FTS5 full-text search. This is the authoritative
store: the core only ever reads from it or writes through it.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator

from jotboard.config import get_db_path
from jotboard.errors import NotFoundError
from jotboard.models import (
    DEFAULT_COLUMNS,
    BulkResult,
    Column,
    ColumnCreate,
    ColumnUpdate,
    Note,
    NoteCreate,
    NoteUpdate,
    OrderUpdate,
)

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Workflow columns (kanban states)
CREATE TABLE IF NOT EXISTS states (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    position INTEGER NOT NULL,              -- Dense 0..N-1
    color TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Notes
CREATE TABLE IF NOT EXISTS notes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    priority INTEGER NOT NULL DEFAULT 0 CHECK(priority BETWEEN 0 AND 3),
    labels TEXT NOT NULL DEFAULT '[]',      -- JSON list
    deadline TEXT,                          -- ISO 8601
    reminder_minutes INTEGER NOT NULL DEFAULT 0,
    done INTEGER NOT NULL DEFAULT 0,
    state_id INTEGER REFERENCES states(id),
    section TEXT NOT NULL DEFAULT 'unset',
    "order" INTEGER NOT NULL DEFAULT 0,     -- Rank within (section, state_id)
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Full-text search
CREATE VIRTUAL TABLE IF NOT EXISTS notes_fts USING fts5(
    title,
    content,
    content='notes',
    content_rowid='id'
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_notes_order ON notes("order");
CREATE INDEX IF NOT EXISTS idx_notes_state_id ON notes(state_id);
CREATE INDEX IF NOT EXISTS idx_notes_section ON notes(section);
CREATE INDEX IF NOT EXISTS idx_notes_done ON notes(done);
CREATE INDEX IF NOT EXISTS idx_states_position ON states(position);

-- FTS triggers
CREATE TRIGGER IF NOT EXISTS notes_ai AFTER INSERT ON notes BEGIN
    INSERT INTO notes_fts(rowid, title, content) VALUES (new.id, new.title, new.content);
END;

CREATE TRIGGER IF NOT EXISTS notes_ad AFTER DELETE ON notes BEGIN
    INSERT INTO notes_fts(notes_fts, rowid, title, content) VALUES('delete', old.id, old.title, old.content);
END;

CREATE TRIGGER IF NOT EXISTS notes_au AFTER UPDATE ON notes BEGIN
    INSERT INTO notes_fts(notes_fts, rowid, title, content) VALUES('delete', old.id, old.title, old.content);
    INSERT INTO notes_fts(rowid, title, content) VALUES (new.id, new.title, new.content);
END;
"""

NOTE_COLUMNS = {
    "title", "content", "priority", "labels", "deadline", "reminder_minutes",
    "done", "state_id", "section", "order",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _fts_query(query: str) -> str:
    """Turn free text into an FTS5 prefix query ("redis cach" → "redis"* "cach"*)."""
    terms = [t.replace('"', '""') for t in query.split() if t.strip()]
    return " ".join(f'"{t}"*' for t in terms)


class Database:
    """SQLite database wrapper for Jotboard."""

    def __init__(self, db_path: Path | None = None, seed_columns: bool = True):
        self.db_path = Path(db_path) if db_path else get_db_path()
        self._ensure_db(seed_columns)

    def _ensure_db(self, seed_columns: bool) -> None:
        """Ensure database exists and schema is current."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)
            # Set schema version
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,)
            )
            if seed_columns:
                count = conn.execute("SELECT COUNT(*) FROM states").fetchone()[0]
                if count == 0:
                    now = _now()
                    conn.executemany(
                        "INSERT INTO states (name, position, color, created_at, updated_at) "
                        "VALUES (?, ?, ?, ?, ?)",
                        [
                            (name, position, color, now, now)
                            for position, (name, color) in enumerate(DEFAULT_COLUMNS)
                        ],
                    )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ── Notes ────────────────────────────────────────────────────────────────

    def _row_to_note(self, row: sqlite3.Row) -> Note:
        data = dict(row)
        try:
            data["labels"] = json.loads(data.get("labels") or "[]")
        except (json.JSONDecodeError, TypeError):
            data["labels"] = []
        data["done"] = bool(data.get("done", 0))
        return Note.model_validate(data)

    def _get_note(self, conn: sqlite3.Connection, note_id: int) -> Note:
        row = conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Note {note_id} not found")
        return self._row_to_note(row)

    def _next_order(self, conn: sqlite3.Connection, section: str, state_id: int | None) -> int:
        """One past the highest order in the (section, state_id) scope."""
        row = conn.execute(
            'SELECT MAX("order") FROM notes WHERE section = ? AND state_id IS ?',
            (section, state_id),
        ).fetchone()
        return 0 if row[0] is None else row[0] + 1

    def create_note(self, request: NoteCreate) -> Note:
        """Insert a note at the end of its scope. Returns the stored note."""
        now = _now()

        with self._connect() as conn:
            order = self._next_order(conn, request.section, request.state_id)
            cursor = conn.execute("""
                INSERT INTO notes (
                    title, content, priority, labels, deadline, reminder_minutes,
                    done, state_id, section, "order", created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                request.title,
                request.content,
                request.priority,
                json.dumps(request.labels),
                request.deadline.isoformat() if request.deadline else None,
                request.reminder_minutes,
                int(request.done),
                request.state_id,
                request.section,
                order,
                now,
                now,
            ))
            return self._get_note(conn, cursor.lastrowid)

    def get_note(self, note_id: int) -> Note | None:
        """Get a single note by ID."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM notes WHERE id = ?", (note_id,)
            ).fetchone()
            if row:
                return self._row_to_note(row)
        return None

    def list_notes(self) -> list[Note]:
        """All notes, in manual order."""
        with self._connect() as conn:
            rows = conn.execute(
                'SELECT * FROM notes ORDER BY "order" ASC, created_at DESC'
            ).fetchall()
            return [self._row_to_note(row) for row in rows]

    def update_note(self, request: NoteUpdate) -> Note:
        """Apply a partial update. Raises NotFoundError for unknown ids."""
        changes = request.changes()
        unknown = set(changes) - NOTE_COLUMNS
        if unknown:
            raise ValueError(f"Invalid note fields: {sorted(unknown)}")

        set_parts = []
        params: list[Any] = []
        for field, value in changes.items():
            if field == "labels":
                value = json.dumps(value)
            elif field == "deadline" and value is not None:
                value = value.isoformat()
            elif field == "done":
                value = int(value)
            set_parts.append(f'"{field}" = ?')
            params.append(value)

        set_parts.append("updated_at = ?")
        params.append(_now())
        params.append(request.id)

        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE notes SET {', '.join(set_parts)} WHERE id = ?", params
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Note {request.id} not found")
            return self._get_note(conn, request.id)

    def set_done(self, note_id: int, done: bool = True) -> Note:
        """Mark a note done (or not done)."""
        return self.update_note(NoteUpdate(id=note_id, done=done))

    def delete_note(self, note_id: int) -> Note:
        """Delete a note. Returns the deleted note."""
        with self._connect() as conn:
            note = self._get_note(conn, note_id)
            conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))
            return note

    def search(self, query: str, limit: int = 50, offset: int = 0) -> list[Note]:
        """Full-text search across notes, falling back to LIKE."""
        limit = min(limit, 1000)
        if not query.strip():
            with self._connect() as conn:
                rows = conn.execute(
                    'SELECT * FROM notes ORDER BY "order" ASC, created_at DESC LIMIT ? OFFSET ?',
                    (limit, offset),
                ).fetchall()
                return [self._row_to_note(row) for row in rows]

        with self._connect() as conn:
            try:
                rows = conn.execute("""
                    SELECT n.* FROM notes n
                    JOIN notes_fts fts ON n.id = fts.rowid
                    WHERE notes_fts MATCH ?
                    ORDER BY rank, n."order" ASC, n.created_at DESC
                    LIMIT ? OFFSET ?
                """, (_fts_query(query), limit, offset)).fetchall()
            except sqlite3.OperationalError as e:
                logger.debug(f"FTS query failed ({e}), using LIKE search")
                pattern = f"%{query}%"
                rows = conn.execute("""
                    SELECT * FROM notes
                    WHERE title LIKE ? OR content LIKE ?
                    ORDER BY "order" ASC, created_at DESC
                    LIMIT ? OFFSET ?
                """, (pattern, pattern, limit, offset)).fetchall()
            return [self._row_to_note(row) for row in rows]

    def _bulk(self, ids: Iterable[int], sql: str, params_for) -> BulkResult:
        """Run one statement per id, counting successes and misses."""
        result = BulkResult()
        with self._connect() as conn:
            for note_id in ids:
                try:
                    cursor = conn.execute(sql, params_for(note_id))
                except sqlite3.Error as e:
                    result.failed_count += 1
                    result.errors.append(f"Failed to update note {note_id}: {e}")
                    continue
                if cursor.rowcount > 0:
                    result.successful_count += 1
                else:
                    result.failed_count += 1
                    result.errors.append(f"Note {note_id} not found")
        return result

    def bulk_update_order(self, updates: list[OrderUpdate]) -> BulkResult:
        """Write many (id, order) pairs in one transaction."""
        now = _now()
        orders = {u.id: u.order for u in updates}
        return self._bulk(
            orders,
            'UPDATE notes SET "order" = ?, updated_at = ? WHERE id = ?',
            lambda note_id: (orders[note_id], now, note_id),
        )

    def bulk_update_done(self, note_ids: list[int], done: bool) -> BulkResult:
        now = _now()
        return self._bulk(
            note_ids,
            "UPDATE notes SET done = ?, updated_at = ? WHERE id = ?",
            lambda note_id: (int(done), now, note_id),
        )

    def bulk_update_priority(self, note_ids: list[int], priority: int) -> BulkResult:
        if not 0 <= priority <= 3:
            raise ValueError(f"Priority must be 0-3, got {priority}")
        now = _now()
        return self._bulk(
            note_ids,
            "UPDATE notes SET priority = ?, updated_at = ? WHERE id = ?",
            lambda note_id: (priority, now, note_id),
        )

    def bulk_update_state(self, note_ids: list[int], state_id: int | None) -> BulkResult:
        """Assign many notes to one column. Their order is left alone."""
        now = _now()
        return self._bulk(
            note_ids,
            "UPDATE notes SET state_id = ?, updated_at = ? WHERE id = ?",
            lambda note_id: (state_id, now, note_id),
        )

    def bulk_delete(self, note_ids: list[int]) -> BulkResult:
        """Delete many notes."""
        return self._bulk(
            note_ids,
            "DELETE FROM notes WHERE id = ?",
            lambda note_id: (note_id,),
        )

    # ── Columns ──────────────────────────────────────────────────────────────

    def _get_column(self, conn: sqlite3.Connection, column_id: int) -> Column:
        row = conn.execute("SELECT * FROM states WHERE id = ?", (column_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Column {column_id} not found")
        return Column.model_validate(dict(row))

    def _densify(self, conn: sqlite3.Connection) -> None:
        """Rewrite column positions to 0..N-1, keeping their current order."""
        rows = conn.execute("SELECT id FROM states ORDER BY position ASC, id ASC").fetchall()
        now = _now()
        for position, row in enumerate(rows):
            conn.execute(
                "UPDATE states SET position = ?, updated_at = ? WHERE id = ? AND position != ?",
                (position, now, row["id"], position),
            )

    def list_columns(self) -> list[Column]:
        """All columns by position."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM states ORDER BY position ASC, id ASC"
            ).fetchall()
            return [Column.model_validate(dict(row)) for row in rows]

    def create_column(self, request: ColumnCreate) -> Column:
        """Insert a column, appended unless a position is given."""
        now = _now()
        with self._connect() as conn:
            count = conn.execute("SELECT COUNT(*) FROM states").fetchone()[0]
            position = count if request.position is None else max(0, min(request.position, count))
            if position < count:
                conn.execute(
                    "UPDATE states SET position = position + 1 WHERE position >= ?",
                    (position,),
                )
            cursor = conn.execute(
                "INSERT INTO states (name, position, color, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (request.name, position, request.color, now, now),
            )
            return self._get_column(conn, cursor.lastrowid)

    def update_column(self, request: ColumnUpdate) -> Column:
        """Apply a partial column update."""
        changes = request.changes()
        set_parts = [f"{field} = ?" for field in changes] + ["updated_at = ?"]
        params = list(changes.values()) + [_now(), request.id]

        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE states SET {', '.join(set_parts)} WHERE id = ?", params
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Column {request.id} not found")
            return self._get_column(conn, request.id)

    def update_column_position(self, column_id: int, position: int) -> Column:
        """Set one column's position. Density is the caller's concern."""
        return self.update_column(ColumnUpdate(id=column_id, position=position))

    def delete_column(self, column_id: int) -> Column:
        """Delete a column, unassign its notes and re-densify the rest."""
        with self._connect() as conn:
            column = self._get_column(conn, column_id)
            conn.execute(
                "UPDATE notes SET state_id = NULL, updated_at = ? WHERE state_id = ?",
                (_now(), column_id),
            )
            conn.execute("DELETE FROM states WHERE id = ?", (column_id,))
            self._densify(conn)
            return column

    # ── Stats ────────────────────────────────────────────────────────────────

    def get_stats(self) -> dict[str, Any]:
        """Get database statistics."""
        with self._connect() as conn:
            total = conn.execute("SELECT COUNT(*) FROM notes").fetchone()[0]
            done = conn.execute("SELECT COUNT(*) FROM notes WHERE done = 1").fetchone()[0]
            unassigned = conn.execute(
                "SELECT COUNT(*) FROM notes WHERE state_id IS NULL"
            ).fetchone()[0]
            by_column = {
                row[0]: row[1]
                for row in conn.execute("""
                    SELECT s.name, COUNT(n.id) FROM states s
                    LEFT JOIN notes n ON n.state_id = s.id
                    GROUP BY s.id ORDER BY s.position
                """).fetchall()
            }
            by_section = dict(conn.execute(
                "SELECT section, COUNT(*) FROM notes GROUP BY section"
            ).fetchall())

            return {
                "total_notes": total,
                "done": done,
                "unassigned": unassigned,
                "by_column": by_column,
                "by_section": by_section,
            }
