"""
Data models for Jotboard.

Notes and columns (workflow states) as they travel between the store,
the core and the bridges.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_SECTION = "unset"
DEFAULT_COLUMN_COLOR = "#3498db"

# Seeded on first run, in position order
DEFAULT_COLUMNS = [
    ("To Do", "#75715E"),
    ("In Progress", "#66D9EF"),
    ("Done", "#A6E22E"),
]


class Note(BaseModel):
    """A note. `order` ranks it within its (section, state_id) scope."""

    id: int
    title: str = ""
    content: str = ""
    priority: int = Field(default=0, ge=0, le=3, description="0 none, 1 low, 2 medium, 3 high")
    labels: list[str] = Field(default_factory=list)
    deadline: datetime | None = None
    reminder_minutes: int = 0
    done: bool = False
    state_id: int | None = None
    section: str = DEFAULT_SECTION
    order: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def scope(self) -> tuple[str, int | None]:
        """The (section, state_id) pair that `order` is relative to."""
        return (self.section, self.state_id)


class Column(BaseModel):
    """A workflow column. Positions are dense 0..N-1 across all columns."""

    id: int
    name: str
    position: int = 0
    color: str = DEFAULT_COLUMN_COLOR
    created_at: datetime | None = None
    updated_at: datetime | None = None


class NoteCreate(BaseModel):
    """Fields accepted when creating a note. Order is assigned by the store."""

    title: str = Field(min_length=1)
    content: str = ""
    priority: int = Field(default=0, ge=0, le=3)
    labels: list[str] = Field(default_factory=list)
    deadline: datetime | None = None
    reminder_minutes: int = 0
    done: bool = False
    state_id: int | None = None
    section: str = DEFAULT_SECTION


class NoteUpdate(BaseModel):
    """Partial note update. Only fields that are set are written."""

    id: int
    title: str | None = None
    content: str | None = None
    priority: int | None = Field(default=None, ge=0, le=3)
    labels: list[str] | None = None
    deadline: datetime | None = None
    reminder_minutes: int | None = None
    done: bool | None = None
    state_id: int | None = None
    section: str | None = None
    order: int | None = None

    def changes(self) -> dict[str, Any]:
        """Return the fields to write, excluding the id.

        An explicit `state_id=None` is kept, so a note can be unassigned.
        """
        return self.model_dump(exclude_unset=True, exclude={"id"})


class ColumnCreate(BaseModel):
    """Fields accepted when creating a column. Position defaults to the end."""

    name: str = Field(min_length=1)
    color: str = DEFAULT_COLUMN_COLOR
    position: int | None = None


class ColumnUpdate(BaseModel):
    """Partial column update."""

    id: int
    name: str | None = None
    color: str | None = None
    position: int | None = Field(default=None, ge=0)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"id"})


class OrderUpdate(BaseModel):
    """One (id, order) pair of a bulk order update."""

    id: int
    order: int


class BulkResult(BaseModel):
    """Outcome of a bulk operation."""

    successful_count: int = 0
    failed_count: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed_count == 0
