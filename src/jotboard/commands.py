"""
Commands the board controller dispatches.

Each user gesture becomes one of these, so the core can be driven
and tested without simulating pointer events.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from jotboard.selection import Modifiers


@dataclass(frozen=True)
class ReorderNote:
    """Drag in the list view, by index into the visible list."""
    from_index: int
    to_index: int


@dataclass(frozen=True)
class MoveNote:
    """Drag on the board: into a column, before another note or at the end."""
    note_id: int
    state_id: Optional[int]
    before_id: Optional[int] = None


@dataclass(frozen=True)
class ReorderColumn:
    column_id: int
    new_position: int


@dataclass(frozen=True)
class SelectItem:
    note_id: int
    modifiers: Modifiers = field(default_factory=Modifiers)


@dataclass(frozen=True)
class SelectAll:
    pass


@dataclass(frozen=True)
class ClearSelection:
    pass


@dataclass(frozen=True)
class DeleteNote:
    note_id: int


@dataclass(frozen=True)
class DeleteSelected:
    pass


@dataclass(frozen=True)
class SetSelectedDone:
    done: bool = True


@dataclass(frozen=True)
class SetSelectedPriority:
    priority: int


@dataclass(frozen=True)
class MoveSelected:
    """Send every selected note to the end of a column (None unassigns)."""
    state_id: Optional[int]


@dataclass(frozen=True)
class DeleteColumn:
    column_id: int


Command = Union[
    ReorderNote,
    MoveNote,
    ReorderColumn,
    SelectItem,
    SelectAll,
    ClearSelection,
    DeleteNote,
    DeleteSelected,
    SetSelectedDone,
    SetSelectedPriority,
    MoveSelected,
    DeleteColumn,
]
