"""
Drag gesture translation.

A drag is a start/end pair. On end it becomes a command, or nothing at
all when it was cancelled or dropped somewhere invalid. Nothing here
touches state.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from jotboard.commands import Command, MoveNote, ReorderColumn, ReorderNote
from jotboard.models import Column, Note

logger = logging.getLogger(__name__)


class DragKind(Enum):
    NOTE = "note"
    COLUMN = "column"


class DropKind(Enum):
    NOTE = "note"            # Another note card
    COLUMN = "column"        # A column header or body
    CONTAINER = "container"  # The area for notes without a column


class ViewMode(Enum):
    LIST = "list"
    BOARD = "board"


@dataclass(frozen=True)
class DragStart:
    kind: DragKind
    item_id: int


@dataclass(frozen=True)
class DropTarget:
    kind: DropKind
    target_id: Optional[int] = None


def is_valid_drop(drag: DragStart, target: Optional[DropTarget], mode: ViewMode) -> bool:
    """Which targets accept which drags."""
    if target is None:
        return False
    if drag.kind == DragKind.COLUMN:
        return target.kind == DropKind.COLUMN and target.target_id != drag.item_id
    if mode == ViewMode.LIST:
        return target.kind == DropKind.NOTE
    return target.kind in (DropKind.NOTE, DropKind.COLUMN, DropKind.CONTAINER)


def translate_drop(
    drag: DragStart,
    target: Optional[DropTarget],
    mode: ViewMode,
    visible: Sequence[Note] = (),
    notes: Sequence[Note] = (),
    columns: Sequence[Column] = (),
) -> Optional[Command]:
    """
    Turn a finished drag into a command, or None for a no-op.

    On the board a note dropped on a card lands before that card. A card
    from another section has no place in the dragged note's order, so
    that drop appends the note to the card's column.
    """
    if not is_valid_drop(drag, target, mode):
        logger.debug(f"Drag of {drag.kind.value} {drag.item_id} cancelled or dropped on invalid target")
        return None

    if drag.kind == DragKind.COLUMN:
        ordered = sorted(columns, key=lambda c: c.position)
        ids = [c.id for c in ordered]
        if drag.item_id not in ids or target.target_id not in ids:
            return None
        return ReorderColumn(column_id=drag.item_id, new_position=ids.index(target.target_id))

    if mode == ViewMode.LIST:
        ids = [n.id for n in visible]
        if drag.item_id not in ids or target.target_id not in ids or drag.item_id == target.target_id:
            return None
        return ReorderNote(from_index=ids.index(drag.item_id), to_index=ids.index(target.target_id))

    if target.kind == DropKind.NOTE:
        if target.target_id == drag.item_id:
            return None
        over = next((n for n in notes if n.id == target.target_id), None)
        dragged = next((n for n in notes if n.id == drag.item_id), None)
        if over is None or dragged is None:
            return None
        if over.section != dragged.section:
            # Orders are per section: append to the column instead
            return MoveNote(note_id=drag.item_id, state_id=over.state_id)
        return MoveNote(note_id=drag.item_id, state_id=over.state_id, before_id=over.id)
    if target.kind == DropKind.COLUMN:
        return MoveNote(note_id=drag.item_id, state_id=target.target_id)
    return MoveNote(note_id=drag.item_id, state_id=None)


class DragTracker:
    """Holds the drag in progress between start and end."""

    def __init__(self, mode: ViewMode = ViewMode.LIST):
        self.mode = mode
        self.active: Optional[DragStart] = None

    def start(self, kind: DragKind, item_id: int) -> DragStart:
        self.active = DragStart(kind, item_id)
        return self.active

    def cancel(self) -> None:
        self.active = None

    def end(
        self,
        target: Optional[DropTarget],
        visible: Sequence[Note] = (),
        notes: Sequence[Note] = (),
        columns: Sequence[Column] = (),
    ) -> Optional[Command]:
        drag, self.active = self.active, None
        if drag is None:
            return None
        return translate_drop(drag, target, self.mode, visible, notes, columns)
