"""
Order reconciliation for notes.

Dragging happens in a filtered, sorted view; the store keeps one order
across the whole collection. These functions translate a drag over the
visible subsequence into new `order` values for every note, so that
hidden notes keep their relative order and clearing the filters shows a
consistent list.

All functions are pure: they return new Note objects and never touch
the inputs.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, TypeVar

from jotboard.models import Note, NoteUpdate, OrderUpdate
from jotboard.view import SortMode

logger = logging.getLogger(__name__)

T = TypeVar("T")


def move_item(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Return a copy with the item at from_index moved to to_index."""
    result = list(items)
    item = result.pop(from_index)
    result.insert(to_index, item)
    return result


def _order_changes(before: Sequence[Note], after: Sequence[Note]) -> list[OrderUpdate]:
    old = {n.id: n.order for n in before}
    return [OrderUpdate(id=n.id, order=n.order) for n in after if old.get(n.id) != n.order]


@dataclass
class ReorderPlan:
    """Result of a list drag: the new collection and what to persist."""

    notes: list[Note]
    moved_id: int
    changes: list[OrderUpdate] = field(default_factory=list)
    switch_to_custom: bool = False


@dataclass
class ColumnMovePlan:
    """Result of moving a note into (or within) a column."""

    notes: list[Note]
    moved: NoteUpdate
    changes: list[OrderUpdate] = field(default_factory=list)


def plan_reorder(
    full: Sequence[Note],
    visible: Sequence[Note],
    from_index: int,
    to_index: int,
    sort_mode: SortMode = SortMode.CUSTOM,
) -> Optional[ReorderPlan]:
    """
    Compute new orders for a drag from from_index to to_index in `visible`.

    Visible notes are ranked 0..len(visible)-1 in their new sequence.
    Notes not in the view are ranked after them, keeping their previous
    relative order. Returns None for a no-op: equal indices, indices
    outside the view, or a dragged note that no longer exists.
    """
    if from_index == to_index:
        return None
    if not (0 <= from_index < len(visible)) or not (0 <= to_index < len(visible)):
        logger.debug(f"Ignoring drag {from_index} -> {to_index} over {len(visible)} visible notes")
        return None

    full_ids = {n.id for n in full}
    moved_id = visible[from_index].id
    if moved_id not in full_ids:
        logger.debug(f"Ignoring stale drag of note {moved_id}")
        return None

    reordered = move_item(visible, from_index, to_index)
    ranks: dict[int, int] = {}
    for note in reordered:
        if note.id in full_ids and note.id not in ranks:
            ranks[note.id] = len(ranks)

    # Hidden notes continue after the visible ranks, in their old order
    hidden = sorted(
        (i for i, n in enumerate(full) if n.id not in ranks),
        key=lambda i: (full[i].order, i),
    )
    next_rank = len(ranks)
    for i in hidden:
        ranks[full[i].id] = next_rank
        next_rank += 1

    notes = [
        n if n.order == ranks[n.id] else n.model_copy(update={"order": ranks[n.id]})
        for n in full
    ]
    return ReorderPlan(
        notes=notes,
        moved_id=moved_id,
        changes=_order_changes(full, notes),
        switch_to_custom=sort_mode != SortMode.CUSTOM,
    )


def reorder(
    full: Sequence[Note],
    visible: Sequence[Note],
    from_index: int,
    to_index: int,
) -> list[Note]:
    """Like plan_reorder, but returns just the collection (input unchanged on no-op)."""
    plan = plan_reorder(full, visible, from_index, to_index)
    if plan is None:
        return list(full)
    return plan.notes


def move_to_column(
    full: Sequence[Note],
    note_id: int,
    target_state_id: Optional[int],
    before_id: Optional[int] = None,
) -> Optional[ColumnMovePlan]:
    """
    Move a note into a column, placed before `before_id` or at the end.

    The target column's notes in the same section are re-ranked 0..k-1.
    Also handles reordering within the note's own column. Returns None if
    the note is unknown or would land where it already is.
    """
    note = next((n for n in full if n.id == note_id), None)
    if note is None:
        logger.debug(f"Ignoring move of unknown note {note_id}")
        return None

    column = sorted(
        (n for n in full
         if n.state_id == target_state_id and n.section == note.section and n.id != note_id),
        key=lambda n: n.order,
    )
    index = next((i for i, n in enumerate(column) if n.id == before_id), len(column))
    column.insert(index, note)

    if note.state_id == target_state_id:
        current = sorted(
            (n for n in full if n.state_id == target_state_id and n.section == note.section),
            key=lambda n: n.order,
        )
        if [n.id for n in current] == [n.id for n in column]:
            return None

    ranks = {n.id: rank for rank, n in enumerate(column)}
    notes = []
    for n in full:
        if n.id == note_id:
            n = n.model_copy(update={"state_id": target_state_id, "order": ranks[n.id]})
        elif n.id in ranks and n.order != ranks[n.id]:
            n = n.model_copy(update={"order": ranks[n.id]})
        notes.append(n)

    changes = [c for c in _order_changes(full, notes) if c.id != note_id]
    return ColumnMovePlan(
        notes=notes,
        moved=NoteUpdate(id=note_id, state_id=target_state_id, order=ranks[note_id]),
        changes=changes,
    )


@dataclass
class BulkMovePlan:
    """Result of moving several notes into one column."""

    notes: list[Note]
    moved_ids: list[int]
    changes: list[OrderUpdate] = field(default_factory=list)


def move_many_to_column(
    full: Sequence[Note],
    note_ids: Sequence[int],
    target_state_id: Optional[int],
) -> Optional[BulkMovePlan]:
    """
    Move several notes to the end of a column, keeping their relative order.

    Each note is appended within its own section. Notes already in the
    target column stay put. Returns None when nothing would move.
    """
    wanted = set(note_ids)
    moving = sorted(
        (n for n in full if n.id in wanted and n.state_id != target_state_id),
        key=lambda n: (n.order, n.id),
    )
    if not moving:
        return None

    next_order: dict[str, int] = {}
    for n in full:
        if n.state_id == target_state_id:
            next_order[n.section] = max(next_order.get(n.section, 0), n.order + 1)

    ranks: dict[int, int] = {}
    for n in moving:
        ranks[n.id] = next_order.get(n.section, 0)
        next_order[n.section] = ranks[n.id] + 1

    notes = [
        n.model_copy(update={"state_id": target_state_id, "order": ranks[n.id]})
        if n.id in ranks else n
        for n in full
    ]
    return BulkMovePlan(
        notes=notes,
        moved_ids=[n.id for n in moving],
        changes=_order_changes(full, notes),
    )
