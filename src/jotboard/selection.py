"""
Multi-item selection.

Selection is keyed by note id, never by position, so reordering or
re-filtering the view does not disturb it. Only deletion does, and the
manager prunes vanished ids before it reports anything.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence

from jotboard.models import Note

logger = logging.getLogger(__name__)


class SelectionState(Enum):
    NONE = "none"
    SOME = "some"
    ALL = "all"


@dataclass(frozen=True)
class Modifiers:
    """Keyboard modifiers held during a click."""
    shift: bool = False
    ctrl: bool = False
    meta: bool = False

    @property
    def toggle(self) -> bool:
        return self.ctrl or self.meta


@dataclass(frozen=True)
class SelectionSummary:
    count: int
    total: int


class SelectionManager:
    """Owns the selected ids and the range anchor."""

    def __init__(self):
        self._selected: set[int] = set()
        self.anchor: Optional[int] = None

    @property
    def selected_ids(self) -> frozenset[int]:
        return frozenset(self._selected)

    def __len__(self) -> int:
        return len(self._selected)

    def is_selected(self, note_id: int) -> bool:
        return note_id in self._selected

    def toggle(self, note_id: int) -> None:
        """Flip one id and make it the anchor."""
        if note_id in self._selected:
            self._selected.discard(note_id)
        else:
            self._selected.add(note_id)
        self.anchor = note_id

    def range_select(self, anchor_id: Optional[int], target_id: int, visible_order: Sequence[int]) -> None:
        """
        Add every id between anchor and target (inclusive) in visible_order.

        Ids outside the range keep their current state. Without a usable
        anchor this is a plain toggle of the target.
        """
        order = list(visible_order)
        if anchor_id is None or anchor_id not in order or target_id not in order:
            self.toggle(target_id)
            return

        start, end = sorted((order.index(anchor_id), order.index(target_id)))
        self._selected.update(order[start:end + 1])
        self.anchor = target_id

    def select_all(self, visible_ids: Iterable[int]) -> None:
        self._selected = set(visible_ids)

    def clear_all(self) -> None:
        self._selected.clear()
        self.anchor = None

    def toggle_all(self, visible_ids: Sequence[int]) -> None:
        """Select everything visible, or clear if it already is."""
        if self.state(visible_ids) == SelectionState.ALL:
            self.clear_all()
        else:
            self.select_all(visible_ids)

    def handle_click(self, note_id: int, modifiers: Modifiers, visible_order: Sequence[int]) -> None:
        """Shift extends from the anchor, ctrl/meta toggles, a plain click selects only this id."""
        if modifiers.shift:
            self.range_select(self.anchor, note_id, visible_order)
        elif modifiers.toggle:
            self.toggle(note_id)
        else:
            self._selected = {note_id}
            self.anchor = note_id

    def state(self, visible_ids: Sequence[int]) -> SelectionState:
        if not self._selected:
            return SelectionState.NONE
        if visible_ids and all(i in self._selected for i in visible_ids):
            return SelectionState.ALL
        return SelectionState.SOME

    def prune(self, existing_ids: Iterable[int]) -> int:
        """Drop ids that no longer exist. Returns how many were dropped."""
        existing = set(existing_ids)
        stale = self._selected - existing
        if stale:
            logger.debug(f"Pruning {len(stale)} deleted notes from selection")
            self._selected -= stale
        if self.anchor is not None and self.anchor not in existing:
            self.anchor = None
        return len(stale)

    def get_selected(self, all_notes: Iterable[Note]) -> list[Note]:
        """Selected notes, in collection order."""
        return [n for n in all_notes if n.id in self._selected]

    def summary(self, all_notes: Sequence[Note]) -> SelectionSummary:
        """Count of selected notes against the collection, after pruning."""
        self.prune(n.id for n in all_notes)
        return SelectionSummary(count=len(self._selected), total=len(all_notes))
