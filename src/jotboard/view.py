"""
Visible list derivation.

The visible list is the subsequence of notes that survives the active
filters, in the active sort order. It is never authoritative for `order`.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional

from jotboard.models import Note

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SortMode(Enum):
    """Sort keys for the list view."""
    CREATED = "created"
    UPDATED = "updated"
    PRIORITY = "priority"
    TITLE = "title"
    CUSTOM = "custom"      # Manual order set by dragging

    @classmethod
    def from_str(cls, value: str) -> "SortMode":
        try:
            return cls(value.lower())
        except ValueError:
            return cls.CUSTOM


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def from_str(cls, value: str) -> "SortOrder":
        try:
            return cls(value.lower())
        except ValueError:
            return cls.DESC


@dataclass(frozen=True)
class ViewSpec:
    """Active filters and sort for a list view."""

    labels: tuple[str, ...] = ()          # Note must carry every label
    priority: Optional[int] = None
    show_done: bool = False
    section: Optional[str] = None
    sort_by: SortMode = SortMode.CUSTOM
    sort_order: SortOrder = SortOrder.DESC

    @property
    def is_filtered(self) -> bool:
        return bool(self.labels) or self.priority is not None

    def with_sort(self, sort_by: SortMode) -> "ViewSpec":
        return replace(self, sort_by=sort_by)

    def cleared(self) -> "ViewSpec":
        """Same sort and section, no label or priority filters."""
        return replace(self, labels=(), priority=None)

    @classmethod
    def from_config(cls, config: dict) -> "ViewSpec":
        view = config.get("view", {})
        return cls(
            show_done=bool(view.get("show_done", False)),
            sort_by=SortMode.from_str(view.get("sort_by", "custom")),
            sort_order=SortOrder.from_str(view.get("sort_order", "desc")),
        )


def matches(note: Note, view: ViewSpec) -> bool:
    """Does a note survive the view's filters?"""
    if view.labels and not all(label in note.labels for label in view.labels):
        return False
    if view.priority is not None and note.priority != view.priority:
        return False
    if not view.show_done and note.done:
        return False
    if view.section is not None and note.section != view.section:
        return False
    return True


def sort_notes(notes: Iterable[Note], sort_by: SortMode, sort_order: SortOrder = SortOrder.DESC) -> list[Note]:
    """
    Sort notes by a key. Stable, so ties keep collection order.

    DESC is the natural direction of each key: newest first for dates,
    highest first for priority, A-Z for titles. ASC reverses it.
    Custom order is always ascending by `order`; reversing it would
    invert the ranks a drag just assigned.
    """
    notes = list(notes)
    if sort_by == SortMode.CUSTOM:
        return sorted(notes, key=lambda n: n.order)

    if sort_by == SortMode.CREATED:
        result = sorted(notes, key=lambda n: n.created_at or _EPOCH, reverse=True)
    elif sort_by == SortMode.UPDATED:
        result = sorted(notes, key=lambda n: n.updated_at or _EPOCH, reverse=True)
    elif sort_by == SortMode.PRIORITY:
        result = sorted(notes, key=lambda n: n.priority, reverse=True)
    else:
        result = sorted(notes, key=lambda n: (n.title or "").casefold())

    if sort_order == SortOrder.ASC:
        result.reverse()
    return result


def visible_notes(notes: Iterable[Note], view: ViewSpec) -> list[Note]:
    """The filtered, sorted subsequence the list view renders."""
    return sort_notes((n for n in notes if matches(n, view)), view.sort_by, view.sort_order)


def available_labels(notes: Iterable[Note]) -> list[str]:
    """Every label in use, sorted."""
    labels: set[str] = set()
    for note in notes:
        labels.update(note.labels)
    return sorted(labels)
