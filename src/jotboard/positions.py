"""
Column position management.

Column positions are always dense (0..N-1). A reorder moves one column,
renumbers every column to its new index, and persists only the columns
whose position changed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from jotboard.client import StoreClient
from jotboard.errors import StoreError
from jotboard.models import Column
from jotboard.ordering import move_item

logger = logging.getLogger(__name__)


def densify(columns: Sequence[Column]) -> list[Column]:
    """Renumber columns 0..N-1 in their current position order."""
    ordered = sorted(columns, key=lambda c: c.position)
    return [
        c if c.position == i else c.model_copy(update={"position": i})
        for i, c in enumerate(ordered)
    ]


def is_dense(columns: Sequence[Column]) -> bool:
    return sorted(c.position for c in columns) == list(range(len(columns)))


@dataclass
class ColumnReorder:
    """Optimistic column order plus the calls that make it durable."""

    optimistic_columns: list[Column]
    changed: list[Column] = field(default_factory=list)
    client: Optional[StoreClient] = None

    async def persist(self) -> None:
        """One position update per changed column. Raises on any failure."""
        if not self.changed:
            return
        if self.client is None:
            raise StoreError("No store client to persist column positions")

        results = await asyncio.gather(
            *(self.client.update_column_position(c.id, c.position) for c in self.changed),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            raise StoreError(
                f"{len(errors)} of {len(self.changed)} column position updates failed: {errors[0]}"
            ) from errors[0]


def reorder_columns(
    columns: Sequence[Column],
    moved_id: int,
    new_position: int,
    client: Optional[StoreClient] = None,
) -> Optional[ColumnReorder]:
    """
    Move a column to new_position and re-densify.

    new_position is clamped to the valid range. Returns None when the
    column is unknown or already there.
    """
    ordered = sorted(columns, key=lambda c: c.position)
    old_index = next((i for i, c in enumerate(ordered) if c.id == moved_id), None)
    if old_index is None:
        logger.debug(f"Ignoring reorder of unknown column {moved_id}")
        return None

    new_index = max(0, min(new_position, len(ordered) - 1))
    if new_index == old_index and is_dense(ordered):
        return None

    moved = move_item(ordered, old_index, new_index)
    previous = {c.id: c.position for c in columns}
    optimistic = [
        c if c.position == i else c.model_copy(update={"position": i})
        for i, c in enumerate(moved)
    ]
    changed = [c for c in optimistic if previous[c.id] != c.position]
    return ColumnReorder(optimistic_columns=optimistic, changed=changed, client=client)
