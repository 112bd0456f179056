"""
Board state and command dispatch.

BoardState is the one explicitly owned object holding notes, columns,
the view and the selection. BoardController is the only thing the
presentation layer talks to: it turns commands into optimistic
mutations and reports the outcome through `last_error`.
"""

import logging
from typing import Optional

from jotboard.client import StoreClient
from jotboard.commands import (
    ClearSelection,
    Command,
    DeleteColumn,
    DeleteNote,
    DeleteSelected,
    MoveNote,
    MoveSelected,
    ReorderColumn,
    ReorderNote,
    SelectAll,
    SelectItem,
    SetSelectedDone,
    SetSelectedPriority,
)
from jotboard.models import Column, Note, OrderUpdate
from jotboard.optimistic import (
    MutationStatus,
    OptimisticCoordinator,
    PendingMutation,
    StateCell,
)
from jotboard.ordering import move_many_to_column, move_to_column, plan_reorder
from jotboard.positions import densify, reorder_columns
from jotboard.selection import Modifiers, SelectionManager, SelectionSummary
from jotboard.view import SortMode, ViewSpec, matches, sort_notes, visible_notes

logger = logging.getLogger(__name__)


class BoardState:
    """Everything the board renders from."""

    def __init__(
        self,
        notes: Optional[list[Note]] = None,
        columns: Optional[list[Column]] = None,
        view: Optional[ViewSpec] = None,
    ):
        self.notes: StateCell[list[Note]] = StateCell(list(notes or []))
        self.columns: StateCell[list[Column]] = StateCell(list(columns or []))
        self.view = view or ViewSpec()
        self.selection = SelectionManager()
        self.last_error: Optional[str] = None


class BoardController:
    """Single entry point for every gesture on the list and board views."""

    def __init__(
        self,
        state: BoardState,
        client: StoreClient,
        coordinator: Optional[OptimisticCoordinator] = None,
    ):
        self.state = state
        self.client = client
        self.coordinator = coordinator or OptimisticCoordinator()

    # ━━━ Reads ━━━

    @property
    def notes(self) -> list[Note]:
        return self.state.notes.value

    @property
    def columns(self) -> list[Column]:
        return sorted(self.state.columns.value, key=lambda c: c.position)

    @property
    def view(self) -> ViewSpec:
        return self.state.view

    @property
    def last_error(self) -> Optional[str]:
        return self.state.last_error

    @property
    def visible_list(self) -> list[Note]:
        return visible_notes(self.notes, self.state.view)

    @property
    def selection_summary(self) -> SelectionSummary:
        return self.state.selection.summary(self.notes)

    def set_view(self, view: ViewSpec) -> None:
        self.state.view = view

    def notes_by_column(self) -> dict[int, list[Note]]:
        """Column id -> notes in custom order, for every column, filters applied."""
        grouped: dict[int, list[Note]] = {c.id: [] for c in self.columns}
        for note in self.notes:
            if note.state_id in grouped and matches(note, self.state.view):
                grouped[note.state_id].append(note)
        return {cid: sort_notes(notes, SortMode.CUSTOM) for cid, notes in grouped.items()}

    def unassigned_notes(self) -> list[Note]:
        return sort_notes(
            (n for n in self.notes if n.state_id is None and matches(n, self.state.view)),
            SortMode.CUSTOM,
        )

    def orphaned_notes(self) -> list[Note]:
        """Notes pointing at a column that no longer exists."""
        column_ids = {c.id for c in self.state.columns.value}
        return [n for n in self.notes if n.state_id is not None and n.state_id not in column_ids]

    # ━━━ Loading ━━━

    async def _load_notes(self) -> list[Note]:
        return await self.client.list_notes()

    async def _load_columns(self) -> list[Column]:
        return await self.client.list_columns()

    async def refresh(self) -> None:
        """Replace notes and columns with the store's current contents."""
        self.state.columns.set(await self._load_columns())
        self.state.notes.set(await self._load_notes())
        self.state.selection.prune(n.id for n in self.notes)

    # ━━━ Dispatch ━━━

    def dispatch(self, command: Command) -> Optional[PendingMutation]:
        """
        Apply a command's local effect now.

        Returns the pending mutation to settle, or None when the command
        has nothing to persist (selection changes, no-op drags).
        """
        if isinstance(command, ReorderNote):
            return self._reorder(command)
        if isinstance(command, MoveNote):
            return self._move_note(command)
        if isinstance(command, ReorderColumn):
            return self._reorder_column(command)
        if isinstance(command, SelectItem):
            order = [n.id for n in self.visible_list]
            self.state.selection.handle_click(command.note_id, command.modifiers, order)
            return None
        if isinstance(command, SelectAll):
            self.state.selection.select_all(n.id for n in self.visible_list)
            return None
        if isinstance(command, ClearSelection):
            self.state.selection.clear_all()
            return None
        if isinstance(command, DeleteNote):
            return self._delete_notes([command.note_id])
        if isinstance(command, DeleteSelected):
            return self._delete_notes(sorted(self.state.selection.selected_ids))
        if isinstance(command, SetSelectedDone):
            return self._set_selected("done", command.done)
        if isinstance(command, SetSelectedPriority):
            return self._set_selected("priority", command.priority)
        if isinstance(command, MoveSelected):
            return self._move_selected(command)
        if isinstance(command, DeleteColumn):
            return self._delete_column(command)
        raise TypeError(f"Unknown command: {command!r}")

    async def settle(self, mutation: Optional[PendingMutation]) -> Optional[MutationStatus]:
        """Await a mutation and record a failure as the board's last error."""
        if mutation is None:
            return None
        status = await mutation.settle()
        if status in (MutationStatus.ROLLED_BACK, MutationStatus.FAILED):
            self.state.last_error = f"{mutation.label} failed: {mutation.error}"
            self.state.selection.prune(n.id for n in self.notes)
        return status

    async def run(self, command: Command) -> Optional[MutationStatus]:
        return await self.settle(self.dispatch(command))

    def clear_error(self) -> None:
        self.state.last_error = None

    # ━━━ Gestures ━━━

    async def on_reorder(self, from_index: int, to_index: int) -> Optional[MutationStatus]:
        return await self.run(ReorderNote(from_index, to_index))

    async def on_move_note(
        self, note_id: int, state_id: Optional[int], before_id: Optional[int] = None
    ) -> Optional[MutationStatus]:
        return await self.run(MoveNote(note_id, state_id, before_id))

    async def on_column_reorder(self, column_id: int, new_position: int) -> Optional[MutationStatus]:
        return await self.run(ReorderColumn(column_id, new_position))

    def on_select_item(self, note_id: int, modifiers: Optional[Modifiers] = None) -> None:
        self.dispatch(SelectItem(note_id, modifiers or Modifiers()))

    def on_select_all(self) -> None:
        self.dispatch(SelectAll())

    def on_clear_selection(self) -> None:
        self.dispatch(ClearSelection())

    async def on_delete_note(self, note_id: int) -> Optional[MutationStatus]:
        return await self.run(DeleteNote(note_id))

    async def on_delete_selected(self) -> Optional[MutationStatus]:
        return await self.run(DeleteSelected())

    async def on_set_selected_done(self, done: bool = True) -> Optional[MutationStatus]:
        return await self.run(SetSelectedDone(done))

    async def on_set_selected_priority(self, priority: int) -> Optional[MutationStatus]:
        return await self.run(SetSelectedPriority(priority))

    async def on_move_selected(self, state_id: Optional[int]) -> Optional[MutationStatus]:
        return await self.run(MoveSelected(state_id))

    async def on_delete_column(self, column_id: int) -> Optional[MutationStatus]:
        return await self.run(DeleteColumn(column_id))

    # ━━━ Mutations ━━━

    def _reorder(self, command: ReorderNote) -> Optional[PendingMutation]:
        plan = plan_reorder(
            self.notes,
            self.visible_list,
            command.from_index,
            command.to_index,
            self.state.view.sort_by,
        )
        if plan is None:
            return None

        if plan.switch_to_custom:
            logger.info(f"Switching sort from {self.state.view.sort_by.value} to custom")
            self.state.view = self.state.view.with_sort(SortMode.CUSTOM)

        changes = plan.changes

        async def persist() -> None:
            if changes:
                await self.client.bulk_update_note_order(changes)

        return self.coordinator.apply(
            self.state.notes, plan.notes, persist, self._load_notes,
            label=f"Reorder of note {plan.moved_id}",
        )

    def _move_note(self, command: MoveNote) -> Optional[PendingMutation]:
        if command.state_id is not None and command.state_id not in {c.id for c in self.columns}:
            logger.debug(f"Ignoring move to unknown column {command.state_id}")
            return None

        plan = move_to_column(self.notes, command.note_id, command.state_id, command.before_id)
        if plan is None:
            return None

        moved = plan.moved
        changes: list[OrderUpdate] = plan.changes

        async def persist() -> None:
            await self.client.update_note(moved)
            if changes:
                await self.client.bulk_update_note_order(changes)

        return self.coordinator.apply(
            self.state.notes, plan.notes, persist, self._load_notes,
            label=f"Move of note {command.note_id}",
        )

    def _reorder_column(self, command: ReorderColumn) -> Optional[PendingMutation]:
        result = reorder_columns(
            self.state.columns.value, command.column_id, command.new_position, self.client
        )
        if result is None:
            return None
        return self.coordinator.apply(
            self.state.columns, result.optimistic_columns, result.persist, self._load_columns,
            label=f"Reorder of column {command.column_id}",
        )

    def _delete_notes(self, note_ids: list[int]) -> Optional[PendingMutation]:
        doomed = set(note_ids) & {n.id for n in self.notes}
        if not doomed:
            return None

        remaining = [n for n in self.notes if n.id not in doomed]
        ids = sorted(doomed)

        async def persist() -> None:
            if len(ids) == 1:
                await self.client.delete_note(ids[0])
            else:
                await self.client.bulk_delete_notes(ids)

        mutation = self.coordinator.apply(
            self.state.notes, remaining, persist, self._load_notes,
            label=f"Delete of {self._plural(len(ids))}",
        )
        self.state.selection.prune(n.id for n in remaining)
        return mutation

    def _plural(self, count: int) -> str:
        return f"{count} note{'s' if count != 1 else ''}"

    def _set_selected(self, field: str, value) -> Optional[PendingMutation]:
        if field == "priority" and not 0 <= value <= 3:
            raise ValueError(f"Priority must be 0-3, got {value}")

        ids = [
            n.id for n in self.state.selection.get_selected(self.notes)
            if getattr(n, field) != value
        ]
        if not ids:
            return None

        targets = set(ids)
        updated = [
            n.model_copy(update={field: value}) if n.id in targets else n
            for n in self.notes
        ]

        async def persist() -> None:
            if field == "done":
                await self.client.bulk_update_notes_done(ids, value)
            else:
                await self.client.bulk_update_notes_priority(ids, value)

        return self.coordinator.apply(
            self.state.notes, updated, persist, self._load_notes,
            label=f"Update of {self._plural(len(ids))}",
        )

    def _move_selected(self, command: MoveSelected) -> Optional[PendingMutation]:
        if command.state_id is not None and command.state_id not in {c.id for c in self.columns}:
            logger.debug(f"Ignoring move to unknown column {command.state_id}")
            return None

        selected = [n.id for n in self.state.selection.get_selected(self.notes)]
        plan = move_many_to_column(self.notes, selected, command.state_id)
        if plan is None:
            return None

        ids = plan.moved_ids
        changes = plan.changes

        async def persist() -> None:
            await self.client.bulk_update_notes_state(ids, command.state_id)
            if changes:
                await self.client.bulk_update_note_order(changes)

        return self.coordinator.apply(
            self.state.notes, plan.notes, persist, self._load_notes,
            label=f"Move of {self._plural(len(ids))}",
        )

    def _delete_column(self, command: DeleteColumn) -> Optional[PendingMutation]:
        column_id = command.column_id
        if column_id not in {c.id for c in self.state.columns.value}:
            logger.debug(f"Ignoring delete of unknown column {column_id}")
            return None

        remaining = densify(c for c in self.state.columns.value if c.id != column_id)
        # The store unassigns the column's notes, so do the same locally
        self.state.notes.set([
            n.model_copy(update={"state_id": None}) if n.state_id == column_id else n
            for n in self.notes
        ])

        async def persist() -> None:
            await self.client.delete_column(column_id)

        async def resync() -> list[Column]:
            self.state.notes.set(await self._load_notes())
            return await self._load_columns()

        return self.coordinator.apply(
            self.state.columns, remaining, persist, resync,
            label=f"Delete of column {column_id}",
        )
