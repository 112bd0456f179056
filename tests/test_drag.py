"""
Tests for drag gesture translation.
"""
from conftest import make_column, make_note

from jotboard.commands import MoveNote, ReorderColumn, ReorderNote
from jotboard.drag import (
    DragKind,
    DragTracker,
    DropKind,
    DropTarget,
    DragStart,
    ViewMode,
    is_valid_drop,
)
from jotboard.selection import SelectionManager


NOTES = [make_note(1, 0, state_id=10), make_note(2, 1, state_id=10), make_note(3, 0, state_id=11)]
COLUMNS = [make_column(10, 0), make_column(11, 1), make_column(12, 2)]


def test_valid_drop_rules():
    """Columns only drop on other columns, notes on notes, columns or the container"""
    note = DragStart(DragKind.NOTE, 1)
    column = DragStart(DragKind.COLUMN, 10)
    assert is_valid_drop(note, DropTarget(DropKind.COLUMN, 11), ViewMode.BOARD)
    assert is_valid_drop(note, DropTarget(DropKind.CONTAINER), ViewMode.BOARD)
    assert not is_valid_drop(note, DropTarget(DropKind.COLUMN, 11), ViewMode.LIST)
    assert is_valid_drop(column, DropTarget(DropKind.COLUMN, 11), ViewMode.BOARD)
    assert not is_valid_drop(column, DropTarget(DropKind.COLUMN, 10), ViewMode.BOARD)
    assert not is_valid_drop(column, DropTarget(DropKind.NOTE, 1), ViewMode.BOARD)
    assert not is_valid_drop(note, None, ViewMode.BOARD)


def test_list_drag_becomes_reorder():
    """In the list view a note dropped on another note reorders by visible index"""
    tracker = DragTracker(ViewMode.LIST)
    tracker.start(DragKind.NOTE, 3)
    command = tracker.end(DropTarget(DropKind.NOTE, 1), visible=NOTES)
    assert command == ReorderNote(from_index=2, to_index=0)
    assert tracker.active is None


def test_board_drop_on_note_moves_before_it():
    """On the board, dropping on a note inserts before it in its column"""
    tracker = DragTracker(ViewMode.BOARD)
    tracker.start(DragKind.NOTE, 1)
    command = tracker.end(DropTarget(DropKind.NOTE, 3), notes=NOTES)
    assert command == MoveNote(note_id=1, state_id=11, before_id=3)


def test_board_drop_on_note_from_other_section_appends():
    """A card from another section gives its column, not a position"""
    notes = NOTES + [make_note(4, 0, state_id=11, section="work")]
    tracker = DragTracker(ViewMode.BOARD)
    tracker.start(DragKind.NOTE, 1)
    command = tracker.end(DropTarget(DropKind.NOTE, 4), notes=notes)
    assert command == MoveNote(note_id=1, state_id=11)


def test_board_drop_on_column_appends():
    """Dropping on a column body appends to that column"""
    tracker = DragTracker(ViewMode.BOARD)
    tracker.start(DragKind.NOTE, 1)
    assert tracker.end(DropTarget(DropKind.COLUMN, 12), notes=NOTES) == MoveNote(1, 12)


def test_board_drop_on_container_unassigns():
    """Dropping outside every column clears the note's column"""
    tracker = DragTracker(ViewMode.BOARD)
    tracker.start(DragKind.NOTE, 2)
    assert tracker.end(DropTarget(DropKind.CONTAINER), notes=NOTES) == MoveNote(2, None)


def test_column_drag_becomes_reorder():
    """A column dropped on another column takes its position"""
    tracker = DragTracker(ViewMode.BOARD)
    tracker.start(DragKind.COLUMN, 10)
    command = tracker.end(DropTarget(DropKind.COLUMN, 12), columns=COLUMNS)
    assert command == ReorderColumn(column_id=10, new_position=2)


def test_cancelled_drag_is_noop_and_keeps_anchor():
    """No drop target means no command, and selection is not touched"""
    selection = SelectionManager()
    selection.toggle(2)
    tracker = DragTracker(ViewMode.LIST)
    tracker.start(DragKind.NOTE, 1)
    assert tracker.end(None, visible=NOTES) is None
    assert selection.anchor == 2
    assert selection.selected_ids == {2}


def test_drop_on_self_or_unknown_is_noop():
    """Dropping a note on itself or on a stale id does nothing"""
    tracker = DragTracker(ViewMode.LIST)
    tracker.start(DragKind.NOTE, 1)
    assert tracker.end(DropTarget(DropKind.NOTE, 1), visible=NOTES) is None
    tracker.start(DragKind.NOTE, 1)
    assert tracker.end(DropTarget(DropKind.NOTE, 42), visible=NOTES) is None


def test_end_without_start():
    """An end with no drag in progress is ignored"""
    assert DragTracker().end(DropTarget(DropKind.NOTE, 1)) is None


def test_cancel_clears_active_drag():
    """cancel() forgets the drag"""
    tracker = DragTracker()
    tracker.start(DragKind.NOTE, 1)
    tracker.cancel()
    assert tracker.end(DropTarget(DropKind.NOTE, 2), visible=NOTES) is None
