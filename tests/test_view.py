"""
Tests for visible list filtering and sorting.
"""
from conftest import make_note

from jotboard.view import SortMode, SortOrder, ViewSpec, available_labels, visible_notes


NOTES = [
    make_note(1, 2, title="banana", priority=1, labels=["food"]),
    make_note(2, 0, title="apple", priority=3, labels=["food", "red"]),
    make_note(3, 1, title="cherry", priority=2, done=True, labels=["red"]),
    make_note(4, 3, title="date", section="work"),
]


def ids(notes):
    return [n.id for n in notes]


def test_default_view_hides_done_in_custom_order():
    """Custom sort follows `order`, done notes are hidden"""
    assert ids(visible_notes(NOTES, ViewSpec())) == [2, 1, 4]


def test_show_done():
    """show_done includes done notes"""
    assert ids(visible_notes(NOTES, ViewSpec(show_done=True))) == [2, 3, 1, 4]


def test_label_filter_requires_all_labels():
    """Every selected label must be present"""
    view = ViewSpec(labels=("food", "red"), show_done=True)
    assert ids(visible_notes(NOTES, view)) == [2]
    assert view.is_filtered


def test_priority_and_section_filters():
    """Priority and section narrow the list"""
    assert ids(visible_notes(NOTES, ViewSpec(priority=1))) == [1]
    assert ids(visible_notes(NOTES, ViewSpec(section="work"))) == [4]


def test_sort_modes():
    """Each sort key in its natural and reversed direction"""
    view = ViewSpec(show_done=True)
    assert ids(visible_notes(NOTES, view.with_sort(SortMode.TITLE))) == [2, 1, 3, 4]
    assert ids(visible_notes(NOTES, view.with_sort(SortMode.PRIORITY))) == [2, 3, 1, 4]
    assert ids(visible_notes(NOTES, view.with_sort(SortMode.CREATED))) == [4, 3, 2, 1]
    asc = ViewSpec(show_done=True, sort_by=SortMode.CREATED, sort_order=SortOrder.ASC)
    assert ids(visible_notes(NOTES, asc)) == [1, 2, 3, 4]


def test_custom_sort_ignores_direction():
    """Custom order is ascending whatever the sort order says"""
    view = ViewSpec(sort_order=SortOrder.ASC)
    assert ids(visible_notes(NOTES, view)) == ids(visible_notes(NOTES, ViewSpec()))


def test_from_config_and_parsing():
    """View settings load from config, unknown values fall back"""
    view = ViewSpec.from_config({"view": {"sort_by": "priority", "sort_order": "asc", "show_done": True}})
    assert view.sort_by == SortMode.PRIORITY
    assert view.sort_order == SortOrder.ASC
    assert view.show_done
    assert SortMode.from_str("bogus") == SortMode.CUSTOM
    assert SortOrder.from_str("UP") == SortOrder.DESC


def test_cleared_keeps_sort():
    """Clearing filters keeps the sort mode"""
    view = ViewSpec(labels=("x",), priority=2, sort_by=SortMode.TITLE).cleared()
    assert not view.is_filtered
    assert view.sort_by == SortMode.TITLE


def test_available_labels():
    """Labels in use, sorted and unique"""
    assert available_labels(NOTES) == ["food", "red"]
