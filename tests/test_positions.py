"""
Tests for dense column positions and column reorder persistence.
"""
import asyncio

import pytest
from conftest import FakeStore, make_column

from jotboard.errors import StoreError
from jotboard.positions import densify, is_dense, reorder_columns


def positions(columns):
    return {c.id: c.position for c in columns}


def test_densify_renumbers_in_position_order():
    """Gaps and offsets collapse to 0..N-1"""
    cols = [make_column(1, 7), make_column(2, 2), make_column(3, 40)]
    result = densify(cols)
    assert positions(result) == {2: 0, 1: 1, 3: 2}
    assert is_dense(result)
    assert not is_dense(cols)


def test_reorder_moves_and_densifies(columns):
    """Moving the first column to the end shifts the others left"""
    result = reorder_columns(columns, 10, 2)
    assert [c.id for c in result.optimistic_columns] == [11, 12, 10]
    assert positions(result.optimistic_columns) == {11: 0, 12: 1, 10: 2}
    assert {c.id for c in result.changed} == {10, 11, 12}


def test_reorder_only_changed_columns_persisted():
    """Swapping neighbours touches just those two"""
    cols = [make_column(i, i) for i in range(5)]
    result = reorder_columns(cols, 3, 2)
    assert {c.id: c.position for c in result.changed} == {3: 2, 2: 3}


def test_reorder_clamps_position(columns):
    """Positions past the end clamp to the last slot"""
    result = reorder_columns(columns, 10, 99)
    assert result.optimistic_columns[-1].id == 10
    result = reorder_columns(columns, 12, -5)
    assert result.optimistic_columns[0].id == 12


def test_reorder_noops(columns):
    """Unknown id or same position on a dense list returns None"""
    assert reorder_columns(columns, 999, 0) is None
    assert reorder_columns(columns, 11, 1) is None


def test_reorder_repairs_gaps():
    """A same-slot move on a sparse list still densifies"""
    cols = [make_column(1, 0), make_column(2, 5)]
    result = reorder_columns(cols, 2, 1)
    assert positions(result.optimistic_columns) == {1: 0, 2: 1}
    assert [c.id for c in result.changed] == [2]


def test_every_reorder_is_dense():
    """Any move of any column yields positions 0..N-1"""
    cols = [make_column(i, i) for i in range(4)]
    for moved in range(4):
        for target in range(4):
            result = reorder_columns(cols, moved, target)
            if result is not None:
                assert is_dense(result.optimistic_columns)


def test_persist_issues_one_update_per_changed_column(columns):
    """Persist writes positions for the changed columns only"""
    store = FakeStore(columns=columns)
    result = reorder_columns(columns, 12, 1, store)
    asyncio.run(result.persist())
    assert sorted(c[1] for c in store.calls_to("update_column")) == [11, 12]
    assert positions(store.columns.values()) == {10: 0, 12: 1, 11: 2}


def test_persist_raises_if_any_update_fails(columns):
    """One rejected column fails the whole persist"""
    store = FakeStore(columns=columns)
    store.fail_columns.add(11)
    result = reorder_columns(columns, 12, 1, store)
    with pytest.raises(StoreError):
        asyncio.run(result.persist())
    # The other call still went out
    assert len(store.calls_to("update_column")) == 2


def test_persist_without_client(columns):
    """No client to write through is an error"""
    result = reorder_columns(columns, 12, 0)
    with pytest.raises(StoreError):
        asyncio.run(result.persist())
