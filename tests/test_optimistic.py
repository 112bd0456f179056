"""
Tests for the optimistic mutation coordinator.
"""
import asyncio

from jotboard.errors import ResyncError, StoreError
from jotboard.optimistic import MutationStatus, OptimisticCoordinator, StateCell


async def ok():
    return None


async def boom():
    raise StoreError("write refused")


def resync_to(value):
    async def resync():
        return value
    return resync


def test_apply_sets_value_before_returning():
    """The optimistic value is visible before settle"""
    cell = StateCell([1, 2, 3])
    mutation = OptimisticCoordinator().apply(cell, [3, 2, 1], ok, resync_to([]))
    assert cell.value == [3, 2, 1]
    assert mutation.status == MutationStatus.PENDING
    assert cell.version == 1


def test_commit_keeps_optimistic_value():
    """A successful persist commits without re-fetching"""
    cell = StateCell("old")
    fetched = []

    async def resync():
        fetched.append(True)
        return "fresh"

    mutation = OptimisticCoordinator().apply(cell, "new", ok, resync)
    assert asyncio.run(mutation.settle()) == MutationStatus.COMMITTED
    assert cell.value == "new"
    assert fetched == []


def test_rollback_replaces_with_resync_result():
    """A failed persist replaces the value with exactly what resync returned"""
    cell = StateCell(["a", "b"])
    truth = ["b", "a", "c"]
    mutation = OptimisticCoordinator().apply(cell, ["x"], boom, resync_to(truth))

    assert asyncio.run(mutation.settle()) == MutationStatus.ROLLED_BACK
    assert cell.value is truth
    assert isinstance(mutation.error, StoreError)


def test_failed_resync_is_recorded_not_raised():
    """When resync fails too, the value stays optimistic and the error is kept"""
    cell = StateCell(0)

    async def broken_resync():
        raise StoreError("store down")

    mutation = OptimisticCoordinator().apply(cell, 1, boom, broken_resync)
    assert asyncio.run(mutation.settle()) == MutationStatus.FAILED
    assert mutation.done
    assert cell.value == 1
    assert isinstance(mutation.error, ResyncError)
    assert "write refused" in str(mutation.error)
    assert "store down" in str(mutation.error)


def test_settle_is_idempotent():
    """Settling twice runs persist once"""
    calls = []

    async def persist():
        calls.append(1)

    mutation = OptimisticCoordinator().apply(StateCell(0), 1, persist, resync_to(0))

    async def settle_twice():
        await mutation.settle()
        return await mutation.settle()

    assert asyncio.run(settle_twice()) == MutationStatus.COMMITTED
    assert calls == [1]


def test_last_apply_wins_locally():
    """Overlapping applies leave the latest optimistic value in place"""
    coordinator = OptimisticCoordinator()
    cell = StateCell("a")
    first = coordinator.apply(cell, "b", ok, resync_to("a"))
    second = coordinator.apply(cell, "c", ok, resync_to("a"))
    assert cell.value == "c"
    assert coordinator.pending == [first, second]

    async def settle_both():
        await first.settle()
        await second.settle()

    asyncio.run(settle_both())
    assert cell.value == "c"
    assert coordinator.pending == []
