"""
Optimistic mutation coordinator.

One primitive shared by note reordering and column reordering:

    PENDING(optimistic) -> COMMITTED
                        -> ROLLED_BACK(resynced)
                        -> FAILED(resync failed too)

apply() swaps the optimistic value in before returning. settle() runs
the persistence call; on failure the value is replaced wholesale by a
fresh read of the source of truth. Nothing is merged, and settle()
never raises: the outcome is the status and the error it records.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from jotboard.errors import ResyncError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Persist = Callable[[], Awaitable[None]]


class MutationStatus(Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"          # Persist failed and so did the resync


class StateCell(Generic[T]):
    """A value only the coordinator writes."""

    def __init__(self, value: T):
        self.value = value
        self.version = 0

    def set(self, value: T) -> None:
        self.value = value
        self.version += 1


class PendingMutation(Generic[T]):
    """One in-flight optimistic change."""

    def __init__(
        self,
        cell: StateCell[T],
        label: str,
        persist: Persist,
        resync: Callable[[], Awaitable[T]],
    ):
        self.cell = cell
        self.label = label
        self._persist = persist
        self._resync = resync
        self.status = MutationStatus.PENDING
        self.error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return self.status != MutationStatus.PENDING

    async def settle(self) -> MutationStatus:
        """Persist, and resync if persisting fails. Idempotent, never raises."""
        if self.done:
            return self.status

        try:
            await self._persist()
        except Exception as e:
            self.error = e
            logger.warning(f"{self.label} failed, resyncing: {e}")
            try:
                fresh = await self._resync()
            except Exception as resync_error:
                # The cell keeps the optimistic value until the next refresh
                self.error = ResyncError(f"{e}; resync failed: {resync_error}")
                self.status = MutationStatus.FAILED
                logger.error(f"{self.label} resync failed: {resync_error}")
                return self.status
            self.cell.set(fresh)
            self.status = MutationStatus.ROLLED_BACK
            return self.status

        self.status = MutationStatus.COMMITTED
        logger.debug(f"{self.label} committed")
        return self.status


class OptimisticCoordinator:
    """Applies optimistic values and tracks their outcome."""

    def __init__(self):
        self._mutations: list[PendingMutation] = []

    def apply(
        self,
        cell: StateCell[T],
        optimistic: T,
        persist: Persist,
        resync: Callable[[], Awaitable[T]],
        label: str = "mutation",
    ) -> PendingMutation[T]:
        """Swap in the optimistic value now; await .settle() to persist."""
        cell.set(optimistic)
        mutation = PendingMutation(cell, label, persist, resync)
        self._mutations = [m for m in self._mutations if not m.done]
        self._mutations.append(mutation)
        return mutation

    @property
    def pending(self) -> list[PendingMutation]:
        return [m for m in self._mutations if not m.done]
