"""
Exceptions raised by Jotboard.

Invalid drag indices are not errors; they are silent no-ops.
Everything the store rejects surfaces as a StoreError.
"""

from typing import Any


class JotboardError(Exception):
    """Base class for all Jotboard errors."""
    pass


class StoreError(JotboardError):
    """A persistence call failed (transport, backend, or rejected)."""
    pass


class NotFoundError(StoreError):
    """The note or column does not exist in the store."""
    pass


class BulkUpdateError(StoreError):
    """Some items of a bulk update failed. Treated like a full failure."""

    def __init__(self, message: str, result: Any = None):
        super().__init__(message)
        self.result = result


class ResyncError(JotboardError):
    """Re-fetching the source of truth after a failed persist also failed."""
    pass
