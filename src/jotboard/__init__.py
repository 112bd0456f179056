"""
Jotboard: personal notes as a list or a kanban board.

A note manager that provides:
- A shared collection of notes and workflow columns
- Manual ordering that survives filtered and sorted views
- Optimistic reordering with resync on failure
"""

__version__ = "0.1.0"
