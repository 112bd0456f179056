"""
Health check module for Jotboard.

Reports store reachability and whether the stored ordering is sane.
"""

import asyncio
from typing import Any

from jotboard.config import get_config_path, get_db_path, load_config


def check_config() -> tuple[str, str]:
    """Check the config file."""
    path = get_config_path()
    if not path.exists():
        return "-", "Using defaults"
    try:
        load_config()
        return "✓", f"OK ({path})"
    except Exception as e:
        return "✗", f"Error: {e}"


def check_database(config: dict[str, Any]) -> tuple[str, str]:
    """Check the local database, when it is the configured backend."""
    if config.get("store", {}).get("backend", "sqlite") != "sqlite":
        return "-", "Not in use"

    db_path = get_db_path()
    if not db_path.exists():
        return "!", "Not created yet"

    try:
        from jotboard.db import Database
        db = Database(db_path, seed_columns=False)
        stats = db.get_stats()
        return "✓", f"OK ({stats['total_notes']} notes)"
    except Exception as e:
        return "✗", f"Error: {e}"


async def _load(config: dict[str, Any]):
    from jotboard.client import open_store

    client = open_store(config)
    try:
        return await client.list_columns(), await client.list_notes()
    finally:
        await client.aclose()


def check_store(config: dict[str, Any]) -> tuple[str, str, Any]:
    """Load columns and notes through the configured client."""
    store = config.get("store", {})
    backend = store.get("backend", "sqlite")
    where = store.get("base_url") if backend == "http" else "local"
    try:
        columns, notes = asyncio.run(_load(config))
    except Exception as e:
        return "✗", f"{backend} ({where}) unreachable: {e}", None
    return "✓", f"OK ({backend}, {len(columns)} columns, {len(notes)} notes)", (columns, notes)


def check_column_positions(columns) -> tuple[str, str]:
    """Column positions should be exactly 0..N-1."""
    from jotboard.positions import is_dense

    if is_dense(columns):
        return "✓", f"Dense ({len(columns)} columns)"
    positions = sorted(col.position for col in columns)
    return "!", f"Not dense: {positions}"


def check_orphans(columns, notes) -> tuple[str, str]:
    """Notes pointing at a column that no longer exists."""
    column_ids = {col.id for col in columns}
    orphaned = [n.id for n in notes if n.state_id is not None and n.state_id not in column_ids]
    if not orphaned:
        return "✓", "None"
    return "!", f"{len(orphaned)} notes ({', '.join(map(str, orphaned[:5]))})"


def check_note_order(notes) -> tuple[str, str]:
    """Duplicate order values within one (section, column) scope."""
    seen: dict[tuple, set[int]] = {}
    duplicates = 0
    for note in notes:
        orders = seen.setdefault(note.scope, set())
        if note.order in orders:
            duplicates += 1
        orders.add(note.order)
    if duplicates == 0:
        return "✓", f"OK ({len(seen)} scopes)"
    return "!", f"{duplicates} duplicate order values"


def run_health_check(config: dict[str, Any] | None = None) -> dict[str, tuple[str, str]]:
    """Run all health checks."""
    config = config or load_config()
    status, message, loaded = check_store(config)
    checks = {
        "Config": check_config(),
        "Database": check_database(config),
        "Store": (status, message),
    }
    if loaded is None:
        return checks

    columns, notes = loaded
    checks["Column Positions"] = check_column_positions(columns)
    checks["Orphaned Notes"] = check_orphans(columns, notes)
    checks["Note Order"] = check_note_order(notes)
    return checks


def format_health_report(checks: dict[str, tuple[str, str]]) -> str:
    """Format health check results."""
    lines = ["Jotboard Health Check", "-" * 40]

    for name, (status, message) in checks.items():
        lines.append(f"{status} {name}: {message}")

    return "\n".join(lines)
