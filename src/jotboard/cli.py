"""
CLI for Jotboard.

Minimal CLI using stdlib argument handling for fast startup.
Subcommands are imported lazily to avoid startup overhead.

Usage:
    jotboard list                   # List notes
    jotboard board                  # Show the kanban board
    jotboard --help                 # Show help
"""

import sys


def print_help() -> None:
    """Print help message."""
    print("""jotboard - notes in a list and on a board

Usage:
    jotboard <command> [options]

Commands:
    jotboard list [filters]           List notes (--label, --priority, --section,
                                      --sort, --asc, --desc, --all)
    jotboard board [--all]            Show notes by column
    jotboard add <title> [options]    Add a note (--column, --priority, --label,
                                      --section, --content, --due YYYY-MM-DD)
    jotboard find <query>             Full-text search
    jotboard done <id>                Mark a note as done
    jotboard rm <id> [id ...]         Delete notes
    jotboard bulk <action> <id> ...   Apply done, undone, priority <0-3> or
                                      move <column|none> to several notes
    jotboard move <id> <column|none>  Move a note to a column (--before <id>)
    jotboard reorder <id> <index>     Move a note to an index of the list view
                                      (takes the same filters as list)
    jotboard columns                  List columns
    jotboard column-add <name>        Add a column (--color, --position)
    jotboard column-move <id> <pos>   Move a column to a position
    jotboard column-rm <id>           Delete a column (its notes become unassigned)
    jotboard stats                    Show database statistics
    jotboard health                   Check store and ordering health

Options:
    jotboard --help, -h               Show this help
    jotboard --version, -v            Show version

Examples:
    jotboard add "Email Sarah" --column 1 --priority 2 --label work
    jotboard list --label work --sort priority
    jotboard reorder 12 0
    jotboard bulk priority 3 4 7 9
    jotboard column-move 3 0""")


def print_version() -> None:
    """Print version."""
    from jotboard import __version__
    print(f"jotboard {__version__}")


def _setup():
    """Load config and configure logging once per invocation."""
    from jotboard.config import load_config, setup_logging

    config = load_config()
    setup_logging(config)
    return config


def _parse_int(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{what} must be a number, got '{value}'")


def _parse_view(args: list[str], config: dict):
    """Parse list filters into a ViewSpec. Returns (view, remaining args)."""
    from dataclasses import replace

    from jotboard.view import SortMode, SortOrder, ViewSpec

    view = ViewSpec.from_config(config)
    labels: list[str] = []
    rest: list[str] = []

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("--label", "-l") and i + 1 < len(args):
            labels.append(args[i + 1])
            i += 2
        elif arg in ("--priority", "-p") and i + 1 < len(args):
            view = replace(view, priority=_parse_int(args[i + 1], "Priority"))
            i += 2
        elif arg in ("--section", "-s") and i + 1 < len(args):
            view = replace(view, section=args[i + 1])
            i += 2
        elif arg == "--sort" and i + 1 < len(args):
            view = replace(view, sort_by=SortMode.from_str(args[i + 1]))
            i += 2
        elif arg == "--asc":
            view = replace(view, sort_order=SortOrder.ASC)
            i += 1
        elif arg == "--desc":
            view = replace(view, sort_order=SortOrder.DESC)
            i += 1
        elif arg in ("--all", "-a"):
            view = replace(view, show_done=True)
            i += 1
        else:
            rest.append(arg)
            i += 1

    if labels:
        view = replace(view, labels=tuple(labels))
    return view, rest


async def _open_board(config: dict, view=None):
    """Build a controller over the configured store, loaded and ready."""
    from jotboard.board import BoardController, BoardState
    from jotboard.client import open_store

    client = open_store(config)
    controller = BoardController(BoardState(view=view), client)
    try:
        await controller.refresh()
    except Exception:
        await client.aclose()
        raise
    return controller


def _report(controller) -> int:
    """Print the board's last error, if any. Returns the exit code."""
    from jotboard.display import format_error_banner

    if controller.last_error:
        print(format_error_banner(controller.last_error), file=sys.stderr)
        return 1
    return 0


def cmd_list(args: list[str]) -> int:
    """List notes with optional filters."""
    import asyncio

    from jotboard.display import format_list

    async def run(view) -> str:
        controller = await _open_board(config, view)
        try:
            header = "NOTES" if not view.labels else " ".join(f"#{l}" for l in view.labels).upper()
            return format_list(controller.visible_list, header=header)
        finally:
            await controller.client.aclose()

    try:
        config = _setup()
        view, _ = _parse_view(args, config)
        print(asyncio.run(run(view)))
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_board(args: list[str]) -> int:
    """Show the board."""
    import asyncio

    from jotboard.display import format_board

    async def run(view) -> str:
        controller = await _open_board(config, view)
        try:
            return format_board(
                controller.columns,
                controller.notes_by_column(),
                controller.unassigned_notes(),
                controller.orphaned_notes(),
            )
        finally:
            await controller.client.aclose()

    try:
        config = _setup()
        view, _ = _parse_view(args, config)
        print(asyncio.run(run(view)))
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_add(args: list[str]) -> int:
    """Add a note."""
    import asyncio
    from datetime import datetime

    from jotboard.client import open_store
    from jotboard.models import NoteCreate

    fields: dict = {"labels": []}
    words: list[str] = []

    try:
        i = 0
        while i < len(args):
            arg = args[i]
            if arg in ("--column", "-c") and i + 1 < len(args):
                fields["state_id"] = _parse_int(args[i + 1], "Column")
                i += 2
            elif arg in ("--priority", "-p") and i + 1 < len(args):
                fields["priority"] = _parse_int(args[i + 1], "Priority")
                i += 2
            elif arg in ("--label", "-l") and i + 1 < len(args):
                fields["labels"].append(args[i + 1])
                i += 2
            elif arg in ("--section", "-s") and i + 1 < len(args):
                fields["section"] = args[i + 1]
                i += 2
            elif arg == "--content" and i + 1 < len(args):
                fields["content"] = args[i + 1]
                i += 2
            elif arg == "--due" and i + 1 < len(args):
                fields["deadline"] = datetime.fromisoformat(args[i + 1])
                i += 2
            else:
                words.append(arg)
                i += 1

        title = " ".join(words).strip()
        if not title:
            print("Usage: jotboard add <title> [options]", file=sys.stderr)
            return 1

        request = NoteCreate(title=title, **fields)

        async def run():
            client = open_store(config)
            try:
                return await client.create_note(request)
            finally:
                await client.aclose()

        config = _setup()
        note = asyncio.run(run())
        print(f"Added: {note.id} {note.title}")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_find(args: list[str]) -> int:
    """Full-text search notes."""
    import asyncio

    from jotboard.client import open_store
    from jotboard.display import format_list

    if not args:
        print("Usage: jotboard find <query>", file=sys.stderr)
        return 1

    query = " ".join(args)

    async def run():
        client = open_store(config)
        try:
            return await client.search_notes(query)
        finally:
            await client.aclose()

    try:
        config = _setup()
        notes = asyncio.run(run())
        print(format_list(notes, header=f"SEARCH: {query}"))
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_done(args: list[str]) -> int:
    """Mark a note as done."""
    import asyncio

    from jotboard.client import open_store
    from jotboard.errors import NotFoundError

    if not args:
        print("Usage: jotboard done <id>", file=sys.stderr)
        return 1

    async def run(note_id: int):
        client = open_store(config)
        try:
            return await client.set_done(note_id)
        finally:
            await client.aclose()

    try:
        config = _setup()
        note = asyncio.run(run(_parse_int(args[0], "Note id")))
        print(f"Completed: {note.id} {note.title}")
        return 0
    except NotFoundError as e:
        print(f"Not found: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_rm(args: list[str]) -> int:
    """Delete one or more notes."""
    import asyncio

    if not args:
        print("Usage: jotboard rm <id> [id ...]", file=sys.stderr)
        return 1

    async def run(note_ids: list[int]) -> int:
        controller = await _open_board(config)
        try:
            known = {n.id for n in controller.notes}
            missing = [i for i in note_ids if i not in known]
            if missing:
                print(f"Not found: {', '.join(map(str, missing))}", file=sys.stderr)
            if len(note_ids) == 1:
                await controller.on_delete_note(note_ids[0])
            else:
                controller.state.selection.select_all(note_ids)
                await controller.on_delete_selected()
            deleted = [i for i in note_ids if i in known and i not in {n.id for n in controller.notes}]
            if deleted:
                print(f"Deleted: {', '.join(map(str, deleted))}")
            return 1 if missing else _report(controller)
        finally:
            await controller.client.aclose()

    try:
        config = _setup()
        return asyncio.run(run([_parse_int(a, "Note id") for a in args]))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_bulk(args: list[str]) -> int:
    """Apply one action to several notes at once."""
    import asyncio

    usage = "Usage: jotboard bulk <done|undone|priority <0-3>|move <column|none>> <id> [id ...]"
    if not args:
        print(usage, file=sys.stderr)
        return 1

    action, rest = args[0], args[1:]
    if action in ("priority", "move"):
        if not rest:
            print(usage, file=sys.stderr)
            return 1
        value, rest = rest[0], rest[1:]
    elif action not in ("done", "undone"):
        print(f"Unknown bulk action: {action}", file=sys.stderr)
        return 1
    if not rest:
        print(usage, file=sys.stderr)
        return 1

    async def run(note_ids: list[int]) -> int:
        controller = await _open_board(config)
        try:
            known = {n.id for n in controller.notes}
            missing = [i for i in note_ids if i not in known]
            if missing:
                print(f"Not found: {', '.join(map(str, missing))}", file=sys.stderr)
                return 1
            controller.state.selection.select_all(note_ids)

            if action == "done":
                status = await controller.on_set_selected_done(True)
            elif action == "undone":
                status = await controller.on_set_selected_done(False)
            elif action == "priority":
                status = await controller.on_set_selected_priority(_parse_int(value, "Priority"))
            else:
                state_id = None if value.lower() in ("none", "-") else _parse_int(value, "Column")
                if state_id is not None and state_id not in {col.id for col in controller.columns}:
                    print(f"Not found: column {state_id}", file=sys.stderr)
                    return 1
                status = await controller.on_move_selected(state_id)

            if status is None:
                print("Nothing to change.")
                return 0
            code = _report(controller)
            if code == 0:
                print(f"Updated: {', '.join(map(str, note_ids))}")
            return code
        finally:
            await controller.client.aclose()

    try:
        config = _setup()
        return asyncio.run(run([_parse_int(a, "Note id") for a in rest]))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_move(args: list[str]) -> int:
    """Move a note to a column, optionally before another note."""
    import asyncio

    before_id = None
    positional: list[str] = []
    i = 0
    while i < len(args):
        if args[i] == "--before" and i + 1 < len(args):
            before_id = args[i + 1]
            i += 2
        else:
            positional.append(args[i])
            i += 1

    if len(positional) != 2:
        print("Usage: jotboard move <id> <column|none> [--before <id>]", file=sys.stderr)
        return 1

    async def run(note_id: int, state_id, before) -> int:
        controller = await _open_board(config)
        try:
            if state_id is not None and state_id not in {col.id for col in controller.columns}:
                print(f"Not found: column {state_id}", file=sys.stderr)
                return 1
            status = await controller.on_move_note(note_id, state_id, before)
            if status is None:
                print("Nothing to move.")
                return 0
            code = _report(controller)
            if code == 0:
                print(f"Moved: {note_id}")
            return code
        finally:
            await controller.client.aclose()

    try:
        config = _setup()
        note_id = _parse_int(positional[0], "Note id")
        target = positional[1]
        state_id = None if target.lower() in ("none", "-") else _parse_int(target, "Column")
        before = _parse_int(before_id, "Before id") if before_id is not None else None
        return asyncio.run(run(note_id, state_id, before))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_reorder(args: list[str]) -> int:
    """Drag a note to an index of the (filtered, sorted) list view."""
    import asyncio

    from jotboard.display import format_list

    async def run(view, note_id: int, to_index: int) -> int:
        controller = await _open_board(config, view)
        try:
            visible_ids = [n.id for n in controller.visible_list]
            if note_id not in visible_ids:
                print(f"Not in the list view: {note_id}", file=sys.stderr)
                return 1
            to_index = max(0, min(to_index, len(visible_ids) - 1))
            await controller.on_reorder(visible_ids.index(note_id), to_index)
            code = _report(controller)
            print(format_list(controller.visible_list))
            return code
        finally:
            await controller.client.aclose()

    try:
        config = _setup()
        view, positional = _parse_view(args, config)
        if len(positional) != 2:
            print("Usage: jotboard reorder <id> <index> [filters]", file=sys.stderr)
            return 1
        note_id = _parse_int(positional[0], "Note id")
        to_index = _parse_int(positional[1], "Index")
        return asyncio.run(run(view, note_id, to_index))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_columns() -> int:
    """List columns."""
    import asyncio

    from jotboard.client import open_store
    from jotboard.display import format_columns

    async def run():
        client = open_store(config)
        try:
            return await client.list_columns()
        finally:
            await client.aclose()

    try:
        config = _setup()
        columns = sorted(asyncio.run(run()), key=lambda col: col.position)
        print(format_columns(columns))
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_column_add(args: list[str]) -> int:
    """Add a column."""
    import asyncio

    from jotboard.client import open_store
    from jotboard.models import ColumnCreate

    fields: dict = {}
    words: list[str] = []

    try:
        i = 0
        while i < len(args):
            arg = args[i]
            if arg == "--color" and i + 1 < len(args):
                fields["color"] = args[i + 1]
                i += 2
            elif arg == "--position" and i + 1 < len(args):
                fields["position"] = _parse_int(args[i + 1], "Position")
                i += 2
            else:
                words.append(arg)
                i += 1

        name = " ".join(words).strip()
        if not name:
            print("Usage: jotboard column-add <name> [--color #rrggbb] [--position N]", file=sys.stderr)
            return 1

        request = ColumnCreate(name=name, **fields)

        async def run():
            client = open_store(config)
            try:
                return await client.create_column(request)
            finally:
                await client.aclose()

        config = _setup()
        column = asyncio.run(run())
        print(f"Added column: {column.id} {column.name} at {column.position}")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_column_move(args: list[str]) -> int:
    """Move a column to a new position."""
    import asyncio

    from jotboard.display import format_columns

    if len(args) != 2:
        print("Usage: jotboard column-move <id> <position>", file=sys.stderr)
        return 1

    async def run(column_id: int, position: int) -> int:
        controller = await _open_board(config)
        try:
            if column_id not in {col.id for col in controller.columns}:
                print(f"Not found: column {column_id}", file=sys.stderr)
                return 1
            await controller.on_column_reorder(column_id, position)
            code = _report(controller)
            print(format_columns(controller.columns))
            return code
        finally:
            await controller.client.aclose()

    try:
        config = _setup()
        return asyncio.run(run(_parse_int(args[0], "Column id"), _parse_int(args[1], "Position")))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_column_rm(args: list[str]) -> int:
    """Delete a column."""
    import asyncio

    if not args:
        print("Usage: jotboard column-rm <id>", file=sys.stderr)
        return 1

    async def run(column_id: int) -> int:
        controller = await _open_board(config)
        try:
            if column_id not in {col.id for col in controller.columns}:
                print(f"Not found: column {column_id}", file=sys.stderr)
                return 1
            await controller.on_delete_column(column_id)
            code = _report(controller)
            if code == 0:
                print(f"Deleted column: {column_id}")
            return code
        finally:
            await controller.client.aclose()

    try:
        config = _setup()
        return asyncio.run(run(_parse_int(args[0], "Column id")))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_stats() -> int:
    """Show database statistics."""
    from jotboard.db import Database

    try:
        _setup()
        db = Database()
        stats = db.get_stats()

        print("Jotboard Statistics")
        print("-" * 30)
        print(f"Total notes: {stats['total_notes']}")
        print(f"Done: {stats['done']}")
        print(f"Unassigned: {stats['unassigned']}")
        print("\nBy column:")
        for name, count in stats.get("by_column", {}).items():
            print(f"  {name}: {count}")
        print("\nBy section:")
        for section, count in stats.get("by_section", {}).items():
            print(f"  {section}: {count}")

        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_health() -> int:
    """Run health checks."""
    from jotboard.health import format_health_report, run_health_check

    try:
        config = _setup()
        checks = run_health_check(config)
        print(format_health_report(checks))
        return 1 if any(status == "✗" for status, _ in checks.values()) else 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main() -> int:
    """Main entry point."""
    args = sys.argv[1:]

    if not args:
        print_help()
        return 0

    first_arg = args[0]

    if first_arg in ("--help", "-h", "help"):
        print_help()
        return 0

    if first_arg in ("--version", "-v", "version"):
        print_version()
        return 0

    # Subcommands (lazy import to keep startup fast)
    if first_arg == "list":
        return cmd_list(args[1:])

    if first_arg == "board":
        return cmd_board(args[1:])

    if first_arg == "add":
        return cmd_add(args[1:])

    if first_arg == "find":
        return cmd_find(args[1:])

    if first_arg == "done":
        return cmd_done(args[1:])

    if first_arg == "rm":
        return cmd_rm(args[1:])

    if first_arg == "bulk":
        return cmd_bulk(args[1:])

    if first_arg == "move":
        return cmd_move(args[1:])

    if first_arg == "reorder":
        return cmd_reorder(args[1:])

    if first_arg == "columns":
        return cmd_columns()

    if first_arg == "column-add":
        return cmd_column_add(args[1:])

    if first_arg == "column-move":
        return cmd_column_move(args[1:])

    if first_arg == "column-rm":
        return cmd_column_rm(args[1:])

    if first_arg == "stats":
        return cmd_stats()

    if first_arg == "health":
        return cmd_health()

    print(f"Unknown command: {first_arg}", file=sys.stderr)
    print("Run 'jotboard --help' for usage.", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
