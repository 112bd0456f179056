"""
Terminal rendering for Jotboard.

Formats the list view, the board and search results as colored text.
"""

import os
from typing import Sequence

from jotboard.models import Column, Note
from jotboard.selection import SelectionSummary


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    WHITE = "\033[37m"

    BRIGHT_BLACK = "\033[90m"  # Gray
    BRIGHT_RED = "\033[91m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_CYAN = "\033[96m"

    @classmethod
    def enabled(cls) -> bool:
        """Check if colors should be enabled."""
        if os.environ.get("NO_COLOR"):
            return False
        return True


def c(text: str, *codes: str) -> str:
    """Apply color codes to text if colors are enabled."""
    if not Colors.enabled():
        return text
    return "".join(codes) + text + Colors.RESET


PRIORITY_MARKS = {
    0: ("", ""),
    1: ("!", Colors.BRIGHT_CYAN),
    2: ("!!", Colors.BRIGHT_YELLOW),
    3: ("!!!", Colors.BRIGHT_RED),
}


def hex_to_ansi(color: str) -> str:
    """Truecolor foreground escape for a #rrggbb string, or '' if unparseable."""
    value = color.lstrip("#")
    if len(value) != 6:
        return ""
    try:
        r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return ""
    return f"\033[38;2;{r};{g};{b}m"


def format_note_line(note: Note, selected: bool = False) -> str:
    mark, color = PRIORITY_MARKS.get(note.priority, ("", ""))
    check = c("[x]", Colors.GREEN) if note.done else "[ ]"
    pointer = c("*", Colors.BOLD, Colors.YELLOW) if selected else " "
    title = note.title[:48]
    if note.done:
        title = c(title, Colors.DIM)

    extra = ""
    if mark:
        extra += " " + c(mark, color)
    if note.labels:
        extra += " " + c(" ".join(f"#{label}" for label in note.labels), Colors.BRIGHT_BLACK)
    if note.deadline:
        extra += " " + c(f"[due:{note.deadline.date().isoformat()}]", Colors.YELLOW)

    return f"{pointer}{c(f'{note.id:>4}', Colors.BOLD, Colors.WHITE)}  {check} {title}{extra}"


def format_list(
    notes: Sequence[Note],
    header: str = "NOTES",
    selected_ids: frozenset[int] = frozenset(),
) -> str:
    """The list view, one note per line."""
    if not notes:
        return c("No notes found.", Colors.DIM)

    lines = [c(f"━━━ {header} ━━━", Colors.BOLD, Colors.BLUE), ""]
    lines.append(c(f" {'ID':>4}  {'':3} TITLE", Colors.DIM))
    lines.append(c("─" * 70, Colors.DIM))
    for note in notes:
        lines.append(format_note_line(note, note.id in selected_ids))
    return "\n".join(lines)


def format_board(
    columns: Sequence[Column],
    notes_by_column: dict[int, list[Note]],
    unassigned: Sequence[Note] = (),
    orphaned: Sequence[Note] = (),
) -> str:
    """The board, one block per column in position order."""
    lines = [c("━━━ BOARD ━━━", Colors.BOLD, Colors.BLUE)]

    for column in columns:
        notes = notes_by_column.get(column.id, [])
        lines.append("")
        heading = f"{column.position}. {column.name} ({len(notes)})"
        lines.append(c(heading, Colors.BOLD, hex_to_ansi(column.color)))
        if not notes:
            lines.append(c("       (empty)", Colors.DIM))
        for note in notes:
            lines.append(format_note_line(note))

    if unassigned:
        lines.append("")
        lines.append(c(f"No column ({len(unassigned)})", Colors.BOLD, Colors.BRIGHT_BLACK))
        for note in unassigned:
            lines.append(format_note_line(note))

    if orphaned:
        lines.append("")
        lines.append(c(f"Orphaned: {len(orphaned)} notes point at a missing column", Colors.RED))

    return "\n".join(lines)


def format_columns(columns: Sequence[Column]) -> str:
    if not columns:
        return c("No columns.", Colors.DIM)
    lines = [c("━━━ COLUMNS ━━━", Colors.BOLD, Colors.BLUE), ""]
    for column in columns:
        swatch = c("■", hex_to_ansi(column.color))
        lines.append(f"{column.position:>3}  {swatch} {column.name}  {c(f'(id {column.id})', Colors.DIM)}")
    return "\n".join(lines)


def format_selection(summary: SelectionSummary) -> str:
    if summary.count == 0:
        return ""
    return c(f"{summary.count} of {summary.total} selected", Colors.DIM)


def format_error_banner(message: str) -> str:
    return c(f"! {message}", Colors.BOLD, Colors.RED)
