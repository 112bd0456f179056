"""
MCP Server for Jotboard.

Exposes notes and board columns as tools for MCP clients.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import BaseModel, Field

from jotboard.board import BoardController, BoardState
from jotboard.client import StoreClient, open_store
from jotboard.config import load_config, setup_logging
from jotboard.models import Column, Note, NoteCreate, NoteUpdate
from jotboard.optimistic import MutationStatus
from jotboard.view import SortMode, SortOrder, ViewSpec

logger = logging.getLogger(__name__)

# Create MCP server
server = Server("jotboard")


# ━━━ Arguments ━━━

class ListArgs(BaseModel):
    labels: list[str] = Field(default_factory=list)
    priority: Optional[int] = Field(default=None, ge=0, le=3)
    section: Optional[str] = None
    include_done: bool = False
    sort_by: str = "custom"
    sort_order: str = "desc"
    limit: int = Field(default=50, ge=1)


class SearchArgs(BaseModel):
    query: str = Field(min_length=1)
    limit: int = Field(default=10, ge=1, le=1000)


class NoteIdArgs(BaseModel):
    id: int


class MoveArgs(BaseModel):
    id: int
    column_id: Optional[int] = None
    before_id: Optional[int] = None


class ReorderColumnArgs(BaseModel):
    id: int
    position: int = Field(ge=0)


# ━━━ Formatting ━━━

def format_note(note: Note) -> str:
    parts = [f"{note.id:>5}", "[x]" if note.done else "[ ]", note.title[:60]]
    if note.priority:
        parts.append("!" * note.priority)
    if note.labels:
        parts.append(" ".join(f"#{label}" for label in note.labels))
    if note.state_id is not None:
        parts.append(f"(column {note.state_id})")
    return " ".join(parts)


def format_notes(notes: list[Note], empty: str = "No notes found.") -> str:
    if not notes:
        return empty
    return "\n".join(format_note(n) for n in notes)


def format_column(column: Column) -> str:
    return f"{column.position:>3}  {column.name} (id {column.id}, {column.color})"


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


# ━━━ Store access ━━━

@asynccontextmanager
async def _store() -> AsyncIterator[StoreClient]:
    client = open_store(load_config())
    try:
        yield client
    finally:
        await client.aclose()


@asynccontextmanager
async def _board(view: Optional[ViewSpec] = None) -> AsyncIterator[BoardController]:
    async with _store() as client:
        controller = BoardController(BoardState(view=view), client)
        await controller.refresh()
        yield controller


# ━━━ Tools ━━━

@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="jotboard_list",
            description="List notes in the list view, with optional label, priority and section filters.",
            inputSchema={
                "type": "object",
                "properties": {
                    "labels": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Only notes carrying every one of these labels",
                    },
                    "priority": {
                        "type": "integer",
                        "description": "Only notes with this priority (0-3)",
                    },
                    "section": {
                        "type": "string",
                        "description": "Only notes in this section",
                    },
                    "include_done": {
                        "type": "boolean",
                        "description": "Include done notes (default: false)",
                        "default": False,
                    },
                    "sort_by": {
                        "type": "string",
                        "enum": [m.value for m in SortMode],
                        "default": "custom",
                    },
                    "sort_order": {
                        "type": "string",
                        "enum": [o.value for o in SortOrder],
                        "default": "desc",
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum notes to return (default: 50)",
                        "default": 50,
                    },
                },
            },
        ),
        Tool(
            name="jotboard_search",
            description="Full-text search over note titles and content.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Search query"},
                    "limit": {
                        "type": "integer",
                        "description": "Maximum results to return (default: 10)",
                        "default": 10,
                    },
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="jotboard_create",
            description="Create a note. It is appended to the end of its column.",
            inputSchema={
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "content": {"type": "string"},
                    "priority": {"type": "integer", "description": "0 none, 1 low, 2 medium, 3 high"},
                    "labels": {"type": "array", "items": {"type": "string"}},
                    "deadline": {"type": "string", "description": "ISO 8601 date or datetime"},
                    "state_id": {"type": "integer", "description": "Column id (optional)"},
                    "section": {"type": "string"},
                },
                "required": ["title"],
            },
        ),
        Tool(
            name="jotboard_update",
            description="Update fields of a note. Only the fields given are changed.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "title": {"type": "string"},
                    "content": {"type": "string"},
                    "priority": {"type": "integer"},
                    "labels": {"type": "array", "items": {"type": "string"}},
                    "deadline": {"type": "string"},
                    "done": {"type": "boolean"},
                    "section": {"type": "string"},
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="jotboard_complete",
            description="Mark a note as done.",
            inputSchema={
                "type": "object",
                "properties": {"id": {"type": "integer"}},
                "required": ["id"],
            },
        ),
        Tool(
            name="jotboard_delete",
            description="Delete a note.",
            inputSchema={
                "type": "object",
                "properties": {"id": {"type": "integer"}},
                "required": ["id"],
            },
        ),
        Tool(
            name="jotboard_columns",
            description="List board columns in position order.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="jotboard_move",
            description="Move a note into a column, before another note or at the end. Omit column_id to unassign.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "integer", "description": "Note to move"},
                    "column_id": {"type": "integer", "description": "Target column"},
                    "before_id": {"type": "integer", "description": "Place before this note"},
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="jotboard_reorder_column",
            description="Move a column to a new position on the board.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "position": {"type": "integer", "description": "New position, 0 is leftmost"},
                },
                "required": ["id", "position"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    try:
        if name == "jotboard_list":
            return await tool_list(arguments)
        elif name == "jotboard_search":
            return await tool_search(arguments)
        elif name == "jotboard_create":
            return await tool_create(arguments)
        elif name == "jotboard_update":
            return await tool_update(arguments)
        elif name == "jotboard_complete":
            return await tool_complete(arguments)
        elif name == "jotboard_delete":
            return await tool_delete(arguments)
        elif name == "jotboard_columns":
            return await tool_columns(arguments)
        elif name == "jotboard_move":
            return await tool_move(arguments)
        elif name == "jotboard_reorder_column":
            return await tool_reorder_column(arguments)
        else:
            return _text(f"Unknown tool: {name}")
    except Exception as e:
        logger.warning(f"Tool {name} failed: {e}")
        return _text(f"Error: {e}")


async def tool_list(args: dict) -> list[TextContent]:
    """List notes."""
    params = ListArgs.model_validate(args)
    view = ViewSpec(
        labels=tuple(params.labels),
        priority=params.priority,
        show_done=params.include_done,
        section=params.section,
        sort_by=SortMode.from_str(params.sort_by),
        sort_order=SortOrder.from_str(params.sort_order),
    )
    async with _board(view) as board:
        notes = board.visible_list[:params.limit]
    return _text(format_notes(notes))


async def tool_search(args: dict) -> list[TextContent]:
    """Search notes."""
    params = SearchArgs.model_validate(args)
    async with _store() as client:
        notes = await client.search_notes(params.query, params.limit)
    return _text(format_notes(notes, empty=f"No notes matching '{params.query}'."))


async def tool_create(args: dict) -> list[TextContent]:
    """Create a note."""
    request = NoteCreate.model_validate(args)
    async with _store() as client:
        note = await client.create_note(request)
    return _text(f"Created: {format_note(note)}")


async def tool_update(args: dict) -> list[TextContent]:
    """Update a note."""
    request = NoteUpdate.model_validate(args)
    if not request.changes():
        return _text("Error: Nothing to update")
    async with _store() as client:
        note = await client.update_note(request)
    return _text(f"Updated: {format_note(note)}")


async def tool_complete(args: dict) -> list[TextContent]:
    """Mark a note done."""
    params = NoteIdArgs.model_validate(args)
    async with _store() as client:
        note = await client.set_done(params.id)
    return _text(f"Completed: {format_note(note)}")


async def tool_delete(args: dict) -> list[TextContent]:
    """Delete a note."""
    params = NoteIdArgs.model_validate(args)
    async with _board() as board:
        if params.id not in {n.id for n in board.notes}:
            return _text(f"Note not found: {params.id}")
        status = await board.on_delete_note(params.id)
        if status != MutationStatus.COMMITTED:
            return _text(f"Error: {board.last_error}")
    return _text(f"Deleted: {params.id}")


async def tool_columns(args: dict) -> list[TextContent]:
    """List columns."""
    async with _store() as client:
        columns = sorted(await client.list_columns(), key=lambda c: c.position)
    if not columns:
        return _text("No columns.")
    return _text("\n".join(format_column(c) for c in columns))


async def tool_move(args: dict) -> list[TextContent]:
    """Move a note between or within columns."""
    params = MoveArgs.model_validate(args)
    async with _board() as board:
        if params.id not in {n.id for n in board.notes}:
            return _text(f"Note not found: {params.id}")
        if params.column_id is not None and params.column_id not in {c.id for c in board.columns}:
            return _text(f"Column not found: {params.column_id}")
        status = await board.on_move_note(params.id, params.column_id, params.before_id)
        if status is None:
            return _text(f"Note {params.id} is already there.")
        if status != MutationStatus.COMMITTED:
            return _text(f"Error: {board.last_error}")
        column = board.notes_by_column().get(params.column_id) if params.column_id else board.unassigned_notes()
    return _text(f"Moved {params.id}.\n\n{format_notes(column or [])}")


async def tool_reorder_column(args: dict) -> list[TextContent]:
    """Move a column to a new position."""
    params = ReorderColumnArgs.model_validate(args)
    async with _board() as board:
        if params.id not in {c.id for c in board.columns}:
            return _text(f"Column not found: {params.id}")
        status = await board.on_column_reorder(params.id, params.position)
        if status not in (None, MutationStatus.COMMITTED):
            return _text(f"Error: {board.last_error}")
        columns = board.columns
    return _text("\n".join(format_column(c) for c in columns))


async def main():
    """Run the MCP server."""
    # stdout carries the protocol
    setup_logging(load_config(), stream=sys.stderr)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def run() -> None:
    import asyncio
    asyncio.run(main())


if __name__ == "__main__":
    run()
