"""
Tests for the HTTP store client against a mock REST API.
"""
import asyncio
import json

import httpx
import pytest

from jotboard.client import HttpStoreClient, LocalStoreClient, open_store
from jotboard.errors import BulkUpdateError, NotFoundError, StoreError
from jotboard.models import NoteCreate, NoteUpdate, OrderUpdate


NOTE = {
    "id": 1, "title": "Hello", "content": "", "priority": 2, "labels": ["a"],
    "done": False, "state_id": 3, "section": "unset", "order": 0,
    "created_at": "2025-01-01T00:00:00Z", "updated_at": "2025-01-01T00:00:00Z",
}


def make_client(handler):
    """An HttpStoreClient whose requests go to `handler`."""
    seen = []

    def record(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        seen.append((request.method, request.url.path, body))
        return handler(request.url.path, body)

    transport = httpx.MockTransport(record)
    client = httpx.AsyncClient(transport=transport, base_url="http://store.test")
    return HttpStoreClient("http://store.test", client=client), seen


def ok(data=None, **extra):
    return httpx.Response(200, json={"success": True, "data": data, "error": None, **extra})


def bulk_ok(count):
    return ok(successful_count=count, failed_count=0, errors=None)


def test_list_notes_parses_models():
    """GET /notes data becomes Note objects"""
    client, seen = make_client(lambda path, body: ok([NOTE]))
    notes = asyncio.run(client.list_notes())
    assert notes[0].id == 1
    assert notes[0].labels == ["a"]
    assert seen == [("GET", "/notes", None)]


def test_create_note_posts_fields():
    """New notes are posted to /notes"""
    client, seen = make_client(lambda path, body: ok(NOTE))
    asyncio.run(client.create_note(NoteCreate(title="Hello", priority=2)))
    method, path, body = seen[0]
    assert (method, path) == ("POST", "/notes")
    assert body["title"] == "Hello"
    assert body["priority"] == 2


def test_update_note_sends_only_set_fields():
    """Partial updates PUT the id and the fields that were set"""
    client, seen = make_client(lambda path, body: ok({**NOTE, "state_id": None}))
    note = asyncio.run(client.update_note(NoteUpdate(id=1, state_id=None, order=2)))
    assert note.state_id is None
    assert seen[0] == ("PUT", "/notes/1", {"id": 1, "state_id": None, "order": 2})


def test_set_done_uses_done_route():
    """Completing a note patches its done route"""
    client, seen = make_client(lambda path, body: ok({**NOTE, "done": True}))
    assert asyncio.run(client.set_done(1)).done is True
    assert seen[0] == ("PATCH", "/notes/1/done", {"done": True})


def test_bulk_order_wire_format():
    """Bulk order updates send parallel id and order lists"""
    client, seen = make_client(lambda path, body: bulk_ok(2))
    result = asyncio.run(client.bulk_update_note_order([OrderUpdate(id=1, order=0), OrderUpdate(id=2, order=1)]))
    assert result.successful_count == 2
    assert seen[0] == ("PATCH", "/bulk/notes/order", {"note_ids": [1, 2], "orders": [0, 1]})


def test_bulk_selection_routes():
    """Done, priority, column and delete bulk calls hit their own routes"""
    client, seen = make_client(lambda path, body: bulk_ok(2))

    async def scenario():
        await client.bulk_update_notes_done([1, 2], True)
        await client.bulk_update_notes_priority([1, 2], 3)
        await client.bulk_update_notes_state([1, 2], None)
        await client.bulk_delete_notes([1, 2])

    asyncio.run(scenario())
    assert seen == [
        ("PATCH", "/bulk/notes/done", {"note_ids": [1, 2], "done": True}),
        ("PATCH", "/bulk/notes/priority", {"note_ids": [1, 2], "priority": 3}),
        ("PATCH", "/bulk/notes/state", {"note_ids": [1, 2], "state_id": None}),
        ("POST", "/bulk/notes/delete", {"note_ids": [1, 2]}),
    ]


def test_bulk_partial_failure_raises():
    """Any failed item in a bulk answer raises BulkUpdateError"""
    client, _ = make_client(
        lambda path, body: ok(successful_count=1, failed_count=1, errors=["Note 9 not found"])
    )
    with pytest.raises(BulkUpdateError) as exc:
        asyncio.run(client.bulk_update_notes_done([1, 9], True))
    assert exc.value.result.errors == ["Note 9 not found"]


def test_success_false_raises_store_error():
    """An unsuccessful answer raises, not-found messages as NotFoundError"""
    client, seen = make_client(
        lambda path, body: httpx.Response(200, json={"success": False, "data": None, "error": "Note not found"})
    )
    with pytest.raises(NotFoundError):
        asyncio.run(client.delete_note(5))
    assert seen[0][:2] == ("DELETE", "/notes/5")

    client, _ = make_client(
        lambda path, body: httpx.Response(200, json={"success": False, "data": None, "error": "disk full"})
    )
    with pytest.raises(StoreError):
        asyncio.run(client.delete_note(5))


def test_transport_errors_become_store_errors():
    """HTTP status errors and bad JSON raise StoreError"""
    client, _ = make_client(lambda path, body: httpx.Response(500, text="boom"))
    with pytest.raises(StoreError):
        asyncio.run(client.list_columns())

    client, _ = make_client(lambda path, body: httpx.Response(200, text="not json"))
    with pytest.raises(StoreError):
        asyncio.run(client.list_columns())


def test_malformed_data_raises():
    """Data that does not fit the model is a StoreError"""
    client, _ = make_client(lambda path, body: ok([{"title": "no id"}]))
    with pytest.raises(StoreError):
        asyncio.run(client.list_notes())


def test_column_routes():
    """Columns are read, repositioned and deleted under /states"""
    column = {"id": 4, "name": "Doing", "position": 1, "color": "#fff"}
    client, seen = make_client(lambda path, body: ok([column] if path == "/states" else column))

    async def scenario():
        columns = await client.list_columns()
        await client.update_column_position(4, 1)
        await client.delete_column(4)
        return columns

    assert asyncio.run(scenario())[0].name == "Doing"
    assert seen == [
        ("GET", "/states", None),
        ("PUT", "/states/4", {"id": 4, "position": 1}),
        ("DELETE", "/states/4", None),
    ]


def test_open_store_picks_backend():
    """Config chooses between the local database and the HTTP store"""
    assert isinstance(open_store({"store": {"backend": "sqlite"}}), LocalStoreClient)
    client = open_store({"store": {"backend": "http", "base_url": "http://x.test/", "timeout": 2}})
    assert isinstance(client, HttpStoreClient)
    assert client.base_url == "http://x.test"
    asyncio.run(client.aclose())
    with pytest.raises(ValueError):
        open_store({"store": {"backend": "redis"}})
