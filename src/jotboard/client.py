"""
Entity store client for Jotboard.

Async accessors the core uses to read and write notes and columns.
Two backends:
- LocalStoreClient: the SQLite Database, run off the event loop
- HttpStoreClient: a remote store behind a REST API

Every failure surfaces as a StoreError so callers can resync.
"""

import asyncio
import logging
import sqlite3
from typing import Any

import httpx
from pydantic import ValidationError

from jotboard.config import load_config
from jotboard.db import Database
from jotboard.errors import BulkUpdateError, NotFoundError, StoreError
from jotboard.models import (
    BulkResult,
    Column,
    ColumnCreate,
    ColumnUpdate,
    Note,
    NoteCreate,
    NoteUpdate,
    OrderUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3001"


def _check_bulk(result: BulkResult, what: str) -> BulkResult:
    """Raise if any item of a bulk call failed."""
    if not result.ok:
        raise BulkUpdateError(
            f"{what}: {result.failed_count} of "
            f"{result.failed_count + result.successful_count} failed",
            result,
        )
    return result


class StoreClient:
    """Interface the core consumes. Subclasses implement every method."""

    async def list_notes(self) -> list[Note]:
        raise NotImplementedError

    async def list_columns(self) -> list[Column]:
        raise NotImplementedError

    async def create_note(self, request: NoteCreate) -> Note:
        raise NotImplementedError

    async def update_note(self, request: NoteUpdate) -> Note:
        raise NotImplementedError

    async def update_note_order(self, note_id: int, order: int) -> Note:
        return await self.update_note(NoteUpdate(id=note_id, order=order))

    async def bulk_update_note_order(self, updates: list[OrderUpdate]) -> BulkResult:
        raise NotImplementedError

    async def bulk_update_notes_done(self, note_ids: list[int], done: bool) -> BulkResult:
        raise NotImplementedError

    async def bulk_update_notes_priority(self, note_ids: list[int], priority: int) -> BulkResult:
        raise NotImplementedError

    async def bulk_update_notes_state(self, note_ids: list[int], state_id: int | None) -> BulkResult:
        raise NotImplementedError

    async def set_done(self, note_id: int, done: bool = True) -> Note:
        return await self.update_note(NoteUpdate(id=note_id, done=done))

    async def delete_note(self, note_id: int) -> None:
        raise NotImplementedError

    async def bulk_delete_notes(self, note_ids: list[int]) -> BulkResult:
        raise NotImplementedError

    async def search_notes(self, query: str, limit: int = 50) -> list[Note]:
        raise NotImplementedError

    async def create_column(self, request: ColumnCreate) -> Column:
        raise NotImplementedError

    async def update_column(self, request: ColumnUpdate) -> Column:
        raise NotImplementedError

    async def update_column_position(self, column_id: int, position: int) -> Column:
        return await self.update_column(ColumnUpdate(id=column_id, position=position))

    async def delete_column(self, column_id: int) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class LocalStoreClient(StoreClient):
    """Store client over the local SQLite database."""

    def __init__(self, db: Database | None = None):
        self.db = db or Database()

    async def _call(self, func, *args) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as e:
            raise StoreError(f"{func.__name__} failed: {e}") from e

    async def list_notes(self) -> list[Note]:
        return await self._call(self.db.list_notes)

    async def list_columns(self) -> list[Column]:
        return await self._call(self.db.list_columns)

    async def create_note(self, request: NoteCreate) -> Note:
        return await self._call(self.db.create_note, request)

    async def update_note(self, request: NoteUpdate) -> Note:
        return await self._call(self.db.update_note, request)

    async def bulk_update_note_order(self, updates: list[OrderUpdate]) -> BulkResult:
        result = await self._call(self.db.bulk_update_order, updates)
        return _check_bulk(result, "Bulk order update")

    async def bulk_update_notes_done(self, note_ids: list[int], done: bool) -> BulkResult:
        result = await self._call(self.db.bulk_update_done, note_ids, done)
        return _check_bulk(result, "Bulk done update")

    async def bulk_update_notes_priority(self, note_ids: list[int], priority: int) -> BulkResult:
        result = await self._call(self.db.bulk_update_priority, note_ids, priority)
        return _check_bulk(result, "Bulk priority update")

    async def bulk_update_notes_state(self, note_ids: list[int], state_id: int | None) -> BulkResult:
        result = await self._call(self.db.bulk_update_state, note_ids, state_id)
        return _check_bulk(result, "Bulk column update")

    async def delete_note(self, note_id: int) -> None:
        await self._call(self.db.delete_note, note_id)

    async def bulk_delete_notes(self, note_ids: list[int]) -> BulkResult:
        result = await self._call(self.db.bulk_delete, note_ids)
        return _check_bulk(result, "Bulk delete")

    async def search_notes(self, query: str, limit: int = 50) -> list[Note]:
        return await self._call(self.db.search, query, limit)

    async def create_column(self, request: ColumnCreate) -> Column:
        return await self._call(self.db.create_column, request)

    async def update_column(self, request: ColumnUpdate) -> Column:
        return await self._call(self.db.update_column, request)

    async def delete_column(self, column_id: int) -> None:
        await self._call(self.db.delete_column, column_id)


class HttpStoreClient(StoreClient):
    """
    Store client for the REST API of a remote note store.

    Notes live under `/notes`, columns under `/states` and bulk
    operations under `/bulk/notes`. Every answer is
    `{"success": bool, "data": ..., "error": str | null}`; bulk answers
    carry `successful_count`, `failed_count` and `errors` instead of data.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        what = f"{method} {path}"
        try:
            response = await self.client.request(method, path, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise StoreError(f"{what} failed: {e}") from e
        except ValueError as e:
            raise StoreError(f"{what} returned invalid JSON: {e}") from e

        if not body.get("success", False):
            error = body.get("error") or f"{what} failed"
            if "not found" in error.lower():
                raise NotFoundError(error)
            raise StoreError(error)
        return body

    async def _data(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        return (await self._request(method, path, payload)).get("data")

    def _parse(self, model, data: Any, path: str):
        try:
            if isinstance(data, list):
                return [model.model_validate(item) for item in data]
            return model.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"{path} returned malformed data: {e}") from e

    async def _bulk(self, method: str, path: str, payload: dict[str, Any], what: str) -> BulkResult:
        body = await self._request(method, path, payload)
        result = BulkResult(
            successful_count=body.get("successful_count", 0),
            failed_count=body.get("failed_count", 0),
            errors=body.get("errors") or [],
        )
        return _check_bulk(result, what)

    async def list_notes(self) -> list[Note]:
        return self._parse(Note, await self._data("GET", "/notes") or [], "/notes")

    async def list_columns(self) -> list[Column]:
        return self._parse(Column, await self._data("GET", "/states") or [], "/states")

    async def create_note(self, request: NoteCreate) -> Note:
        data = await self._data("POST", "/notes", request.model_dump(mode="json"))
        return self._parse(Note, data, "/notes")

    async def update_note(self, request: NoteUpdate) -> Note:
        path = f"/notes/{request.id}"
        payload = {"id": request.id, **request.model_dump(mode="json", exclude_unset=True)}
        return self._parse(Note, await self._data("PUT", path, payload), path)

    async def set_done(self, note_id: int, done: bool = True) -> Note:
        path = f"/notes/{note_id}/done"
        return self._parse(Note, await self._data("PATCH", path, {"done": done}), path)

    async def bulk_update_note_order(self, updates: list[OrderUpdate]) -> BulkResult:
        return await self._bulk("PATCH", "/bulk/notes/order", {
            "note_ids": [u.id for u in updates],
            "orders": [u.order for u in updates],
        }, "Bulk order update")

    async def bulk_update_notes_done(self, note_ids: list[int], done: bool) -> BulkResult:
        return await self._bulk("PATCH", "/bulk/notes/done",
                                {"note_ids": note_ids, "done": done}, "Bulk done update")

    async def bulk_update_notes_priority(self, note_ids: list[int], priority: int) -> BulkResult:
        return await self._bulk("PATCH", "/bulk/notes/priority",
                                {"note_ids": note_ids, "priority": priority}, "Bulk priority update")

    async def bulk_update_notes_state(self, note_ids: list[int], state_id: int | None) -> BulkResult:
        return await self._bulk("PATCH", "/bulk/notes/state",
                                {"note_ids": note_ids, "state_id": state_id}, "Bulk column update")

    async def delete_note(self, note_id: int) -> None:
        await self._request("DELETE", f"/notes/{note_id}")

    async def bulk_delete_notes(self, note_ids: list[int]) -> BulkResult:
        return await self._bulk("POST", "/bulk/notes/delete", {"note_ids": note_ids}, "Bulk delete")

    async def search_notes(self, query: str, limit: int = 50) -> list[Note]:
        data = await self._data("POST", "/notes/search", {"query": query, "limit": limit})
        return self._parse(Note, data or [], "/notes/search")

    async def create_column(self, request: ColumnCreate) -> Column:
        data = await self._data("POST", "/states", request.model_dump(mode="json"))
        return self._parse(Column, data, "/states")

    async def update_column(self, request: ColumnUpdate) -> Column:
        path = f"/states/{request.id}"
        payload = {"id": request.id, **request.model_dump(mode="json", exclude_unset=True)}
        return self._parse(Column, await self._data("PUT", path, payload), path)

    async def delete_column(self, column_id: int) -> None:
        await self._request("DELETE", f"/states/{column_id}")

    async def aclose(self) -> None:
        await self.client.aclose()


def open_store(config: dict[str, Any] | None = None) -> StoreClient:
    """Build the store client the config asks for."""
    config = config or load_config()
    store_config = config.get("store", {})
    backend = store_config.get("backend", "sqlite")

    if backend == "http":
        logger.info(f"Using HTTP store at {store_config.get('base_url')}")
        return HttpStoreClient(
            base_url=store_config.get("base_url", DEFAULT_BASE_URL),
            timeout=float(store_config.get("timeout", 10.0)),
        )
    if backend != "sqlite":
        raise ValueError(f"Unknown store backend: {backend}")
    return LocalStoreClient(Database())
