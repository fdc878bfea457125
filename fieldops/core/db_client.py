"""SQLite database client wrapper with CRUD operations and transactions."""

import asyncio
import json
import logging
import re
import threading
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

import aiosqlite

from fieldops.core.config import settings


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Raised when a database operation fails."""


class RecordNotFoundError(KeyError):
    """Raised when a record lookup by ID finds nothing."""


# Columns holding JSON documents, encoded on write and decoded on read
JSON_COLUMNS = frozenset({"assignee_ids", "completed_assignee_ids", "roles", "payload"})

# Collections with created_at / updated_at bookkeeping columns
CREATED_AT_COLLECTIONS = frozenset(
    {"users", "customers", "geo_locations", "tasks", "activities", "attachments", "payments"}
)
UPDATED_AT_COLLECTIONS = frozenset({"users", "customers", "geo_locations", "tasks", "attachments", "payments"})


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as a fixed-width UTC ISO-8601 string.

    Naive datetimes are taken to be UTC. Fixed width keeps lexical order equal to time order.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _encode_value(key: str, value: Any) -> Any:
    """Convert a Python value into something SQLite can store."""
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if key in JSON_COLUMNS or isinstance(value, dict | list):
        return json.dumps(value, default=str, ensure_ascii=False)
    return value


def _decode_record(record: dict[str, Any]) -> dict[str, Any]:
    """Decode JSON columns of a fetched row."""
    decoded = record.copy()
    for key in JSON_COLUMNS.intersection(decoded):
        value = decoded[key]
        if isinstance(value, str):
            decoded[key] = json.loads(value)
    return decoded


def _rows_to_records(cursor: aiosqlite.Cursor, rows: Sequence[Sequence[Any]]) -> list[dict[str, Any]]:
    columns = [description[0] for description in cursor.description]
    return [_decode_record(dict(zip(columns, row, strict=True))) for row in rows]


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_write_locks: dict[tuple[int, int, str], asyncio.Lock] = {}
_db_lock = asyncio.Lock()
_in_transaction: ContextVar[bool] = ContextVar("fieldops_in_transaction", default=False)


def _cache_key(db_path: str | None = None) -> tuple[int, int, str]:
    loop = asyncio.get_running_loop()
    return (threading.get_ident(), id(loop), str(get_db_path(db_path)))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    cache_key = _cache_key(db_path)
    path = get_db_path(db_path)

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn
        _write_locks[cache_key] = asyncio.Lock()

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": cache_key[0], "loop_id": cache_key[1]},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    cache_key = _cache_key(db_path)

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            conn = _db_connections.pop(cache_key, None)
            _write_locks.pop(cache_key, None)
            if conn is not None:
                await conn.close()
                logger.info("Closed SQLite connection", extra={"db_path": cache_key[2]})
    except Exception as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": cache_key[2]})


def in_transaction() -> bool:
    """Whether the current task is running inside `transaction()`."""
    return _in_transaction.get()


@asynccontextmanager
async def transaction(*, db_path: str | None = None) -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed writes atomically.

    Everything written inside the block commits together, or rolls back together
    when the block raises. Nested calls join the outermost transaction.
    """
    conn = await get_connection(db_path=db_path)
    if _in_transaction.get():
        yield conn
        return

    async with _write_locks[_cache_key(db_path)]:
        token = _in_transaction.set(True)
        try:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                logger.warning("Transaction rolled back")
                raise
            await conn.commit()
        finally:
            _in_transaction.reset(token)


@asynccontextmanager
async def _write_scope(conn: aiosqlite.Connection) -> AsyncIterator[None]:
    """Commit a standalone write, or defer to the enclosing transaction."""
    if _in_transaction.get():
        yield
        return

    async with _write_locks[_cache_key()]:
        try:
            yield
        except BaseException:
            await conn.rollback()
            raise
        await conn.commit()


@asynccontextmanager
async def _read_scope() -> AsyncIterator[None]:
    """Wait for any open transaction on the shared connection before reading."""
    if _in_transaction.get():
        yield
        return

    async with _write_locks[_cache_key()]:
        yield


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from fieldops.core import schema

    await schema.init_db(db_path=db_path)


async def execute(query: str, params: Sequence[Any] = ()) -> int:
    """Execute a write statement and return the number of affected rows."""
    try:
        conn = await get_connection()
        async with _write_scope(conn):
            cursor = await conn.execute(query, [_encode_value("", value) for value in params])
        return cursor.rowcount
    except Exception as e:
        logger.error("execute_failed", extra={"error": str(e)})
        msg = f"Failed to execute statement: {e}"
        raise DatabaseError(msg) from e


async def fetch_all(query: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
    """Run a parameterised SELECT and return every row as a record."""
    try:
        conn = await get_connection()
        async with _read_scope():
            cursor = await conn.execute(query, [_encode_value("", value) for value in params])
            rows = await cursor.fetchall()
        return _rows_to_records(cursor, rows)
    except Exception as e:
        logger.error("fetch_all_failed", extra={"error": str(e)})
        msg = f"Failed to run query: {e}"
        raise DatabaseError(msg) from e


async def fetch_one(query: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
    """Run a parameterised SELECT and return the first row, or None."""
    records = await fetch_all(query, params)
    return records[0] if records else None


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        now = utc_now()
        payload = dict(data)
        if collection in CREATED_AT_COLLECTIONS:
            payload.setdefault("created_at", now)
        if collection in UPDATED_AT_COLLECTIONS:
            payload.setdefault("updated_at", payload.get("created_at", now))

        columns = list(payload.keys())
        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)
        values = [_encode_value(key, payload[key]) for key in columns]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
        async with _write_scope(conn):
            cursor = await conn.execute(query, values)

        record_id = payload.get("id", cursor.lastrowid)
        result = await get_record(collection=collection, record_id=record_id)

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return result
    except Exception as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            logger.error("Table not found", extra={"collection": collection})
            raise DatabaseError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_record(*, collection: str, record_id: int | str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        async with _read_scope():
            cursor = await conn.execute(query, (record_id,))
            row = await cursor.fetchone()

        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
        return _rows_to_records(cursor, [row])[0]
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def update_record(*, collection: str, record_id: int | str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        payload = dict(data)
        if collection in UPDATED_AT_COLLECTIONS:
            payload.setdefault("updated_at", utc_now())

        set_clause = ", ".join(f"{key} = ?" for key in payload)
        values = [_encode_value(key, value) for key, value in payload.items()]
        values.append(record_id)

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
        async with _write_scope(conn):
            cursor = await conn.execute(query, values)

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return await get_record(collection=collection, record_id=record_id)
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise DatabaseError(msg) from e
