"""Async SQLite access for all collections.

Every function takes a collection (table) name and works on plain dicts. Missing records
raise KeyError; anything else that goes wrong in the database becomes a RuntimeError so
callers only have two failure modes to care about.
"""

import asyncio
import json
import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from missionboard.core.config import Constants, settings


logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_COMPARISON = re.compile(r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(?:"((?:[^"\\]|\\.)*)"|'([^']*)')$""")
_SORT = re.compile(r"^([+-]?)([A-Za-z_][A-Za-z0-9_]*)$")
_OPERATORS = {"=": "=", "!=": "!=", ">": ">", "<": "<", ">=": ">=", "<=": "<=", "~": "LIKE"}

_connections: dict[tuple[int, Path], aiosqlite.Connection] = {}
_connect_lock = asyncio.Lock()


def _check_identifier(name: str, kind: str = "collection") -> None:
    if not _IDENTIFIER.match(name):
        msg = f"Invalid {kind} name: {name}"
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for embedding between double quotes in a filter query."""
    return json.dumps(str(value))[1:-1]


def _to_column(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def _to_record(columns: list[str], row: tuple[Any, ...]) -> dict[str, Any]:
    """Row to dict; integer keys (`id`, `*_id`) come back as strings."""
    record = dict(zip(columns, row, strict=True))
    for key, value in record.items():
        if isinstance(value, int) and (key == "id" or key.endswith("_id")):
            record[key] = str(value)
    return record


def _coerce(raw: str) -> str | int | float | bool:
    if raw.isdigit():
        return int(raw)
    if raw.replace(".", "", 1).isdigit():
        return float(raw)
    if raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    return raw


def parse_filter(filter_query: str) -> tuple[str, list[Any]]:
    """Translate `field = "value" && other ~ "text"` into a WHERE clause and its parameters.

    Supported operators: = != > < >= <= and ~ (substring match). Double-quoted values may
    carry the escapes produced by `sanitize_param`.
    """
    if not filter_query:
        return "", []

    clauses: list[str] = []
    params: list[Any] = []
    for part in filter_query.split("&&"):
        match = _COMPARISON.match(part.strip())
        if match is None:
            msg = f"Invalid filter syntax: {part.strip()}"
            raise ValueError(msg)
        field, operator, escaped_value, raw = match.groups()
        if escaped_value is not None:
            try:
                raw = json.loads(f'"{escaped_value}"')
            except ValueError as e:
                msg = f"Invalid filter syntax: {part.strip()}"
                raise ValueError(msg) from e

        if operator == "~":
            escaped = raw.replace("%", "\\%").replace("_", "\\_")
            clauses.append(f"{field} LIKE ? ESCAPE '\\'")
            params.append(f"%{escaped}%")
        else:
            clauses.append(f"{field} {_OPERATORS[operator]} ?")
            params.append(_coerce(raw))

    return " AND ".join(clauses), params


def _order_by(sort: str) -> str:
    match = _SORT.match(sort.strip()) if sort else None
    if match is None:
        if sort:
            logger.warning("Ignoring invalid sort", extra={"sort": sort})
        return "id ASC"
    direction, column = match.groups()
    order = f"{column} {'DESC' if direction == '-' else 'ASC'}"
    # Ties broken by id so pages never overlap
    return order if column == "id" else f"{order}, id ASC"


def get_db_path(db_path: str | None = None) -> Path:
    """Resolved SQLite file path (configured path by default)."""
    return Path(db_path or settings.sqlite_db_path).resolve()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Shared connection for the running event loop and database file."""
    key = (id(asyncio.get_running_loop()), get_db_path(db_path))
    conn = _connections.get(key)
    if conn is not None:
        return conn

    async with _connect_lock:
        if key in _connections:
            return _connections[key]

        path = key[1]
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")
        _connections[key] = conn
        logger.info("Opened SQLite database", extra={"db_path": str(path)})
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the shared connection for the running loop, if any."""
    key = (id(asyncio.get_running_loop()), get_db_path(db_path))
    async with _connect_lock:
        conn = _connections.pop(key, None)
    if conn is None:
        return
    try:
        await conn.close()
    except (aiosqlite.Error, RuntimeError) as e:
        logger.warning("Error closing SQLite database", extra={"db_path": str(key[1]), "error": str(e)})
    else:
        logger.info("Closed SQLite database", extra={"db_path": str(key[1])})


async def init_db(*, db_path: str | None = None) -> None:
    """Create the schema (see `missionboard.core.schema`)."""
    from missionboard.core import schema  # noqa: PLC0415 - schema imports this module

    await schema.init_db(db_path=db_path)


@asynccontextmanager
async def _storage(operation: str, collection: str, **context: Any) -> AsyncIterator[None]:
    """Let KeyError through, turn every other failure into RuntimeError."""
    try:
        yield
    except KeyError:
        raise
    except Exception as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            msg = f"Table '{collection}' does not exist. Call init_db() first."
        else:
            msg = f"{operation} failed on {collection}: {e}"
        logger.error(
            "Storage operation failed",
            extra={"operation": operation, "collection": collection, **context, "error": str(e)},
        )
        raise RuntimeError(msg) from e


async def _select_by_id(conn: aiosqlite.Connection, collection: str, record_id: str) -> dict[str, Any]:
    if not str(record_id).isdigit():
        msg = f"Record not found in {collection}: {record_id}"
        raise KeyError(msg)
    query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
    cursor = await conn.execute(query, (int(record_id),))
    row = await cursor.fetchone()
    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise KeyError(msg)
    return _to_record([column[0] for column in cursor.description], row)


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a record and return it as stored, with its new string id."""
    async with _storage("create_record", collection):
        _check_identifier(collection)
        for column in data:
            _check_identifier(column, "column")
        conn = await get_connection()

        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        cursor = await conn.execute(
            f"INSERT INTO {collection} ({columns}) VALUES ({placeholders})",  # noqa: S608 - names are validated
            [_to_column(value) for value in data.values()],
        )
        await conn.commit()

        record = await _select_by_id(conn, collection, str(cursor.lastrowid))
        logger.info("Created record", extra={"collection": collection, "record_id": record["id"]})
        return record


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch one record, raising KeyError if it does not exist."""
    async with _storage("get_record", collection, record_id=record_id):
        _check_identifier(collection)
        conn = await get_connection()
        return await _select_by_id(conn, collection, record_id)


async def _update(
    operation: str,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    expected: dict[str, Any] | None = None,
) -> dict[str, Any] | None:
    """Run one UPDATE guarded by `expected`; None when no row matched."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    async with _storage(operation, collection, record_id=record_id):
        _check_identifier(collection)
        for column in [*data, *(expected or {})]:
            _check_identifier(column, "column")
        if not str(record_id).isdigit():
            return None
        conn = await get_connection()

        assignments = ", ".join(f"{column} = ?" for column in data)
        params = [_to_column(value) for value in data.values()]
        conditions = ["id = ?"]
        params.append(int(record_id))
        for column, value in (expected or {}).items():
            if value is None:
                conditions.append(f"{column} IS NULL")
            else:
                conditions.append(f"{column} = ?")
                params.append(_to_column(value))

        where = " AND ".join(conditions)
        query = f"UPDATE {collection} SET {assignments} WHERE {where}"  # noqa: S608 - names are validated
        cursor = await conn.execute(query, params)
        await conn.commit()
        if cursor.rowcount == 0:
            return None
        return await _select_by_id(conn, collection, record_id)


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update columns of a record and return it, raising KeyError if it does not exist."""
    record = await _update("update_record", collection, record_id, data)
    if record is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise KeyError(msg)
    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return record


async def compare_and_update_record(
    *,
    collection: str,
    record_id: str,
    expected: dict[str, Any],
    data: dict[str, Any],
) -> dict[str, Any] | None:
    """Apply `data` only while the record's columns still equal `expected`.

    Check and write happen in one UPDATE statement. A None expectation matches NULL.
    Returns the updated record, or None if the record is gone or no longer matches.
    """
    record = await _update("compare_and_update_record", collection, record_id, data, expected)
    if record is None:
        logger.info(
            "Conditional update lost",
            extra={"collection": collection, "record_id": record_id, "expected": expected},
        )
    return record


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record, raising KeyError if it does not exist."""
    async with _storage("delete_record", collection, record_id=record_id):
        _check_identifier(collection)
        if not str(record_id).isdigit():
            msg = f"Record not found in {collection}: {record_id}"
            raise KeyError(msg)
        conn = await get_connection()

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (int(record_id),))
        await conn.commit()
        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise KeyError(msg)
        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """Page through a collection, filtered with `parse_filter` syntax and sorted by `[+-]column`."""
    async with _storage("list_records", collection, filter_query=filter_query):
        _check_identifier(collection)
        conn = await get_connection()

        where, params = parse_filter(filter_query)
        query = f"SELECT * FROM {collection}"  # noqa: S608 - collection is validated
        if where:
            query += f" WHERE {where}"
        query += f" ORDER BY {_order_by(sort)} LIMIT ? OFFSET ?"

        cursor = await conn.execute(query, [*params, per_page, (page - 1) * per_page])
        columns = [column[0] for column in cursor.description]
        return [_to_record(columns, row) for row in await cursor.fetchall()]


async def list_all_records(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
    batch_size: int = Constants.DEFAULT_PER_PAGE_LIMIT,
) -> list[dict[str, Any]]:
    """Every matching record, read page by page until the collection is exhausted."""
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection,
            page=page,
            per_page=batch_size,
            filter_query=filter_query,
            sort=sort,
        )
        records.extend(batch)
        if len(batch) < batch_size:
            return records
        page += 1


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """First record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None
