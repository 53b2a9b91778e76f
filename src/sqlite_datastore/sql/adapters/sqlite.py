# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQLite async adapter using aiosqlite with a single owned connection."""

from __future__ import annotations

import logging
import re
import sqlite3
from typing import TYPE_CHECKING, Any

import aiosqlite

from ...errors import (
    NoSuchTableError,
    SqlSyntaxError,
    UniqueConstraintViolationError,
    UnknownDatabaseError,
)
from .base import DbAdapter, PreparedStatement, RunResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

_NO_SUCH_TABLE = re.compile(r"no such table: (?:\w+\.)?(\S+)")
_UNIQUE_FAILED = re.compile(r"UNIQUE constraint failed: ([^.\s]+)\.([^,\s]+)")
_SYNTAX = re.compile(r'near ".*": syntax error|incomplete input|unrecognized token')


def translate_error(exc: Exception, sql: str) -> Exception:
    """Map a native SQLite error to the datastore taxonomy.

    Recognized messages become NoSuchTableError, SqlSyntaxError or
    UniqueConstraintViolationError. Other native SQLite errors become
    UnknownDatabaseError, keeping the extended error code where the
    interpreter exposes it. Anything else is returned unchanged so the
    caller re-raises the original.
    """
    message = str(exc)

    match = _NO_SUCH_TABLE.search(message)
    if match:
        return NoSuchTableError(match.group(1))

    match = _UNIQUE_FAILED.search(message)
    if match:
        return UniqueConstraintViolationError(match.group(1), match.group(2))

    if _SYNTAX.search(message):
        return SqlSyntaxError(sql, message)

    if not isinstance(exc, sqlite3.Error):
        return exc
    return UnknownDatabaseError(message, getattr(exc, "sqlite_errorcode", None))


def _raise_translated(exc: Exception, sql: str) -> None:
    translated = translate_error(exc, sql)
    if translated is exc:
        raise exc
    raise translated from exc


def _row_dict(cursor: aiosqlite.Cursor, row: Sequence[Any]) -> dict[str, Any]:
    cols = [c[0] for c in cursor.description]
    return dict(zip(cols, row, strict=True))


class SqliteStatement(PreparedStatement):
    """Prepared statement backed by one aiosqlite cursor.

    sqlite3 keeps the compiled statement in its cache keyed by SQL text, so
    re-running the same cursor with new parameters reuses the preparation.
    """

    def __init__(self, cursor: aiosqlite.Cursor, sql: str):
        self.cursor = cursor
        self.sql = sql
        self.finalized = False

    async def _execute(self, params: Sequence[Any]) -> None:
        if self.finalized:
            raise RuntimeError(f"Statement already finalized: {self.sql}")
        logger.debug("SQL: %s %r", self.sql, list(params))
        try:
            await self.cursor.execute(self.sql, tuple(params))
        except aiosqlite.Error as exc:
            _raise_translated(exc, self.sql)

    async def run(self, params: Sequence[Any] = ()) -> RunResult:
        """Execute, return lastrowid and rowcount."""
        await self._execute(params)
        return RunResult(self.cursor.lastrowid, self.cursor.rowcount)

    async def all(self, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Execute, return all rows as list of dicts."""
        await self._execute(params)
        try:
            rows = await self.cursor.fetchall()
        except aiosqlite.Error as exc:
            _raise_translated(exc, self.sql)
        return [_row_dict(self.cursor, row) for row in rows]

    async def get(self, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        """Execute, return first row as dict or None."""
        await self._execute(params)
        try:
            row = await self.cursor.fetchone()
        except aiosqlite.Error as exc:
            _raise_translated(exc, self.sql)
        if row is None:
            return None
        return _row_dict(self.cursor, row)

    async def each(self, params: Sequence[Any] = ()) -> AsyncIterator[dict[str, Any]]:
        """Execute, yield rows one at a time."""
        await self._execute(params)
        async for row in self.cursor:
            yield _row_dict(self.cursor, row)

    async def finalize(self) -> None:
        if self.finalized:
            return
        self.finalized = True
        await self.cursor.close()


class SqliteAdapter(DbAdapter):
    """SQLite async adapter owning one aiosqlite connection.

    The connection runs in autocommit mode: every statement commits on its
    own and no implicit transaction spans several statements.
    """

    placeholder = "?"

    def __init__(self, db_path: str, timeout: float = 5.0):
        self.db_path = db_path or MEMORY
        self.timeout = timeout
        self._conn: aiosqlite.Connection | None = None

    @property
    def filename(self) -> str:
        return self.db_path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def conn(self) -> aiosqlite.Connection:
        """Get the open connection.

        Raises:
            RuntimeError: If open() has not been called.
        """
        if self._conn is None:
            raise RuntimeError("No open connection. Call 'await adapter.open()' first.")
        return self._conn

    async def open(self) -> aiosqlite.Connection:
        """Open the connection if needed and return it."""
        if self._conn is None:
            logger.debug("Opening SQLite database %s", self.db_path)
            self._conn = await aiosqlite.connect(
                self.db_path, timeout=self.timeout, isolation_level=None
            )
        return self._conn

    async def close(self) -> None:
        """Close the connection. No-op when not open."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        logger.debug("Closing SQLite database %s", self.db_path)
        await conn.close()

    async def prepare(self, sql: str) -> SqliteStatement:
        """Create a statement on the open connection."""
        cursor = await self.conn.cursor()
        return SqliteStatement(cursor, sql)


__all__ = ["MEMORY", "SqliteAdapter", "SqliteStatement", "translate_error"]
