# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Async datastore facade: one SQLite handle, lazy migration, six operations."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from .config import DatastoreConfig, config_from_env
from .errors import DatastoreClosedError, InvalidSchemaError, NoSuchTableError
from .options import (
    count_options,
    delete_options,
    insert_options,
    select_options,
    update_options,
)
from .sql import Table, get_adapter

if TYPE_CHECKING:
    from pydantic import BaseModel

    from .sql.adapters import DbAdapter

logger = logging.getLogger(__name__)


class SqliteDatastore:
    """Typed data access over one embedded SQLite database.

    The schema is plain data::

        SCHEMA = {
            "tables": {
                "people": {
                    "columns": {
                        "id": {"type": "INTEGER", "auto_increment": True},
                        "name": "TEXT",
                        "birthdate": {"type": "TEXT", "nullable": True},
                    },
                    "primary_key": "id",
                },
            },
        }

    Connection model:
    - The handle opens lazily on the first operation and is owned by this
      instance until close().
    - The first operation also migrates: every table is created if missing.
    - Each statement commits on its own; batch inserts are not atomic.

    Usage:
        datastore = SqliteDatastore(SCHEMA)            # in-memory
        await datastore.insert("people", [{"name": "foo"}, {"name": "bar"}])
        rows = await datastore.select("people", where={"name": ["foo", "bar"]})
        await datastore.update("people", set={"name": "baz"}, where={"id": 1})
        await datastore.delete("people", where={"name": "foo"})
        await datastore.close()
    """

    def __init__(
        self,
        schema: Mapping[str, Any],
        filename: str | None = None,
        *,
        timeout: float = 5.0,
        on_database_ready: Callable[[Any], Any] | None = None,
    ):
        """Initialize the datastore. Nothing is opened or validated yet.

        Args:
            schema: ``{"tables": {name: table_declaration}}``.
            filename: Database file; in-memory when omitted.
            timeout: Seconds SQLite waits on a locked database.
            on_database_ready: Called with the aiosqlite connection once it
                is open. May be a coroutine function.
        """
        self.schema = schema
        self.adapter: DbAdapter = get_adapter(filename, timeout=timeout)
        self.on_database_ready = on_database_ready
        self._tables: dict[str, Table] | None = None
        self._open_lock = asyncio.Lock()
        self._migrate_lock = asyncio.Lock()
        self._migrated = False
        self._closed = False

    @classmethod
    def from_config(
        cls,
        schema: Mapping[str, Any],
        config: DatastoreConfig | None = None,
        **kwargs: Any,
    ) -> SqliteDatastore:
        """Create a datastore from a DatastoreConfig (environment when omitted)."""
        config = config or config_from_env()
        return cls(schema, config.filename, timeout=config.timeout, **kwargs)

    @property
    def filename(self) -> str:
        """The database file in use, ':memory:' for in-memory databases."""
        return self.adapter.filename

    @property
    def closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    @property
    def tables(self) -> dict[str, Table]:
        """Resolved tables, validated on first access.

        Raises:
            InvalidSchemaError: If the schema is not valid.
        """
        if self._tables is None:
            raw_tables = self.schema.get("tables") if isinstance(self.schema, Mapping) else None
            if not isinstance(raw_tables, Mapping):
                raise InvalidSchemaError("Schema must be a mapping with a 'tables' mapping")
            self._tables = {
                name: Table.from_declaration(name, declaration, self.adapter)
                for name, declaration in raw_tables.items()
            }
        return self._tables

    def table(self, name: str) -> Table:
        """Get a resolved table by name.

        Raises:
            NoSuchTableError: If the schema does not declare the table.
        """
        if name not in self.tables:
            raise NoSuchTableError(name)
        return self.tables[name]

    def record_model(self, name: str) -> type[BaseModel]:
        """Pydantic model of the records stored in a table."""
        return self.table(name).record_model

    def insert_model(self, name: str) -> type[BaseModel]:
        """Pydantic model of the records accepted by insert on a table."""
        return self.table(name).insert_model

    # -------------------------------------------------------------------------
    # Connection management
    # -------------------------------------------------------------------------

    async def _database(self) -> Any:
        """Open the handle on first use and return it."""
        if self._closed:
            raise DatastoreClosedError(self.filename)
        async with self._open_lock:
            if self.adapter.is_open:
                return await self.adapter.open()
            conn = await self.adapter.open()
            logger.debug("Database %s ready", self.filename)
            if self.on_database_ready is not None:
                result = self.on_database_ready(conn)
                if inspect.isawaitable(result):
                    await result
            return conn

    async def close(self) -> None:
        """Close the database. The instance cannot be used afterwards."""
        if self._closed:
            return
        self._closed = True
        await self.adapter.close()

    async def __aenter__(self) -> SqliteDatastore:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Migration
    # -------------------------------------------------------------------------

    async def migrate(self) -> None:
        """Create every table that does not exist yet. Safe to call repeatedly."""
        await self._migrate_if_needed()

    async def _migrate_if_needed(self) -> None:
        await self._database()
        if self._migrated:
            return

        # Concurrent first calls wait here until every table exists
        async with self._migrate_lock:
            if self._migrated:
                return
            tables = self.tables
            for table in tables.values():
                logger.debug("Creating table %s if missing", table.name)
                await table.create_schema()
            self._migrated = True

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def insert(
        self, table: str | Mapping[str, Any], records: Any = None, **kwargs: Any
    ) -> dict[str, Any]:
        """Insert one or more records.

        Forms:
            insert("people", {"name": "foo"})
            insert("people", [{"name": "foo"}, {"name": "bar"}])
            insert({"table": "people", "records": [...], "return_ids": False})

        Returns:
            ``{"count": n, "ids": [...]}`` for tables with an auto-increment
            column, ``{"count": n}`` otherwise.
        """
        opts = insert_options(table, records, **kwargs)
        target = self.table(opts.table)
        await self._migrate_if_needed()
        return await target.insert(opts.records, return_ids=opts.return_ids)

    async def select(
        self,
        table: str | Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> list[Any]:
        """Select records, optionally filtered by ``where`` criteria.

        Forms:
            select("people")
            select("people", {"where": {"name": "foo"}})
            select("people", where={"name": {"like": "f%"}}, as_models=True)
            select({"table": "people", "where": {...}})
        """
        opts = select_options(table, options, **kwargs)
        target = self.table(opts.table)
        await self._migrate_if_needed()
        rows = await target.select(opts.where)
        if opts.as_models:
            model = target.record_model
            return [model.model_validate(row) for row in rows]
        return rows

    async def count(
        self,
        table: str | Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> int:
        """Count records matching optional ``where`` criteria."""
        opts = count_options(table, options, **kwargs)
        target = self.table(opts.table)
        await self._migrate_if_needed()
        return await target.count(opts.where)

    async def update(
        self,
        table: str | Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, int]:
        """Update records. Without ``where`` every row is updated.

        Forms:
            update("people", {"set": {"name": "baz"}, "where": {"id": 1}})
            update("people", set={"name": "baz"})
            update({"table": "people", "set": {...}, "where": {...}})
        """
        opts = update_options(table, options, **kwargs)
        target = self.table(opts.table)
        await self._migrate_if_needed()
        return {"count": await target.update(opts.values, opts.where)}

    async def delete(
        self,
        table: str | Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, int]:
        """Delete records. Requires exactly one of ``all=True`` or ``where``.

        Forms:
            delete("people", {"all": True})
            delete("people", where={"name": "foo"})
            delete({"table": "people", "where": {...}})
        """
        opts = delete_options(table, options, **kwargs)
        target = self.table(opts.table)
        await self._migrate_if_needed()
        return {"count": await target.delete(None if opts.all else opts.where)}


__all__ = ["SqliteDatastore"]
