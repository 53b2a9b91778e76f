# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Async SQL layer: column resolution, DDL, criteria and the SQLite engine.

This package turns plain-data table declarations into resolved tables and
runs the insert, select, count, update and delete pipelines against one
aiosqlite connection.

Components:
    Column, Columns: Resolved column descriptors, built by resolve_column().
    CustomType: Named bundle of hooks and parser layered on a native type.
    Table: Resolved table owning its DDL, INSERT and hook stages.
    Query, WhereBuilder: Criteria compiler and select/count/update/delete.
    DbAdapter, SqliteAdapter: Engine interface and its aiosqlite adapter.

Connection model:
    The adapter owns one connection in autocommit mode. Every statement
    commits on its own; there are no implicit multi-statement transactions.

Example:
    Resolving and using a table directly::

        from sqlite_datastore.sql import Table, get_adapter

        adapter = get_adapter(":memory:")
        await adapter.open()
        people = Table.from_declaration(
            "people",
            {"columns": {"id": {"type": "INTEGER", "auto_increment": True}, "name": "TEXT"}},
            adapter,
        )
        await people.create_schema()
        await people.insert([{"name": "foo"}])
        rows = await people.select(where={"name": "foo"})
"""

from .adapters import MEMORY, DbAdapter, PreparedStatement, RunResult, SqliteAdapter, get_adapter
from .column import NATIVE_TYPES, Column, Columns, quote_name, resolve_column
from .custom_types import (
    CustomType,
    custom_type_names,
    get_custom_type,
    register_custom_type,
    unregister_custom_type,
)
from .query import Query, WhereBuilder
from .table import Table

__all__ = [
    # Adapters
    "DbAdapter",
    "MEMORY",
    "PreparedStatement",
    "RunResult",
    "SqliteAdapter",
    "get_adapter",
    # Columns
    "Column",
    "Columns",
    "NATIVE_TYPES",
    "quote_name",
    "resolve_column",
    # Custom types
    "CustomType",
    "custom_type_names",
    "get_custom_type",
    "register_custom_type",
    "unregister_custom_type",
    # Tables and queries
    "Query",
    "Table",
    "WhereBuilder",
]
