# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Table descriptor with Columns-based schema (async version).

A Table is resolved from a raw declaration::

    {
        "columns": {
            "id": {"type": "INTEGER", "auto_increment": True},
            "name": "TEXT",
            "birthdate": {"type": "TEXT", "nullable": True},
        },
        "primary_key": "id",
    }

and owns the SQL generation for its own DDL and INSERT statements plus the
before-insert / before-update hook stages. Selection, counting, updates and
deletes go through Query.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import cached_property
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from ..errors import InsertError, InvalidSchemaError, UpdateError
from .column import Column, Columns, quote_name, resolve_column
from .query import Query

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .adapters import DbAdapter

_TABLE_KEYS = frozenset({"columns", "primary_key"})


def resolve_primary_key(table: str, columns: Columns, declared: Any) -> list[str]:
    """Resolve the primary key column names of a table.

    Explicit str or list wins. Otherwise a column literally named ``id`` is
    the primary key. Otherwise the table has none.
    """
    if declared is None:
        return ["id"] if "id" in columns else []
    if isinstance(declared, str):
        names = [declared]
    elif isinstance(declared, (list, tuple)) and all(isinstance(n, str) for n in declared):
        names = list(dict.fromkeys(declared))
    else:
        raise InvalidSchemaError(
            f"Primary key of table '{table}' must be a column name or a list of names"
        )
    for name in names:
        if name not in columns:
            raise InvalidSchemaError(
                f"Primary key column '{name}' is not a column of table '{table}'"
            )
    return names


class Table:
    """Resolved table: name, ordered columns and primary key.

    Attributes:
        name: Table name in database.
        columns: Resolved Columns in declaration order.
        pkey: Primary key column names (empty when the table has none).
        adapter: Engine adapter used by the async operations.
    """

    def __init__(
        self,
        name: str,
        columns: Columns,
        pkey: list[str] | None = None,
        adapter: DbAdapter | None = None,
    ) -> None:
        self.name = name
        self.columns = columns
        self.pkey = list(pkey or [])
        self._adapter = adapter
        self._validate_auto_increment()

    @classmethod
    def from_declaration(
        cls, name: str, declaration: Any, adapter: DbAdapter | None = None
    ) -> Table:
        """Resolve a raw table declaration.

        Raises:
            InvalidSchemaError: On unknown types, bad primary keys or
                auto-increment columns outside the primary key.
        """
        if not isinstance(declaration, Mapping):
            raise InvalidSchemaError(f"Table '{name}' must be declared as a mapping")
        unknown = sorted(set(declaration) - _TABLE_KEYS)
        if unknown:
            raise InvalidSchemaError(
                f"Table '{name}' has unknown option(s): {', '.join(unknown)}"
            )
        raw_columns = declaration.get("columns")
        if not isinstance(raw_columns, Mapping) or not raw_columns:
            raise InvalidSchemaError(f"Table '{name}' must declare at least one column")

        columns = Columns(
            resolve_column(name, col_name, col_decl) for col_name, col_decl in raw_columns.items()
        )
        pkey = resolve_primary_key(name, columns, declaration.get("primary_key"))
        return cls(name, columns, pkey, adapter)

    def _validate_auto_increment(self) -> None:
        for col in self.columns.values():
            if not col.auto_increment:
                continue
            if col.name not in self.pkey:
                raise InvalidSchemaError(
                    f"Column '{col.name}' in table '{self.name}' is marked as "
                    "auto-incrementing but is not part of the table's primary key."
                )
            if len(self.pkey) > 1:
                raise InvalidSchemaError(
                    f"Column '{col.name}' in table '{self.name}' is auto-incrementing "
                    "and must be the table's only primary key column."
                )

    @property
    def adapter(self) -> DbAdapter:
        if self._adapter is None:
            raise RuntimeError(f"Table '{self.name}' is not bound to a database adapter")
        return self._adapter

    @property
    def sql_name(self) -> str:
        return quote_name(self.name)

    @property
    def has_auto_increment(self) -> bool:
        return bool(self.columns.auto_increment_columns())

    # -------------------------------------------------------------------------
    # Derived models
    # -------------------------------------------------------------------------

    @cached_property
    def record_model(self) -> type[BaseModel]:
        """Pydantic model of a stored record (the shape select returns)."""
        from ..models import build_record_model

        return build_record_model(self)

    @cached_property
    def insert_model(self) -> type[BaseModel]:
        """Pydantic model of a record accepted by insert."""
        from ..models import build_insert_model

        return build_insert_model(self)

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def is_engine_assigned(self, col: Column) -> bool:
        """True for columns SQLite fills itself when NULL is inserted."""
        if col.auto_increment:
            return True
        return self.pkey == [col.name] and col.type_ == "INTEGER"

    def create_table_sql(self) -> str:
        """Generate CREATE TABLE IF NOT EXISTS statement."""
        single_pk = self.pkey[0] if len(self.pkey) == 1 else None

        col_defs = [col.to_sql(primary_key=col.name == single_pk) for col in self.columns.values()]
        if len(self.pkey) > 1:
            col_defs.append(f"PRIMARY KEY ({', '.join(quote_name(n) for n in self.pkey)})")

        return f"CREATE TABLE IF NOT EXISTS {self.sql_name} (\n    " + ",\n    ".join(col_defs) + "\n)"

    async def create_schema(self) -> None:
        """Create table if not exists."""
        await self.adapter.run(self.create_table_sql())

    # -------------------------------------------------------------------------
    # Hook stages
    # -------------------------------------------------------------------------

    def insert_required_columns(self) -> list[str]:
        """Columns present in every INSERT regardless of the input records."""
        return [
            col.name
            for col in self.columns.values()
            if (not col.nullable or col.before_insert is not None)
            and not self.is_engine_assigned(col)
        ]

    def insert_columns(self, records: Iterable[Mapping[str, Any]]) -> list[str]:
        """Column list shared by every record of an insert batch, in schema order."""
        wanted = set(self.insert_required_columns())
        for record in records:
            wanted.update(record)
        return [name for name in self.columns if name in wanted]

    def check_insert_record(self, record: Mapping[str, Any]) -> None:
        for name in record:
            if name not in self.columns:
                raise InsertError(f"Column '{name}' not found on table '{self.name}'")

    def trigger_on_inserting(
        self, record: Mapping[str, Any], column_names: list[str]
    ) -> dict[str, Any]:
        """Build the insert working copy and run before-insert hooks on it."""
        working = {name: record.get(name) for name in column_names}
        for col, hook in self.columns.insert_hooks:
            if col.name in working:
                hook(col, working)
        return working

    def trigger_on_updating(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Validate the SET map and run every before-update hook of the table.

        Hooks may serialize, validate, reject or inject values.

        Raises:
            UpdateError: On unknown columns, hook rejections or an empty result.
        """
        for name in values:
            if name not in self.columns:
                raise UpdateError(f"Column '{name}' not found on table '{self.name}'")

        working = dict(values)
        for col, hook in self.columns.update_hooks:
            hook(col, working)

        if not working:
            raise UpdateError(f"Nothing to update on table '{self.name}'")
        return working

    def parse_row(self, row: dict[str, Any]) -> dict[str, Any]:
        """Apply column parsers to a row read from the database."""
        for name, parse in self.columns.parsers:
            if name in row:
                row[name] = parse(row[name])
        return row

    # -------------------------------------------------------------------------
    # CRUD Operations
    # -------------------------------------------------------------------------

    async def insert(
        self, records: Iterable[Mapping[str, Any] | BaseModel], return_ids: bool = True
    ) -> dict[str, Any]:
        """Insert one prepared statement execution per record.

        Records may use different column subsets. Rows inserted before a
        failing record stay committed: no transaction wraps the batch.

        Returns:
            ``{"count": n, "ids": [...]}`` when the table has an
            auto-increment column, ``{"count": n}`` otherwise.
        """
        rows = [self._record_dict(record) for record in records]
        for row in rows:
            self.check_insert_record(row)

        track_ids = return_ids and self.has_auto_increment
        count = 0
        ids: list[int] = []

        if rows:
            column_names = self.insert_columns(rows)
            if column_names:
                col_list = ", ".join(quote_name(c) for c in column_names)
                placeholders = self.adapter._placeholders(len(column_names))
                sql = f"INSERT INTO {self.sql_name} ({col_list}) VALUES ({placeholders})"
            else:
                sql = f"INSERT INTO {self.sql_name} DEFAULT VALUES"

            async with await self.adapter.prepare(sql) as statement:
                for row in rows:
                    working = self.trigger_on_inserting(row, column_names)
                    result = await statement.run([working[c] for c in column_names])
                    count += 1
                    if track_ids and result.last_insert_id and result.last_insert_id > 0:
                        ids.append(result.last_insert_id)

        if track_ids:
            return {"count": count, "ids": ids}
        return {"count": count}

    def query(self, where: Mapping[str, Any] | None = None) -> Query:
        """Create a Query for this table."""
        return Query(self, where=where)

    async def select(self, where: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Select rows matching criteria, parsed through column parsers."""
        return await self.query(where).fetch()

    async def count(self, where: Mapping[str, Any] | None = None) -> int:
        """Count rows matching criteria."""
        return await self.query(where).count()

    async def update(
        self, values: Mapping[str, Any], where: Mapping[str, Any] | None = None
    ) -> int:
        """Update rows matching criteria, return affected row count."""
        return await self.query(where).update(values)

    async def delete(self, where: Mapping[str, Any] | None = None) -> int:
        """Delete rows matching criteria (all rows when empty), return count."""
        return await self.query(where).delete()

    def _record_dict(self, record: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
        if isinstance(record, BaseModel):
            return record.model_dump(exclude_unset=True)
        if isinstance(record, Mapping):
            return dict(record)
        raise InsertError(
            f"Records for table '{self.name}' must be mappings or models, "
            f"got {type(record).__name__}"
        )


__all__ = ["Table", "resolve_primary_key"]
