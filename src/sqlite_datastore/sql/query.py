# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Criteria compiler and async query runner for select/count/update/delete."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .adapters.base import DbAdapter
    from .column import Columns
    from .table import Table


class WhereBuilder:
    """Build WHERE clauses from per-column criteria.

    Each criteria entry compiles by the kind of its value:
        None             → ("col" IS NULL)
        list / tuple     → ("col" IN (?, ?, ...))
        operator mapping → one fragment per operator key, e.g.
                           {"gte": 18, "lt": 65} → ("col" >= ?) AND ("col" < ?)
        any other value  → ("col" = ?)

    Entries are joined with AND in the criteria's order. Parameters are
    positional and returned in the order their placeholders are emitted,
    so callers can append them after any parameters they already queued.

    When built with the table's columns, criteria keys must name columns
    and comparison operands go through the column serializer, so they
    match the stored form. LIKE patterns are passed as given.
    """

    OPERATORS: dict[str, str] = {
        "eq": "=",
        "neq": "!=",
        "gt": ">",
        "gte": ">=",
        "lt": "<",
        "lte": "<=",
        "like": "LIKE",
    }

    def __init__(self, adapter: DbAdapter, columns: Columns | None = None):
        self.adapter = adapter
        self.columns = columns

    def build(self, criteria: Mapping[str, Any] | None) -> tuple[str, list[Any]]:
        """Compile criteria into (where_sql, params).

        Returns ``("", [])`` for empty criteria; callers then omit WHERE.
        """
        if not criteria:
            return "", []

        parts: list[str] = []
        params: list[Any] = []
        for column, value in criteria.items():
            parts.extend(self._condition_to_sql(column, value, params))
        return " AND ".join(parts), params

    def _condition_to_sql(self, column: str, value: Any, params: list[Any]) -> list[str]:
        """Convert one criteria entry into SQL fragments, appending params."""
        if self.columns is not None and column not in self.columns:
            raise ValueError(
                f"Column '{column}' in criteria is not a column of this table. "
                f"Columns: {', '.join(self.columns)}"
            )
        name = self.adapter._sql_name(column)

        if value is None:
            return [f"({name} IS NULL)"]

        # A list is membership even when it also looks like something else
        if isinstance(value, (list, tuple)):
            params.extend(self._operand(column, item) for item in value)
            return [f"({name} IN ({self.adapter._placeholders(len(value))}))"]

        if isinstance(value, Mapping):
            unknown = [k for k in value if k not in self.OPERATORS]
            if unknown:
                raise ValueError(
                    f"Operator(s) {', '.join(map(repr, unknown))} not supported for "
                    f"column '{column}'. Supported: {', '.join(self.OPERATORS)}"
                )
            fragments = []
            for key, operand in value.items():
                if operand is None and key in ("eq", "neq"):
                    fragments.append(f"({name} IS {'NOT ' if key == 'neq' else ''}NULL)")
                    continue
                fragments.append(f"({name} {self.OPERATORS[key]} {self.adapter.placeholder})")
                params.append(operand if key == "like" else self._operand(column, operand))
            return fragments

        params.append(self._operand(column, value))
        return [f"({name} = {self.adapter.placeholder})"]

    def _operand(self, column: str, value: Any) -> Any:
        col = self.columns.get(column) if self.columns is not None else None
        if col is None:
            return value
        return col.serialize_value(value)


class Query:
    """Async query over one table, filtered by criteria.

    Usage:
        rows = await table.query(where={"name": ["foo", "bar"]}).fetch()
        count = await table.query(where={"age": {"gte": 18}}).count()
        updated = await table.query(where={"name": "foo"}).update({"name": "baz"})
        deleted = await table.query(where={"name": "foo"}).delete()

    An empty or missing ``where`` matches every row.
    """

    def __init__(self, table: Table, where: Mapping[str, Any] | None = None):
        self.table = table
        self.where = where
        self._where_builder = WhereBuilder(table.adapter, table.columns)

    def _build_where(self) -> tuple[str, list[Any]]:
        return self._where_builder.build(self.where)

    def _with_where(self, sql: str, where_sql: str) -> str:
        return f"{sql} WHERE {where_sql}" if where_sql else sql

    async def fetch(self) -> list[dict[str, Any]]:
        """Execute SELECT and return parsed rows in table order."""
        where_sql, params = self._build_where()
        sql = self._with_where(f"SELECT * FROM {self.table.sql_name}", where_sql)

        rows = await self.table.adapter.fetch_all(sql, params)
        return [self.table.parse_row(row) for row in rows]

    async def count(self) -> int:
        """Return count of matching rows."""
        where_sql, params = self._build_where()
        sql = self._with_where(f'SELECT COUNT(*) AS "count" FROM {self.table.sql_name}', where_sql)

        row = await self.table.adapter.fetch_one(sql, params)
        return row["count"] if row else 0

    async def update(self, values: Mapping[str, Any]) -> int:
        """Update matching rows.

        Values pass through the table's before-update hooks first, which may
        add columns (update timestamps) or reject values.

        Returns:
            Number of updated rows.
        """
        values = self.table.trigger_on_updating(values)
        where_sql, where_params = self._build_where()

        adapter = self.table.adapter
        set_parts = [f"{adapter._sql_name(col)} = {adapter.placeholder}" for col in values]
        sql = self._with_where(
            f"UPDATE {self.table.sql_name} SET {', '.join(set_parts)}", where_sql
        )

        result = await adapter.run(sql, [*values.values(), *where_params])
        return result.rows_affected

    async def delete(self) -> int:
        """Delete matching rows, return number of deleted rows."""
        where_sql, params = self._build_where()
        sql = self._with_where(f"DELETE FROM {self.table.sql_name}", where_sql)

        result = await self.table.adapter.run(sql, params)
        return result.rows_affected


__all__ = ["Query", "WhereBuilder"]
