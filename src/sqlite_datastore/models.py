# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic record models derived from resolved tables.

Each table gets two models, built once and cached on the Table:

- ``<Name>Record``: one field per column, the shape returned by select.
  Nullable columns are Optional. Columns with a custom parser are typed
  ``Any`` because the parser decides the logical type.
- ``<Name>InsertRecord``: the shape accepted by insert. Auto-increment
  columns are left out. Nullable, defaulted, custom-typed and primary key
  columns are optional. Unknown fields are rejected.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, create_model

if TYPE_CHECKING:
    from .sql.column import Column
    from .sql.table import Table


def model_name(table_name: str) -> str:
    """CamelCase a table name: "event_log" → "EventLog"."""
    parts = [p for p in re.split(r"[^0-9A-Za-z]+", table_name) if p]
    name = "".join(p[:1].upper() + p[1:] for p in parts) or "Table"
    return f"T{name}" if name[0].isdigit() else name


def _record_annotation(col: Column) -> Any:
    if col.parse is not None and col.custom_type is None:
        annotation: Any = Any
    else:
        annotation = col.python_type
    return Optional[annotation] if col.nullable else annotation


def _insert_annotation(col: Column) -> Any:
    if col.serialize is not None:
        return Any
    return col.python_type


def build_record_model(table: Table) -> type[BaseModel]:
    """Create the Pydantic model of a stored record."""
    fields: dict[str, Any] = {}
    for col in table.columns.values():
        fields[col.name] = (_record_annotation(col), ...)
    return create_model(f"{model_name(table.name)}Record", **fields)


def build_insert_model(table: Table) -> type[BaseModel]:
    """Create the Pydantic model of an insertable record."""
    fields: dict[str, Any] = {}
    for col in table.columns.values():
        if col.auto_increment:
            continue
        annotation = _insert_annotation(col)
        optional = (
            col.nullable
            or col.has_default
            or (col.custom_type is not None and col.before_insert is not None)
            or col.name in table.pkey
        )
        if optional:
            fields[col.name] = (Optional[annotation], None)
        else:
            fields[col.name] = (annotation, ...)
    return create_model(
        f"{model_name(table.name)}InsertRecord",
        __config__=ConfigDict(extra="forbid"),
        **fields,
    )


__all__ = ["build_insert_model", "build_record_model", "model_name"]
