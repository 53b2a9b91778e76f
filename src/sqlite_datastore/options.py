# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Canonical option shapes for datastore operations.

Every operation accepts a positional table name with shorthand arguments or
a single options mapping carrying ``table``. Both forms collapse here into
one dataclass per operation, so the datastore only ever sees one shape.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from .errors import DeleteError, UpdateError


@dataclass(frozen=True)
class InsertOptions:
    table: str
    records: list[Mapping[str, Any] | BaseModel]
    return_ids: bool = True


@dataclass(frozen=True)
class SelectOptions:
    table: str
    where: Mapping[str, Any] | None = None
    as_models: bool = False


@dataclass(frozen=True)
class CountOptions:
    table: str
    where: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class UpdateOptions:
    table: str
    values: Mapping[str, Any]
    where: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class DeleteOptions:
    table: str
    all: bool = False
    where: Mapping[str, Any] | None = None


def _collect(
    operation: str,
    table: str | Mapping[str, Any],
    options: Mapping[str, Any] | None,
    kwargs: dict[str, Any],
    allowed: frozenset[str],
) -> tuple[str, dict[str, Any]]:
    """Merge the calling forms into (table_name, options)."""
    if isinstance(table, Mapping):
        if options is not None:
            raise TypeError(f"{operation}() takes an options mapping or a table name, not both")
        merged = dict(table)
        name = merged.pop("table", None)
    else:
        merged = dict(options or {})
        name = table
    merged.update(kwargs)

    if not isinstance(name, str) or not name:
        raise TypeError(f"{operation}() requires a table name")

    unknown = sorted(set(merged) - allowed)
    if unknown:
        raise TypeError(f"{operation}() got unexpected option(s): {', '.join(unknown)}")
    return name, merged


def insert_options(
    table: str | Mapping[str, Any], records: Any = None, **kwargs: Any
) -> InsertOptions:
    """insert(table, record | records) or insert({"table", "records", "return_ids"})."""
    if isinstance(table, Mapping):
        if records is not None:
            raise TypeError("insert() takes an options mapping or a table name, not both")
        name, opts = _collect("insert", table, None, kwargs, frozenset({"records", "return_ids"}))
    else:
        name, opts = _collect("insert", table, None, kwargs, frozenset({"return_ids"}))
        opts["records"] = records

    raw = opts.get("records")
    if isinstance(raw, (Mapping, BaseModel)):
        rows = [raw]
    elif isinstance(raw, (list, tuple)):
        rows = list(raw)
    else:
        raise TypeError("insert() requires a record or a list of records")
    return InsertOptions(name, rows, bool(opts.get("return_ids", True)))


def select_options(
    table: str | Mapping[str, Any], options: Mapping[str, Any] | None = None, **kwargs: Any
) -> SelectOptions:
    name, opts = _collect("select", table, options, kwargs, frozenset({"where", "as_models"}))
    return SelectOptions(name, opts.get("where"), bool(opts.get("as_models", False)))


def count_options(
    table: str | Mapping[str, Any], options: Mapping[str, Any] | None = None, **kwargs: Any
) -> CountOptions:
    name, opts = _collect("count", table, options, kwargs, frozenset({"where"}))
    return CountOptions(name, opts.get("where"))


def update_options(
    table: str | Mapping[str, Any], options: Mapping[str, Any] | None = None, **kwargs: Any
) -> UpdateOptions:
    name, opts = _collect("update", table, options, kwargs, frozenset({"set", "where"}))
    values = opts.get("set")
    if not isinstance(values, Mapping):
        raise UpdateError(f"update() on table '{name}' requires a 'set' mapping")
    return UpdateOptions(name, values, opts.get("where"))


def delete_options(
    table: str | Mapping[str, Any], options: Mapping[str, Any] | None = None, **kwargs: Any
) -> DeleteOptions:
    """Require exactly one of all=True or where; there is no implicit full delete."""
    name, opts = _collect("delete", table, options, kwargs, frozenset({"all", "where"}))
    delete_all = opts.get("all", False) is True
    where = opts.get("where")

    if delete_all and where is not None:
        raise DeleteError(f"delete() on table '{name}' accepts all=True or where, not both")
    if not delete_all and where is None:
        raise DeleteError(f"delete() on table '{name}' requires either all=True or where")
    return DeleteOptions(name, delete_all, where)


__all__ = [
    "CountOptions",
    "DeleteOptions",
    "InsertOptions",
    "SelectOptions",
    "UpdateOptions",
    "count_options",
    "delete_options",
    "insert_options",
    "select_options",
    "update_options",
]
