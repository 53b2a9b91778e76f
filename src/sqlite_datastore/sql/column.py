# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Column descriptors and the resolver turning raw declarations into them.

A raw column declaration is one of:

- a native type name: ``"TEXT"``, ``"BLOB"``, ``"INTEGER"``, ``"REAL"``
- a registered custom type name: ``"uuid"``, ``"insert_timestamp"``, ...
- a mapping with ``type`` plus optional ``nullable``, ``unique``,
  ``default_value``, ``parse``, ``serialize`` and ``auto_increment``

resolve_column() normalizes all three into a frozen Column. Resolution is
pure: resolving the same declaration twice yields equal columns, so the
synthetic hooks attached to native columns are module-level functions that
read their configuration from the column itself.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from ..errors import InvalidSchemaError, SerializationError

NATIVE_TYPES: tuple[str, ...] = ("TEXT", "BLOB", "INTEGER", "REAL")

PYTHON_TYPES: dict[str, type] = {
    "TEXT": str,
    "BLOB": bytes,
    "INTEGER": int,
    "REAL": float,
}

# Values sqlite3 can bind without adapters
STORABLE_TYPES = (str, bytes, bytearray, memoryview, int, float)

Hook = Callable[["Column", dict[str, Any]], None]

_DECLARATION_KEYS = frozenset(
    {"type", "nullable", "unique", "default_value", "parse", "serialize", "auto_increment"}
)
_CUSTOM_OVERRIDE_KEYS = frozenset({"type", "nullable", "unique"})


def quote_name(name: str) -> str:
    """Return a double-quoted SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


@dataclass(frozen=True)
class Column:
    """Canonical, resolved description of one column.

    Attributes:
        name: Column name, unique within its table.
        type_: Native storage type (TEXT, BLOB, INTEGER, REAL).
        table: Name of the owning table (used in error messages).
        nullable: Whether NULL is accepted.
        unique: Whether values must be unique.
        auto_increment: Engine-generated INTEGER primary key.
        default_value: Value (or zero-argument callable) used when absent on insert.
        parse: Applied to raw values read from the database.
        serialize: Applied to values before they are written.
        custom_type: Registered custom type name, None for native columns.
        python_type: Logical Python type, used for derived models.
        before_insert: Hook run on the insert working copy.
        before_update: Hook run on the update working map.
    """

    name: str
    type_: str
    table: str = ""
    nullable: bool = False
    unique: bool = False
    auto_increment: bool = False
    default_value: Any = None
    parse: Callable[[Any], Any] | None = None
    serialize: Callable[[Any], Any] | None = None
    custom_type: str | None = None
    python_type: Any = Any
    before_insert: Hook | None = None
    before_update: Hook | None = None

    @property
    def has_default(self) -> bool:
        return self.default_value is not None

    def default(self) -> Any:
        """Return the default value, calling it when it is a factory."""
        if callable(self.default_value):
            return self.default_value()
        return self.default_value

    def to_sql(self, primary_key: bool = False) -> str:
        """Return the column clause used inside CREATE TABLE."""
        parts = [quote_name(self.name), self.type_]
        if primary_key:
            parts.append("PRIMARY KEY")
        if self.auto_increment:
            parts.append("AUTOINCREMENT")
        if not self.nullable:
            parts.append("NOT NULL")
        # SQLite accepts UNIQUE next to AUTOINCREMENT, and we always emit it there
        if self.unique or self.auto_increment:
            parts.append("UNIQUE")
        return " ".join(parts)

    def serialize_value(self, value: Any) -> Any:
        """Run the column serializer, wrapping failures in SerializationError."""
        if self.serialize is None or value is None:
            return value
        try:
            result = self.serialize(value)
        except Exception as exc:
            raise SerializationError(self.table, self.name, value, str(exc)) from exc
        if result is not None and not isinstance(result, STORABLE_TYPES):
            raise SerializationError(
                self.table,
                self.name,
                value,
                f"serializer returned unsupported type {type(result).__name__}",
            )
        return result


# -----------------------------------------------------------------------------
# Synthetic hooks for native columns
# -----------------------------------------------------------------------------


def apply_default_and_serialize(column: Column, record: dict[str, Any]) -> None:
    """Before-insert hook: fill the default when absent, then serialize."""
    value = record.get(column.name)
    if value is None and column.has_default:
        value = column.default()
    record[column.name] = column.serialize_value(value)


def serialize_supplied(column: Column, values: dict[str, Any]) -> None:
    """Before-update hook: serialize the value only when the caller supplied one."""
    if column.name in values:
        values[column.name] = column.serialize_value(values[column.name])


# -----------------------------------------------------------------------------
# Resolver
# -----------------------------------------------------------------------------


def resolve_column(table: str, name: str, declaration: Any) -> Column:
    """Resolve a raw column declaration into a Column.

    Args:
        table: Owning table name.
        name: Column name.
        declaration: Type name string or declaration mapping.

    Returns:
        The resolved Column.

    Raises:
        InvalidSchemaError: If the type is unknown or the declaration is malformed.
    """
    from .custom_types import get_custom_type

    if isinstance(declaration, str):
        declaration = {"type": declaration}
    elif not isinstance(declaration, Mapping):
        raise InvalidSchemaError(
            f"Column '{name}' in table '{table}' must be a type name or a mapping, "
            f"got {type(declaration).__name__}"
        )

    unknown = sorted(set(declaration) - _DECLARATION_KEYS)
    if unknown:
        raise InvalidSchemaError(
            f"Column '{name}' in table '{table}' has unknown option(s): {', '.join(unknown)}"
        )

    type_name = declaration.get("type")
    if type_name in NATIVE_TYPES:
        return _resolve_native(table, name, type_name, declaration)

    custom = get_custom_type(type_name) if isinstance(type_name, str) else None
    if custom is None:
        raise InvalidSchemaError(
            f"Unknown type '{type_name}' for column '{name}' in table '{table}'"
        )

    extra = sorted(set(declaration) - _CUSTOM_OVERRIDE_KEYS)
    if extra:
        raise InvalidSchemaError(
            f"Column '{name}' in table '{table}' uses custom type '{type_name}', "
            f"which only accepts nullable/unique overrides (got {', '.join(extra)})"
        )

    return Column(
        name=name,
        type_=custom.native_type,
        table=table,
        nullable=bool(declaration.get("nullable", custom.nullable)),
        unique=bool(declaration.get("unique", custom.unique)),
        parse=custom.parse,
        custom_type=custom.name,
        python_type=custom.python_type,
        before_insert=custom.before_insert,
        before_update=custom.before_update,
    )


def _resolve_native(
    table: str, name: str, type_name: str, declaration: Mapping[str, Any]
) -> Column:
    parse = declaration.get("parse")
    serialize = declaration.get("serialize")
    for label, fn in (("parse", parse), ("serialize", serialize)):
        if fn is not None and not callable(fn):
            raise InvalidSchemaError(
                f"Column '{name}' in table '{table}': {label} must be callable"
            )

    auto_increment = bool(declaration.get("auto_increment", False))
    if auto_increment and type_name != "INTEGER":
        raise InvalidSchemaError(
            f"Column '{name}' in table '{table}' is auto-incrementing but has type "
            f"{type_name}; only INTEGER columns can auto-increment."
        )

    default_value = declaration.get("default_value")
    has_insert_hook = default_value is not None or serialize is not None

    return Column(
        name=name,
        type_=type_name,
        table=table,
        nullable=bool(declaration.get("nullable", False)),
        unique=bool(declaration.get("unique", False)),
        auto_increment=auto_increment,
        default_value=default_value,
        parse=parse,
        serialize=serialize,
        python_type=PYTHON_TYPES[type_name],
        before_insert=apply_default_and_serialize if has_insert_hook else None,
        before_update=serialize_supplied if serialize is not None else None,
    )


class Columns:
    """Ordered, read-only collection of a table's resolved columns.

    Hook lists are built once here, in declaration order, because later
    hooks may read values written by earlier ones.
    """

    def __init__(self, columns: Iterable[Column] = ()):
        self._columns: dict[str, Column] = {}
        for col in columns:
            if col.name in self._columns:
                raise InvalidSchemaError(
                    f"Column '{col.name}' declared twice in table '{col.table}'"
                )
            self._columns[col.name] = col

        self.insert_hooks: tuple[tuple[Column, Hook], ...] = tuple(
            (c, c.before_insert) for c in self._columns.values() if c.before_insert
        )
        self.update_hooks: tuple[tuple[Column, Hook], ...] = tuple(
            (c, c.before_update) for c in self._columns.values() if c.before_update
        )
        self.parsers: tuple[tuple[str, Callable[[Any], Any]], ...] = tuple(
            (c.name, c.parse) for c in self._columns.values() if c.parse
        )

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __contains__(self, name: object) -> bool:
        return name in self._columns

    def __getitem__(self, name: str) -> Column:
        return self._columns[name]

    def get(self, name: str) -> Column | None:
        return self._columns.get(name)

    def names(self) -> list[str]:
        return list(self._columns)

    def values(self) -> list[Column]:
        return list(self._columns.values())

    def auto_increment_columns(self) -> list[str]:
        return [c.name for c in self._columns.values() if c.auto_increment]


__all__ = [
    "Column",
    "Columns",
    "Hook",
    "NATIVE_TYPES",
    "PYTHON_TYPES",
    "apply_default_and_serialize",
    "quote_name",
    "resolve_column",
    "serialize_supplied",
]
