# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Registry of custom column types layered on native SQLite types.

A custom type is a plain record of metadata and hooks rather than a
subclass: the resolver copies its native type, nullability, uniqueness,
hooks and parser onto every column declared with it.

Built-in types:
    uuid: TEXT identifier, generated on insert when absent, validated when supplied.
    insert_timestamp: TEXT ISO 8601 time stamped on insert, read back as datetime.
    update_timestamp: like insert_timestamp, re-stamped on every update.

Hook signature:
    hook(column, values) -> None, mutating ``values`` in place. Hooks may
    fill in a value, replace it with its storage form, or raise.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ..errors import InsertError, InvalidSchemaError, InvalidUUIDError, UpdateError
from .column import NATIVE_TYPES

if TYPE_CHECKING:
    from .column import Column, Hook


@dataclass(frozen=True)
class CustomType:
    """A named behavior bundle for columns.

    Attributes:
        name: Type name used in column declarations.
        native_type: Underlying storage type.
        python_type: Logical Python type exposed by derived models.
        nullable: Default nullability (declarations may override).
        unique: Default uniqueness (declarations may override).
        before_insert: Hook applied to the insert working copy.
        before_update: Hook applied to the update working map.
        parse: Applied to raw values on read.
    """

    name: str
    native_type: str
    python_type: Any = Any
    nullable: bool = False
    unique: bool = False
    before_insert: Hook | None = None
    before_update: Hook | None = None
    parse: Callable[[Any], Any] | None = None


_REGISTRY: dict[str, CustomType] = {}


def register_custom_type(custom_type: CustomType, replace: bool = False) -> CustomType:
    """Add a custom type to the process-wide registry.

    Args:
        custom_type: The type to register.
        replace: Allow replacing an existing registration with the same name.

    Returns:
        The registered type.

    Raises:
        InvalidSchemaError: If the registration is not valid.
    """
    name = custom_type.name
    if not name or not isinstance(name, str):
        raise InvalidSchemaError("Custom type name must be a non-empty string")
    if name in NATIVE_TYPES:
        raise InvalidSchemaError(f"Custom type '{name}' would shadow a native type")
    if name in _REGISTRY and not replace:
        raise InvalidSchemaError(f"Custom type '{name}' is already registered")
    if custom_type.native_type not in NATIVE_TYPES:
        raise InvalidSchemaError(
            f"Custom type '{name}' has unknown native type '{custom_type.native_type}'"
        )
    for label in ("before_insert", "before_update", "parse"):
        fn = getattr(custom_type, label)
        if fn is not None and not callable(fn):
            raise InvalidSchemaError(f"Custom type '{name}': {label} must be callable")

    _REGISTRY[name] = custom_type
    return custom_type


def unregister_custom_type(name: str) -> None:
    """Remove a custom type. Built-ins can be removed too."""
    _REGISTRY.pop(name, None)


def get_custom_type(name: str) -> CustomType | None:
    """Return the registered type for name, or None."""
    return _REGISTRY.get(name)


def custom_type_names() -> list[str]:
    return sorted(_REGISTRY)


# -----------------------------------------------------------------------------
# uuid
# -----------------------------------------------------------------------------

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def _checked_uuid(value: Any) -> str:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, str) and UUID_PATTERN.match(value):
        return value
    raise InvalidUUIDError(value)


def _uuid_before_insert(column: Column, record: dict[str, Any]) -> None:
    value = record.get(column.name)
    if value is None:
        record[column.name] = str(uuid.uuid4())
    else:
        record[column.name] = _checked_uuid(value)


def _uuid_before_update(column: Column, values: dict[str, Any]) -> None:
    if column.name in values:
        values[column.name] = _checked_uuid(values[column.name])


# -----------------------------------------------------------------------------
# Timestamps
# -----------------------------------------------------------------------------


def format_timestamp(moment: datetime) -> str:
    """Format as ISO 8601 UTC with milliseconds, e.g. 2025-02-17T12:13:14.000Z."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp back into an aware datetime."""
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def now_timestamp() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def _reject_on_insert(column: Column, record: dict[str, Any]) -> None:
    if record.get(column.name) is not None:
        raise InsertError(
            f"Column '{column.name}' on table '{column.table}' is set automatically "
            "and cannot be specified on insert"
        )


def _reject_on_update(column: Column, values: dict[str, Any]) -> None:
    if column.name in values:
        raise UpdateError(
            f"Column '{column.name}' on table '{column.table}' is set automatically "
            "and cannot be updated"
        )


def _timestamp_before_insert(column: Column, record: dict[str, Any]) -> None:
    _reject_on_insert(column, record)
    record[column.name] = now_timestamp()


def _update_timestamp_before_update(column: Column, values: dict[str, Any]) -> None:
    _reject_on_update(column, values)
    values[column.name] = now_timestamp()


register_custom_type(
    CustomType(
        name="uuid",
        native_type="TEXT",
        python_type=str,
        before_insert=_uuid_before_insert,
        before_update=_uuid_before_update,
    )
)

register_custom_type(
    CustomType(
        name="insert_timestamp",
        native_type="TEXT",
        python_type=datetime,
        before_insert=_timestamp_before_insert,
        before_update=_reject_on_update,
        parse=parse_timestamp,
    )
)

register_custom_type(
    CustomType(
        name="update_timestamp",
        native_type="TEXT",
        python_type=datetime,
        before_insert=_timestamp_before_insert,
        before_update=_update_timestamp_before_update,
        parse=parse_timestamp,
    )
)


__all__ = [
    "CustomType",
    "UUID_PATTERN",
    "custom_type_names",
    "format_timestamp",
    "get_custom_type",
    "now_timestamp",
    "parse_timestamp",
    "register_custom_type",
    "unregister_custom_type",
]
