# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exception taxonomy for the datastore.

Two families live here:

- Validation errors raised directly by the pipelines (schema, insert,
  update, delete, identifiers, serialization).
- Engine errors translated from native SQLite failures by the adapter
  (missing table, syntax, unique constraint, unknown).
"""

from __future__ import annotations

from typing import Any


class DatastoreError(Exception):
    """Base class for every error raised by sqlite_datastore."""


class InvalidSchemaError(DatastoreError):
    """Raised when a schema or custom type registration is not valid."""


class InsertError(DatastoreError):
    """Raised when an insert references unknown columns or hook-owned values."""


class UpdateError(DatastoreError):
    """Raised when an update references unknown columns or hook-owned values."""


class DeleteError(DatastoreError):
    """Raised when a delete does not say exactly which records to remove."""


class InvalidIdentifierError(DatastoreError):
    """Raised when a supplied identifier does not have the expected format."""

    def __init__(self, value: Any, message: str | None = None):
        self.value = value
        super().__init__(message or f"Invalid identifier: {value!r}")


class InvalidUUIDError(InvalidIdentifierError):
    """Raised when a uuid column receives a value that is not a UUID."""

    def __init__(self, value: Any):
        super().__init__(value, f"Invalid UUID: {value!r}")


class SerializationError(DatastoreError):
    """Raised when a column serializer cannot produce a storable value."""

    def __init__(self, table: str, column: str, value: Any, reason: str | None = None):
        self.table = table
        self.column = column
        self.value = value
        msg = f"Cannot serialize value {value!r} for column '{column}' on table '{table}'"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class DatastoreClosedError(DatastoreError):
    """Raised when an operation is attempted after close()."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Datastore '{filename}' is closed")


# -----------------------------------------------------------------------------
# Errors translated from the engine
# -----------------------------------------------------------------------------


class NoSuchTableError(DatastoreError):
    """Raised when a statement targets a table that does not exist."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"No such table: {table}")


class SqlSyntaxError(DatastoreError):
    """Raised when the engine rejects generated SQL as malformed.

    The offending statement is kept on ``sql`` for diagnostics.
    """

    def __init__(self, sql: str, message: str):
        self.sql = sql
        super().__init__(f"{message} (SQL: {sql})")


class UniqueConstraintViolationError(DatastoreError):
    """Raised when a write violates a UNIQUE constraint."""

    def __init__(self, table: str, column: str):
        self.table = table
        self.column = column
        super().__init__(f"UNIQUE constraint violated: {table}.{column}")


class UnknownDatabaseError(DatastoreError):
    """Raised for native engine errors with no more specific mapping."""

    def __init__(self, message: str, code: int | None = None):
        self.code = code
        super().__init__(message)


__all__ = [
    "DatastoreClosedError",
    "DatastoreError",
    "DeleteError",
    "InsertError",
    "InvalidIdentifierError",
    "InvalidSchemaError",
    "InvalidUUIDError",
    "NoSuchTableError",
    "SerializationError",
    "SqlSyntaxError",
    "UniqueConstraintViolationError",
    "UnknownDatabaseError",
    "UpdateError",
]
