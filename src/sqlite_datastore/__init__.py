# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""sqlite-datastore: typed async data access over embedded SQLite."""

from .config import DatastoreConfig, config_from_env
from .datastore import SqliteDatastore
from .errors import (
    DatastoreClosedError,
    DatastoreError,
    DeleteError,
    InsertError,
    InvalidIdentifierError,
    InvalidSchemaError,
    InvalidUUIDError,
    NoSuchTableError,
    SerializationError,
    SqlSyntaxError,
    UniqueConstraintViolationError,
    UnknownDatabaseError,
    UpdateError,
)
from .sql import CustomType, register_custom_type, unregister_custom_type

__version__ = "0.1.0"

__all__ = [
    "CustomType",
    "DatastoreClosedError",
    "DatastoreConfig",
    "DatastoreError",
    "DeleteError",
    "InsertError",
    "InvalidIdentifierError",
    "InvalidSchemaError",
    "InvalidUUIDError",
    "NoSuchTableError",
    "SerializationError",
    "SqlSyntaxError",
    "SqliteDatastore",
    "UniqueConstraintViolationError",
    "UnknownDatabaseError",
    "UpdateError",
    "config_from_env",
    "register_custom_type",
    "unregister_custom_type",
]
