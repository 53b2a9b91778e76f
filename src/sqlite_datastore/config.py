# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration for SqliteDatastore.

Configuration via environment variables:
    SQLITE_DATASTORE_FILENAME: Database file (default: ":memory:")
    SQLITE_DATASTORE_TIMEOUT: Seconds to wait on a locked database (default: 5)

Usage:
    # From environment:
    datastore = SqliteDatastore.from_config(SCHEMA, config_from_env())

    # Explicit configuration:
    config = DatastoreConfig(filename="/data/app.db")
    datastore = SqliteDatastore.from_config(SCHEMA, config)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .sql.adapters import MEMORY


@dataclass
class DatastoreConfig:
    """Settings for opening the database handle.

    Attributes:
        filename: SQLite file path, ``sqlite:<path>`` string or ":memory:".
        timeout: Seconds SQLite waits for a lock before failing.
    """

    filename: str = MEMORY
    timeout: float = 5.0


def config_from_env() -> DatastoreConfig:
    """Build DatastoreConfig from SQLITE_DATASTORE_* environment variables."""
    return DatastoreConfig(
        filename=os.environ.get("SQLITE_DATASTORE_FILENAME", MEMORY),
        timeout=float(os.environ.get("SQLITE_DATASTORE_TIMEOUT", "5")),
    )


__all__ = ["DatastoreConfig", "config_from_env"]
