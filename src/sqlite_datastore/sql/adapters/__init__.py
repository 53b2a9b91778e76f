# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Engine adapters for the datastore.

This package isolates everything that talks to the embedded engine: opening
and closing the one database handle, preparing statements, executing them
with positional parameters and translating native errors.

Components:
    DbAdapter: Abstract base class defining the engine interface.
    PreparedStatement: Abstract statement with run/all/get/each/finalize.
    SqliteAdapter: SQLite adapter using aiosqlite.
    translate_error: Maps native SQLite errors to datastore errors.
    get_adapter: Factory function to create adapters from connection strings.

Example:
    Using an adapter directly::

        adapter = get_adapter(":memory:")
        await adapter.open()
        async with await adapter.prepare('INSERT INTO "t" ("name") VALUES (?)') as stmt:
            await stmt.run(["foo"])
            await stmt.run(["bar"])
        rows = await adapter.fetch_all('SELECT * FROM "t"')
        await adapter.close()
"""

from .base import DbAdapter, PreparedStatement, RunResult
from .sqlite import MEMORY, SqliteAdapter, translate_error

__all__ = [
    "ADAPTERS",
    "DbAdapter",
    "MEMORY",
    "PreparedStatement",
    "RunResult",
    "SqliteAdapter",
    "get_adapter",
    "translate_error",
]

# Adapter registry
ADAPTERS: dict[str, type[DbAdapter]] = {
    "sqlite": SqliteAdapter,
}


def get_adapter(connection_string: str | None, timeout: float = 5.0) -> DbAdapter:
    """Create a database adapter from a connection string.

    Connection string formats:
        - None, "" or ":memory:" → SQLite in-memory
        - "/path/to/db.sqlite", "data/db.sqlite" → SQLite file
        - "sqlite:/path/to/db.sqlite" → SQLite file
        - "sqlite::memory:" → SQLite in-memory

    Args:
        connection_string: Database connection string or plain file name.
        timeout: Seconds SQLite waits on a locked database.

    Returns:
        Configured DbAdapter instance.

    Raises:
        ValueError: If the string names an unsupported database type.
    """
    if not connection_string or connection_string == MEMORY:
        return SqliteAdapter(MEMORY, timeout=timeout)

    if connection_string.startswith("sqlite:"):
        return SqliteAdapter(connection_string[len("sqlite:"):], timeout=timeout)

    if "://" in connection_string:
        db_type = connection_string.split("://", 1)[0].lower()
        raise ValueError(f"Unknown database type: '{db_type}'. Supported: sqlite")

    return SqliteAdapter(connection_string, timeout=timeout)
