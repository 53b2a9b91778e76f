# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Shared fixtures for datastore tests.

Connection model:
- Datastores are in-memory unless a test passes a filename
- Every datastore created through the factory is closed after the test
- ``raw_connections`` collects the aiosqlite connections handed to
  on_database_ready, so tests can inspect the database behind the facade
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio

from sqlite_datastore import SqliteDatastore

PEOPLE_SCHEMA: dict[str, Any] = {
    "tables": {
        "people": {
            "columns": {
                "id": {"type": "INTEGER", "auto_increment": True},
                "name": "TEXT",
                "birthdate": {"type": "TEXT", "nullable": True},
            },
            "primary_key": "id",
        },
    },
}


@pytest.fixture
def people_schema() -> dict[str, Any]:
    """Return the people schema used across scenarios."""
    return PEOPLE_SCHEMA


@pytest.fixture
def raw_connections() -> list[Any]:
    """Connections captured from on_database_ready."""
    return []


@pytest_asyncio.fixture
async def make_datastore(
    raw_connections: list[Any],
) -> AsyncGenerator[Callable[..., SqliteDatastore], None]:
    """Factory creating datastores that are closed after the test."""
    created: list[SqliteDatastore] = []

    def factory(schema: dict[str, Any], filename: str | None = None, **kwargs: Any):
        kwargs.setdefault("on_database_ready", raw_connections.append)
        datastore = SqliteDatastore(schema, filename, **kwargs)
        created.append(datastore)
        return datastore

    yield factory

    for datastore in created:
        await datastore.close()


@pytest_asyncio.fixture
async def people(make_datastore, people_schema) -> SqliteDatastore:
    """In-memory datastore with the people schema."""
    return make_datastore(people_schema)
