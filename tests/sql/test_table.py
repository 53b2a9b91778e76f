# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for Table resolution, DDL and hook stages."""

from __future__ import annotations

import pytest
import pytest_asyncio

from sqlite_datastore.errors import InsertError, InvalidSchemaError, UpdateError
from sqlite_datastore.sql import Table, get_adapter

PEOPLE = {
    "columns": {
        "id": {"type": "INTEGER", "auto_increment": True},
        "name": "TEXT",
        "birthdate": {"type": "TEXT", "nullable": True},
    },
    "primary_key": "id",
}


@pytest_asyncio.fixture
async def adapter():
    """Open in-memory adapter."""
    adapter = get_adapter(":memory:")
    await adapter.open()
    yield adapter
    await adapter.close()


class TestPrimaryKey:
    """Tests for primary key resolution."""

    def test_explicit(self):
        """An explicit primary key wins."""
        table = Table.from_declaration("t", {"columns": {"code": "TEXT", "id": "INTEGER"}, "primary_key": "code"})
        assert table.pkey == ["code"]

    def test_implicit_id(self):
        """A column named id is the primary key when none is declared."""
        table = Table.from_declaration("t", {"columns": {"id": "INTEGER", "name": "TEXT"}})
        assert table.pkey == ["id"]
        ddl = table.create_table_sql()
        assert '"id" INTEGER PRIMARY KEY' in ddl
        assert ddl.count("PRIMARY KEY") == 1

    def test_implicit_id_auto_increment(self):
        """An auto-increment id with no declared key is the primary key."""
        table = Table.from_declaration(
            "t", {"columns": {"id": {"type": "INTEGER", "auto_increment": True}}}
        )
        assert table.pkey == ["id"]
        assert table.has_auto_increment

    def test_no_key(self):
        """Without id or declaration the table has no primary key."""
        table = Table.from_declaration("t", {"columns": {"name": "TEXT"}})
        assert table.pkey == []
        assert "PRIMARY KEY" not in table.create_table_sql()

    def test_unknown_key_column(self):
        """The primary key must name declared columns."""
        with pytest.raises(InvalidSchemaError, match="not a column"):
            Table.from_declaration("t", {"columns": {"name": "TEXT"}, "primary_key": "id"})

    def test_malformed_key(self):
        """The primary key must be a name or list of names."""
        with pytest.raises(InvalidSchemaError, match="must be a column name"):
            Table.from_declaration("t", {"columns": {"name": "TEXT"}, "primary_key": 1})

    def test_auto_increment_outside_key(self):
        """Auto-increment columns must belong to the primary key."""
        with pytest.raises(InvalidSchemaError, match="not part of the table's primary key"):
            Table.from_declaration(
                "t",
                {
                    "columns": {
                        "code": "TEXT",
                        "seq": {"type": "INTEGER", "auto_increment": True},
                    },
                    "primary_key": "code",
                },
            )

    def test_auto_increment_in_composite_key(self):
        """Auto-increment is not allowed inside a composite key."""
        with pytest.raises(InvalidSchemaError, match="only primary key column"):
            Table.from_declaration(
                "t",
                {
                    "columns": {
                        "seq": {"type": "INTEGER", "auto_increment": True},
                        "code": "TEXT",
                    },
                    "primary_key": ["seq", "code"],
                },
            )


class TestDeclarationErrors:
    """Tests for malformed table declarations."""

    def test_not_mapping(self):
        """Tables must be declared as mappings."""
        with pytest.raises(InvalidSchemaError, match="as a mapping"):
            Table.from_declaration("t", ["name"])

    def test_no_columns(self):
        """Tables must declare columns."""
        with pytest.raises(InvalidSchemaError, match="at least one column"):
            Table.from_declaration("t", {"columns": {}})

    def test_unknown_option(self):
        """Unknown table options are rejected."""
        with pytest.raises(InvalidSchemaError, match="unknown option"):
            Table.from_declaration("t", {"columns": {"a": "TEXT"}, "indexes": []})

    def test_unbound_adapter(self):
        """Tables without an adapter cannot run statements."""
        table = Table.from_declaration("t", {"columns": {"a": "TEXT"}})
        with pytest.raises(RuntimeError, match="not bound"):
            table.adapter


class TestCreateTableSql:
    """Tests for DDL generation."""

    def test_people(self):
        """The people table renders one clause per column in order."""
        table = Table.from_declaration("people", PEOPLE)
        assert table.create_table_sql() == (
            'CREATE TABLE IF NOT EXISTS "people" (\n'
            '    "id" INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL UNIQUE,\n'
            '    "name" TEXT NOT NULL,\n'
            '    "birthdate" TEXT\n'
            ")"
        )

    def test_composite_key(self):
        """Composite keys become a table-level constraint."""
        table = Table.from_declaration(
            "memberships",
            {"columns": {"group": "TEXT", "member": "TEXT"}, "primary_key": ["group", "member"]},
        )
        ddl = table.create_table_sql()
        assert '"group" TEXT NOT NULL,' in ddl
        assert 'PRIMARY KEY ("group", "member")' in ddl

    async def test_create_schema_twice(self, adapter):
        """Creating the schema twice is harmless."""
        table = Table.from_declaration("people", PEOPLE, adapter)
        await table.create_schema()
        await table.create_schema()
        rows = await adapter.fetch_all("SELECT name FROM sqlite_master WHERE type = 'table'")
        assert [r["name"] for r in rows].count("people") == 1


class TestInsertStage:
    """Tests for the insert hook stage."""

    def test_required_columns(self):
        """Non-nullable and hooked columns are always inserted."""
        table = Table.from_declaration(
            "t",
            {
                "columns": {
                    "id": {"type": "INTEGER", "auto_increment": True},
                    "name": "TEXT",
                    "note": {"type": "TEXT", "nullable": True},
                    "key": {"type": "uuid", "nullable": True},
                },
            },
        )
        assert table.insert_required_columns() == ["name", "key"]

    def test_integer_pk_is_engine_assigned(self):
        """A single INTEGER primary key is left to the engine."""
        table = Table.from_declaration("t", {"columns": {"id": "INTEGER", "name": "TEXT"}})
        assert table.insert_required_columns() == ["name"]

    def test_insert_columns_union(self):
        """The batch column list is the union of records in schema order."""
        table = Table.from_declaration("people", PEOPLE)
        cols = table.insert_columns([{"birthdate": "2000-01-01", "name": "a"}, {"name": "b"}])
        assert cols == ["name", "birthdate"]

    def test_unknown_column(self):
        """Records naming unknown columns are rejected."""
        table = Table.from_declaration("people", PEOPLE)
        with pytest.raises(InsertError, match="Column 'age' not found on table 'people'"):
            table.check_insert_record({"name": "a", "age": 3})

    def test_trigger_on_inserting_fills_missing(self):
        """Missing columns become None in the working copy."""
        table = Table.from_declaration("people", PEOPLE)
        working = table.trigger_on_inserting({"name": "a"}, ["name", "birthdate"])
        assert working == {"name": "a", "birthdate": None}


class TestUpdateStage:
    """Tests for the update hook stage."""

    def test_unknown_column(self):
        """SET maps naming unknown columns are rejected."""
        table = Table.from_declaration("people", PEOPLE)
        with pytest.raises(UpdateError, match="Column 'age' not found"):
            table.trigger_on_updating({"age": 3})

    def test_empty_set(self):
        """Updating nothing is an error."""
        table = Table.from_declaration("people", PEOPLE)
        with pytest.raises(UpdateError, match="Nothing to update"):
            table.trigger_on_updating({})

    def test_update_timestamp_fills_empty_set(self):
        """Hooks may turn an empty SET into a real update."""
        table = Table.from_declaration("t", {"columns": {"name": "TEXT", "modified": "update_timestamp"}})
        working = table.trigger_on_updating({})
        assert list(working) == ["modified"]


class TestInsertAndRead:
    """Tests for Table CRUD against a live adapter."""

    async def test_insert_returns_ids(self, adapter):
        """Tables with an auto-increment column return inserted ids."""
        table = Table.from_declaration("people", PEOPLE, adapter)
        await table.create_schema()
        result = await table.insert([{"name": "a"}, {"name": "b"}, {"name": "c"}])
        assert result == {"count": 3, "ids": [1, 2, 3]}

    async def test_insert_without_ids(self, adapter):
        """return_ids=False returns only the count."""
        table = Table.from_declaration("people", PEOPLE, adapter)
        await table.create_schema()
        assert await table.insert([{"name": "a"}], return_ids=False) == {"count": 1}

    async def test_insert_without_auto_increment(self, adapter):
        """Tables without auto-increment return only the count."""
        table = Table.from_declaration("tags", {"columns": {"label": "TEXT"}}, adapter)
        await table.create_schema()
        assert await table.insert([{"label": "x"}]) == {"count": 1}

    async def test_insert_default_values(self, adapter):
        """Records with no columns use DEFAULT VALUES."""
        table = Table.from_declaration(
            "events",
            {"columns": {"id": {"type": "INTEGER", "auto_increment": True}, "note": {"type": "TEXT", "nullable": True}}},
            adapter,
        )
        await table.create_schema()
        assert await table.insert([{}, {}]) == {"count": 2, "ids": [1, 2]}

    async def test_insert_rejects_non_mapping(self, adapter):
        """Records must be mappings or models."""
        table = Table.from_declaration("people", PEOPLE, adapter)
        with pytest.raises(InsertError, match="must be mappings or models"):
            await table.insert(["a"])

    async def test_select_count(self, adapter):
        """select and count go through Query."""
        table = Table.from_declaration("people", PEOPLE, adapter)
        await table.create_schema()
        await table.insert([{"name": "a"}, {"name": "b"}])
        assert await table.count() == 2
        assert await table.select(where={"name": "b"}) == [
            {"id": 2, "name": "b", "birthdate": None}
        ]
