# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for the custom type registry and the built-in types."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from sqlite_datastore.errors import InsertError, InvalidSchemaError, InvalidUUIDError, UpdateError
from sqlite_datastore.sql.column import resolve_column
from sqlite_datastore.sql.custom_types import (
    UUID_PATTERN,
    CustomType,
    custom_type_names,
    format_timestamp,
    get_custom_type,
    parse_timestamp,
    register_custom_type,
    unregister_custom_type,
)


@pytest.fixture
def scratch_type():
    """Register a throwaway type and remove it afterwards."""
    names: list[str] = []

    def register(custom_type: CustomType, replace: bool = False) -> CustomType:
        names.append(custom_type.name)
        return register_custom_type(custom_type, replace=replace)

    yield register

    for name in names:
        unregister_custom_type(name)


class TestRegistry:
    """Tests for register_custom_type validation."""

    def test_builtins_registered(self):
        """The built-in types are available at import."""
        assert {"uuid", "insert_timestamp", "update_timestamp"} <= set(custom_type_names())

    def test_register_and_resolve(self, scratch_type):
        """A registered type can be used in declarations."""
        scratch_type(CustomType("lower_text", "TEXT", python_type=str, parse=str.lower))
        col = resolve_column("t", "c", "lower_text")
        assert col.custom_type == "lower_text"
        assert col.parse is str.lower
        assert get_custom_type("lower_text") is not None

    def test_duplicate_rejected(self, scratch_type):
        """Registering an existing name fails unless replace is set."""
        scratch_type(CustomType("dup_type", "TEXT"))
        with pytest.raises(InvalidSchemaError, match="already registered"):
            register_custom_type(CustomType("dup_type", "INTEGER"))
        scratch_type(CustomType("dup_type", "INTEGER"), replace=True)
        assert get_custom_type("dup_type").native_type == "INTEGER"

    def test_native_name_rejected(self):
        """Custom types cannot shadow native type names."""
        with pytest.raises(InvalidSchemaError, match="shadow a native type"):
            register_custom_type(CustomType("TEXT", "TEXT"))

    def test_bad_native_type_rejected(self):
        """The underlying storage type must be native."""
        with pytest.raises(InvalidSchemaError, match="unknown native type"):
            register_custom_type(CustomType("money", "DECIMAL"))

    def test_non_callable_hook_rejected(self):
        """Hooks must be callable."""
        with pytest.raises(InvalidSchemaError, match="before_insert must be callable"):
            register_custom_type(CustomType("broken", "TEXT", before_insert="nope"))

    def test_empty_name_rejected(self):
        """Names must be non-empty strings."""
        with pytest.raises(InvalidSchemaError, match="non-empty string"):
            register_custom_type(CustomType("", "TEXT"))


class TestUuidType:
    """Tests for the uuid type hooks."""

    @pytest.fixture
    def col(self):
        return resolve_column("things", "key", "uuid")

    def test_generated_when_absent(self, col):
        """A missing value is replaced by a generated UUID."""
        record = {"key": None}
        col.before_insert(col, record)
        assert UUID_PATTERN.match(record["key"])

    def test_generated_values_differ(self, col):
        """Each insert gets its own identifier."""
        first, second = {"key": None}, {"key": None}
        col.before_insert(col, first)
        col.before_insert(col, second)
        assert first["key"] != second["key"]

    def test_supplied_stored_verbatim(self, col):
        """A well-formed supplied value is kept as-is."""
        value = "6F9619FF-8B86-D011-B42D-00C04FC964FF"
        record = {"key": value}
        col.before_insert(col, record)
        assert record["key"] == value

    def test_uuid_object_accepted(self, col):
        """uuid.UUID instances are stored as their string form."""
        value = uuid.uuid4()
        record = {"key": value}
        col.before_insert(col, record)
        assert record["key"] == str(value)

    def test_invalid_rejected_on_insert(self, col):
        """Malformed identifiers fail with InvalidUUIDError."""
        with pytest.raises(InvalidUUIDError) as exc_info:
            col.before_insert(col, {"key": "not-a-uuid"})
        assert exc_info.value.value == "not-a-uuid"

    def test_invalid_rejected_on_update(self, col):
        """Updates validate supplied identifiers too."""
        with pytest.raises(InvalidUUIDError):
            col.before_update(col, {"key": "1234"})

    def test_update_without_value(self, col):
        """Updates not touching the column leave it alone."""
        values = {"name": "x"}
        col.before_update(col, values)
        assert values == {"name": "x"}


class TestTimestampTypes:
    """Tests for insert_timestamp and update_timestamp."""

    def test_format(self):
        """Timestamps are ISO 8601 UTC with milliseconds and Z."""
        moment = datetime(2025, 2, 17, 12, 13, 14, 123456, tzinfo=timezone.utc)
        assert format_timestamp(moment) == "2025-02-17T12:13:14.123Z"

    def test_format_converts_offset(self):
        """Aware datetimes in other zones are converted to UTC."""
        moment = datetime(2025, 2, 17, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(moment) == "2025-02-17T12:00:00.000Z"

    def test_parse(self):
        """Stored values parse back to aware datetimes."""
        parsed = parse_timestamp("2025-02-17T12:13:14.123Z")
        assert parsed == datetime(2025, 2, 17, 12, 13, 14, 123000, tzinfo=timezone.utc)

    def test_parse_none(self):
        """NULL stays None."""
        assert parse_timestamp(None) is None

    def test_insert_stamps(self):
        """Insert fills in the current time."""
        col = resolve_column("t", "created", "insert_timestamp")
        record = {"created": None}
        before = datetime.now(timezone.utc) - timedelta(seconds=1)
        col.before_insert(col, record)
        assert parse_timestamp(record["created"]) >= before

    def test_insert_rejects_value(self):
        """Supplying a value on insert fails."""
        col = resolve_column("t", "created", "insert_timestamp")
        with pytest.raises(InsertError, match="set automatically"):
            col.before_insert(col, {"created": "2025-01-01T00:00:00.000Z"})

    def test_insert_timestamp_not_updatable(self):
        """insert_timestamp cannot be updated."""
        col = resolve_column("t", "created", "insert_timestamp")
        with pytest.raises(UpdateError, match="cannot be updated"):
            col.before_update(col, {"created": "2025-01-01T00:00:00.000Z"})

    def test_insert_timestamp_untouched_by_update(self):
        """insert_timestamp adds nothing to updates."""
        col = resolve_column("t", "created", "insert_timestamp")
        values = {"name": "x"}
        col.before_update(col, values)
        assert values == {"name": "x"}

    def test_update_timestamp_injected(self):
        """update_timestamp is re-stamped on every update."""
        col = resolve_column("t", "modified", "update_timestamp")
        values = {"name": "x"}
        col.before_update(col, values)
        assert set(values) == {"name", "modified"}
        assert parse_timestamp(values["modified"]).tzinfo is not None

    def test_update_timestamp_rejects_value(self):
        """Supplying update_timestamp on update fails."""
        col = resolve_column("t", "modified", "update_timestamp")
        with pytest.raises(UpdateError):
            col.before_update(col, {"modified": "2025-01-01T00:00:00.000Z"})
