# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Base adapter classes for the async embedded database engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..column import quote_name

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence


@dataclass(frozen=True)
class RunResult:
    """Outcome of a write statement."""

    last_insert_id: int | None
    rows_affected: int


class PreparedStatement(ABC):
    """A statement prepared once and executed with positional parameters.

    Usable as an async context manager: finalize() runs on exit, also when
    the block raises.
    """

    sql: str

    @abstractmethod
    async def run(self, params: Sequence[Any] = ()) -> RunResult:
        """Execute the statement, return last insert id and affected rows."""
        ...

    @abstractmethod
    async def all(self, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Execute the statement, return all rows as dicts."""
        ...

    @abstractmethod
    async def get(self, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        """Execute the statement, return the first row as dict or None."""
        ...

    @abstractmethod
    def each(self, params: Sequence[Any] = ()) -> AsyncIterator[dict[str, Any]]:
        """Execute the statement and stream rows as dicts."""
        ...

    @abstractmethod
    async def finalize(self) -> None:
        """Release the statement. Further use is an error."""
        ...

    async def __aenter__(self) -> PreparedStatement:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.finalize()


class DbAdapter(ABC):
    """Abstract base class for the engine a datastore talks to.

    One adapter owns exactly one database handle:
    - open(): Opens the handle (idempotent)
    - close(): Closes the handle
    - prepare(sql): Returns a PreparedStatement bound to the handle
    - run / fetch_all / fetch_one: One-shot execution helpers

    Parameters are positional; subclasses set ``placeholder`` accordingly.
    """

    placeholder: str = "?"

    @property
    @abstractmethod
    def filename(self) -> str:
        """Database file name, ':memory:' for in-memory databases."""
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...

    @abstractmethod
    async def open(self) -> Any:
        """Open the database handle and return it."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the database handle."""
        ...

    @abstractmethod
    async def prepare(self, sql: str) -> PreparedStatement:
        """Prepare a statement on the open handle."""
        ...

    async def run(self, sql: str, params: Sequence[Any] = ()) -> RunResult:
        """Execute a statement once without keeping it prepared."""
        async with await self.prepare(sql) as statement:
            return await statement.run(params)

    async def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Execute a query once, return all rows."""
        async with await self.prepare(sql) as statement:
            return await statement.all(params)

    async def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        """Execute a query once, return the first row or None."""
        async with await self.prepare(sql) as statement:
            return await statement.get(params)

    # -------------------------------------------------------------------------
    # SQL Helpers
    # -------------------------------------------------------------------------

    def _sql_name(self, name: str) -> str:
        """Return quoted SQL identifier for column/table name."""
        return quote_name(name)

    def _placeholders(self, count: int) -> str:
        """Return ``count`` comma-separated positional placeholders."""
        return ", ".join([self.placeholder] * count)
