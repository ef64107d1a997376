"""In-memory store client for tests and local development.

Mirrors the semantics the stores rely on:
- rows are keyed by full primary key and returned as copies
- conditional writes compare guarded columns for equality, a missing row
  reading as all-null
- every call yields to the event loop first, so concurrent tasks interleave
  between a read and the conditional write that depends on it
"""

import asyncio
import copy
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from chatstore.store.client import ConditionalResult, Row, StoreClientBase
from chatstore.store.tables import TableSpec

ConditionalWriteHook = Callable[[TableSpec, Mapping[str, Any]], Awaitable[None] | None]


class InMemoryStoreClient(StoreClientBase):
    """Fake store client holding every table in process memory."""

    def __init__(self):
        self._tables: dict[str, dict[tuple, Row]] = {}
        self._failure: Exception | None = None
        self._conditional_write_hooks: list[ConditionalWriteHook] = []
        self.conditional_writes = 0

    # Reads

    async def get(self, table: TableSpec, key: Mapping[str, Any]) -> Row | None:
        await self._tick()
        row = self._rows(table).get(table.key_of(key))
        return copy.deepcopy(row) if row is not None else None

    async def query_partition(
        self,
        table: TableSpec,
        partition: Mapping[str, Any],
        *,
        less_than: tuple[str, Any] | None = None,
        descending: bool | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        await self._tick()
        wanted = table.partition_of(partition)
        rows = [
            row
            for key, row in self._rows(table).items()
            if key[: len(table.partition_key)] == wanted
        ]
        if less_than is not None:
            column, bound = less_than
            rows = [row for row in rows if row[column] < bound]

        if descending is None:
            descending = table.clustering_descending
        rows.sort(
            key=lambda row: tuple(row[col] for col in table.clustering_key),
            reverse=descending,
        )
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def scan(self, table: TableSpec, *, limit: int | None = None) -> list[Row]:
        await self._tick()
        rows = list(self._rows(table).values())
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    # Unconditional writes

    async def upsert(
        self, table: TableSpec, key: Mapping[str, Any], values: Mapping[str, Any]
    ) -> None:
        await self._tick()
        self._write(table, key, values)

    async def delete(self, table: TableSpec, key: Mapping[str, Any]) -> None:
        await self._tick()
        self._rows(table).pop(table.key_of(key), None)

    # Conditional writes

    async def insert_if_not_exists(
        self, table: TableSpec, key: Mapping[str, Any], values: Mapping[str, Any]
    ) -> ConditionalResult:
        await self._tick()
        await self._run_hooks(table, key)
        self.conditional_writes += 1

        existing = self._rows(table).get(table.key_of(key))
        if existing is not None:
            return ConditionalResult(applied=False, observed=copy.deepcopy(existing))

        self._write(table, key, values)
        return ConditionalResult(applied=True)

    async def update_if(
        self,
        table: TableSpec,
        key: Mapping[str, Any],
        values: Mapping[str, Any],
        expected: Mapping[str, Any],
    ) -> ConditionalResult:
        await self._tick()
        await self._run_hooks(table, key)
        self.conditional_writes += 1

        existing = self._rows(table).get(table.key_of(key)) or {}
        current = {col: existing.get(col) for col in expected}
        if current != dict(expected):
            observed = copy.deepcopy(current) if existing else {}
            return ConditionalResult(applied=False, observed=observed)

        self._write(table, key, values)
        return ConditionalResult(applied=True)

    # Test helpers

    def add_conditional_write_hook(self, hook: ConditionalWriteHook) -> None:
        """Run hook right before every conditional write is evaluated (test helper).

        Lets a test interleave a competing write exactly inside the race window.
        """
        self._conditional_write_hooks.append(hook)

    def fail_with(self, error: Exception | None) -> None:
        """Make every subsequent call raise error; None restores service (test helper)."""
        self._failure = error

    def rows(self, table: TableSpec) -> list[Row]:
        """Snapshot of every row in a table (test helper)."""
        return copy.deepcopy(list(self._rows(table).values()))

    def put_row(self, table: TableSpec, row: Mapping[str, Any]) -> None:
        """Write a raw row directly, bypassing the API (test helper)."""
        self._write(table, row, row)

    def clear(self) -> None:
        """Drop all tables (test helper)."""
        self._tables.clear()
        self.conditional_writes = 0

    # Internals

    def _rows(self, table: TableSpec) -> dict[tuple, Row]:
        return self._tables.setdefault(table.name, {})

    def _write(self, table: TableSpec, key: Mapping[str, Any], values: Mapping[str, Any]) -> None:
        row_key = table.key_of(key)
        row = self._rows(table).setdefault(
            row_key, {col: key[col] for col in table.primary_key}
        )
        for col, value in values.items():
            if col not in table.primary_key:
                row[col] = copy.deepcopy(value)

    async def _tick(self) -> None:
        await asyncio.sleep(0)
        if self._failure is not None:
            raise self._failure

    async def _run_hooks(self, table: TableSpec, key: Mapping[str, Any]) -> None:
        for hook in self._conditional_write_hooks:
            result = hook(table, key)
            if asyncio.iscoroutine(result):
                await result
