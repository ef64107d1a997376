"""Wide-column store client abstraction.

Provides a row-level interface over a store whose only concurrency primitive
is the single-partition conditional write:
- Point reads by full primary key
- Partition range reads in clustering order
- Full-table scans (paged)
- Unconditional upserts and deletes (last write wins)
- Conditional writes: update-if-equal and insert-if-not-exists

Conditional writes are linearizable only within one row. A write that is not
applied is not an error: it means another writer got there first, and the
result carries the row as the store saw it.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from chatstore.store.tables import TableSpec

Row = dict[str, Any]


@dataclass(frozen=True)
class ConditionalResult:
    """Outcome of a conditional write.

    Attributes:
        applied: True if the guard matched and the write took effect.
        observed: The latest row values the store reported. Populated when the
            write was not applied (and the row exists); may be empty otherwise.
    """

    applied: bool
    observed: Row = field(default_factory=dict)


class StoreClientBase(ABC):
    """Abstract base class for store client implementations."""

    @abstractmethod
    async def get(self, table: TableSpec, key: Mapping[str, Any]) -> Row | None:
        """Read one row by its full primary key.

        Returns:
            The row (all columns) or None if it does not exist.
        """
        ...

    @abstractmethod
    async def query_partition(
        self,
        table: TableSpec,
        partition: Mapping[str, Any],
        *,
        less_than: tuple[str, Any] | None = None,
        descending: bool | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """Read rows of one partition ordered by clustering columns.

        Args:
            table: Table to read.
            partition: Partition key values.
            less_than: Optional (clustering column, value) upper bound, exclusive.
            descending: True for newest/largest first, False for ascending,
                None for the table's declared clustering order.
            limit: Maximum number of rows.
        """
        ...

    @abstractmethod
    async def scan(self, table: TableSpec, *, limit: int | None = None) -> list[Row]:
        """Read every row of a table, draining all pages.

        This is O(table size). Callers own that cost.
        """
        ...

    @abstractmethod
    async def upsert(
        self, table: TableSpec, key: Mapping[str, Any], values: Mapping[str, Any]
    ) -> None:
        """Unconditionally write columns of a row, creating it if absent."""
        ...

    @abstractmethod
    async def delete(self, table: TableSpec, key: Mapping[str, Any]) -> None:
        """Delete one row by its full primary key. Deleting a missing row is a no-op."""
        ...

    @abstractmethod
    async def insert_if_not_exists(
        self, table: TableSpec, key: Mapping[str, Any], values: Mapping[str, Any]
    ) -> ConditionalResult:
        """Insert a row only if no row with this key exists.

        Returns:
            ConditionalResult; when not applied, observed holds the existing row.
        """
        ...

    @abstractmethod
    async def update_if(
        self,
        table: TableSpec,
        key: Mapping[str, Any],
        values: Mapping[str, Any],
        expected: Mapping[str, Any],
    ) -> ConditionalResult:
        """Update columns only if every expected column currently equals its value.

        An expected value of None is a distinct "column is null" guard. A row
        that does not exist reads as all-null for guard purposes.

        Returns:
            ConditionalResult; when not applied, observed holds the guarded
            columns as currently stored.
        """
        ...

    async def close(self) -> None:
        """Release connections. Default is a no-op."""
        return None
