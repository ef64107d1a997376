"""Emulated secondary index: natural id -> full primary key.

Some primary tables cluster on a value the caller does not know (a message is
keyed by (conversation_id, created_at, message_id) but addressed by
(conversation_id, message_id)). A side table keyed by the natural id stores the
missing key columns.

The index row and the primary row are two independent writes:
- insert writes the primary row first, then the index entry
- delete removes the primary row first, then the index entry
A crash between the two leaves an orphan on one side. Nothing here detects or
repairs that. Callers treat an index miss as "does not exist" even when a
primary row is still present.
"""

from collections.abc import Mapping
from typing import Any

from chatstore.store.client import StoreClientBase
from chatstore.store.tables import TableSpec


class LookupIndex:
    """Maintains and resolves one natural-id index for one primary table.

    Args:
        client: Store client.
        index: Index table; its primary key is the natural id.
        primary: Primary table being indexed.
        fixed: Primary key columns with a constant value (e.g. a listing
            bucket) that are neither stored in the index nor supplied by callers.
    """

    def __init__(
        self,
        client: StoreClientBase,
        index: TableSpec,
        primary: TableSpec,
        fixed: Mapping[str, Any] | None = None,
    ):
        self._client = client
        self._index = index
        self._primary = primary
        self._fixed = dict(fixed or {})
        self._located = tuple(
            col
            for col in primary.primary_key
            if col not in index.primary_key and col not in self._fixed
        )

    @property
    def located_columns(self) -> tuple[str, ...]:
        """Primary key columns the index supplies."""
        return self._located

    def natural_id(self, full_key: Mapping[str, Any]) -> dict[str, Any]:
        return {col: full_key[col] for col in self._index.primary_key}

    async def write(self, full_key: Mapping[str, Any]) -> None:
        """Record where the row with this full key lives. Unconditional upsert."""
        await self._client.upsert(
            self._index,
            self.natural_id(full_key),
            {col: full_key[col] for col in self._located},
        )

    async def resolve(self, natural_id: Mapping[str, Any]) -> dict[str, Any] | None:
        """Return the full primary key for a natural id, or None on a miss."""
        entry = await self._client.get(self._index, natural_id)
        if entry is None:
            return None
        if any(entry.get(col) is None for col in self._located):
            return None

        values = {**self._fixed, **natural_id, **{col: entry[col] for col in self._located}}
        return {col: values[col] for col in self._primary.primary_key}

    async def delete(self, natural_id: Mapping[str, Any]) -> None:
        await self._client.delete(self._index, natural_id)
