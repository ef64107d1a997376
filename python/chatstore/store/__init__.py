"""Store module for wide-column persistence.

Provides:
- StoreClientBase: row-level API with conditional writes
- CassandraStoreClient for ScyllaDB / Cassandra
- InMemoryStoreClient for tests and local development
- Table key layouts
"""

from chatstore.config import Settings, get_settings
from chatstore.store.cassandra import CassandraStoreClient
from chatstore.store.client import ConditionalResult, Row, StoreClientBase
from chatstore.store.memory import InMemoryStoreClient
from chatstore.store.tables import TableSpec


async def get_store_client(settings: Settings | None = None) -> StoreClientBase:
    """Get the configured store client.

    Returns:
        CassandraStoreClient if SCYLLA_CONTACT_POINTS is set,
        InMemoryStoreClient otherwise.
    """
    if settings is None:
        settings = get_settings()

    if settings.contact_point_list:
        return await CassandraStoreClient.connect(settings)

    # Fake client for local dev / tests without a cluster
    return InMemoryStoreClient()


__all__ = [
    "CassandraStoreClient",
    "ConditionalResult",
    "InMemoryStoreClient",
    "Row",
    "StoreClientBase",
    "TableSpec",
    "get_store_client",
]
