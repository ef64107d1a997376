"""ScyllaDB / Cassandra store client.

Uses the DataStax cassandra-driver. Statements are prepared once and cached;
execution goes through execute_async and the driver's ResponseFuture is
bridged onto the running asyncio loop, draining every page.

Conditional writes map onto lightweight transactions:
- update_if       -> UPDATE ... IF col = ? [AND col = null]
- insert_if_not_exists -> INSERT ... IF NOT EXISTS
The "[applied]" column of the LWT result decides the outcome; the remaining
columns of that row are the values the store observed.

Driver errors (timeouts, unavailable, no host) propagate unchanged.
"""

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any

from cassandra import ConsistencyLevel
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile, ResponseFuture, Session
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra.query import PreparedStatement, dict_factory

from chatstore.config import Settings
from chatstore.logging import get_logger
from chatstore.store.client import ConditionalResult, Row, StoreClientBase
from chatstore.store.tables import TableSpec

logger = get_logger(__name__)

APPLIED_COLUMN = "[applied]"


# =============================================================================
# CQL builders
# =============================================================================


def _where(columns: Sequence[str]) -> str:
    return " AND ".join(f"{col} = ?" for col in columns)


def select_row_cql(table: TableSpec) -> str:
    return f"SELECT * FROM {table.name} WHERE {_where(table.primary_key)}"


def partition_query_cql(
    table: TableSpec,
    *,
    less_than: str | None = None,
    descending: bool | None = None,
    limit: bool = False,
) -> str:
    """Build a single-partition range query.

    Args:
        table: Table to read.
        less_than: Clustering column bounded from above, if any.
        descending: Explicit ordering; None keeps the table's clustering order.
        limit: Whether a LIMIT bind marker is appended.
    """
    cql = f"SELECT * FROM {table.name} WHERE {_where(table.partition_key)}"
    if less_than is not None:
        cql += f" AND {less_than} < ?"
    if descending is not None and table.clustering_key:
        direction = "DESC" if descending else "ASC"
        cql += " ORDER BY " + ", ".join(f"{col} {direction}" for col in table.clustering_key)
    if limit:
        cql += " LIMIT ?"
    return cql


def scan_cql(table: TableSpec, *, limit: bool = False) -> str:
    cql = f"SELECT * FROM {table.name}"
    if limit:
        cql += " LIMIT ?"
    return cql


def upsert_cql(table: TableSpec, columns: Sequence[str]) -> str:
    if not columns:
        # Key-only rows are written as inserts
        cols = ", ".join(table.primary_key)
        marks = ", ".join("?" for _ in table.primary_key)
        return f"INSERT INTO {table.name} ({cols}) VALUES ({marks})"
    assignments = ", ".join(f"{col} = ?" for col in columns)
    return f"UPDATE {table.name} SET {assignments} WHERE {_where(table.primary_key)}"


def delete_cql(table: TableSpec) -> str:
    return f"DELETE FROM {table.name} WHERE {_where(table.primary_key)}"


def insert_if_not_exists_cql(table: TableSpec, columns: Sequence[str]) -> str:
    all_columns = list(table.primary_key) + list(columns)
    cols = ", ".join(all_columns)
    marks = ", ".join("?" for _ in all_columns)
    return f"INSERT INTO {table.name} ({cols}) VALUES ({marks}) IF NOT EXISTS"


def update_if_cql(table: TableSpec, columns: Sequence[str], expected: Mapping[str, Any]) -> str:
    """Build a conditional UPDATE.

    A None expectation renders as the literal "col = null" guard rather than
    a bind marker, so "currently null" is guarded distinctly from any value.
    """
    assignments = ", ".join(f"{col} = ?" for col in columns)
    guards = " AND ".join(
        f"{col} = null" if value is None else f"{col} = ?" for col, value in expected.items()
    )
    return (
        f"UPDATE {table.name} SET {assignments} WHERE {_where(table.primary_key)} IF {guards}"
    )


def _non_key(table: TableSpec, values: Mapping[str, Any]) -> list[str]:
    return [col for col in values if col not in table.primary_key]


# =============================================================================
# ResponseFuture bridge
# =============================================================================


def _resolve(done: asyncio.Future, rows: list[Row]) -> None:
    if not done.done():
        done.set_result(rows)


def _reject(done: asyncio.Future, error: BaseException) -> None:
    if not done.done():
        done.set_exception(error)


def await_all_pages(response_future: ResponseFuture) -> asyncio.Future:
    """Wrap a driver ResponseFuture in an asyncio future resolving to every row.

    Driver callbacks fire on the driver's I/O thread, so results are handed
    back to the loop with call_soon_threadsafe.
    """
    loop = asyncio.get_running_loop()
    done = loop.create_future()
    rows: list[Row] = []

    def on_page(page: list[Row]) -> None:
        rows.extend(page)
        if response_future.has_more_pages:
            response_future.start_fetching_next_page()
        else:
            loop.call_soon_threadsafe(_resolve, done, rows)

    def on_error(error: BaseException) -> None:
        loop.call_soon_threadsafe(_reject, done, error)

    response_future.add_callbacks(callback=on_page, errback=on_error)
    return done


# =============================================================================
# Client
# =============================================================================


class CassandraStoreClient(StoreClientBase):
    """Production store client backed by a cassandra-driver Session."""

    def __init__(self, session: Session, *, fetch_size: int = 5000, cluster: Cluster | None = None):
        """Initialize the client.

        Args:
            session: Connected driver session, keyspace already selected.
                Its row factory must be dict_factory.
            fetch_size: Page size for scans.
            cluster: Owning cluster, shut down by close() when given.
        """
        self._session = session
        self._cluster = cluster
        self._fetch_size = fetch_size
        self._prepared: dict[str, PreparedStatement] = {}

    @classmethod
    async def connect(cls, settings: Settings) -> "CassandraStoreClient":
        """Connect to the cluster described by settings."""
        profile = ExecutionProfile(
            load_balancing_policy=TokenAwarePolicy(
                DCAwareRoundRobinPolicy(local_dc=settings.scylla_local_datacenter)
            ),
            consistency_level=ConsistencyLevel.LOCAL_QUORUM,
            serial_consistency_level=ConsistencyLevel.LOCAL_SERIAL,
            row_factory=dict_factory,
        )
        auth_provider = None
        if settings.scylla_username and settings.scylla_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.scylla_username, password=settings.scylla_password
            )

        cluster = Cluster(
            contact_points=settings.contact_point_list or ["127.0.0.1"],
            port=settings.scylla_port,
            auth_provider=auth_provider,
            execution_profiles={EXEC_PROFILE_DEFAULT: profile},
        )
        session = await asyncio.to_thread(cluster.connect, settings.scylla_keyspace)
        logger.info(
            "store_connected",
            keyspace=settings.scylla_keyspace,
            datacenter=settings.scylla_local_datacenter,
        )
        return cls(session, fetch_size=settings.scylla_fetch_size, cluster=cluster)

    # Reads

    async def get(self, table: TableSpec, key: Mapping[str, Any]) -> Row | None:
        rows = await self._execute(select_row_cql(table), table.key_of(key))
        return rows[0] if rows else None

    async def query_partition(
        self,
        table: TableSpec,
        partition: Mapping[str, Any],
        *,
        less_than: tuple[str, Any] | None = None,
        descending: bool | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        params: list[Any] = list(table.partition_of(partition))
        if less_than is not None:
            params.append(less_than[1])
        if limit is not None:
            params.append(limit)
        cql = partition_query_cql(
            table,
            less_than=less_than[0] if less_than is not None else None,
            descending=descending,
            limit=limit is not None,
        )
        return await self._execute(cql, params)

    async def scan(self, table: TableSpec, *, limit: int | None = None) -> list[Row]:
        params = [limit] if limit is not None else []
        return await self._execute(scan_cql(table, limit=limit is not None), params)

    # Unconditional writes

    async def upsert(
        self, table: TableSpec, key: Mapping[str, Any], values: Mapping[str, Any]
    ) -> None:
        columns = _non_key(table, values)
        params = [values[col] for col in columns] + list(table.key_of(key))
        await self._execute(upsert_cql(table, columns), params)

    async def delete(self, table: TableSpec, key: Mapping[str, Any]) -> None:
        await self._execute(delete_cql(table), table.key_of(key))

    # Conditional writes

    async def insert_if_not_exists(
        self, table: TableSpec, key: Mapping[str, Any], values: Mapping[str, Any]
    ) -> ConditionalResult:
        columns = _non_key(table, values)
        params = list(table.key_of(key)) + [values[col] for col in columns]
        rows = await self._execute(insert_if_not_exists_cql(table, columns), params)
        return _conditional_result(rows)

    async def update_if(
        self,
        table: TableSpec,
        key: Mapping[str, Any],
        values: Mapping[str, Any],
        expected: Mapping[str, Any],
    ) -> ConditionalResult:
        columns = _non_key(table, values)
        params = (
            [values[col] for col in columns]
            + list(table.key_of(key))
            + [value for value in expected.values() if value is not None]
        )
        rows = await self._execute(update_if_cql(table, columns, expected), params)
        return _conditional_result(rows)

    async def close(self) -> None:
        if self._cluster is not None:
            await asyncio.to_thread(self._cluster.shutdown)
            logger.info("store_closed")

    # Internals

    async def _prepare(self, cql: str) -> PreparedStatement:
        statement = self._prepared.get(cql)
        if statement is None:
            statement = await asyncio.to_thread(self._session.prepare, cql)
            self._prepared[cql] = statement
        return statement

    async def _execute(self, cql: str, params: Sequence[Any]) -> list[Row]:
        statement = await self._prepare(cql)
        bound = statement.bind(list(params))
        bound.fetch_size = self._fetch_size
        return await await_all_pages(self._session.execute_async(bound))


def _conditional_result(rows: list[Row]) -> ConditionalResult:
    if not rows:
        return ConditionalResult(applied=False)
    row = dict(rows[0])
    applied = bool(row.pop(APPLIED_COLUMN, False))
    return ConditionalResult(applied=applied, observed={} if applied else row)
