"""Key layout of every table the stores touch.

Only keys matter to the client: non-key columns are whatever the caller
writes. Table creation itself is handled by the deployment's schema tooling.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from chatstore.errors import InvalidInputError


@dataclass(frozen=True)
class TableSpec:
    """Partition and clustering key definition for one table.

    Attributes:
        name: CQL table name.
        partition_key: Columns forming the partition key.
        clustering_key: Clustering columns, in order.
        clustering_descending: Whether the table clusters newest-first.
    """

    name: str
    partition_key: tuple[str, ...]
    clustering_key: tuple[str, ...] = ()
    clustering_descending: bool = False

    @property
    def primary_key(self) -> tuple[str, ...]:
        return self.partition_key + self.clustering_key

    def key_of(self, values: Mapping[str, Any]) -> tuple:
        """Extract the full primary key tuple, raising if any part is missing."""
        missing = [col for col in self.primary_key if values.get(col) is None]
        if missing:
            raise InvalidInputError(f"{self.name}: missing key columns {', '.join(missing)}")
        return tuple(values[col] for col in self.primary_key)

    def partition_of(self, values: Mapping[str, Any]) -> tuple:
        """Extract the partition key tuple."""
        missing = [col for col in self.partition_key if values.get(col) is None]
        if missing:
            raise InvalidInputError(f"{self.name}: missing partition columns {', '.join(missing)}")
        return tuple(values[col] for col in self.partition_key)


MESSAGES = TableSpec(
    name="messages_by_conversation",
    partition_key=("conversation_id",),
    clustering_key=("created_at", "message_id"),
)

MESSAGE_TS_BY_ID = TableSpec(
    name="message_ts_by_id",
    partition_key=("conversation_id",),
    clustering_key=("message_id",),
)

SERVER_CONFIG = TableSpec(name="server_config_singleton", partition_key=("id",))

INVITES = TableSpec(name="server_invites_by_code", partition_key=("code",))

ROLES = TableSpec(name="server_roles_by_user", partition_key=("server_user_id",))

BANS = TableSpec(name="server_bans_by_user_id", partition_key=("user_id",))

USERS = TableSpec(name="users_by_server_id", partition_key=("server_user_id",))

SERVER_ID_BY_GRYT_ID = TableSpec(name="server_id_by_gryt_id", partition_key=("gryt_user_id",))

REPORTS = TableSpec(
    name="message_reports",
    partition_key=("bucket",),
    clustering_key=("created_at", "report_id"),
    clustering_descending=True,
)

REPORT_TS_BY_ID = TableSpec(name="report_ts_by_id", partition_key=("report_id",))

AUDIT = TableSpec(
    name="server_audit_by_id",
    partition_key=("bucket",),
    clustering_key=("created_at", "event_id"),
    clustering_descending=True,
)

ALL_TABLES = (
    MESSAGES,
    MESSAGE_TS_BY_ID,
    SERVER_CONFIG,
    INVITES,
    ROLES,
    BANS,
    USERS,
    SERVER_ID_BY_GRYT_ID,
    REPORTS,
    REPORT_TS_BY_ID,
    AUDIT,
)
