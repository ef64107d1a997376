"""Server role store.

One row per server user; last write wins. Roles read back from storage are
normalized, so an unknown value is treated as member.
"""

from chatstore.errors import InvalidInputError, require_text
from chatstore.logging import get_logger
from chatstore.schemas.server import VALID_ROLES, ServerRole, ServerRoleRecord, normalize_role
from chatstore.store.client import Row, StoreClientBase
from chatstore.store.tables import ROLES
from chatstore.timeutil import from_row, utcnow

logger = get_logger(__name__)


def row_to_role(row: Row) -> ServerRoleRecord:
    created_at = from_row(row.get("created_at")) or utcnow()
    return ServerRoleRecord(
        server_user_id=row["server_user_id"],
        role=normalize_role(row.get("role")),
        created_at=created_at,
        updated_at=from_row(row.get("updated_at")) or created_at,
    )


class RoleStore:
    """Per-user server roles."""

    def __init__(self, client: StoreClientBase):
        self._client = client

    async def get(self, server_user_id: str) -> ServerRole | None:
        """Role of a user, or None if no role row exists."""
        row = await self._client.get(
            ROLES, {"server_user_id": require_text(server_user_id, "server_user_id")}
        )
        return normalize_role(row.get("role")) if row is not None else None

    async def set(self, server_user_id: str, role: str) -> None:
        """Assign a role unconditionally.

        Raises:
            InvalidInputError: If role is not one of owner, admin, mod, member.
        """
        server_user_id = require_text(server_user_id, "server_user_id")
        if role not in VALID_ROLES:
            raise InvalidInputError(f"Unknown role: {role!r}")

        key = {"server_user_id": server_user_id}
        now = utcnow()
        existing = await self._client.get(ROLES, key)
        created_at = existing.get("created_at") if existing else None
        await self._client.upsert(
            ROLES, key, {"role": role, "created_at": created_at or now, "updated_at": now}
        )
        logger.info("role_set", server_user_id=server_user_id, role=role)

    async def list(self) -> list[ServerRoleRecord]:
        return [row_to_role(row) for row in await self._client.scan(ROLES)]

    async def demote_all_owners(self) -> int:
        """Set every owner role to member.

        Returns:
            Number of roles demoted.
        """
        demoted = 0
        for record in await self.list():
            if record.role == "owner":
                await self.set(record.server_user_id, "member")
                demoted += 1
        if demoted:
            logger.info("owners_demoted", count=demoted)
        return demoted
