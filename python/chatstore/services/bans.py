"""Server ban store. Keyed by the global user id so a ban survives re-joins."""

from chatstore.errors import require_text
from chatstore.logging import get_logger
from chatstore.schemas.server import BanRecord
from chatstore.store.client import Row, StoreClientBase
from chatstore.store.tables import BANS
from chatstore.timeutil import from_row, utcnow

logger = get_logger(__name__)


def row_to_ban(row: Row) -> BanRecord:
    return BanRecord(
        user_id=row["user_id"],
        banned_by_server_user_id=row.get("banned_by_server_user_id") or "",
        reason=row.get("reason"),
        created_at=from_row(row.get("created_at")) or utcnow(),
    )


class BanStore:
    def __init__(self, client: StoreClientBase):
        self._client = client

    async def ban(self, user_id: str, banned_by_server_user_id: str, reason: str | None = None) -> None:
        user_id = require_text(user_id, "user_id")
        await self._client.upsert(
            BANS,
            {"user_id": user_id},
            {
                "banned_by_server_user_id": require_text(
                    banned_by_server_user_id, "banned_by_server_user_id"
                ),
                "reason": reason,
                "created_at": utcnow(),
            },
        )
        logger.info("user_banned", banned_by=banned_by_server_user_id)

    async def unban(self, user_id: str) -> None:
        await self._client.delete(BANS, {"user_id": require_text(user_id, "user_id")})
        logger.info("user_unbanned")

    async def is_banned(self, user_id: str) -> bool:
        row = await self._client.get(BANS, {"user_id": require_text(user_id, "user_id")})
        return row is not None

    async def list(self) -> list[BanRecord]:
        return [row_to_ban(row) for row in await self._client.scan(BANS)]
