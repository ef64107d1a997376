"""User directory.

Users are stored by server-scoped id (user_<uuid>). The global account id
resolves to it through a lookup index, written after the user row.
"""

import asyncio
from collections.abc import Iterable
from uuid import uuid4

from chatstore.errors import require_text
from chatstore.logging import get_logger
from chatstore.schemas.users import UserRecord, UserSummary
from chatstore.services.lookup import LookupIndex
from chatstore.store.client import Row, StoreClientBase
from chatstore.store.tables import SERVER_ID_BY_GRYT_ID, USERS
from chatstore.timeutil import from_row, utcnow

logger = get_logger(__name__)


def new_server_user_id() -> str:
    return f"user_{uuid4()}"


def row_to_user(row: Row) -> UserRecord:
    created_at = from_row(row.get("created_at")) or utcnow()
    is_active = row.get("is_active")
    return UserRecord(
        server_user_id=row["server_user_id"],
        gryt_user_id=row.get("gryt_user_id") or "",
        nickname=row.get("nickname") or "",
        avatar_file_id=row.get("avatar_file_id"),
        joined_with_invite_code=row.get("joined_with_invite_code"),
        created_at=created_at,
        last_seen=from_row(row.get("last_seen")) or created_at,
        is_active=is_active if isinstance(is_active, bool) else True,
    )


class UserStore:
    """Create, refresh and resolve server users."""

    def __init__(self, client: StoreClientBase):
        self._client = client
        self._by_gryt_id = LookupIndex(client, SERVER_ID_BY_GRYT_ID, USERS)

    async def upsert(
        self,
        gryt_user_id: str,
        nickname: str,
        *,
        avatar_file_id: str | None = None,
        invite_code: str | None = None,
    ) -> UserRecord:
        """Register a user on first sight, or refresh nickname and last_seen.

        An existing avatar is kept when avatar_file_id is not given. The
        invite code is only recorded for new users.
        """
        gryt_user_id = require_text(gryt_user_id, "gryt_user_id")
        now = utcnow()
        existing = await self.get_by_gryt_id(gryt_user_id)

        if existing is not None:
            avatar = avatar_file_id or existing.avatar_file_id
            await self._client.upsert(
                USERS,
                {"server_user_id": existing.server_user_id},
                {"nickname": nickname, "avatar_file_id": avatar, "last_seen": now, "is_active": True},
            )
            return existing.model_copy(
                update={"nickname": nickname, "avatar_file_id": avatar, "last_seen": now, "is_active": True}
            )

        server_user_id = new_server_user_id()
        await self._client.upsert(
            USERS,
            {"server_user_id": server_user_id},
            {
                "gryt_user_id": gryt_user_id,
                "nickname": nickname,
                "avatar_file_id": avatar_file_id,
                "joined_with_invite_code": invite_code,
                "created_at": now,
                "last_seen": now,
                "is_active": True,
            },
        )
        await self._by_gryt_id.write({"gryt_user_id": gryt_user_id, "server_user_id": server_user_id})
        logger.info("user_registered", server_user_id=server_user_id, via_invite=invite_code is not None)

        return UserRecord(
            server_user_id=server_user_id,
            gryt_user_id=gryt_user_id,
            nickname=nickname,
            avatar_file_id=avatar_file_id,
            joined_with_invite_code=invite_code,
            created_at=now,
            last_seen=now,
            is_active=True,
        )

    async def get_by_server_id(self, server_user_id: str) -> UserRecord | None:
        row = await self._client.get(
            USERS, {"server_user_id": require_text(server_user_id, "server_user_id")}
        )
        return row_to_user(row) if row is not None else None

    async def get_by_gryt_id(self, gryt_user_id: str) -> UserRecord | None:
        key = await self._by_gryt_id.resolve(
            {"gryt_user_id": require_text(gryt_user_id, "gryt_user_id")}
        )
        if key is None:
            return None
        return await self.get_by_server_id(key["server_user_id"])

    async def get_many(self, server_user_ids: Iterable[str]) -> dict[str, UserSummary]:
        """Resolve display fields for many users concurrently.

        Duplicates and blanks are ignored. Unknown users and lookups that
        fail are left out of the result; failures are logged, not raised.
        """
        unique = list(dict.fromkeys(uid for uid in server_user_ids if uid and uid.strip()))
        if not unique:
            return {}

        results = await asyncio.gather(
            *(self.get_by_server_id(uid) for uid in unique), return_exceptions=True
        )

        summaries: dict[str, UserSummary] = {}
        for server_user_id, result in zip(unique, results):
            if isinstance(result, Exception):
                logger.warning(
                    "user_lookup_failed",
                    server_user_id=server_user_id,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                continue
            if isinstance(result, BaseException):
                raise result
            if result is not None:
                summaries[server_user_id] = UserSummary(
                    nickname=result.nickname, avatar_file_id=result.avatar_file_id
                )
        return summaries
