"""Singleton server config store.

One row (id = "config") per keyspace. Every mutation first makes sure the row
exists via create-if-absent, so conditional writes always target a real row.

Ownership uses a single first-claim-wins conditional write. The token version
(bumped to invalidate issued session tokens) only moves forward through a
guarded compare-and-swap.
"""

from chatstore.config import ServerLimits
from chatstore.errors import ConfigMissingError, require_text
from chatstore.logging import get_logger, operation_context
from chatstore.schemas.server import (
    ClaimOwnerResult,
    ConfigPatch,
    ConfigSeed,
    CreateConfigResult,
    ServerConfigRecord,
    TokenVersionResult,
    normalize_profanity_mode,
)
from chatstore.services.cas import Propose, Stop, optimistic_update
from chatstore.store.client import Row, StoreClientBase
from chatstore.store.tables import SERVER_CONFIG
from chatstore.timeutil import from_row, utcnow

logger = get_logger(__name__)

CONFIG_ID = "config"
CONFIG_KEY = {"id": CONFIG_ID}


def _as_int(value: object) -> int | None:
    return value if isinstance(value, int) and not isinstance(value, bool) else None


def row_to_config(row: Row) -> ServerConfigRecord:
    created_at = from_row(row.get("created_at"))
    updated_at = from_row(row.get("updated_at")) or created_at
    return ServerConfigRecord(
        owner_id=row.get("owner_id"),
        token_version=_as_int(row.get("token_version")) or 0,
        display_name=row.get("display_name"),
        description=row.get("description"),
        icon_url=row.get("icon_url"),
        avatar_max_bytes=_as_int(row.get("avatar_max_bytes")),
        upload_max_bytes=_as_int(row.get("upload_max_bytes")),
        voice_max_bitrate_bps=_as_int(row.get("voice_max_bitrate_bps")),
        profanity_mode=normalize_profanity_mode(row.get("profanity_mode")),
        is_configured=bool(row.get("is_configured")),
        password_salt=row.get("password_salt"),
        password_hash=row.get("password_hash"),
        password_algo=row.get("password_algo"),
        created_at=created_at or utcnow(),
        updated_at=updated_at or utcnow(),
    )


class ServerConfigStore:
    """Read and mutate the server config row.

    Args:
        client: Store client.
        limits: Limits written into the row when it is first created.
    """

    def __init__(self, client: StoreClientBase, limits: ServerLimits | None = None):
        self._client = client
        self._limits = limits or ServerLimits()

    async def _read_row(self) -> Row | None:
        return await self._client.get(SERVER_CONFIG, CONFIG_KEY)

    async def get(self) -> ServerConfigRecord | None:
        row = await self._read_row()
        return row_to_config(row) if row is not None else None

    async def _require(self) -> ServerConfigRecord:
        config = await self.get()
        if config is None:
            raise ConfigMissingError()
        return config

    async def create_if_absent(self, seed: ConfigSeed | None = None) -> CreateConfigResult:
        """Create the config row with defaults unless it already exists.

        Idempotent. Seed values are only used when this call creates the row.

        Returns:
            CreateConfigResult with applied=True if this call created the row,
            and the config as it now stands.

        Raises:
            ConfigMissingError: If the row still cannot be read afterwards.
        """
        seed = seed or ConfigSeed()
        now = utcnow()
        outcome = await self._client.insert_if_not_exists(
            SERVER_CONFIG,
            CONFIG_KEY,
            {
                "owner_id": None,
                "token_version": 0,
                "display_name": seed.display_name,
                "description": seed.description,
                "icon_url": seed.icon_url,
                "avatar_max_bytes": self._limits.avatar_max_bytes,
                "upload_max_bytes": self._limits.upload_max_bytes,
                "voice_max_bitrate_bps": self._limits.voice_max_bitrate_bps,
                "profanity_mode": "off",
                "is_configured": False,
                "created_at": now,
                "updated_at": now,
            },
        )
        if outcome.applied:
            logger.info("server_config_created")

        return CreateConfigResult(applied=outcome.applied, config=await self._require())

    # =========================================================================
    # Ownership
    # =========================================================================

    async def claim_owner(self, owner_id: str) -> ClaimOwnerResult:
        """Become owner only if nobody is. Single attempt, first claim wins."""
        owner_id = require_text(owner_id, "owner_id")
        await self.create_if_absent()

        outcome = await self._client.update_if(
            SERVER_CONFIG,
            CONFIG_KEY,
            {"owner_id": owner_id, "updated_at": utcnow()},
            {"owner_id": None},
        )
        if outcome.applied:
            logger.info("owner_claimed", owner_id=owner_id)
            return ClaimOwnerResult(claimed=True, owner=owner_id)

        if "owner_id" in outcome.observed:
            current = outcome.observed.get("owner_id")
        else:
            config = await self.get()
            current = config.owner_id if config else None
        logger.info("owner_claim_rejected", current_owner=current)
        return ClaimOwnerResult(claimed=False, owner=current)

    async def set_owner(self, owner_id: str) -> ServerConfigRecord:
        """Unconditionally set the owner.

        Raises:
            InvalidInputError: If owner_id is empty.
            ConfigMissingError: If the row cannot be read back.
        """
        owner_id = require_text(owner_id, "owner_id")
        await self.create_if_absent()
        await self._client.upsert(
            SERVER_CONFIG, CONFIG_KEY, {"owner_id": owner_id, "updated_at": utcnow()}
        )
        logger.info("owner_set", owner_id=owner_id)
        return await self._require()

    async def clear_owner(self, clear_configured: bool = True) -> ServerConfigRecord:
        """Remove the owner; by default also mark the server unconfigured."""
        await self.create_if_absent()
        values: dict = {"owner_id": None, "updated_at": utcnow()}
        if clear_configured:
            values["is_configured"] = False
        await self._client.upsert(SERVER_CONFIG, CONFIG_KEY, values)
        logger.info("owner_cleared", clear_configured=clear_configured)
        return await self._require()

    # =========================================================================
    # Token version
    # =========================================================================

    async def set_token_version(self, expected: int, next_version: int) -> TokenVersionResult:
        """Move token_version from expected to next_version in one attempt."""
        await self.create_if_absent()
        outcome = await self._client.update_if(
            SERVER_CONFIG,
            CONFIG_KEY,
            {"token_version": next_version, "updated_at": utcnow()},
            {"token_version": expected},
        )
        if outcome.applied:
            return TokenVersionResult(applied=True, version=next_version)

        observed = _as_int(outcome.observed.get("token_version"))
        if observed is None:
            config = await self.get()
            observed = config.token_version if config else 0
        return TokenVersionResult(applied=False, version=observed)

    async def increment_token_version(self) -> int:
        """Bump token_version by one.

        Returns:
            The new version, or the last version read if every attempt lost
            its race.
        """
        await self.create_if_absent()

        def decide(row: Row | None):
            if row is None:
                return Stop(0)
            current = _as_int(row.get("token_version")) or 0
            return Propose(current + 1, current + 1)

        async def write(row: Row, next_version: int):
            return await self._client.update_if(
                SERVER_CONFIG,
                CONFIG_KEY,
                {"token_version": next_version, "updated_at": utcnow()},
                {"token_version": row.get("token_version")},
            )

        with operation_context("server_config.increment_token_version"):
            version = await optimistic_update(
                read=self._read_row,
                decide=decide,
                write=write,
                on_exhausted=lambda row: (_as_int(row.get("token_version")) or 0) if row else 0,
            )
        logger.debug("token_version_incremented", version=version)
        return version

    # =========================================================================
    # Settings
    # =========================================================================

    async def update(self, patch: ConfigPatch) -> ServerConfigRecord:
        """Write the fields explicitly set on patch. Last write wins."""
        values = patch.model_dump(include=patch.model_fields_set)
        if "profanity_mode" in values:
            values["profanity_mode"] = normalize_profanity_mode(values["profanity_mode"])
        if "is_configured" in values:
            values["is_configured"] = bool(values["is_configured"])

        await self.create_if_absent()
        if values:
            values["updated_at"] = utcnow()
            await self._client.upsert(SERVER_CONFIG, CONFIG_KEY, values)
            logger.info("server_config_updated", fields=sorted(values))
        return await self._require()
