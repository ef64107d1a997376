"""Server configuration, role and ban schemas.

Per deployment there is exactly one chat server per keyspace, so the config
lives in a single row and roles/bans are keyed by user alone.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

ServerRole = Literal["owner", "admin", "mod", "member"]
ProfanityMode = Literal["off", "flag", "censor", "block"]

VALID_ROLES: tuple[str, ...] = ("owner", "admin", "mod", "member")
VALID_PROFANITY_MODES: tuple[str, ...] = ("off", "flag", "censor", "block")


def normalize_role(value: object) -> ServerRole:
    """Map stored role text onto a known role, defaulting to member."""
    role = str(value or "").lower()
    if role in VALID_ROLES:
        return role  # type: ignore[return-value]
    return "member"


def normalize_profanity_mode(value: object) -> ProfanityMode:
    """Map stored mode text onto a known mode, defaulting to off."""
    mode = str(value or "").lower()
    if mode in VALID_PROFANITY_MODES:
        return mode  # type: ignore[return-value]
    return "off"


class ServerConfigRecord(BaseModel):
    """The singleton server config row.

    At most one owner at any time; token_version never decreases.
    """

    owner_id: str | None = None
    token_version: int = 0
    display_name: str | None = None
    description: str | None = None
    icon_url: str | None = None
    avatar_max_bytes: int | None = None
    upload_max_bytes: int | None = None
    voice_max_bitrate_bps: int | None = None
    profanity_mode: ProfanityMode = "off"
    is_configured: bool = False
    password_salt: str | None = None
    password_hash: str | None = None
    password_algo: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConfigSeed(BaseModel):
    """Display values written only when the config row is first created."""

    display_name: str | None = None
    description: str | None = None
    icon_url: str | None = None


class ConfigPatch(BaseModel):
    """Partial update of the config row.

    Only fields explicitly set on the instance are written; an explicit None
    clears the column.
    """

    display_name: str | None = None
    description: str | None = None
    icon_url: str | None = None
    avatar_max_bytes: int | None = None
    upload_max_bytes: int | None = None
    voice_max_bitrate_bps: int | None = None
    profanity_mode: str | None = None
    is_configured: bool | None = None
    password_salt: str | None = None
    password_hash: str | None = None
    password_algo: str | None = None


class CreateConfigResult(BaseModel):
    """Result of create-if-absent: whether this call created the row."""

    applied: bool
    config: ServerConfigRecord


class ClaimOwnerResult(BaseModel):
    """Result of a first-claim-wins ownership attempt."""

    claimed: bool
    owner: str | None = None


class TokenVersionResult(BaseModel):
    """Result of a single token-version compare-and-swap."""

    applied: bool
    version: int


class ServerRoleRecord(BaseModel):
    server_user_id: str
    role: ServerRole
    created_at: datetime
    updated_at: datetime


class BanRecord(BaseModel):
    user_id: str
    banned_by_server_user_id: str
    reason: str | None = None
    created_at: datetime
