"""Application settings loaded from environment variables.

Environment Configuration:
    CHATSTORE_ENV: Deployment environment (local | test | staging | prod)
    LOG_JSON: Emit JSON logs (default true); false switches to console output

Store Configuration:
    SCYLLA_CONTACT_POINTS: Comma-separated contact points (required in staging/prod)
    SCYLLA_PORT: Native protocol port (default 9042)
    SCYLLA_LOCAL_DATACENTER: Local datacenter for load balancing
    SCYLLA_KEYSPACE: Keyspace holding all tables (one chat server per keyspace)
    SCYLLA_USERNAME / SCYLLA_PASSWORD: Plain-text auth, both or neither
    SCYLLA_FETCH_SIZE: Page size used for full-table scans

Server Defaults:
    DEFAULT_AVATAR_MAX_BYTES, DEFAULT_UPLOAD_MAX_BYTES, DEFAULT_VOICE_MAX_BITRATE_BPS
    are only used to seed the server config row the first time it is created.
    They reach the config store through an explicit ServerLimits value.
"""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


@dataclass(frozen=True)
class ServerLimits:
    """Default limits written into a freshly created server config row."""

    avatar_max_bytes: int = 5 * 1024 * 1024  # 5 MB
    upload_max_bytes: int = 20 * 1024 * 1024  # 20 MB
    voice_max_bitrate_bps: int = 96_000


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - SCYLLA_USERNAME and SCYLLA_PASSWORD must be set together
    - SCYLLA_CONTACT_POINTS is required in staging and prod
    """

    chatstore_env: Environment = Field(default=Environment.LOCAL, alias="CHATSTORE_ENV")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # Store connection
    scylla_contact_points: str | None = Field(default=None, alias="SCYLLA_CONTACT_POINTS")
    scylla_port: int = Field(default=9042, alias="SCYLLA_PORT")
    scylla_local_datacenter: str = Field(default="datacenter1", alias="SCYLLA_LOCAL_DATACENTER")
    scylla_keyspace: str = Field(default="chat", alias="SCYLLA_KEYSPACE")
    scylla_username: str | None = Field(default=None, alias="SCYLLA_USERNAME")
    scylla_password: str | None = Field(default=None, alias="SCYLLA_PASSWORD")
    scylla_fetch_size: int = Field(default=5000, ge=1, alias="SCYLLA_FETCH_SIZE")

    # Server config seed values
    default_avatar_max_bytes: int = Field(
        default=5 * 1024 * 1024, ge=0, alias="DEFAULT_AVATAR_MAX_BYTES"
    )
    default_upload_max_bytes: int = Field(
        default=20 * 1024 * 1024, ge=0, alias="DEFAULT_UPLOAD_MAX_BYTES"
    )
    default_voice_max_bitrate_bps: int = Field(
        default=96_000, ge=0, alias="DEFAULT_VOICE_MAX_BITRATE_BPS"
    )

    # Moderation
    report_page_size: int = Field(default=100, ge=1, le=1000, alias="REPORT_PAGE_SIZE")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure credentials are paired and production has real contact points."""
        if bool(self.scylla_username) != bool(self.scylla_password):
            raise ValueError("SCYLLA_USERNAME and SCYLLA_PASSWORD must be set together")

        if self.chatstore_env in (Environment.STAGING, Environment.PROD):
            if not self.contact_point_list:
                raise ValueError(
                    f"SCYLLA_CONTACT_POINTS is required for CHATSTORE_ENV={self.chatstore_env.value}"
                )

        return self

    @property
    def contact_point_list(self) -> list[str]:
        """Parse comma-separated contact points into a list."""
        if self.scylla_contact_points:
            return [p.strip() for p in self.scylla_contact_points.split(",") if p.strip()]
        return []

    @property
    def server_limits(self) -> ServerLimits:
        """Seed limits for the server config row."""
        return ServerLimits(
            avatar_max_bytes=self.default_avatar_max_bytes,
            upload_max_bytes=self.default_upload_max_bytes,
            voice_max_bitrate_bps=self.default_voice_max_bitrate_bps,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
