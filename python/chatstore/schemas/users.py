"""User directory and audit log schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserRecord(BaseModel):
    """A user's server-scoped identity.

    gryt_user_id is the global account id and never leaves the backend;
    server_user_id is the id other server tables reference.
    """

    server_user_id: str
    gryt_user_id: str
    nickname: str
    avatar_file_id: str | None = None
    joined_with_invite_code: str | None = None
    created_at: datetime
    last_seen: datetime
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """Display fields resolved in bulk for message rendering."""

    nickname: str
    avatar_file_id: str | None = None


class AuditRecord(BaseModel):
    """One entry of the server audit log."""

    event_id: str
    created_at: datetime
    actor_server_user_id: str | None = None
    action: str
    target: str | None = None
    meta_json: str | None = None
