"""Message and reaction schemas.

Reactions are persisted as one serialized text column on the message row so a
whole toggle can be guarded by a single conditional write on that column.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Reaction(BaseModel):
    """One reaction bucket on a message.

    count always equals len(users); zero-count buckets are never stored.
    """

    src: str
    count: int = Field(ge=0)
    users: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def count_matches_users(self) -> "Reaction":
        if self.count != len(self.users):
            raise ValueError(f"reaction {self.src!r}: count {self.count} != {len(self.users)} users")
        return self


class MessageRecord(BaseModel):
    """A message as resolved from the primary table."""

    conversation_id: str
    message_id: str
    created_at: datetime
    sender_server_id: str
    text: str | None = None
    attachments: list[str] | None = None
    reactions: list[Reaction] | None = None
    reply_to_message_id: str | None = None
    edited_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NewMessage(BaseModel):
    """Insert payload; message_id and created_at are assigned when absent."""

    conversation_id: str
    sender_server_id: str
    text: str | None = None
    attachments: list[str] | None = None
    reactions: list[Reaction] | None = None
    reply_to_message_id: str | None = None
    message_id: str | None = None
    created_at: datetime | None = None


class MessageRef(BaseModel):
    """Natural identity of a message."""

    conversation_id: str
    message_id: str
