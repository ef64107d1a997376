"""Message store.

Messages live in messages_by_conversation, partitioned by conversation and
clustered by (created_at, message_id). Callers address messages by
(conversation_id, message_id) only, so every by-id operation first resolves
created_at through the message_ts_by_id lookup index. An index miss means
"not found", even if a primary row is still there.

Reactions are toggled with a bounded compare-and-swap loop guarded on the
exact serialized reactions value that was read.
"""

from collections.abc import Callable
from datetime import datetime
from uuid import UUID, uuid4

from chatstore.errors import InvalidInputError, require_text
from chatstore.logging import get_logger, operation_context
from chatstore.schemas.messages import MessageRecord, NewMessage, Reaction
from chatstore.services import reactions as reaction_rules
from chatstore.services.cas import Propose, Stop, optimistic_update
from chatstore.services.lookup import LookupIndex
from chatstore.store.client import Row, StoreClientBase
from chatstore.store.tables import MESSAGE_TS_BY_ID, MESSAGES
from chatstore.timeutil import as_stored, from_row, utcnow

logger = get_logger(__name__)

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 200


# =============================================================================
# Helper Functions
# =============================================================================


def parse_message_id(value: str | UUID) -> UUID:
    """Parse a message id, raising InvalidInputError if it is not a UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(require_text(value, "message_id"))
    except ValueError as exc:
        raise InvalidInputError(f"message_id is not a valid UUID: {value!r}") from exc


def row_to_message(row: Row) -> MessageRecord:
    return MessageRecord(
        conversation_id=row["conversation_id"],
        message_id=str(row["message_id"]),
        created_at=from_row(row["created_at"]),
        sender_server_id=row["sender_server_id"],
        text=row.get("text"),
        attachments=list(row["attachments"]) if row.get("attachments") else None,
        reactions=reaction_rules.parse_reactions(row.get("reactions")) or None,
        reply_to_message_id=row.get("reply_to_message_id"),
        edited_at=from_row(row.get("edited_at")),
    )


class MessageStore:
    """Message CRUD plus reaction toggling."""

    def __init__(self, client: StoreClientBase):
        self._client = client
        self._timestamps = LookupIndex(client, MESSAGE_TS_BY_ID, MESSAGES)

    # =========================================================================
    # Lookup
    # =========================================================================

    async def resolve_key(self, conversation_id: str, message_id: str | UUID) -> dict | None:
        """Resolve the full primary key of a message, or None on an index miss."""
        return await self._timestamps.resolve(
            {
                "conversation_id": require_text(conversation_id, "conversation_id"),
                "message_id": parse_message_id(message_id),
            }
        )

    async def _resolve_row(self, conversation_id: str, message_id: str | UUID) -> tuple[dict, Row] | None:
        key = await self.resolve_key(conversation_id, message_id)
        if key is None:
            return None
        row = await self._client.get(MESSAGES, key)
        if row is None:
            return None
        return key, row

    # =========================================================================
    # CRUD
    # =========================================================================

    async def insert(self, message: NewMessage) -> MessageRecord:
        """Insert a message and its lookup entry.

        message_id and created_at are assigned when absent. created_at is
        truncated to store precision so the lookup entry matches the key.
        """
        conversation_id = require_text(message.conversation_id, "conversation_id")
        sender = require_text(message.sender_server_id, "sender_server_id")
        message_id = parse_message_id(message.message_id) if message.message_id else uuid4()
        created_at = as_stored(message.created_at) if message.created_at else utcnow()

        key = {"conversation_id": conversation_id, "created_at": created_at, "message_id": message_id}
        await self._client.upsert(
            MESSAGES,
            key,
            {
                "sender_server_id": sender,
                "text": message.text,
                "attachments": message.attachments,
                "reactions": reaction_rules.serialize_reactions(message.reactions or []),
                "reply_to_message_id": message.reply_to_message_id,
            },
        )
        await self._timestamps.write(key)

        return MessageRecord(
            conversation_id=conversation_id,
            message_id=str(message_id),
            created_at=created_at,
            sender_server_id=sender,
            text=message.text,
            attachments=message.attachments,
            reactions=message.reactions or None,
            reply_to_message_id=message.reply_to_message_id,
        )

    async def list_page(
        self,
        conversation_id: str,
        *,
        before: datetime | None = None,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> list[MessageRecord]:
        """Return up to limit messages older than before, oldest first.

        The newest matching messages are selected, then returned in
        chronological order for display.
        """
        conversation_id = require_text(conversation_id, "conversation_id")
        limit = max(1, min(MAX_PAGE_LIMIT, int(limit)))
        rows = await self._client.query_partition(
            MESSAGES,
            {"conversation_id": conversation_id},
            less_than=("created_at", as_stored(before)) if before is not None else None,
            descending=True,
            limit=limit,
        )
        messages = [row_to_message(row) for row in rows]
        messages.reverse()
        return messages

    async def get_by_id(self, conversation_id: str, message_id: str | UUID) -> MessageRecord | None:
        resolved = await self._resolve_row(conversation_id, message_id)
        if resolved is None:
            return None
        return row_to_message(resolved[1])

    async def update_text(
        self, conversation_id: str, message_id: str | UUID, text: str
    ) -> MessageRecord | None:
        """Replace the text of a message and stamp edited_at. Last write wins."""
        resolved = await self._resolve_row(conversation_id, message_id)
        if resolved is None:
            return None

        key, row = resolved
        edited_at = utcnow()
        await self._client.upsert(MESSAGES, key, {"text": text, "edited_at": edited_at})
        return row_to_message({**row, "text": text, "edited_at": edited_at})

    async def delete(self, conversation_id: str, message_id: str | UUID) -> bool:
        """Delete a message and its lookup entry.

        Returns:
            False if the lookup entry is missing, True otherwise.
        """
        key = await self.resolve_key(conversation_id, message_id)
        if key is None:
            return False
        await self.delete_by_key(key)
        return True

    async def delete_by_key(self, key: dict) -> None:
        """Delete by full primary key: primary row first, then the lookup entry."""
        await self._client.delete(MESSAGES, key)
        await self._timestamps.delete(self._timestamps.natural_id(key))

    async def scan_all(self) -> list[Row]:
        """Every message row. O(table size)."""
        logger.info("full_table_scan", table=MESSAGES.name)
        return await self._client.scan(MESSAGES)

    # =========================================================================
    # Reactions
    # =========================================================================

    async def toggle_reaction(
        self, conversation_id: str, message_id: str | UUID, src: str, user_id: str
    ) -> MessageRecord | None:
        """Add user_id to the src bucket, or remove them if already present.

        Returns:
            The message with updated reactions, or None if the message does not
            exist or every attempt lost its race (try again later; the
            reactions may or may not have changed in between).
        """
        src = require_text(src, "src")
        user_id = require_text(user_id, "user_id")
        with operation_context("messages.toggle_reaction"):
            return await self._update_reactions(
                conversation_id,
                message_id,
                lambda current: reaction_rules.toggle_reaction(current, src, user_id),
            )

    async def remove_reaction(
        self, conversation_id: str, message_id: str | UUID, src: str, user_id: str
    ) -> MessageRecord | None:
        """Remove user_id from the src bucket.

        Returns None without writing when the user has not reacted with src.
        """
        src = require_text(src, "src")
        user_id = require_text(user_id, "user_id")
        with operation_context("messages.remove_reaction"):
            return await self._update_reactions(
                conversation_id,
                message_id,
                lambda current: reaction_rules.remove_reaction(current, src, user_id),
            )

    async def _update_reactions(
        self,
        conversation_id: str,
        message_id: str | UUID,
        change: Callable[[list[Reaction]], list[Reaction] | None],
    ) -> MessageRecord | None:
        key = await self.resolve_key(conversation_id, message_id)
        if key is None:
            return None

        async def read() -> Row | None:
            return await self._client.get(MESSAGES, key)

        def decide(row: Row | None):
            if row is None:
                return Stop(None)
            updated = change(reaction_rules.parse_reactions(row.get("reactions")))
            if updated is None:
                return Stop(None)
            serialized = reaction_rules.serialize_reactions(updated)
            return Propose(serialized, row_to_message({**row, "reactions": serialized}))

        async def write(row: Row, serialized: str | None):
            # sender_server_id is never null on a live row, so a deleted row cannot match
            return await self._client.update_if(
                MESSAGES,
                key,
                {"reactions": serialized},
                {"reactions": row.get("reactions"), "sender_server_id": row["sender_server_id"]},
            )

        return await optimistic_update(
            read=read,
            decide=decide,
            write=write,
            on_exhausted=lambda _: None,
        )
