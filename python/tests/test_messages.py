"""Tests for the message store.

Verifies:
- Insert writes the primary row and its lookup entry
- Lookup by (conversation_id, message_id) for get / update / delete
- A lookup miss means "not found" even if the primary row remains
- Paging: newest page selected, returned oldest first
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
import pytest_asyncio

from chatstore.errors import InvalidInputError
from chatstore.schemas import NewMessage
from chatstore.store.tables import MESSAGE_TS_BY_ID, MESSAGES


class TestInsert:
    """Tests for MessageStore.insert."""

    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_timestamp(self, stores, message_factory):
        msg = await message_factory(text="hi")

        assert msg.message_id
        assert msg.created_at.tzinfo is not None
        assert msg.created_at.microsecond % 1000 == 0
        assert msg.edited_at is None

    @pytest.mark.asyncio
    async def test_insert_writes_lookup_entry(self, client, message_factory):
        msg = await message_factory()

        (entry,) = client.rows(MESSAGE_TS_BY_ID)
        assert str(entry["message_id"]) == msg.message_id
        assert entry["created_at"] == msg.created_at

    @pytest.mark.asyncio
    async def test_insert_keeps_supplied_id_and_truncates_time(self, stores):
        message_id = str(uuid4())
        created_at = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=UTC)

        msg = await stores.messages.insert(
            NewMessage(
                conversation_id="general",
                sender_server_id="user_a",
                text="x",
                message_id=message_id,
                created_at=created_at,
            )
        )

        assert msg.message_id == message_id
        assert msg.created_at == datetime(2024, 5, 1, 12, 0, 0, 123000, tzinfo=UTC)
        assert await stores.messages.get_by_id("general", message_id) is not None

    @pytest.mark.asyncio
    async def test_insert_requires_conversation(self, stores):
        with pytest.raises(InvalidInputError):
            await stores.messages.insert(NewMessage(conversation_id="  ", sender_server_id="user_a"))


class TestGetById:
    """Tests for lookup-index resolution."""

    @pytest.mark.asyncio
    async def test_round_trip(self, stores, message_factory):
        msg = await message_factory(text="hello", attachments=["file_1"], reply_to_message_id="m0")

        found = await stores.messages.get_by_id(msg.conversation_id, msg.message_id)

        assert found == msg

    @pytest.mark.asyncio
    async def test_wrong_conversation_is_not_found(self, stores, message_factory):
        msg = await message_factory(conversation_id="general")
        assert await stores.messages.get_by_id("random", msg.message_id) is None

    @pytest.mark.asyncio
    async def test_lookup_miss_hides_primary_row(self, client, stores, message_factory):
        msg = await message_factory()
        key = await stores.messages.resolve_key(msg.conversation_id, msg.message_id)
        await client.delete(MESSAGE_TS_BY_ID, key)

        assert await stores.messages.get_by_id(msg.conversation_id, msg.message_id) is None
        assert await stores.messages.delete(msg.conversation_id, msg.message_id) is False
        assert len(client.rows(MESSAGES)) == 1

    @pytest.mark.asyncio
    async def test_malformed_message_id_rejected(self, stores):
        with pytest.raises(InvalidInputError):
            await stores.messages.get_by_id("general", "not-a-uuid")


class TestUpdateText:
    """Tests for MessageStore.update_text."""

    @pytest.mark.asyncio
    async def test_update_sets_text_and_edited_at(self, stores, message_factory):
        msg = await message_factory(text="before")

        updated = await stores.messages.update_text(msg.conversation_id, msg.message_id, "after")

        assert updated.text == "after"
        assert updated.edited_at is not None
        stored = await stores.messages.get_by_id(msg.conversation_id, msg.message_id)
        assert stored.text == "after"
        assert stored.edited_at == updated.edited_at

    @pytest.mark.asyncio
    async def test_update_unknown_message_returns_none(self, stores):
        assert await stores.messages.update_text("general", str(uuid4()), "x") is None


class TestDelete:
    """Tests for MessageStore.delete."""

    @pytest.mark.asyncio
    async def test_delete_removes_row_and_lookup(self, client, stores, message_factory):
        msg = await message_factory()

        assert await stores.messages.delete(msg.conversation_id, msg.message_id) is True

        assert client.rows(MESSAGES) == []
        assert client.rows(MESSAGE_TS_BY_ID) == []
        assert await stores.messages.get_by_id(msg.conversation_id, msg.message_id) is None

    @pytest.mark.asyncio
    async def test_delete_unknown_returns_false(self, stores):
        assert await stores.messages.delete("general", str(uuid4())) is False


class TestListPage:
    """Tests for MessageStore.list_page."""

    @pytest_asyncio.fixture
    async def timeline(self, message_factory):
        base = datetime(2024, 1, 1, tzinfo=UTC)
        return [
            await message_factory(text=f"m{i}", created_at=base + timedelta(minutes=i))
            for i in range(5)
        ]

    @pytest.mark.asyncio
    async def test_returns_newest_page_oldest_first(self, stores, timeline):
        page = await stores.messages.list_page("general", limit=3)
        assert [m.text for m in page] == ["m2", "m3", "m4"]

    @pytest.mark.asyncio
    async def test_before_is_exclusive(self, stores, timeline):
        page = await stores.messages.list_page("general", before=timeline[3].created_at, limit=10)
        assert [m.text for m in page] == ["m0", "m1", "m2"]

    @pytest.mark.asyncio
    async def test_other_conversation_is_isolated(self, stores, timeline, message_factory):
        await message_factory(conversation_id="random", text="elsewhere")
        page = await stores.messages.list_page("random")
        assert [m.text for m in page] == ["elsewhere"]

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self, stores, timeline):
        page = await stores.messages.list_page("general", limit=0)
        assert len(page) == 1
