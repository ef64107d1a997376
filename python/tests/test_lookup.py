"""Tests for the emulated secondary index."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from chatstore.services.lookup import LookupIndex
from chatstore.store.tables import MESSAGE_TS_BY_ID, MESSAGES, REPORT_TS_BY_ID, REPORTS


class TestLookupIndex:
    """Tests for LookupIndex write / resolve / delete."""

    def test_located_columns(self, client):
        messages = LookupIndex(client, MESSAGE_TS_BY_ID, MESSAGES)
        reports = LookupIndex(client, REPORT_TS_BY_ID, REPORTS, fixed={"bucket": "reports"})

        assert messages.located_columns == ("created_at",)
        assert reports.located_columns == ("created_at",)

    @pytest.mark.asyncio
    async def test_resolve_returns_full_primary_key(self, client):
        index = LookupIndex(client, MESSAGE_TS_BY_ID, MESSAGES)
        key = {
            "conversation_id": "general",
            "created_at": datetime(2024, 1, 1, tzinfo=UTC),
            "message_id": uuid4(),
        }

        await index.write(key)
        resolved = await index.resolve(index.natural_id(key))

        assert resolved == key
        assert list(resolved) == list(MESSAGES.primary_key)

    @pytest.mark.asyncio
    async def test_fixed_columns_are_filled_in(self, client):
        index = LookupIndex(client, REPORT_TS_BY_ID, REPORTS, fixed={"bucket": "reports"})
        key = {"bucket": "reports", "created_at": datetime(2024, 1, 1, tzinfo=UTC), "report_id": uuid4()}

        await index.write(key)
        (entry,) = client.rows(REPORT_TS_BY_ID)

        assert "bucket" not in entry
        assert await index.resolve({"report_id": key["report_id"]}) == key

    @pytest.mark.asyncio
    async def test_miss_and_delete(self, client):
        index = LookupIndex(client, MESSAGE_TS_BY_ID, MESSAGES)
        natural = {"conversation_id": "general", "message_id": uuid4()}

        assert await index.resolve(natural) is None

        await index.write({**natural, "created_at": datetime(2024, 1, 1, tzinfo=UTC)})
        await index.delete(natural)

        assert await index.resolve(natural) is None

    @pytest.mark.asyncio
    async def test_entry_without_location_is_a_miss(self, client):
        index = LookupIndex(client, MESSAGE_TS_BY_ID, MESSAGES)
        natural = {"conversation_id": "general", "message_id": uuid4()}
        client.put_row(MESSAGE_TS_BY_ID, natural)

        assert await index.resolve(natural) is None
