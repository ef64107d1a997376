"""Tests for the server audit log."""

import json
from datetime import UTC, datetime, timedelta

import pytest


class TestAuditLog:
    """Tests for AuditLog insert and list."""

    @pytest.mark.asyncio
    async def test_insert_truncates_fields(self, stores):
        record = await stores.audit.insert(
            "a" * 100,
            target="t" * 200,
            meta={"blob": "x" * 5000},
        )

        assert len(record.action) == 80
        assert len(record.target) == 120
        assert len(record.meta_json) == 4000

    @pytest.mark.asyncio
    async def test_meta_serialized_as_json(self, stores):
        record = await stores.audit.insert("owner_set", actor_server_user_id="user_a", meta={"to": "b"})
        assert json.loads(record.meta_json) == {"to": "b"}

    @pytest.mark.asyncio
    async def test_no_meta_is_null(self, stores):
        record = await stores.audit.insert("server_started")
        assert record.meta_json is None
        assert record.target is None

    @pytest.mark.asyncio
    async def test_list_newest_first_with_cursor(self, stores):
        base = datetime(2024, 1, 1, tzinfo=UTC)
        for i in range(5):
            await stores.audit.insert(f"event{i}", created_at=base + timedelta(minutes=i))

        newest = await stores.audit.list(limit=2)
        assert [r.action for r in newest] == ["event4", "event3"]

        older = await stores.audit.list(limit=10, before=newest[-1].created_at)
        assert [r.action for r in older] == ["event2", "event1", "event0"]

    @pytest.mark.asyncio
    async def test_list_limit_clamped(self, stores):
        for i in range(3):
            await stores.audit.insert(f"event{i}")
        assert len(await stores.audit.list(limit=0)) == 1
        assert len(await stores.audit.list(limit=10_000)) == 3
