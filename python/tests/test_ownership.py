"""Tests for ownership transfer."""

import json

import pytest
from structlog.testing import capture_logs

from chatstore.store.tables import AUDIT


class TestTransferOwnership:
    """Tests for Stores.transfer_ownership."""

    @pytest.mark.asyncio
    async def test_transfer_to_joined_user(self, stores):
        await stores.config.claim_owner("gryt-old")
        old = await stores.users.upsert("gryt-old", "Old")
        new = await stores.users.upsert("gryt-new", "New")
        await stores.roles.set(old.server_user_id, "owner")

        transfer = await stores.transfer_ownership("gryt-new")

        assert transfer.previous_owner == "gryt-old"
        assert transfer.new_owner == "gryt-new"
        assert transfer.demoted_owners == 1
        assert transfer.owner_role_granted is True
        assert transfer.server_user_id == new.server_user_id
        assert (await stores.config.get()).owner_id == "gryt-new"
        assert await stores.roles.get(old.server_user_id) == "member"
        assert await stores.roles.get(new.server_user_id) == "owner"

    @pytest.mark.asyncio
    async def test_transfer_to_user_not_yet_joined(self, stores):
        transfer = await stores.transfer_ownership("gryt-new")

        assert transfer.previous_owner is None
        assert transfer.owner_role_granted is False
        assert transfer.server_user_id is None
        assert (await stores.config.get()).owner_id == "gryt-new"

    @pytest.mark.asyncio
    async def test_records_audit_entry(self, stores):
        await stores.transfer_ownership("gryt-new")

        (entry,) = await stores.audit.list()
        assert entry.action == "owner_set"
        assert entry.target == "gryt-new"
        assert json.loads(entry.meta_json)["to"] == "gryt-new"

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_transfer(self, stores, monkeypatch):
        async def broken_insert(*args, **kwargs):
            raise ConnectionError("audit table unavailable")

        monkeypatch.setattr(stores.audit, "insert", broken_insert)

        with capture_logs() as logs:
            transfer = await stores.transfer_ownership("gryt-new")

        assert transfer.new_owner == "gryt-new"
        assert any(log["event"] == "audit_write_failed" for log in logs)
        assert stores.client.rows(AUDIT) == []
