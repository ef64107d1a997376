"""Composition root: one bundle of stores sharing a store client."""

from dataclasses import dataclass

from chatstore.config import Settings, get_settings
from chatstore.services import (
    AuditLog,
    BanStore,
    InviteStore,
    MessageStore,
    OwnershipTransfer,
    ReportStore,
    RoleStore,
    ServerConfigStore,
    UserStore,
    transfer_ownership,
)
from chatstore.store import StoreClientBase, get_store_client


@dataclass(frozen=True)
class Stores:
    client: StoreClientBase
    messages: MessageStore
    invites: InviteStore
    config: ServerConfigStore
    roles: RoleStore
    bans: BanStore
    users: UserStore
    audit: AuditLog
    reports: ReportStore

    async def transfer_ownership(self, owner_id: str) -> OwnershipTransfer:
        return await transfer_ownership(
            owner_id, config=self.config, roles=self.roles, users=self.users, audit=self.audit
        )

    async def close(self) -> None:
        await self.client.close()


def build_stores(client: StoreClientBase, settings: Settings | None = None) -> Stores:
    """Wire every store onto one client.

    Settings supply the seed limits for the server config row and the
    moderation page size.
    """
    if settings is None:
        settings = get_settings()

    messages = MessageStore(client)
    return Stores(
        client=client,
        messages=messages,
        invites=InviteStore(client),
        config=ServerConfigStore(client, settings.server_limits),
        roles=RoleStore(client),
        bans=BanStore(client),
        users=UserStore(client),
        audit=AuditLog(client),
        reports=ReportStore(client, messages, page_size=settings.report_page_size),
    )


async def open_stores(settings: Settings | None = None) -> Stores:
    """Open the configured store client and build the stores on it."""
    if settings is None:
        settings = get_settings()
    return build_stores(await get_store_client(settings), settings)
