"""Ownership administration.

Transfers server ownership outside the normal first-claim flow (operator
recovery). The steps are independent writes, not a transaction.
"""

from pydantic import BaseModel

from chatstore.errors import require_text
from chatstore.logging import get_logger
from chatstore.services.audit import AuditLog
from chatstore.services.roles import RoleStore
from chatstore.services.server_config import ServerConfigStore
from chatstore.services.users import UserStore

logger = get_logger(__name__)


class OwnershipTransfer(BaseModel):
    """What a transfer changed."""

    previous_owner: str | None = None
    new_owner: str
    demoted_owners: int
    owner_role_granted: bool
    server_user_id: str | None = None


async def transfer_ownership(
    owner_id: str,
    *,
    config: ServerConfigStore,
    roles: RoleStore,
    users: UserStore,
    audit: AuditLog,
) -> OwnershipTransfer:
    """Make owner_id the server owner.

    1. set the owner on the config row
    2. demote every existing owner role to member
    3. grant the owner role to the new owner's server identity, if they
       have joined
    4. record an owner_set audit entry; failure here is logged, not raised
    """
    owner_id = require_text(owner_id, "owner_id")
    previous = await config.get()
    previous_owner = previous.owner_id if previous else None

    await config.set_owner(owner_id)
    demoted = await roles.demote_all_owners()

    user = await users.get_by_gryt_id(owner_id)
    if user is not None:
        await roles.set(user.server_user_id, "owner")

    transfer = OwnershipTransfer(
        previous_owner=previous_owner,
        new_owner=owner_id,
        demoted_owners=demoted,
        owner_role_granted=user is not None,
        server_user_id=user.server_user_id if user else None,
    )

    try:
        await audit.insert(
            "owner_set",
            target=owner_id,
            meta={
                "from": previous_owner,
                "to": owner_id,
                "demoted_owners": demoted,
                "ensured_owner_role": transfer.owner_role_granted,
            },
        )
    except Exception as exc:
        logger.warning("audit_write_failed", action="owner_set", error=str(exc))

    logger.info("ownership_transferred", **transfer.model_dump())
    return transfer
