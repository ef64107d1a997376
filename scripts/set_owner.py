#!/usr/bin/env python
"""Set the server owner.

Operator recovery tool: assigns ownership to a global user id, demotes every
other owner role, grants the owner role to the new owner if they have already
joined, and records an owner_set audit entry.

Usage:
    SCYLLA_CONTACT_POINTS=... python scripts/set_owner.py --gryt-user-id <user_sub>

Without SCYLLA_CONTACT_POINTS the in-memory store is used, which is only
useful for trying the command out.
"""

import argparse
import asyncio
import sys

from chatstore.config import get_settings
from chatstore.errors import StoreError
from chatstore.logging import configure_logging, get_logger
from chatstore.stores import open_stores

logger = get_logger("set_owner")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Set the chat server owner.")
    parser.add_argument(
        "--gryt-user-id",
        required=True,
        help="Global user id of the new owner",
    )
    args = parser.parse_args(argv)
    args.gryt_user_id = args.gryt_user_id.strip()
    if not args.gryt_user_id:
        parser.error("--gryt-user-id must not be empty")
    return args


async def run(gryt_user_id: str) -> None:
    stores = await open_stores()
    try:
        transfer = await stores.transfer_ownership(gryt_user_id)
    finally:
        await stores.close()

    logger.info(
        "owner_updated",
        previous_owner=transfer.previous_owner,
        new_owner=transfer.new_owner,
        demoted_owners=transfer.demoted_owners,
        owner_role_granted=transfer.owner_role_granted,
        server_user_id=transfer.server_user_id,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(json_format=get_settings().log_json)

    try:
        asyncio.run(run(args.gryt_user_id))
    except StoreError as exc:
        logger.error("set_owner_failed", error_code=exc.code.value, error=exc.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
