"""Server audit log.

Append-only, single partition (bucket "default"), newest first. Fields are
truncated rather than rejected so that auditing never blocks the action
being audited.
"""

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from chatstore.logging import get_logger
from chatstore.schemas.users import AuditRecord
from chatstore.store.client import Row, StoreClientBase
from chatstore.store.tables import AUDIT
from chatstore.timeutil import as_stored, from_row, utcnow

logger = get_logger(__name__)

AUDIT_BUCKET = "default"
MAX_ACTION_LENGTH = 80
MAX_TARGET_LENGTH = 120
MAX_META_LENGTH = 4000
DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200


def row_to_audit(row: Row) -> AuditRecord:
    return AuditRecord(
        event_id=str(row["event_id"]),
        created_at=from_row(row["created_at"]),
        actor_server_user_id=row.get("actor_server_user_id"),
        action=row.get("action") or "",
        target=row.get("target"),
        meta_json=row.get("meta_json"),
    )


class AuditLog:
    def __init__(self, client: StoreClientBase):
        self._client = client

    async def insert(
        self,
        action: str,
        *,
        actor_server_user_id: str | None = None,
        target: str | None = None,
        meta: Any = None,
        created_at: datetime | None = None,
    ) -> AuditRecord:
        """Append an entry. meta is stored as JSON (non-JSON values via str)."""
        event_id = uuid4()
        record = AuditRecord(
            event_id=str(event_id),
            created_at=as_stored(created_at) if created_at else utcnow(),
            actor_server_user_id=actor_server_user_id,
            action=str(action or "")[:MAX_ACTION_LENGTH],
            target=None if target is None else str(target)[:MAX_TARGET_LENGTH],
            meta_json=(
                None
                if meta is None
                else json.dumps(meta, separators=(",", ":"), default=str)[:MAX_META_LENGTH]
            ),
        )
        await self._client.upsert(
            AUDIT,
            {"bucket": AUDIT_BUCKET, "created_at": record.created_at, "event_id": event_id},
            {
                "actor_server_user_id": record.actor_server_user_id,
                "action": record.action,
                "target": record.target,
                "meta_json": record.meta_json,
            },
        )
        logger.debug("audit_recorded", action=record.action)
        return record

    async def list(
        self, limit: int = DEFAULT_LIST_LIMIT, before: datetime | None = None
    ) -> list[AuditRecord]:
        """Newest entries first, optionally only those older than before."""
        limit = max(1, min(MAX_LIST_LIMIT, int(limit)))
        rows = await self._client.query_partition(
            AUDIT,
            {"bucket": AUDIT_BUCKET},
            less_than=("created_at", as_stored(before)) if before is not None else None,
            limit=limit,
        )
        return [row_to_audit(row) for row in rows]
