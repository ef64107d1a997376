"""Server invite store.

Invite lifecycle:
- created once with a random code (insert-if-absent, retried on collision)
- consumed through a compare-and-swap on (uses_remaining, revoked)
- revoked explicitly or automatically when the last use is consumed
- never physically deleted here

Consumption validates in a fixed order on every attempt, against a fresh
read, so it reacts to concurrent revocation and consumption:
not_found -> revoked -> expired -> used_up -> conditional decrement.
"""

import base64
import secrets
from datetime import datetime

from chatstore.errors import InviteCodeCollisionError
from chatstore.logging import get_logger, operation_context
from chatstore.schemas.invites import ConsumeResult, InviteRecord
from chatstore.services.cas import MAX_CAS_ATTEMPTS, Propose, Stop, optimistic_update
from chatstore.store.client import Row, StoreClientBase
from chatstore.store.tables import INVITES
from chatstore.timeutil import as_stored, from_row, utcnow

logger = get_logger(__name__)

CODE_BYTES = 9  # 12 url-safe characters
MAX_CODE_ATTEMPTS = 5
MIN_USES = 1
MAX_USES = 1000
MAX_NOTE_LENGTH = 200


# =============================================================================
# Helper Functions
# =============================================================================


def generate_invite_code() -> str:
    """Random 12-character lowercase url-safe code."""
    raw = secrets.token_bytes(CODE_BYTES)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=").lower()


def normalize_code(code: str | None) -> str:
    return (code or "").strip().lower()


def clamp_max_uses(max_uses: int | None) -> int:
    return max(MIN_USES, min(MAX_USES, int(max_uses if max_uses is not None else 1)))


def row_to_invite(row: Row) -> InviteRecord:
    max_uses = row.get("max_uses")
    uses_remaining = row.get("uses_remaining")
    return InviteRecord(
        code=row["code"],
        created_at=from_row(row["created_at"]),
        created_by_server_user_id=row.get("created_by_server_user_id"),
        expires_at=from_row(row.get("expires_at")),
        max_uses=max_uses if isinstance(max_uses, int) else 1,
        uses_remaining=uses_remaining if isinstance(uses_remaining, int) else 0,
        revoked=bool(row.get("revoked")),
        note=row.get("note"),
    )


def check_consumable(invite: InviteRecord | None, now: datetime) -> ConsumeResult | None:
    """Apply validation precedence. Returns a failure, or None if consumable.

    An invite revoked because its last use was consumed reports used_up;
    revoked is reserved for invites revoked with uses left.
    """
    if invite is None:
        return ConsumeResult(ok=False, reason="not_found")
    if invite.revoked and invite.uses_remaining > 0:
        return ConsumeResult(ok=False, reason="revoked")
    if invite.expires_at is not None and invite.expires_at <= now:
        return ConsumeResult(ok=False, reason="expired")
    if invite.uses_remaining <= 0:
        return ConsumeResult(ok=False, reason="used_up")
    return None


class InviteStore:
    """Create, list, revoke and consume server invites."""

    def __init__(self, client: StoreClientBase):
        self._client = client

    async def create(
        self,
        created_by_server_user_id: str | None,
        *,
        max_uses: int | None = 1,
        expires_at: datetime | None = None,
        note: str | None = None,
    ) -> InviteRecord:
        """Create an invite with a fresh code.

        max_uses is clamped to [1, 1000] and note truncated to 200 characters.

        Raises:
            InviteCodeCollisionError: If every generated code already existed.
        """
        now = utcnow()
        uses = clamp_max_uses(max_uses)
        expiry = as_stored(expires_at) if expires_at is not None else None
        note = str(note)[:MAX_NOTE_LENGTH] if note else None

        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            code = generate_invite_code()
            outcome = await self._client.insert_if_not_exists(
                INVITES,
                {"code": code},
                {
                    "created_at": now,
                    "created_by_server_user_id": created_by_server_user_id,
                    "expires_at": expiry,
                    "max_uses": uses,
                    "uses_remaining": uses,
                    "revoked": False,
                    "note": note,
                },
            )
            if outcome.applied:
                logger.info("invite_created", max_uses=uses, has_expiry=expiry is not None)
                return InviteRecord(
                    code=code,
                    created_at=now,
                    created_by_server_user_id=created_by_server_user_id,
                    expires_at=expiry,
                    max_uses=uses,
                    uses_remaining=uses,
                    revoked=False,
                    note=note,
                )
            logger.warning("invite_code_collision", attempt=attempt)

        raise InviteCodeCollisionError(MAX_CODE_ATTEMPTS)

    async def get(self, code: str) -> InviteRecord | None:
        norm = normalize_code(code)
        if not norm:
            return None
        row = await self._client.get(INVITES, {"code": norm})
        return row_to_invite(row) if row is not None else None

    async def list(self) -> list[InviteRecord]:
        """Every invite. Full scan of a small table."""
        return [row_to_invite(row) for row in await self._client.scan(INVITES)]

    async def revoke(self, code: str, revoked: bool = True) -> None:
        """Set the revoked flag unconditionally. Passing revoked=False reinstates."""
        norm = normalize_code(code)
        if not norm:
            return
        await self._client.upsert(INVITES, {"code": norm}, {"revoked": bool(revoked)})
        logger.info("invite_revoked" if revoked else "invite_reinstated")

    async def consume(self, code: str) -> ConsumeResult:
        """Consume one use of an invite.

        Returns:
            ConsumeResult(ok=True) on success. Otherwise the failure reason:
            not_found, revoked, expired or used_up. Losing every CAS attempt
            also reports used_up.
        """
        norm = normalize_code(code)
        if not norm:
            return ConsumeResult(ok=False, reason="not_found")

        async def read() -> InviteRecord | None:
            return await self.get(norm)

        def decide(invite: InviteRecord | None):
            failure = check_consumable(invite, utcnow())
            if failure is not None:
                return Stop(failure)
            remaining = invite.uses_remaining - 1
            return Propose(
                {"uses_remaining": remaining, "revoked": remaining <= 0},
                ConsumeResult(ok=True),
            )

        async def write(invite: InviteRecord, update: dict):
            return await self._client.update_if(
                INVITES,
                {"code": norm},
                update,
                {"uses_remaining": invite.uses_remaining, "revoked": False},
            )

        with operation_context("invites.consume"):
            result = await optimistic_update(
                read=read,
                decide=decide,
                write=write,
                on_exhausted=lambda _: ConsumeResult(ok=False, reason="used_up"),
                max_attempts=MAX_CAS_ATTEMPTS,
            )
        if result.ok:
            logger.info("invite_consumed")
        return result
