"""Server invite schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

# Why a consumption attempt did not take effect
ConsumeFailureReason = Literal["not_found", "revoked", "expired", "used_up"]


class InviteRecord(BaseModel):
    """An invite code and its remaining capacity.

    0 <= uses_remaining <= max_uses; revoked is set once uses_remaining hits 0.
    """

    code: str
    created_at: datetime
    created_by_server_user_id: str | None = None
    expires_at: datetime | None = None
    max_uses: int
    uses_remaining: int
    revoked: bool = False
    note: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ConsumeResult(BaseModel):
    """Outcome of consuming one use of an invite."""

    ok: bool
    reason: ConsumeFailureReason | None = None
