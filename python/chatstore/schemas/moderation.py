"""Moderation report schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

ReportStatus = Literal["pending", "approved", "deleted"]
Resolution = Literal["approved", "deleted"]

RESOLUTIONS: tuple[str, ...] = ("approved", "deleted")


class NewReport(BaseModel):
    """Report payload: a snapshot of the reported message plus the reporter."""

    message_id: str
    conversation_id: str
    reporter_server_user_id: str
    message_text: str | None = None
    message_attachments: list[str] | None = None
    message_sender_server_id: str
    message_sender_nickname: str | None = None


class ReportRecord(NewReport):
    """A stored report. Status moves one way: pending -> approved | deleted."""

    report_id: str
    status: ReportStatus = "pending"
    resolved_by_server_user_id: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AggregatedReport(BaseModel):
    """Pending reports grouped by reported message.

    report_count counts distinct reporters, not report rows.
    """

    message_id: str
    conversation_id: str
    message_text: str | None = None
    message_attachments: list[str] | None = None
    message_sender_server_id: str
    message_sender_nickname: str | None = None
    report_count: int
    reporters: list[str]
    first_reported_at: datetime
    report_ids: list[str]
