"""Moderation report store.

Reports share one partition (bucket "reports") clustered newest first, and
are read back one page at a time. Every moderation view (pending list,
per-message counts, aggregation) is computed in memory from that page, so
reports older than the page are invisible to them.

Resolution finds a report's clustering timestamp through a report_id lookup
index instead of a filtering scan.
"""

from uuid import UUID, uuid4

from chatstore.errors import InvalidInputError, require_text
from chatstore.logging import get_logger
from chatstore.schemas.messages import MessageRef
from chatstore.schemas.moderation import (
    RESOLUTIONS,
    AggregatedReport,
    NewReport,
    ReportRecord,
    ReportStatus,
)
from chatstore.services.lookup import LookupIndex
from chatstore.services.messages import MessageStore
from chatstore.store.client import Row, StoreClientBase
from chatstore.store.tables import REPORT_TS_BY_ID, REPORTS
from chatstore.timeutil import from_row, utcnow

logger = get_logger(__name__)

REPORTS_BUCKET = "reports"
DEFAULT_PAGE_SIZE = 100


# =============================================================================
# Helper Functions
# =============================================================================


def parse_report_id(value: str | UUID) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(require_text(value, "report_id"))
    except ValueError as exc:
        raise InvalidInputError(f"report_id is not a valid UUID: {value!r}") from exc


def row_to_report(row: Row) -> ReportRecord:
    attachments = row.get("message_attachments")
    return ReportRecord(
        report_id=str(row["report_id"]),
        message_id=row["message_id"],
        conversation_id=row["conversation_id"],
        reporter_server_user_id=row["reporter_server_user_id"],
        message_text=row.get("message_text"),
        message_attachments=list(attachments) if attachments else None,
        message_sender_server_id=row["message_sender_server_id"],
        message_sender_nickname=row.get("message_sender_nickname"),
        status=row.get("status") or "pending",
        resolved_by_server_user_id=row.get("resolved_by_server_user_id"),
        created_at=from_row(row["created_at"]),
        resolved_at=from_row(row.get("resolved_at")),
    )


def aggregate_reports(reports: list[ReportRecord]) -> list[AggregatedReport]:
    """Group reports by message.

    The message snapshot comes from the first report seen for it. Reporters
    are distinct and keep first-seen order. Sorted by reporter count, then by
    earliest report time, both descending.
    """
    groups: dict[str, dict] = {}
    for report in reports:
        group = groups.get(report.message_id)
        if group is None:
            groups[report.message_id] = {
                "message_id": report.message_id,
                "conversation_id": report.conversation_id,
                "message_text": report.message_text,
                "message_attachments": report.message_attachments,
                "message_sender_server_id": report.message_sender_server_id,
                "message_sender_nickname": report.message_sender_nickname,
                "reporters": [report.reporter_server_user_id],
                "first_reported_at": report.created_at,
                "report_ids": [report.report_id],
            }
            continue

        if report.reporter_server_user_id not in group["reporters"]:
            group["reporters"].append(report.reporter_server_user_id)
        group["report_ids"].append(report.report_id)
        if report.created_at < group["first_reported_at"]:
            group["first_reported_at"] = report.created_at

    aggregated = [
        AggregatedReport(report_count=len(group["reporters"]), **group) for group in groups.values()
    ]
    aggregated.sort(key=lambda a: (a.report_count, a.first_reported_at), reverse=True)
    return aggregated


class ReportStore:
    """Message reports and the moderation views built on them.

    Args:
        client: Store client.
        messages: Message store, used for bulk deletion by sender.
        page_size: Number of newest reports every view reads.
    """

    def __init__(
        self,
        client: StoreClientBase,
        messages: MessageStore,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self._client = client
        self._messages = messages
        self._page_size = page_size
        self._timestamps = LookupIndex(
            client, REPORT_TS_BY_ID, REPORTS, fixed={"bucket": REPORTS_BUCKET}
        )

    async def insert_report(self, report: NewReport) -> ReportRecord:
        """Store a pending report and its lookup entry."""
        report_id = uuid4()
        created_at = utcnow()
        key = {"bucket": REPORTS_BUCKET, "created_at": created_at, "report_id": report_id}

        await self._client.upsert(
            REPORTS,
            key,
            {
                **report.model_dump(),
                "status": "pending",
                "resolved_by_server_user_id": None,
                "resolved_at": None,
            },
        )
        await self._timestamps.write(key)
        logger.info("report_created", report_id=str(report_id), message_id=report.message_id)

        return ReportRecord(report_id=str(report_id), created_at=created_at, **report.model_dump())

    async def list_reports(
        self, status: ReportStatus | None = None, limit: int | None = None
    ) -> list[ReportRecord]:
        """One page of reports, newest first, optionally filtered by status.

        The filter applies after the page is read, so fewer than limit
        reports may come back even when more exist.
        """
        rows = await self._client.query_partition(
            REPORTS, {"bucket": REPORTS_BUCKET}, limit=limit or self._page_size
        )
        reports = [row_to_report(row) for row in rows]
        if status:
            reports = [r for r in reports if r.status == status]
        return reports

    async def resolve_report(
        self, report_id: str | UUID, resolution: str, resolved_by_server_user_id: str
    ) -> bool:
        """Mark a pending report approved or deleted.

        Resolution is one-way: the write is conditional on status still
        being pending, so the first resolution sticks.

        Returns:
            True if this call resolved the report; False if the report is
            unknown or already resolved.

        Raises:
            InvalidInputError: If resolution is not approved or deleted.
        """
        if resolution not in RESOLUTIONS:
            raise InvalidInputError(f"Unknown resolution: {resolution!r}")
        resolved_by = require_text(resolved_by_server_user_id, "resolved_by_server_user_id")

        key = await self._timestamps.resolve({"report_id": parse_report_id(report_id)})
        if key is None:
            return False

        outcome = await self._client.update_if(
            REPORTS,
            key,
            {"status": resolution, "resolved_by_server_user_id": resolved_by, "resolved_at": utcnow()},
            {"status": "pending"},
        )
        if not outcome.applied:
            logger.info(
                "report_already_resolved",
                report_id=str(key["report_id"]),
                status=outcome.observed.get("status"),
            )
            return False
        logger.info("report_resolved", report_id=str(key["report_id"]), resolution=resolution)
        return True

    async def resolve_all_for_message(
        self, message_id: str, resolution: str, resolved_by_server_user_id: str
    ) -> int:
        """Resolve every pending report of a message. Returns how many were resolved."""
        resolved = 0
        for report in await self.list_reports("pending"):
            if report.message_id != message_id:
                continue
            if await self.resolve_report(report.report_id, resolution, resolved_by_server_user_id):
                resolved += 1
        return resolved

    async def has_user_reported(self, message_id: str, reporter_server_user_id: str) -> bool:
        return any(
            r.message_id == message_id and r.reporter_server_user_id == reporter_server_user_id
            for r in await self.list_reports("pending")
        )

    async def report_count_for_message(self, message_id: str) -> int:
        """Distinct pending reporters of a message."""
        return len(
            {
                r.reporter_server_user_id
                for r in await self.list_reports("pending")
                if r.message_id == message_id
            }
        )

    async def aggregate_pending(self) -> list[AggregatedReport]:
        return aggregate_reports(await self.list_reports("pending"))

    async def delete_all_by_user(self, sender_server_id: str) -> list[MessageRef]:
        """Delete every message sent by a user, across all conversations.

        Scans the whole message table. Each match loses its primary row and
        then its lookup entry.
        """
        sender_server_id = require_text(sender_server_id, "sender_server_id")
        deleted: list[MessageRef] = []
        for row in await self._messages.scan_all():
            if row.get("sender_server_id") != sender_server_id:
                continue
            await self._messages.delete_by_key(
                {
                    "conversation_id": row["conversation_id"],
                    "created_at": row["created_at"],
                    "message_id": row["message_id"],
                }
            )
            deleted.append(
                MessageRef(conversation_id=row["conversation_id"], message_id=str(row["message_id"]))
            )

        logger.info("messages_deleted_by_sender", count=len(deleted))
        return deleted
