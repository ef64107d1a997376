"""Pydantic schemas for stored records and operation results.

All schemas are re-exported here for convenient imports.
"""

from chatstore.schemas.invites import ConsumeFailureReason, ConsumeResult, InviteRecord
from chatstore.schemas.messages import MessageRecord, MessageRef, NewMessage, Reaction
from chatstore.schemas.moderation import (
    AggregatedReport,
    NewReport,
    ReportRecord,
    ReportStatus,
    Resolution,
)
from chatstore.schemas.server import (
    BanRecord,
    ClaimOwnerResult,
    ConfigPatch,
    ConfigSeed,
    CreateConfigResult,
    ProfanityMode,
    ServerConfigRecord,
    ServerRole,
    ServerRoleRecord,
    TokenVersionResult,
)
from chatstore.schemas.users import AuditRecord, UserRecord, UserSummary

__all__ = [
    # Messages
    "MessageRecord",
    "MessageRef",
    "NewMessage",
    "Reaction",
    # Invites
    "ConsumeFailureReason",
    "ConsumeResult",
    "InviteRecord",
    # Server config, roles, bans
    "BanRecord",
    "ClaimOwnerResult",
    "ConfigPatch",
    "ConfigSeed",
    "CreateConfigResult",
    "ProfanityMode",
    "ServerConfigRecord",
    "ServerRole",
    "ServerRoleRecord",
    "TokenVersionResult",
    # Moderation
    "AggregatedReport",
    "NewReport",
    "ReportRecord",
    "ReportStatus",
    "Resolution",
    # Users and audit
    "AuditRecord",
    "UserRecord",
    "UserSummary",
]
