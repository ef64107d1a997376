"""Store services.

Each store wraps one store client and implements one family of operations
(messages, invites, server config, roles, bans, users, audit, reports) on top
of plain row access, conditional writes and lookup indexes.
"""

from chatstore.services.audit import AuditLog
from chatstore.services.bans import BanStore
from chatstore.services.invites import InviteStore
from chatstore.services.messages import MessageStore
from chatstore.services.ownership import OwnershipTransfer, transfer_ownership
from chatstore.services.reports import ReportStore
from chatstore.services.roles import RoleStore
from chatstore.services.server_config import ServerConfigStore
from chatstore.services.users import UserStore

__all__ = [
    "AuditLog",
    "BanStore",
    "InviteStore",
    "MessageStore",
    "OwnershipTransfer",
    "ReportStore",
    "RoleStore",
    "ServerConfigStore",
    "UserStore",
    "transfer_ownership",
]
