"""SQLModel table definitions.

Model Categories:
- Identity: User
- Multi-tenancy: Workspace, Member, Role
- Chat: Message
"""

# Base classes
from teamsync.db.models.base import UUIDModel, TimestampMixin, utcnow

# Identity
from teamsync.db.models.user import User

# Multi-tenancy models
from teamsync.db.models.role import Role, RoleName, Permission
from teamsync.db.models.workspace import (
    Workspace, WorkspaceCreate, generate_invite_code,
)
from teamsync.db.models.membership import Member

# Chat
from teamsync.db.models.message import Message, MessageRead, SenderInfo

__all__ = [
    # Base
    "UUIDModel",
    "TimestampMixin",
    "utcnow",
    # User
    "User",
    # Multi-tenancy
    "Role", "RoleName", "Permission",
    "Workspace", "WorkspaceCreate", "generate_invite_code",
    "Member",
    # Chat
    "Message", "MessageRead", "SenderInfo",
]
