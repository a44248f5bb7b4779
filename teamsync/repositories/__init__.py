"""Repositories over the SQLModel tables.

Each repository wraps a Session and exposes get/find/insert/update_fields/
delete. Writes commit by default; pass commit=False to group several
writes into one transaction.
"""

from teamsync.repositories.workspace_repository import (
    UserRepository,
    RoleRepository,
    WorkspaceRepository,
    MemberRepository,
)
from teamsync.repositories.message_repository import MessageRepository

__all__ = [
    "UserRepository",
    "RoleRepository",
    "WorkspaceRepository",
    "MemberRepository",
    "MessageRepository",
]
