"""Workspace membership model.

Links users to workspaces with a role. The unique constraint guarantees
one membership per (workspace, user); the single-owner invariant is kept
by the transition engine in api.services.member_service.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from teamsync.db.models.base import UUIDModel, TimestampMixin, utcnow
from teamsync.db.models.role import RoleName


class Member(UUIDModel, TimestampMixin, table=True):
    """Member table - the join of a user and a workspace."""

    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_member_workspace_user"),
    )

    workspace_id: UUID = Field(foreign_key="workspaces.id", index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    role_id: UUID = Field(foreign_key="roles.id")
    joined_at: datetime = Field(default_factory=utcnow)

