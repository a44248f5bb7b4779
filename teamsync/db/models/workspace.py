"""Workspace model.

A workspace scopes members, projects and chat. Its owner_id always
mirrors the single member holding the OWNER role.
"""

import secrets
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from teamsync.db.models.base import UUIDModel, TimestampMixin

INVITE_CODE_LENGTH = 8


def generate_invite_code() -> str:
    """Generate a short URL-safe invite code."""
    return secrets.token_urlsafe(INVITE_CODE_LENGTH)[:INVITE_CODE_LENGTH]


class WorkspaceBase(SQLModel):
    """Base workspace fields shared across Create/Read."""

    name: str = Field(index=True)
    description: Optional[str] = None


class Workspace(UUIDModel, WorkspaceBase, TimestampMixin, table=True):
    """Workspace table."""

    __tablename__ = "workspaces"

    owner_id: UUID = Field(foreign_key="users.id", index=True)

    invite_code: str = Field(
        default_factory=generate_invite_code,
        unique=True,
        index=True,
    )
    invite_code_active: bool = Field(default=True)
    invite_code_expires_at: Optional[datetime] = None


class WorkspaceCreate(WorkspaceBase):
    """Schema for creating a new workspace."""

    owner_id: UUID

