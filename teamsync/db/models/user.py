"""User model.

Only the identity fields the workspace core reads are modelled here;
credentials and OAuth linkage belong to the authentication service.
"""

from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from teamsync.db.models.base import UUIDModel, TimestampMixin


class UserBase(SQLModel):
    """Base user fields shared across Create/Read."""

    name: str = Field(index=True)
    email: str = Field(unique=True, index=True)
    profile_picture: Optional[str] = None


class User(UUIDModel, UserBase, TimestampMixin, table=True):
    """User table - global identity."""

    __tablename__ = "users"

    is_active: bool = Field(default=True)

    # Workspace the client opens by default; cleared when the user leaves it.
    # No foreign key: workspaces.owner_id already references users.
    current_workspace_id: Optional[UUID] = Field(default=None, index=True)

