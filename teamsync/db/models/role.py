"""Role reference data for workspace RBAC.

Roles are seeded once (see teamsync.db.seed) and looked up by name.
Only the permission list of a role is configuration; names and the
hierarchy are fixed.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import JSON
from sqlmodel import Column, Field

from teamsync.db.models.base import UUIDModel, TimestampMixin


class RoleName(str, Enum):
    """Workspace roles, highest authority first.

    - OWNER: exactly one per workspace, full control
    - CO_OWNER: granted by the owner behind a confirmation gate
    - ADMIN: manages members and projects
    - MEMBER: works inside projects
    """

    OWNER = "OWNER"
    CO_OWNER = "CO_OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class Permission(str, Enum):
    """Permission flags attached to roles."""

    CREATE_WORKSPACE = "CREATE_WORKSPACE"
    DELETE_WORKSPACE = "DELETE_WORKSPACE"
    EDIT_WORKSPACE = "EDIT_WORKSPACE"
    MANAGE_WORKSPACE_SETTINGS = "MANAGE_WORKSPACE_SETTINGS"

    ADD_MEMBER = "ADD_MEMBER"
    CHANGE_MEMBER_ROLE = "CHANGE_MEMBER_ROLE"
    REMOVE_MEMBER = "REMOVE_MEMBER"

    CREATE_PROJECT = "CREATE_PROJECT"
    EDIT_PROJECT = "EDIT_PROJECT"
    DELETE_PROJECT = "DELETE_PROJECT"

    CREATE_TASK = "CREATE_TASK"
    EDIT_TASK = "EDIT_TASK"
    DELETE_TASK = "DELETE_TASK"

    VIEW_ONLY = "VIEW_ONLY"


class Role(UUIDModel, TimestampMixin, table=True):
    """Role table - one row per RoleName."""

    __tablename__ = "roles"

    name: RoleName = Field(unique=True, index=True)

    # Stored as a JSON list of Permission values
    permissions: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

