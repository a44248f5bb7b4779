"""Lookups shared by the workspace services.

Each helper loads a record inside the caller's session and raises the
matching API error when it is missing.
"""

from uuid import UUID

from sqlmodel import Session

from api.exceptions import NotAMemberError, NotFoundError, RoleNotFoundError
from teamsync.db.models import Member, Role, RoleName, Workspace
from teamsync.repositories import MemberRepository, RoleRepository, WorkspaceRepository


def require_workspace(session: Session, workspace_id: UUID) -> Workspace:
    workspace = WorkspaceRepository(session).get(workspace_id)
    if not workspace:
        raise NotFoundError("Workspace not found", details={"workspaceId": str(workspace_id)})
    return workspace


def require_membership(
    session: Session, workspace_id: UUID, user_id: UUID
) -> tuple[Member, Role]:
    """Membership of the acting user, or NotAMemberError."""
    found = MemberRepository(session).find_with_role(workspace_id, user_id)
    if not found:
        raise NotAMemberError()
    return found


def require_target_member(
    session: Session, workspace_id: UUID, user_id: UUID
) -> tuple[Member, Role]:
    """Membership of the user being acted on, or a MEMBER_NOT_FOUND error."""
    found = MemberRepository(session).find_with_role(workspace_id, user_id)
    if not found:
        raise NotFoundError(
            "Member not found in the workspace",
            error_code="MEMBER_NOT_FOUND",
            details={"memberId": str(user_id)},
        )
    return found


def require_role(session: Session, name: RoleName) -> Role:
    """Seeded role by name; a missing row is a seeding fault."""
    role = RoleRepository(session).find_by_name(name)
    if not role:
        raise RoleNotFoundError(f"Role {name.value} not found")
    return role
