"""Dependencies shared by the workspace routes.

Provides FastAPI dependencies to:
- Build the services over the application engine
- Resolve the workspace and the caller's membership from the URL path
- Enforce role permissions inside that workspace
"""

from typing import Annotated, Callable
from uuid import UUID

from fastapi import Depends, Path
from sqlalchemy.engine import Engine
from sqlmodel import Session

from api.auth.dependencies import CurrentUser, get_current_user
from api.auth.permissions import has_permission, role_guard
from api.services import ChatService, MemberService, WorkspaceService
from api.services.lookups import require_membership, require_workspace
from teamsync.db.engine import engine, get_session_dependency
from teamsync.db.models import Member, Permission, Role, Workspace


def get_engine() -> Engine:
    """Engine used by the services. Overridden in tests."""
    return engine


def get_member_service(db_engine: Annotated[Engine, Depends(get_engine)]) -> MemberService:
    return MemberService(db_engine)


def get_workspace_service(
    db_engine: Annotated[Engine, Depends(get_engine)],
) -> WorkspaceService:
    return WorkspaceService(db_engine)


def get_chat_service(db_engine: Annotated[Engine, Depends(get_engine)]) -> ChatService:
    return ChatService(db_engine)


class WorkspaceContext:
    """The workspace of the request, the caller's membership and role."""

    def __init__(
        self,
        workspace: Workspace,
        member: Member,
        role: Role,
        current_user: CurrentUser,
    ):
        self.workspace = workspace
        self.member = member
        self.role = role
        self.current_user = current_user

    @property
    def workspace_id(self) -> UUID:
        return self.workspace.id

    @property
    def user_id(self) -> UUID:
        return self.current_user.user_id

    def has_permission(self, permission: Permission) -> bool:
        return has_permission(self.role.name, permission)

    def require_permissions(self, *permissions: Permission) -> None:
        """Raise AuthorizationError naming any missing permission."""
        role_guard(self.role.name, permissions)


async def get_workspace_context(
    workspace_id: Annotated[UUID, Path(description="Workspace UUID")],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    session: Annotated[Session, Depends(get_session_dependency)],
) -> WorkspaceContext:
    """Load the workspace from the path and the caller's membership in it.

    Raises:
        NotFoundError: Workspace not found
        NotAMemberError: Caller is not a member
    """
    workspace = require_workspace(session, workspace_id)
    member, role = require_membership(session, workspace_id, current_user.user_id)
    return WorkspaceContext(
        workspace=workspace,
        member=member,
        role=role,
        current_user=current_user,
    )


def require_workspace_permission(*permissions: Permission) -> Callable:
    """Create a dependency that requires permissions in the path workspace.

    Usage:
        @router.get("/workspace/{workspace_id}/chat")
        async def history(
            ctx: Annotated[WorkspaceContext, Depends(require_workspace_permission(Permission.VIEW_ONLY))]
        ):
            ...
    """

    async def permission_checker(
        ctx: Annotated[WorkspaceContext, Depends(get_workspace_context)],
    ) -> WorkspaceContext:
        ctx.require_permissions(*permissions)
        return ctx

    return permission_checker


# Type aliases for cleaner route signatures
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
MemberServiceDep = Annotated[MemberService, Depends(get_member_service)]
WorkspaceServiceDep = Annotated[WorkspaceService, Depends(get_workspace_service)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
