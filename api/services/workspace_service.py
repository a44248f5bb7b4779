"""Service for workspace lifecycle and invite codes.

Creating a workspace also creates the creator's OWNER membership, in the
same transaction, so a workspace never exists without its owner member.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from api.auth.permissions import role_guard
from api.exceptions import ConflictError, NotFoundError
from api.services.lookups import require_membership, require_role, require_workspace
from teamsync.db.models import (
    Member,
    Permission,
    RoleName,
    Workspace,
    WorkspaceCreate,
    generate_invite_code,
)
from teamsync.logging import get_logger
from teamsync.repositories import MemberRepository, UserRepository, WorkspaceRepository

logger = get_logger(__name__)

# Attempts at drawing an unused invite code before giving up
INVITE_CODE_ATTEMPTS = 5


class WorkspaceService:
    """Service for workspace management.

    Args:
        engine: SQLAlchemy engine; every call opens its own session
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def create_workspace(
        self,
        owner_id: UUID,
        name: str,
        description: Optional[str] = None,
    ) -> Workspace:
        """Create a workspace with the creator as OWNER.

        The creator's current workspace is switched to the new one.

        Raises:
            NotFoundError: Owner user does not exist
        """
        with Session(self.engine) as session:
            users = UserRepository(session)
            if not users.get(owner_id):
                raise NotFoundError("User not found")

            owner_role = require_role(session, RoleName.OWNER)
            data = WorkspaceCreate(name=name, description=description, owner_id=owner_id)
            workspace = WorkspaceRepository(session).insert(
                Workspace.model_validate(data), commit=False
            )
            MemberRepository(session).insert(
                Member(
                    workspace_id=workspace.id,
                    user_id=owner_id,
                    role_id=owner_role.id,
                ),
                commit=False,
            )
            users.update_fields(owner_id, commit=False, current_workspace_id=workspace.id)
            session.commit()

            # Refresh workspace to ensure it's detached properly
            session.refresh(workspace)
            session.expunge(workspace)

            logger.info(
                "workspace_created",
                workspace_id=str(workspace.id),
                owner_id=str(owner_id),
            )
            return workspace

    def get_workspace(self, workspace_id: UUID, acting_user_id: UUID) -> Workspace:
        """Workspace details, visible to its members.

        Raises:
            NotFoundError: Workspace does not exist
            NotAMemberError: Actor is not a member
        """
        with Session(self.engine) as session:
            workspace = require_workspace(session, workspace_id)
            require_membership(session, workspace_id, acting_user_id)
            session.expunge(workspace)
            return workspace

    def reset_invite_code(self, workspace_id: UUID, acting_user_id: UUID) -> Workspace:
        """Issue a fresh, active, non-expiring invite code.

        The previous code stops working immediately.

        Raises:
            AuthorizationError: Actor lacks MANAGE_WORKSPACE_SETTINGS
        """
        with Session(self.engine) as session:
            workspaces = self._authorize_invite_management(
                session, workspace_id, acting_user_id
            )

            for _ in range(INVITE_CODE_ATTEMPTS):
                try:
                    workspaces.update_fields(
                        workspace_id,
                        invite_code=generate_invite_code(),
                        invite_code_active=True,
                        invite_code_expires_at=None,
                    )
                    break
                except IntegrityError:
                    session.rollback()
            else:
                raise ConflictError("Could not allocate a unique invite code")

            logger.info(
                "invite_code_reset",
                workspace_id=str(workspace_id),
                user_id=str(acting_user_id),
            )
            return self._detached(session, workspace_id)

    def set_invite_code_expiry(
        self,
        workspace_id: UUID,
        acting_user_id: UUID,
        expires_at: Optional[datetime],
    ) -> Workspace:
        """Set or clear the invite code expiry (naive UTC).

        Raises:
            AuthorizationError: Actor lacks MANAGE_WORKSPACE_SETTINGS
        """
        with Session(self.engine) as session:
            workspaces = self._authorize_invite_management(
                session, workspace_id, acting_user_id
            )
            workspaces.update_fields(workspace_id, invite_code_expires_at=expires_at)

            logger.info(
                "invite_code_expiry_set",
                workspace_id=str(workspace_id),
                user_id=str(acting_user_id),
                expires_at=expires_at.isoformat() if expires_at else None,
            )
            return self._detached(session, workspace_id)

    def _authorize_invite_management(
        self, session: Session, workspace_id: UUID, acting_user_id: UUID
    ) -> WorkspaceRepository:
        require_workspace(session, workspace_id)
        _, role = require_membership(session, workspace_id, acting_user_id)
        role_guard(role.name, [Permission.MANAGE_WORKSPACE_SETTINGS])
        return WorkspaceRepository(session)

    def _detached(self, session: Session, workspace_id: UUID) -> Workspace:
        workspace = require_workspace(session, workspace_id)
        session.refresh(workspace)
        session.expunge(workspace)
        return workspace
