"""Repository classes for users, roles, workspaces and memberships."""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import Session, SQLModel, select

from teamsync.db.models import (
    Member,
    Role,
    RoleName,
    User,
    Workspace,
    utcnow,
)


def conditional_update(
    session: Session,
    model: type[SQLModel],
    record_id: UUID,
    fields: dict[str, Any],
    expected: Optional[dict[str, Any]] = None,
    commit: bool = True,
) -> bool:
    """Update one row by id, optionally only if it still holds expected values.

    The expected values become part of the WHERE clause, so a row changed
    by someone else since it was read is left untouched.

    Returns:
        True if exactly one row was updated
    """
    statement = update(model).where(model.id == record_id)
    for column, value in (expected or {}).items():
        statement = statement.where(getattr(model, column) == value)

    values = dict(fields)
    if "updated_at" in model.model_fields:
        values.setdefault("updated_at", utcnow())

    result = session.exec(statement.values(**values))
    if commit:
        session.commit()
    return result.rowcount == 1


# =============================================================================
# User Repository
# =============================================================================


class UserRepository:
    """Repository for User operations."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: UUID) -> Optional[User]:
        return self.session.get(User, user_id)

    def insert(self, user: User, commit: bool = True) -> User:
        self.session.add(user)
        if commit:
            self.session.commit()
            self.session.refresh(user)
        return user

    def update_fields(
        self,
        user_id: UUID,
        expected: Optional[dict[str, Any]] = None,
        commit: bool = True,
        **fields: Any,
    ) -> bool:
        return conditional_update(
            self.session, User, user_id, fields, expected=expected, commit=commit
        )


# =============================================================================
# Role Repository
# =============================================================================


class RoleRepository:
    """Repository for seeded Role reference data."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, role_id: UUID) -> Optional[Role]:
        return self.session.get(Role, role_id)

    def find_by_name(self, name: RoleName) -> Optional[Role]:
        statement = select(Role).where(Role.name == name)
        return self.session.exec(statement).first()

    def list_all(self) -> list[Role]:
        return list(self.session.exec(select(Role)).all())

    def insert(self, role: Role, commit: bool = True) -> Role:
        self.session.add(role)
        if commit:
            self.session.commit()
            self.session.refresh(role)
        return role

    def update_fields(
        self, role_id: UUID, commit: bool = True, **fields: Any
    ) -> bool:
        return conditional_update(self.session, Role, role_id, fields, commit=commit)


# =============================================================================
# Workspace Repository
# =============================================================================


class WorkspaceRepository:
    """Repository for Workspace operations."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, workspace_id: UUID) -> Optional[Workspace]:
        """Get a workspace by ID."""
        return self.session.get(Workspace, workspace_id)

    def find_by_invite_code(
        self, invite_code: str, active_only: bool = True
    ) -> Optional[Workspace]:
        """Get a workspace by its invite code."""
        statement = select(Workspace).where(Workspace.invite_code == invite_code)
        if active_only:
            statement = statement.where(Workspace.invite_code_active == True)  # noqa: E712
        return self.session.exec(statement).first()

    def insert(self, workspace: Workspace, commit: bool = True) -> Workspace:
        self.session.add(workspace)
        if commit:
            self.session.commit()
            self.session.refresh(workspace)
        else:
            self.session.flush()
        return workspace

    def update_fields(
        self,
        workspace_id: UUID,
        expected: Optional[dict[str, Any]] = None,
        commit: bool = True,
        **fields: Any,
    ) -> bool:
        """Update workspace fields, guarded by expected values if given."""
        return conditional_update(
            self.session,
            Workspace,
            workspace_id,
            fields,
            expected=expected,
            commit=commit,
        )


# =============================================================================
# Member Repository
# =============================================================================


class MemberRepository:
    """Repository for Member operations."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, member_id: UUID) -> Optional[Member]:
        """Get a membership by its own ID."""
        return self.session.get(Member, member_id)

    def find(self, workspace_id: UUID, user_id: UUID) -> Optional[Member]:
        """Get the membership of a user in a workspace."""
        statement = select(Member).where(
            Member.workspace_id == workspace_id,
            Member.user_id == user_id,
        )
        return self.session.exec(statement).first()

    def find_with_role(
        self, workspace_id: UUID, user_id: UUID
    ) -> Optional[tuple[Member, Role]]:
        """Get a membership joined with its role."""
        statement = (
            select(Member, Role)
            .join(Role, Role.id == Member.role_id)
            .where(
                Member.workspace_id == workspace_id,
                Member.user_id == user_id,
            )
        )
        row = self.session.exec(statement).first()
        return (row[0], row[1]) if row else None

    def list_by_workspace(self, workspace_id: UUID) -> list[tuple[Member, Role]]:
        """List all memberships of a workspace with their roles."""
        statement = (
            select(Member, Role)
            .join(Role, Role.id == Member.role_id)
            .where(Member.workspace_id == workspace_id)
            .order_by(Member.joined_at)
        )
        return [(member, role) for member, role in self.session.exec(statement).all()]

    def count_with_role(self, workspace_id: UUID, role_id: UUID) -> int:
        """Count members of a workspace holding a role."""
        statement = select(func.count()).select_from(Member).where(
            Member.workspace_id == workspace_id,
            Member.role_id == role_id,
        )
        return self.session.exec(statement).one()

    def insert(self, member: Member, commit: bool = True) -> Member:
        self.session.add(member)
        if commit:
            self.session.commit()
            self.session.refresh(member)
        else:
            self.session.flush()
        return member

    def update_fields(
        self,
        member_id: UUID,
        expected: Optional[dict[str, Any]] = None,
        commit: bool = True,
        **fields: Any,
    ) -> bool:
        """Update membership fields, guarded by expected values if given."""
        return conditional_update(
            self.session, Member, member_id, fields, expected=expected, commit=commit
        )

    def delete(self, member_id: UUID, commit: bool = True) -> bool:
        """Delete a membership by ID. Returns True if deleted."""
        member = self.get(member_id)
        if member:
            self.session.delete(member)
            if commit:
                self.session.commit()
            return True
        return False
