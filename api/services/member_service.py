"""Service for membership and role transitions inside a workspace.

Every operation takes the acting user's id explicitly and checks, in this
order, that the workspace exists, that the actor is a member, and that the
role hierarchy allows the action. The single-owner invariant is kept here:
the OWNER membership is never deleted, and only transfer_ownership moves
the OWNER role.
"""

from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from api.auth.permissions import can_modify, describe_modify_violation
from api.exceptions import (
    BadRequestError,
    ConflictError,
    InsufficientRoleError,
    NotFoundError,
    TransferVerificationError,
    ValidationError,
)
from api.services.lookups import (
    require_membership,
    require_role,
    require_target_member,
    require_workspace,
)
from teamsync.db.models import Member, Role, RoleName, Workspace, utcnow
from teamsync.logging import get_logger
from teamsync.repositories import (
    MemberRepository,
    RoleRepository,
    UserRepository,
    WorkspaceRepository,
)

logger = get_logger(__name__)

ELIGIBLE_NEW_OWNER_ROLES = (RoleName.ADMIN, RoleName.CO_OWNER)


@dataclass
class TransferResult:
    """State of the three records after a verified ownership transfer."""

    workspace: Workspace
    new_owner: tuple[Member, Role]
    previous_owner: tuple[Member, Role]


@dataclass
class _TransferSnapshot:
    workspace_id: UUID
    owner_id: UUID
    old_owner_member_id: UUID
    old_owner_role_id: UUID
    new_owner_member_id: UUID
    new_owner_role_id: UUID


class MemberService:
    """Transition engine for memberships and roles.

    Args:
        engine: SQLAlchemy engine; every call opens its own session
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def get_member_role_in_workspace(self, user_id: UUID, workspace_id: UUID) -> Role:
        """Role held by a user in a workspace.

        Raises:
            NotFoundError: Workspace does not exist
            NotAMemberError: User is not a member
        """
        with Session(self.engine) as session:
            require_workspace(session, workspace_id)
            _, role = require_membership(session, workspace_id, user_id)
            return role

    def list_members(
        self, workspace_id: UUID, acting_user_id: UUID
    ) -> list[tuple[Member, Role]]:
        """All memberships of a workspace with their roles."""
        with Session(self.engine) as session:
            require_workspace(session, workspace_id)
            require_membership(session, workspace_id, acting_user_id)
            return MemberRepository(session).list_by_workspace(workspace_id)

    # =========================================================================
    # Joining and leaving
    # =========================================================================

    def join_workspace_by_invite(
        self, user_id: UUID, invite_code: str
    ) -> tuple[UUID, Role]:
        """Redeem an invite code and become a MEMBER.

        Returns:
            (workspace_id, role) of the new membership

        Raises:
            NotFoundError: No workspace with an active code matching invite_code
            BadRequestError: Code expired, or user already a member
        """
        with Session(self.engine) as session:
            workspaces = WorkspaceRepository(session)
            members = MemberRepository(session)

            workspace = workspaces.find_by_invite_code(invite_code)
            if not workspace:
                raise NotFoundError(
                    "Invalid or expired invite code", error_code="INVALID_INVITE_CODE"
                )

            expires_at = workspace.invite_code_expires_at
            if expires_at is not None and expires_at < utcnow():
                workspaces.update_fields(workspace.id, invite_code_active=False)
                logger.info(
                    "invite_code_expired",
                    workspace_id=str(workspace.id),
                    user_id=str(user_id),
                )
                raise BadRequestError(
                    "This invite link has expired", error_code="INVITE_EXPIRED"
                )

            if members.find(workspace.id, user_id):
                raise _already_member()

            workspace_id = workspace.id
            member_role = require_role(session, RoleName.MEMBER)
            try:
                members.insert(
                    Member(
                        workspace_id=workspace_id,
                        user_id=user_id,
                        role_id=member_role.id,
                    )
                )
            except IntegrityError:
                # A concurrent redemption won the unique constraint
                session.rollback()
                raise _already_member()

            session.refresh(member_role)
            logger.info(
                "member_joined",
                workspace_id=str(workspace_id),
                user_id=str(user_id),
            )
            return workspace_id, member_role

    def leave_workspace(self, workspace_id: UUID, user_id: UUID) -> None:
        """Remove the acting user's own membership.

        Raises:
            BadRequestError: The user is the owner
        """
        with Session(self.engine) as session:
            require_workspace(session, workspace_id)
            member, role = require_membership(session, workspace_id, user_id)

            if role.name == RoleName.OWNER:
                raise BadRequestError(
                    "As the workspace owner, you cannot leave the workspace. "
                    "Please transfer ownership first.",
                    error_code="OWNER_CANNOT_LEAVE",
                )

            # Only clears the pointer if it still names this workspace
            UserRepository(session).update_fields(
                user_id,
                expected={"current_workspace_id": workspace_id},
                commit=False,
                current_workspace_id=None,
            )
            MemberRepository(session).delete(member.id, commit=False)
            session.commit()

            logger.info(
                "member_left",
                workspace_id=str(workspace_id),
                user_id=str(user_id),
                role=role.name.value,
            )

    def remove_member(
        self, workspace_id: UUID, target_user_id: UUID, acting_user_id: UUID
    ) -> None:
        """Remove another user's membership.

        Raises:
            BadRequestError: Target is the owner
            InsufficientRoleError: Actor may not modify the target's role
        """
        with Session(self.engine) as session:
            require_workspace(session, workspace_id)
            _, acting_role = require_membership(session, workspace_id, acting_user_id)
            target, target_role = require_target_member(
                session, workspace_id, target_user_id
            )

            if target_role.name == RoleName.OWNER:
                raise BadRequestError(
                    "Cannot remove the workspace owner", error_code="CANNOT_REMOVE_OWNER"
                )

            _check_can_modify(acting_role.name, target_role.name)

            MemberRepository(session).delete(target.id)
            logger.info(
                "member_removed",
                workspace_id=str(workspace_id),
                user_id=str(target_user_id),
                removed_by=str(acting_user_id),
                role=target_role.name.value,
            )

    # =========================================================================
    # Role transitions
    # =========================================================================

    def promote_to_co_owner(
        self,
        workspace_id: UUID,
        target_user_id: UUID,
        acting_user_id: UUID,
        acknowledged: bool,
    ) -> tuple[Member, Role]:
        """Grant CO_OWNER to a member. Owner only, behind a confirmation flag.

        Raises:
            InsufficientRoleError: Actor is not the owner
            BadRequestError: Not acknowledged, or target already OWNER/CO_OWNER
        """
        with Session(self.engine) as session:
            require_workspace(session, workspace_id)
            _, acting_role = require_membership(session, workspace_id, acting_user_id)

            if acting_role.name != RoleName.OWNER:
                raise InsufficientRoleError(
                    "Only the workspace owner can promote members to co-owner"
                )
            if acknowledged is not True:
                raise BadRequestError(
                    "Promotion to co-owner must be explicitly acknowledged",
                    error_code="CONFIRMATION_REQUIRED",
                )

            target, target_role = require_target_member(
                session, workspace_id, target_user_id
            )
            if target_role.name in (RoleName.OWNER, RoleName.CO_OWNER):
                raise BadRequestError(
                    f"Member is already {target_role.name.value}",
                    error_code="ALREADY_CO_OWNER",
                )

            co_owner_role = require_role(session, RoleName.CO_OWNER)
            result = self._set_role(session, target, target_role, co_owner_role)
            logger.info(
                "member_promoted_co_owner",
                workspace_id=str(workspace_id),
                user_id=str(target_user_id),
                promoted_by=str(acting_user_id),
                previous_role=target_role.name.value,
            )
            return result

    def change_member_role(
        self,
        workspace_id: UUID,
        target_user_id: UUID,
        new_role_name: Union[RoleName, str],
        acting_user_id: UUID,
    ) -> tuple[Member, Role]:
        """Change a member's role between ADMIN and MEMBER.

        CO_OWNER is granted only by promote_to_co_owner and OWNER only by
        transfer_ownership. The actor must outrank both the target's current
        role and the destination role.

        Raises:
            BadRequestError: Destination or target involves CO_OWNER/OWNER
                rules handled elsewhere
            InsufficientRoleError: Hierarchy forbids the change
        """
        try:
            new_role_name = RoleName(new_role_name)
        except ValueError:
            raise ValidationError(f"Unknown role: {new_role_name}")

        with Session(self.engine) as session:
            require_workspace(session, workspace_id)
            _, acting_role = require_membership(session, workspace_id, acting_user_id)

            if new_role_name == RoleName.CO_OWNER:
                raise BadRequestError(
                    "Use co-owner promotion to grant the CO_OWNER role",
                    error_code="USE_CO_OWNER_PROMOTION",
                )
            if new_role_name == RoleName.OWNER:
                raise BadRequestError(
                    "Use ownership transfer to assign the OWNER role",
                    error_code="USE_OWNERSHIP_TRANSFER",
                )

            target, target_role = require_target_member(
                session, workspace_id, target_user_id
            )
            if target_role.name == RoleName.OWNER:
                raise BadRequestError(
                    "Cannot change the owner's role. Transfer ownership first.",
                    error_code="USE_OWNERSHIP_TRANSFER",
                )

            _check_can_modify(acting_role.name, target_role.name)
            _check_can_modify(acting_role.name, new_role_name)

            new_role = require_role(session, new_role_name)
            result = self._set_role(session, target, target_role, new_role)
            logger.info(
                "member_role_changed",
                workspace_id=str(workspace_id),
                user_id=str(target_user_id),
                changed_by=str(acting_user_id),
                previous_role=target_role.name.value,
                role=new_role_name.value,
            )
            return result

    def _set_role(
        self, session: Session, member: Member, current: Role, new: Role
    ) -> tuple[Member, Role]:
        members = MemberRepository(session)
        updated = members.update_fields(
            member.id, expected={"role_id": current.id}, role_id=new.id
        )
        if not updated:
            raise ConflictError(
                "Member role changed while the request was processed",
                error_code="ROLE_CHANGED_CONCURRENTLY",
            )
        session.refresh(member)
        session.refresh(new)
        return member, new

    # =========================================================================
    # Ownership transfer
    # =========================================================================

    def transfer_ownership(
        self, workspace_id: UUID, new_owner_id: UUID, current_user_id: UUID
    ) -> TransferResult:
        """Hand the OWNER role to an ADMIN or CO_OWNER member.

        The workspace owner, the new owner's role and the old owner's role
        are written in one transaction, each guarded by the value read
        before it. After commit the three records are re-read and checked.
        If anything fails after the commit was attempted, the original
        values are written back before the error propagates.

        Raises:
            InsufficientRoleError: Actor is not the owner
            NotFoundError: New owner is not a member
            BadRequestError: New owner's role is not ADMIN or CO_OWNER
            TransferVerificationError: A guard or the post-commit check failed
        """
        with Session(self.engine) as session:
            workspace = require_workspace(session, workspace_id)
            old_owner, old_role = require_membership(
                session, workspace_id, current_user_id
            )

            if old_role.name != RoleName.OWNER:
                raise InsufficientRoleError(
                    "Only the workspace owner can transfer ownership"
                )

            new_owner, new_role = require_target_member(
                session, workspace_id, new_owner_id
            )
            if new_role.name not in ELIGIBLE_NEW_OWNER_ROLES:
                raise BadRequestError(
                    "Ownership can only be transferred to an admin or co-owner",
                    error_code="INELIGIBLE_NEW_OWNER",
                )

            previous_role_of_new_owner = new_role.name
            owner_role = require_role(session, RoleName.OWNER)
            member_role = require_role(session, RoleName.MEMBER)

            snapshot = _TransferSnapshot(
                workspace_id=workspace.id,
                owner_id=workspace.owner_id,
                old_owner_member_id=old_owner.id,
                old_owner_role_id=old_owner.role_id,
                new_owner_member_id=new_owner.id,
                new_owner_role_id=new_owner.role_id,
            )

            commit_attempted = False
            try:
                self._write_transfer(session, snapshot, new_owner_id, owner_role, member_role)
                commit_attempted = True
                session.commit()
                result = self._verify_transfer(snapshot, new_owner_id, owner_role)
            except Exception as exc:
                session.rollback()
                logger.error(
                    "ownership_transfer_failed",
                    workspace_id=str(workspace_id),
                    new_owner_id=str(new_owner_id),
                    current_owner_id=str(current_user_id),
                    error=str(exc),
                    committed=commit_attempted,
                )
                if commit_attempted:
                    self._compensate_transfer(snapshot)
                raise

        logger.info(
            "ownership_transferred",
            workspace_id=str(workspace_id),
            new_owner_id=str(new_owner_id),
            previous_owner_id=str(current_user_id),
            previous_role_of_new_owner=previous_role_of_new_owner.value,
        )
        return result

    def _write_transfer(
        self,
        session: Session,
        snapshot: _TransferSnapshot,
        new_owner_id: UUID,
        owner_role: Role,
        member_role: Role,
    ) -> None:
        workspaces = WorkspaceRepository(session)
        members = MemberRepository(session)

        writes = [
            (
                "workspace",
                lambda: workspaces.update_fields(
                    snapshot.workspace_id,
                    expected={"owner_id": snapshot.owner_id},
                    commit=False,
                    owner_id=new_owner_id,
                ),
            ),
            (
                "new_owner",
                lambda: members.update_fields(
                    snapshot.new_owner_member_id,
                    expected={"role_id": snapshot.new_owner_role_id},
                    commit=False,
                    role_id=owner_role.id,
                ),
            ),
            (
                "previous_owner",
                lambda: members.update_fields(
                    snapshot.old_owner_member_id,
                    expected={"role_id": snapshot.old_owner_role_id},
                    commit=False,
                    role_id=member_role.id,
                ),
            ),
        ]
        for record, write in writes:
            if not write():
                raise TransferVerificationError(
                    "Workspace changed while ownership was being transferred",
                    details={"record": record},
                )

    def _verify_transfer(
        self, snapshot: _TransferSnapshot, new_owner_id: UUID, owner_role: Role
    ) -> TransferResult:
        """Re-read the transferred records in a fresh session."""
        with Session(self.engine) as session:
            workspace = WorkspaceRepository(session).get(snapshot.workspace_id)
            members = MemberRepository(session)
            roles = RoleRepository(session)

            new_owner = members.get(snapshot.new_owner_member_id)
            old_owner = members.get(snapshot.old_owner_member_id)
            new_role = roles.get(new_owner.role_id) if new_owner else None
            old_role = roles.get(old_owner.role_id) if old_owner else None
            owner_count = members.count_with_role(snapshot.workspace_id, owner_role.id)

            if (
                workspace is None
                or new_role is None
                or old_role is None
                or new_role.name != RoleName.OWNER
                or old_role.name != RoleName.MEMBER
                or workspace.owner_id != new_owner_id
                or owner_count != 1
            ):
                raise TransferVerificationError("Ownership transfer failed verification")

            return TransferResult(
                workspace=workspace,
                new_owner=(new_owner, new_role),
                previous_owner=(old_owner, old_role),
            )

    def _compensate_transfer(self, snapshot: _TransferSnapshot) -> None:
        """Best-effort restore of the values read before the transfer.

        Each write is attempted independently. Failures are logged and
        swallowed so the caller still sees the original error.
        """
        with Session(self.engine) as session:
            workspaces = WorkspaceRepository(session)
            members = MemberRepository(session)

            restores = [
                (
                    "workspace",
                    lambda: workspaces.update_fields(
                        snapshot.workspace_id, owner_id=snapshot.owner_id
                    ),
                ),
                (
                    "previous_owner",
                    lambda: members.update_fields(
                        snapshot.old_owner_member_id, role_id=snapshot.old_owner_role_id
                    ),
                ),
                (
                    "new_owner",
                    lambda: members.update_fields(
                        snapshot.new_owner_member_id, role_id=snapshot.new_owner_role_id
                    ),
                ),
            ]
            for record, restore in restores:
                try:
                    restore()
                except Exception as exc:
                    session.rollback()
                    logger.error(
                        "ownership_transfer_compensation_failed",
                        workspace_id=str(snapshot.workspace_id),
                        record=record,
                        error=str(exc),
                    )

        logger.warning(
            "ownership_transfer_compensated",
            workspace_id=str(snapshot.workspace_id),
        )


def _already_member() -> BadRequestError:
    return BadRequestError(
        "You are already a member of this workspace", error_code="ALREADY_MEMBER"
    )


def _check_can_modify(acting: RoleName, target: Optional[RoleName]) -> None:
    if not can_modify(acting, target):
        raise InsufficientRoleError(
            describe_modify_violation(acting, target),
            details={"actingRole": acting.value, "targetRole": target.value if target else None},
        )
