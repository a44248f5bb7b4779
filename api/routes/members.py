"""Membership routes.

Joining by invite code, leaving, removing members, role changes and the
ownership transfer. Member ids in request bodies are user ids.
"""

from uuid import UUID

from fastapi import APIRouter
from pydantic import Field

from api.responses import (
    CamelModel,
    JoinResponse,
    MemberListResponse,
    MemberResponse,
    MemberSummary,
    MessageResponse,
    RoleSummary,
    TransferResponse,
    WorkspaceSummary,
)
from api.routes.dependencies import CurrentUserDep, MemberServiceDep
from api.websocket.manager import manager
from teamsync.db.models import RoleName


router = APIRouter(tags=["members"])


# =============================================================================
# Request Models
# =============================================================================


class RemoveMemberRequest(CamelModel):
    member_id: UUID


class TransferOwnershipRequest(CamelModel):
    new_owner_id: UUID


class PromoteCoOwnerRequest(CamelModel):
    """Promotion needs an explicit acknowledgement of the co-owner powers."""

    member_id: UUID
    acknowledged: bool = Field(default=False)


class ChangeRoleRequest(CamelModel):
    role: RoleName


# =============================================================================
# Routes
# =============================================================================


@router.post("/workspace/{invite_code}/join", response_model=JoinResponse)
def join_workspace(
    invite_code: str,
    current_user: CurrentUserDep,
    service: MemberServiceDep,
):
    """Redeem an invite code and join as MEMBER."""
    workspace_id, role = service.join_workspace_by_invite(current_user.user_id, invite_code)
    return JoinResponse(
        message="Successfully joined the workspace",
        workspace_id=workspace_id,
        role=RoleSummary.model_validate(role),
    )


@router.get("/workspace/{workspace_id}/members", response_model=MemberListResponse)
def list_members(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    service: MemberServiceDep,
):
    """List members of a workspace with their roles."""
    members = service.list_members(workspace_id, current_user.user_id)
    return MemberListResponse(
        members=[MemberSummary.from_records(member, role) for member, role in members]
    )


@router.post("/workspace/{workspace_id}/remove", response_model=MessageResponse)
def remove_member(
    workspace_id: UUID,
    request: RemoveMemberRequest,
    current_user: CurrentUserDep,
    service: MemberServiceDep,
):
    """Remove a member. The owner can never be removed.

    The removed user's open chat connections leave the workspace room.
    """
    service.remove_member(workspace_id, request.member_id, current_user.user_id)
    manager.leave_user(request.member_id, workspace_id)
    return MessageResponse(message="Member removed successfully")


@router.post("/workspace/{workspace_id}/leave", response_model=MessageResponse)
def leave_workspace(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    service: MemberServiceDep,
):
    """Leave a workspace. The owner must transfer ownership first."""
    service.leave_workspace(workspace_id, current_user.user_id)
    manager.leave_user(current_user.user_id, workspace_id)
    return MessageResponse(message="Successfully left the workspace")


@router.post(
    "/workspace/{workspace_id}/transfer-ownership", response_model=TransferResponse
)
def transfer_ownership(
    workspace_id: UUID,
    request: TransferOwnershipRequest,
    current_user: CurrentUserDep,
    service: MemberServiceDep,
):
    """Hand ownership to an ADMIN or CO_OWNER. The caller becomes MEMBER."""
    result = service.transfer_ownership(
        workspace_id, request.new_owner_id, current_user.user_id
    )
    return TransferResponse(
        message="Workspace ownership transferred successfully",
        workspace=WorkspaceSummary.model_validate(result.workspace),
        new_owner=MemberSummary.from_records(*result.new_owner),
        previous_owner=MemberSummary.from_records(*result.previous_owner),
    )


@router.post("/workspace/{workspace_id}/promote-co-owner", response_model=MemberResponse)
def promote_to_co_owner(
    workspace_id: UUID,
    request: PromoteCoOwnerRequest,
    current_user: CurrentUserDep,
    service: MemberServiceDep,
):
    """Grant CO_OWNER. Owner only; requires acknowledged=true."""
    member, role = service.promote_to_co_owner(
        workspace_id,
        request.member_id,
        current_user.user_id,
        acknowledged=request.acknowledged,
    )
    return MemberResponse(
        message="Member promoted to co-owner",
        member=MemberSummary.from_records(member, role),
    )


@router.put(
    "/workspace/{workspace_id}/member/{member_id}/role", response_model=MemberResponse
)
def change_member_role(
    workspace_id: UUID,
    member_id: UUID,
    request: ChangeRoleRequest,
    current_user: CurrentUserDep,
    service: MemberServiceDep,
):
    """Change a member's role to ADMIN or MEMBER."""
    member, role = service.change_member_role(
        workspace_id, member_id, request.role, current_user.user_id
    )
    return MemberResponse(
        message="Member role changed successfully",
        member=MemberSummary.from_records(member, role),
    )
