"""Workspace routes: creation, details and invite code management."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import Field, field_validator

from api.responses import CamelModel, WorkspaceResponse, WorkspaceSummary
from api.routes.dependencies import CurrentUserDep, WorkspaceServiceDep


router = APIRouter(tags=["workspaces"])


class CreateWorkspaceRequest(CamelModel):
    """Request to create a new workspace."""

    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class InviteExpiryRequest(CamelModel):
    """Expiry for the current invite code; null removes it."""

    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def as_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


@router.post(
    "/workspace", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED
)
def create_workspace(
    request: CreateWorkspaceRequest,
    current_user: CurrentUserDep,
    service: WorkspaceServiceDep,
):
    """Create a workspace. The current user becomes its OWNER."""
    workspace = service.create_workspace(
        owner_id=current_user.user_id,
        name=request.name,
        description=request.description,
    )
    return WorkspaceResponse(
        message="Workspace created successfully",
        workspace=WorkspaceSummary.model_validate(workspace),
    )


@router.get("/workspace/{workspace_id}", response_model=WorkspaceSummary)
def get_workspace(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    service: WorkspaceServiceDep,
):
    """Get workspace details."""
    workspace = service.get_workspace(workspace_id, current_user.user_id)
    return WorkspaceSummary.model_validate(workspace)


@router.post(
    "/workspace/{workspace_id}/invite-code/reset", response_model=WorkspaceResponse
)
def reset_invite_code(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    service: WorkspaceServiceDep,
):
    """Replace the invite code. Requires MANAGE_WORKSPACE_SETTINGS."""
    workspace = service.reset_invite_code(workspace_id, current_user.user_id)
    return WorkspaceResponse(
        message="Invite code reset successfully",
        workspace=WorkspaceSummary.model_validate(workspace),
    )


@router.put(
    "/workspace/{workspace_id}/invite-code/expiry", response_model=WorkspaceResponse
)
def set_invite_code_expiry(
    workspace_id: UUID,
    request: InviteExpiryRequest,
    current_user: CurrentUserDep,
    service: WorkspaceServiceDep,
):
    """Set or clear the invite code expiry. Requires MANAGE_WORKSPACE_SETTINGS."""
    workspace = service.set_invite_code_expiry(
        workspace_id, current_user.user_id, request.expires_at
    )
    return WorkspaceResponse(
        message="Invite code expiry updated",
        workspace=WorkspaceSummary.model_validate(workspace),
    )
