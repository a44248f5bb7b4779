"""Response models for API documentation.

Request and response bodies use camelCase keys on the wire; models accept
either spelling on input.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from teamsync.db.models import Member, Role, RoleName


class CamelModel(BaseModel):
    """Base model serialised with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorDetail(BaseModel):
    """Individual field error for validation failures."""

    field: str = Field(description="Field that caused the error")
    message: str = Field(description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response format.

    Example:
        {"message": "You are not a member of this workspace",
         "errorCode": "NOT_A_MEMBER"}
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(description="Human-readable error message")
    error_code: str = Field(
        alias="errorCode", description="Machine-readable error code"
    )
    details: Optional[dict[str, Any]] = None
    errors: Optional[list[ErrorDetail]] = None


class RoleSummary(CamelModel):
    id: UUID
    name: RoleName
    permissions: list[str]


class MemberSummary(CamelModel):
    """A membership with its resolved role."""

    id: UUID
    workspace_id: UUID
    user_id: UUID
    role: RoleSummary
    joined_at: datetime

    @classmethod
    def from_records(cls, member: Member, role: Role) -> "MemberSummary":
        return cls(
            id=member.id,
            workspace_id=member.workspace_id,
            user_id=member.user_id,
            role=RoleSummary.model_validate(role),
            joined_at=member.joined_at,
        )


class WorkspaceSummary(CamelModel):
    id: UUID
    name: str
    description: Optional[str] = None
    owner_id: UUID
    invite_code: str
    invite_code_active: bool
    invite_code_expires_at: Optional[datetime] = None
    created_at: datetime


class MessageResponse(CamelModel):
    """Response for mutating operations: a message plus optional fields."""

    message: str = Field(description="What happened")


class WorkspaceResponse(MessageResponse):
    workspace: WorkspaceSummary


class JoinResponse(MessageResponse):
    workspace_id: UUID
    role: RoleSummary


class TransferResponse(MessageResponse):
    workspace: WorkspaceSummary
    new_owner: MemberSummary
    previous_owner: MemberSummary


class MemberResponse(MessageResponse):
    member: MemberSummary


class MemberListResponse(CamelModel):
    members: list[MemberSummary]


class ChatHistoryResponse(CamelModel):
    messages: list[dict[str, Any]]


class ChatMessageResponse(MessageResponse):
    data: dict[str, Any]
