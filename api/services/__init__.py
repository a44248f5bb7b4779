"""API services module."""

from api.services.chat_service import ChatService, IncomingMessage, compute_expiry
from api.services.member_service import MemberService, TransferResult
from api.services.workspace_service import WorkspaceService

__all__ = [
    "ChatService",
    "IncomingMessage",
    "compute_expiry",
    "MemberService",
    "TransferResult",
    "WorkspaceService",
]
