"""REST fallback for chat.

Used by clients whose real-time connection is unavailable. Messages posted
here are persisted but not broadcast; other clients see them on their next
history load.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import Field

from api.responses import CamelModel, ChatHistoryResponse, ChatMessageResponse
from api.routes.dependencies import (
    ChatServiceDep,
    WorkspaceContext,
    require_workspace_permission,
)
from teamsync.db.models import Permission


router = APIRouter(tags=["chat"])

ChatReader = Annotated[
    WorkspaceContext, Depends(require_workspace_permission(Permission.VIEW_ONLY))
]


class PostMessageRequest(CamelModel):
    text: str = Field(min_length=1)


@router.get("/workspace/{workspace_id}/chat", response_model=ChatHistoryResponse)
def get_messages(ctx: ChatReader, service: ChatServiceDep):
    """Most recent unexpired messages, oldest first."""
    messages = service.get_recent_messages(ctx.workspace_id, ctx.user_id)
    return ChatHistoryResponse(messages=[m.to_wire() for m in messages])


@router.post(
    "/workspace/{workspace_id}/chat",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_message(
    request: PostMessageRequest, ctx: ChatReader, service: ChatServiceDep
):
    """Persist a message sent by the current user."""
    message = service.create_message(
        ctx.workspace_id, ctx.current_user.user, request.text
    )
    return ChatMessageResponse(message="Message sent", data=message.to_wire())
