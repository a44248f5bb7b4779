"""WebSocket route for workspace chat.

Events travel as {"event": <name>, "data": {...}}. Client events:
join_workspace, leave_workspace, send_message, get_messages, ping.
Server events: receive_message, load_messages, pong, error.
"""

import asyncio
import json
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.engine import Engine
from sqlmodel import Session

from api.auth.dependencies import CurrentUser, load_principal
from api.exceptions import (
    AuthenticationError,
    ConflictError,
    NotAMemberError,
    TeamSyncException,
)
from api.middleware.metrics import MESSAGES_BROADCAST, PAYLOADS_DROPPED
from api.routes.dependencies import get_chat_service, get_engine
from api.services import ChatService, IncomingMessage
from api.websocket.manager import make_event, manager
from teamsync.logging import bind_context, clear_context, get_logger

router = APIRouter()
logger = get_logger(__name__)

# Catch-up tasks still running; held so they are not garbage collected
_background_tasks: set[asyncio.Task] = set()


def _extract_token(websocket: WebSocket, token_param: Optional[str]) -> Optional[str]:
    """Extract JWT token from query param or Authorization header."""
    if token_param:
        return token_param

    auth_header = websocket.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]

    return None


def _authenticate(db_engine: Engine, token: Optional[str]) -> CurrentUser:
    with Session(db_engine) as session:
        return load_principal(session, token)


def _parse_workspace_id(value: Any) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _drop(reason: str, **context: Any) -> None:
    """Record an inbound payload that gets no reply."""
    PAYLOADS_DROPPED.labels(reason=reason).inc()
    logger.warning("chat_payload_dropped", reason=reason, **context)


@router.websocket("")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    workspace_id: Optional[str] = Query(None),
    db_engine: Engine = Depends(get_engine),
    chat: ChatService = Depends(get_chat_service),
):
    """WebSocket endpoint for workspace chat.

    Authentication:
        - Query param: ?token=<jwt>
        - Header: Authorization: Bearer <jwt>

    Query params:
        workspace_id: Optional workspace to join immediately; its recent
            messages are sent as one load_messages event
    """
    jwt_token = _extract_token(websocket, token)
    try:
        principal = await run_in_threadpool(_authenticate, db_engine, jwt_token)
    except AuthenticationError as exc:
        await websocket.close(code=4001, reason=exc.message)
        return

    bind_context(user_id=str(principal.user_id))
    await manager.connect(websocket, principal.user_id)
    logger.info("websocket_connected", user_id=str(principal.user_id))

    try:
        initial_workspace = _parse_workspace_id(workspace_id)
        if initial_workspace:
            await join_workspace(websocket, principal, chat, initial_workspace, catch_up=True)

        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await manager.send_personal(
                    websocket, make_event("error", {"message": "Invalid JSON"})
                )
                continue
            await handle_client_message(websocket, message, principal, chat)
    except WebSocketDisconnect:
        logger.info("websocket_disconnected", user_id=str(principal.user_id))
    finally:
        manager.disconnect(websocket)
        clear_context()


async def handle_client_message(
    websocket: WebSocket,
    message: Any,
    principal: CurrentUser,
    chat: ChatService,
):
    """Dispatch one client event.

    Args:
        websocket: The WebSocket connection
        message: Parsed JSON envelope from the client
        principal: Authenticated user of the connection
        chat: Chat persistence service
    """
    if not isinstance(message, dict):
        await manager.send_personal(
            websocket, make_event("error", {"message": "Invalid event envelope"})
        )
        return

    event = message.get("event")
    data = message.get("data")
    if not isinstance(data, dict):
        data = {}

    if event == "join_workspace":
        workspace_id = _parse_workspace_id(data.get("workspaceId"))
        if not workspace_id:
            await manager.send_personal(
                websocket, make_event("error", {"message": "workspaceId required"})
            )
            return
        await join_workspace(websocket, principal, chat, workspace_id)

    elif event == "leave_workspace":
        workspace_id = _parse_workspace_id(data.get("workspaceId"))
        if workspace_id:
            manager.leave(websocket, workspace_id)

    elif event == "send_message":
        await send_message(data, principal, chat)

    elif event == "get_messages":
        workspace_id = _parse_workspace_id(data.get("workspaceId"))
        await send_history(websocket, principal, chat, workspace_id)

    elif event == "ping":
        await manager.send_personal(websocket, make_event("pong"))

    else:
        await manager.send_personal(
            websocket, make_event("error", {"message": f"Unknown event: {event}"})
        )


async def join_workspace(
    websocket: WebSocket,
    principal: CurrentUser,
    chat: ChatService,
    workspace_id: UUID,
    catch_up: bool = False,
):
    """Join a workspace room if the user is a member of the workspace."""
    if not await run_in_threadpool(chat.is_member, workspace_id, principal.user_id):
        await manager.send_personal(
            websocket,
            make_event(
                "error",
                {"message": NotAMemberError.default_message, "workspaceId": str(workspace_id)},
            ),
        )
        return

    manager.join(websocket, workspace_id)
    logger.info(
        "websocket_joined_workspace",
        workspace_id=str(workspace_id),
        user_id=str(principal.user_id),
    )

    if catch_up:
        task = asyncio.create_task(send_history(websocket, principal, chat, workspace_id))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)


async def send_history(
    websocket: WebSocket,
    principal: CurrentUser,
    chat: ChatService,
    workspace_id: Optional[UUID],
):
    """Send one load_messages event; any failure yields an empty batch."""
    messages: list[dict[str, Any]] = []
    if workspace_id:
        try:
            recent = await run_in_threadpool(
                chat.get_recent_messages, workspace_id, principal.user_id
            )
            messages = [m.to_wire() for m in recent]
        except NotAMemberError:
            logger.info(
                "chat_history_denied",
                workspace_id=str(workspace_id),
                user_id=str(principal.user_id),
            )
        except Exception:
            logger.exception("chat_history_failed", workspace_id=str(workspace_id))

    await manager.send_personal(websocket, make_event("load_messages", {"messages": messages}))


async def send_message(
    data: dict[str, Any],
    principal: CurrentUser,
    chat: ChatService,
):
    """Persist a send_message payload and broadcast it to its room.

    Invalid payloads, non-member senders and duplicate ids are dropped
    without a reply.
    """
    try:
        incoming = IncomingMessage.model_validate(data)
    except PydanticValidationError as exc:
        _drop("invalid", errors=exc.error_count(), user_id=str(principal.user_id))
        return

    try:
        saved = await run_in_threadpool(chat.save_incoming_message, incoming, principal.user)
    except NotAMemberError:
        _drop("not_member", workspace_id=str(incoming.workspace_id))
        return
    except ConflictError:
        _drop("duplicate", message_id=incoming.id)
        return
    except TeamSyncException as exc:
        _drop("invalid", error=exc.message)
        return

    delivered = await manager.broadcast(
        incoming.workspace_id, make_event("receive_message", saved.to_wire())
    )
    MESSAGES_BROADCAST.inc()
    logger.debug(
        "chat_message_broadcast",
        message_id=saved.id,
        workspace_id=str(incoming.workspace_id),
        delivered=delivered,
    )
