"""WebSocket connection manager for workspace chat rooms.

Each workspace has a room named "workspace:<id>". A connection can sit in
any number of rooms; broadcasts go to every connection in the room,
including the one that sent the message.
"""

import json
from typing import Any, Optional
from uuid import UUID

from fastapi import WebSocket

from api.middleware.metrics import WEBSOCKET_CONNECTIONS
from teamsync.logging import get_logger

logger = get_logger(__name__)


def room_name(workspace_id: UUID) -> str:
    return f"workspace:{workspace_id}"


def make_event(event: str, data: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Wire envelope shared by every server event."""
    return {"event": event, "data": data if data is not None else {}}


class ConnectionManager:
    """Manages WebSocket connections and room membership."""

    def __init__(self):
        # Room name -> connections in it
        self.rooms: dict[str, set[WebSocket]] = {}
        # Every accepted connection -> rooms it joined
        self.connections: dict[WebSocket, set[str]] = {}
        # Connection -> authenticated user behind it
        self.users: dict[WebSocket, UUID] = {}

    async def connect(self, websocket: WebSocket, user_id: Optional[UUID] = None):
        """Accept a new WebSocket connection."""
        await websocket.accept()
        self.connections[websocket] = set()
        if user_id is not None:
            self.users[websocket] = user_id
        WEBSOCKET_CONNECTIONS.inc()

    def disconnect(self, websocket: WebSocket):
        """Remove a connection from every room. Safe to call twice."""
        self.users.pop(websocket, None)
        rooms = self.connections.pop(websocket, None)
        if rooms is None:
            return
        WEBSOCKET_CONNECTIONS.dec()
        for room in rooms:
            members = self.rooms.get(room)
            if members is None:
                continue
            members.discard(websocket)
            if not members:
                del self.rooms[room]

    def join(self, websocket: WebSocket, workspace_id: UUID) -> str:
        """Add a connection to a workspace room. Idempotent."""
        room = room_name(workspace_id)
        self.rooms.setdefault(room, set()).add(websocket)
        self.connections.setdefault(websocket, set()).add(room)
        return room

    def leave(self, websocket: WebSocket, workspace_id: UUID) -> str:
        """Remove a connection from a workspace room. Idempotent."""
        room = room_name(workspace_id)
        members = self.rooms.get(room)
        if members is not None:
            members.discard(websocket)
            if not members:
                del self.rooms[room]
        self.connections.get(websocket, set()).discard(room)
        return room

    def leave_user(self, user_id: UUID, workspace_id: UUID) -> int:
        """Remove every connection of a user from a workspace room.

        Used once the user is no longer a member of the workspace.

        Returns:
            Number of connections taken out of the room
        """
        room = room_name(workspace_id)
        evicted = [
            connection
            for connection in list(self.rooms.get(room, ()))
            if self.users.get(connection) == user_id
        ]
        for connection in evicted:
            self.leave(connection, workspace_id)
        if evicted:
            logger.info(
                "websocket_room_evicted",
                user_id=str(user_id),
                workspace_id=str(workspace_id),
                connections=len(evicted),
            )
        return len(evicted)

    def rooms_of(self, websocket: WebSocket) -> set[str]:
        return set(self.connections.get(websocket, ()))

    def room_size(self, workspace_id: UUID) -> int:
        return len(self.rooms.get(room_name(workspace_id), ()))

    async def broadcast(self, workspace_id: UUID, event: dict[str, Any]) -> int:
        """Send an event to every connection in a workspace room.

        Returns:
            Number of connections the event was delivered to
        """
        message = json.dumps(event)
        targets = list(self.rooms.get(room_name(workspace_id), ()))

        delivered = 0
        dead_connections = []
        for connection in targets:
            try:
                await connection.send_text(message)
                delivered += 1
            except Exception as exc:
                logger.info("websocket_send_failed", error=str(exc))
                dead_connections.append(connection)

        # Clean up dead connections
        for conn in dead_connections:
            self.disconnect(conn)
        return delivered

    async def send_personal(self, websocket: WebSocket, event: dict[str, Any]) -> bool:
        """Send an event to a single connection."""
        try:
            await websocket.send_text(json.dumps(event))
            return True
        except Exception as exc:
            logger.info("websocket_send_failed", error=str(exc))
            self.disconnect(websocket)
            return False


# Global instance
manager = ConnectionManager()
