"""Chat client with reconciliation and a REST fallback.

The server broadcasts every message to its whole room, the sender
included, and a client may also load the same message again from history.
ChatTimeline therefore keys messages by id, so each renders exactly once.

Loading history tries the real-time channel first, then the REST
endpoint, then a fixed set of placeholder messages.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Protocol
from uuid import UUID, uuid4

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from teamsync.config import API_BASE_URL, CHAT_SOCKET_TIMEOUT_SECONDS
from teamsync.db.models import SenderInfo, utcnow
from teamsync.logging import get_logger

logger = get_logger(__name__)


class ChatMessage(BaseModel):
    """A message as the client renders it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    text: str
    sender: SenderInfo
    workspace_id: str
    timestamp: datetime
    expire_at: Optional[datetime] = None


class RealtimeChannel(Protocol):
    """The real-time connection as seen by the client.

    Any transport speaking the {"event", "data"} envelope fits, such as a
    WebSocket session wrapped by the caller.
    """

    @property
    def connected(self) -> bool: ...

    async def emit(self, event: str, data: dict[str, Any]) -> None: ...

    async def wait_for(self, event: str) -> dict[str, Any]:
        """Data of the next server event with this name."""
        ...


class ChatTimeline:
    """Rendered messages, unique by id and ordered by timestamp."""

    def __init__(self):
        self._messages: dict[str, ChatMessage] = {}

    def add(self, message: ChatMessage) -> bool:
        """Add a message. Returns False if its id is already rendered."""
        if message.id in self._messages:
            return False
        self._messages[message.id] = message
        return True

    def extend(self, messages: Iterable[ChatMessage]) -> int:
        return sum(1 for message in messages if self.add(message))

    def clear(self) -> None:
        self._messages.clear()

    @property
    def messages(self) -> list[ChatMessage]:
        return sorted(self._messages.values(), key=lambda m: (m.timestamp, m.id))

    def __len__(self) -> int:
        return len(self._messages)


def placeholder_messages(workspace_id: str, now: Optional[datetime] = None) -> list[ChatMessage]:
    """Fixed messages shown when no history source answers."""
    now = now or utcnow()
    return [
        ChatMessage(
            id="1",
            text=(
                "Welcome to the team chat! Be polite and respect each other. "
                "Messages are only stored for 48 hours."
            ),
            sender=SenderInfo(id="system", name="System"),
            workspace_id=workspace_id,
            timestamp=now - timedelta(hours=1),
        ),
        ChatMessage(
            id="2",
            text="Hi everyone! How's the project coming along?",
            sender=SenderInfo(id="user1", name="John Doe"),
            workspace_id=workspace_id,
            timestamp=now - timedelta(minutes=30),
        ),
        ChatMessage(
            id="3",
            text="We're making good progress. Just finished the design mockups.",
            sender=SenderInfo(id="user2", name="Jane Smith"),
            workspace_id=workspace_id,
            timestamp=now - timedelta(minutes=15),
        ),
    ]


def _parse_messages(raw: Any) -> list[ChatMessage]:
    return [ChatMessage.model_validate(item) for item in raw or []]


class ChatClient:
    """Chat client for one workspace.

    Args:
        workspace_id: Workspace whose chat this client shows
        token: Bearer token for the REST fallback
        channel: Real-time channel, if one is available
        base_url: API root for the REST fallback
        timeout: Seconds to wait for load_messages on the channel
        transport: httpx transport override, mainly for tests
    """

    def __init__(
        self,
        workspace_id: UUID | str,
        token: str,
        channel: Optional[RealtimeChannel] = None,
        base_url: str = API_BASE_URL,
        timeout: float = CHAT_SOCKET_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.workspace_id = str(workspace_id)
        self.token = token
        self.channel = channel
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.timeline = ChatTimeline()

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/api/workspace/{self.workspace_id}/chat"

    def _connected(self) -> bool:
        return self.channel is not None and self.channel.connected

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=20,
            transport=self.transport,
            headers={"Authorization": f"Bearer {self.token}"},
        )

    # =========================================================================
    # Rooms
    # =========================================================================

    async def join(self) -> None:
        if self._connected():
            await self.channel.emit("join_workspace", {"workspaceId": self.workspace_id})

    async def leave(self) -> None:
        if self._connected():
            await self.channel.emit("leave_workspace", {"workspaceId": self.workspace_id})

    # =========================================================================
    # History
    # =========================================================================

    async def get_messages(self) -> list[ChatMessage]:
        """Load history into the timeline and return the rendered list."""
        messages = None
        if self._connected():
            messages = await self._get_messages_from_channel()
        if messages is None:
            messages = await self.get_messages_from_api()

        self.timeline.extend(messages)
        return self.timeline.messages

    async def _get_messages_from_channel(self) -> Optional[list[ChatMessage]]:
        # Subscribe before emitting so a fast reply is not missed
        reply = asyncio.ensure_future(self.channel.wait_for("load_messages"))
        await asyncio.sleep(0)
        try:
            await self.channel.emit("get_messages", {"workspaceId": self.workspace_id})
            data = await asyncio.wait_for(reply, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("chat_history_socket_timeout", workspace_id=self.workspace_id)
            return None
        except Exception as exc:
            logger.warning(
                "chat_history_socket_failed",
                workspace_id=self.workspace_id,
                error=str(exc),
            )
            return None
        finally:
            reply.cancel()

        try:
            return _parse_messages(data.get("messages"))
        except PydanticValidationError as exc:
            logger.warning("chat_history_socket_invalid", error=str(exc))
            return None

    async def get_messages_from_api(self) -> list[ChatMessage]:
        """History from the REST endpoint, or placeholders if it fails."""
        try:
            async with self._http_client() as client:
                response = await client.get(self.chat_url)
                response.raise_for_status()
            return _parse_messages(response.json().get("messages"))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "chat_history_api_failed",
                workspace_id=self.workspace_id,
                error=str(exc),
            )
            return placeholder_messages(self.workspace_id)

    # =========================================================================
    # Sending and receiving
    # =========================================================================

    async def send_message(self, text: str, sender: SenderInfo) -> ChatMessage:
        """Send a message.

        Over the real-time channel the message is rendered when its
        broadcast arrives. If the channel is down or the emit fails, the
        REST fallback stores it and the stored copy is rendered at once;
        if that also fails, the local copy is rendered and only this
        client sees it.
        """
        message = ChatMessage(
            id=str(uuid4()),
            text=text,
            sender=sender,
            workspace_id=self.workspace_id,
            timestamp=utcnow(),
        )

        if self._connected():
            try:
                await self.channel.emit(
                    "send_message",
                    {
                        "id": message.id,
                        "text": message.text,
                        "sender": sender.model_dump(by_alias=True),
                        "workspaceId": self.workspace_id,
                    },
                )
                return message
            except Exception as exc:
                logger.warning(
                    "chat_send_socket_failed",
                    workspace_id=self.workspace_id,
                    error=str(exc),
                )

        try:
            async with self._http_client() as client:
                response = await client.post(self.chat_url, json={"text": text})
                response.raise_for_status()
            message = ChatMessage.model_validate(response.json()["data"])
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.warning(
                "chat_send_fallback_failed",
                workspace_id=self.workspace_id,
                error=str(exc),
            )

        self.timeline.add(message)
        return message

    def handle_event(self, event: str, data: dict[str, Any]) -> None:
        """Apply a server event from the real-time channel to the timeline."""
        try:
            if event == "receive_message":
                self.timeline.add(ChatMessage.model_validate(data))
            elif event == "load_messages":
                self.timeline.extend(_parse_messages(data.get("messages")))
        except PydanticValidationError as exc:
            logger.warning("chat_event_invalid", chat_event=event, error=str(exc))
