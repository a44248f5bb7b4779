"""Client side of the chat pipeline."""

from teamsync.chat.client import (
    ChatClient,
    ChatMessage,
    ChatTimeline,
    RealtimeChannel,
    placeholder_messages,
)

__all__ = [
    "ChatClient",
    "ChatMessage",
    "ChatTimeline",
    "RealtimeChannel",
    "placeholder_messages",
]
