"""Chat message model.

Messages are keyed by the id the sending client generated, so the sender
can reconcile its local copy with the broadcast copy. Every message
carries expire_at; expired rows are invisible to history queries and
purged by the retention loop.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import Field, SQLModel

from teamsync.db.models.base import utcnow


class Message(SQLModel, table=True):
    """Message table - immutable after insert."""

    __tablename__ = "messages"

    id: str = Field(primary_key=True, max_length=64)
    workspace_id: UUID = Field(foreign_key="workspaces.id", index=True)

    sender_id: str
    sender_name: str
    sender_profile_picture: Optional[str] = None

    text: str
    timestamp: datetime = Field(default_factory=utcnow, index=True)
    expire_at: datetime = Field(index=True)


class SenderInfo(BaseModel):
    """Sender identity as carried on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    profile_picture: Optional[str] = None


class MessageRead(BaseModel):
    """Wire representation of a message (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    text: str
    sender: SenderInfo
    workspace_id: UUID
    timestamp: datetime
    expire_at: datetime

    @classmethod
    def from_message(cls, message: Message) -> "MessageRead":
        return cls(
            id=message.id,
            text=message.text,
            sender=SenderInfo(
                id=message.sender_id,
                name=message.sender_name,
                profile_picture=message.sender_profile_picture,
            ),
            workspace_id=message.workspace_id,
            timestamp=message.timestamp,
            expire_at=message.expire_at,
        )

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
