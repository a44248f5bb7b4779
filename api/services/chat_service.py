"""Service for chat message persistence, history and retention.

Messages are stored with expire_at = timestamp + MESSAGE_TTL_HOURS. History
reads hide anything at or past its expiry, so an expired message is never
served even before the purge loop deletes it.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from api.exceptions import ConflictError, ValidationError
from api.services.lookups import require_membership
from teamsync.config import CHAT_HISTORY_LIMIT, MESSAGE_TTL_HOURS
from teamsync.db.models import Message, MessageRead, SenderInfo, User, utcnow
from teamsync.logging import get_logger
from teamsync.repositories import MemberRepository, MessageRepository

logger = get_logger(__name__)


class IncomingMessage(BaseModel):
    """Payload of a send_message event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = Field(default=None, max_length=64)
    text: str = Field(min_length=1)
    sender: SenderInfo
    workspace_id: UUID


def compute_expiry(timestamp: datetime) -> datetime:
    return timestamp + timedelta(hours=MESSAGE_TTL_HOURS)


class ChatService:
    """Persistence side of the chat pipeline.

    Args:
        engine: SQLAlchemy engine; every call opens its own session
    """

    def __init__(self, engine: Engine, history_limit: int = CHAT_HISTORY_LIMIT):
        self.engine = engine
        self.history_limit = history_limit

    def is_member(self, workspace_id: UUID, user_id: UUID) -> bool:
        with Session(self.engine) as session:
            return MemberRepository(session).find(workspace_id, user_id) is not None

    def create_message(
        self,
        workspace_id: UUID,
        sender: User,
        text: str,
        message_id: Optional[str] = None,
    ) -> MessageRead:
        """Persist a message from a workspace member.

        The sender identity always comes from the authenticated user, never
        from the payload. A missing message_id is generated.

        Raises:
            NotAMemberError: Sender is not a member of the workspace
            ValidationError: Text is blank
            ConflictError: A message with this id already exists
        """
        if not text or not text.strip():
            raise ValidationError("Message text is required")

        message_id = message_id or str(uuid4())

        with Session(self.engine) as session:
            require_membership(session, workspace_id, sender.id)

            messages = MessageRepository(session)
            if messages.get(message_id):
                raise _duplicate(message_id)

            now = utcnow()
            message = Message(
                id=message_id,
                workspace_id=workspace_id,
                sender_id=str(sender.id),
                sender_name=sender.name,
                sender_profile_picture=sender.profile_picture,
                text=text,
                timestamp=now,
                expire_at=compute_expiry(now),
            )
            try:
                messages.insert(message)
            except IntegrityError:
                session.rollback()
                raise _duplicate(message_id)

            logger.debug(
                "chat_message_saved",
                message_id=message_id,
                workspace_id=str(workspace_id),
                sender_id=str(sender.id),
            )
            return MessageRead.from_message(message)

    def save_incoming_message(self, incoming: IncomingMessage, sender: User) -> MessageRead:
        """Persist a validated send_message payload."""
        return self.create_message(
            incoming.workspace_id,
            sender,
            incoming.text,
            message_id=incoming.id,
        )

    def get_recent_messages(
        self, workspace_id: UUID, acting_user_id: UUID
    ) -> list[MessageRead]:
        """The most recent unexpired messages, oldest first.

        Raises:
            NotAMemberError: Actor is not a member of the workspace
        """
        with Session(self.engine) as session:
            require_membership(session, workspace_id, acting_user_id)
            recent = MessageRepository(session).list_recent(
                workspace_id, utcnow(), self.history_limit
            )
            return [MessageRead.from_message(message) for message in recent]

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete expired messages. Returns the number deleted."""
        with Session(self.engine) as session:
            deleted = MessageRepository(session).purge_expired(now or utcnow())
        if deleted:
            logger.info("chat_messages_purged", count=deleted)
        return deleted


def _duplicate(message_id: str) -> ConflictError:
    return ConflictError(
        "A message with this id already exists",
        error_code="DUPLICATE_MESSAGE",
        details={"messageId": message_id},
    )
