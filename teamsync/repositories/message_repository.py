"""Repository for chat messages."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import delete
from sqlmodel import Session, select

from teamsync.db.models import Message


class MessageRepository:
    """Repository for Message operations.

    Messages are immutable: there is no update method, and rows only leave
    the table through purge_expired.
    """

    def __init__(self, session: Session):
        self.session = session

    def get(self, message_id: str) -> Optional[Message]:
        return self.session.get(Message, message_id)

    def insert(self, message: Message, commit: bool = True) -> Message:
        self.session.add(message)
        if commit:
            self.session.commit()
            self.session.refresh(message)
        return message

    def list_recent(
        self, workspace_id: UUID, now: datetime, limit: int
    ) -> list[Message]:
        """Most recent unexpired messages, oldest first."""
        statement = (
            select(Message)
            .where(
                Message.workspace_id == workspace_id,
                Message.expire_at > now,
            )
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(limit)
        )
        messages = list(self.session.exec(statement).all())
        messages.reverse()
        return messages

    def purge_expired(self, now: datetime) -> int:
        """Delete every message whose expire_at is at or before now.

        Returns:
            Number of rows deleted
        """
        result = self.session.exec(delete(Message).where(Message.expire_at <= now))
        self.session.commit()
        return result.rowcount
