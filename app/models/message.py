import uuid
import enum
from sqlalchemy import Column, String, Text, Boolean, ForeignKey, TIMESTAMP, CheckConstraint, Index, func
from sqlalchemy.dialects.postgresql import UUID
from app.db.base import Base

class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    SYSTEM = "system"

class MessageAuthor(str, enum.Enum):
    USER = "user"
    COMPANION = "companion"

class Message(Base):
    """
    One entry of a conversation's append-only log.
    Exactly one of sender_id (the human user) and companion_id is set.
    """
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id = Column(UUID(as_uuid=True), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(UUID(as_uuid=True), nullable=True)
    companion_id = Column(UUID(as_uuid=True), ForeignKey("companions.id"), nullable=True)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), default=MessageType.TEXT.value, server_default=MessageType.TEXT.value, nullable=False)
    is_read = Column(Boolean, default=False, server_default="false", nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(sender_id IS NULL) <> (companion_id IS NULL)",
            name="ck_message_single_author",
        ),
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
    )

    @property
    def author(self) -> MessageAuthor:
        return MessageAuthor.COMPANION if self.companion_id is not None else MessageAuthor.USER
