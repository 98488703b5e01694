import uuid
import enum
from sqlalchemy import Column, String, ForeignKey, TIMESTAMP, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.base import Base

class ConversationStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"

class Conversation(Base):
    """At most one per (user, companion); created on the first message."""
    __tablename__ = "conversations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    companion_id = Column(UUID(as_uuid=True), ForeignKey("companions.id"), nullable=False)
    status = Column(String(20), default=ConversationStatus.ACTIVE.value, server_default=ConversationStatus.ACTIVE.value, nullable=False)
    last_message_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    companion = relationship("Companion", lazy="joined")

    __table_args__ = (
        UniqueConstraint('user_id', 'companion_id', name='uq_conversation_user_companion'),
    )
