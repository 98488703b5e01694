import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, TIMESTAMP, Index, func
from sqlalchemy.dialects.postgresql import UUID, ARRAY
from app.db.base import Base

class Companion(Base):
    """A swipeable companion. Read-only from the application's point of view."""
    __tablename__ = "companions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    age = Column(Integer)
    bio = Column(Text)
    personality = Column(String(255))
    personality_traits = Column(ARRAY(Text), default=[])
    interests = Column(ARRAY(Text), default=[])  # Ordered
    communication_style = Column(String(255))
    backstory = Column(Text)
    image_url = Column(String(1000))
    compatibility_score = Column(Integer)
    is_active = Column(Boolean, default=True, server_default="true", nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now(), server_default=func.now())

    __table_args__ = (
        Index("ix_companions_active_score", "is_active", "compatibility_score"),
    )
