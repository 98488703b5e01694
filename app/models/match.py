import uuid
from sqlalchemy import Column, ForeignKey, TIMESTAMP, Boolean, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.base import Base

class Match(Base):
    __tablename__ = "matches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    companion_id = Column(UUID(as_uuid=True), ForeignKey("companions.id"), nullable=False)

    matched_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    # Soft delete only
    is_active = Column(Boolean, default=True, server_default="true", nullable=False)

    companion = relationship("Companion", lazy="joined")

    __table_args__ = (
        UniqueConstraint('user_id', 'companion_id', name='uq_match_user_companion'),
    )
