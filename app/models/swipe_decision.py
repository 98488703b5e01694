import uuid
import enum
from sqlalchemy import Column, String, ForeignKey, TIMESTAMP, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from app.db.base import Base

class SwipeDecisionType(str, enum.Enum):
    LIKE = "like"
    PASS = "pass"
    SUPER_LIKE = "super_like"

    @property
    def can_match(self) -> bool:
        return self is not SwipeDecisionType.PASS

class SwipeDecision(Base):
    """Append-only record of a user's decision on a companion."""
    __tablename__ = "swipe_decisions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    companion_id = Column(UUID(as_uuid=True), ForeignKey("companions.id"), nullable=False)
    decision = Column(String(20), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('user_id', 'companion_id', name='uq_swipe_decision_user_companion'),
    )
