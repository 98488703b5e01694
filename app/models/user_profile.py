import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, TIMESTAMP, func
from sqlalchemy.dialects.postgresql import UUID, ARRAY, JSONB
from app.db.base import Base

class UserProfile(Base):
    """Per-user singleton; primary key is the auth user id."""
    __tablename__ = "user_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True)
    display_name = Column(String(255))
    bio = Column(Text)
    age = Column(Integer)
    location = Column(String(255))
    interests = Column(ARRAY(Text), default=[], server_default="{}")
    personality_traits = Column(ARRAY(Text), default=[], server_default="{}")
    preferences = Column(JSONB, default={}, server_default="{}")
    avatar_url = Column(String(1000))
    is_active = Column(Boolean, default=True, server_default="true")
    last_active_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now(), server_default=func.now())

class UserPreferences(Base):
    __tablename__ = "user_preferences"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, unique=True)
    age_range_min = Column(Integer, default=18, server_default="18")
    age_range_max = Column(Integer, default=35, server_default="35")
    preferred_personalities = Column(ARRAY(Text), default=[], server_default="{}")
    preferred_interests = Column(ARRAY(Text), default=[], server_default="{}")
    communication_style_preference = Column(String(255))
    relationship_goals = Column(ARRAY(Text), default=[], server_default="{}")
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now(), server_default=func.now())

class UserStats(Base):
    __tablename__ = "user_stats"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, unique=True)

    # Integer for atomic increments
    total_swipes = Column(Integer, default=0, server_default="0")
    total_likes = Column(Integer, default=0, server_default="0")
    total_passes = Column(Integer, default=0, server_default="0")
    total_super_likes = Column(Integer, default=0, server_default="0")
    total_matches = Column(Integer, default=0, server_default="0")
    total_conversations = Column(Integer, default=0, server_default="0")
    total_messages_sent = Column(Integer, default=0, server_default="0")

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now(), server_default=func.now())
