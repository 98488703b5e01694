from sqlalchemy import Column, String, TIMESTAMP, func
from sqlalchemy.dialects.postgresql import UUID
from app.db.base import Base

class UserProfilePic(Base):
    """Storage key of the user's current avatar."""
    __tablename__ = "user_profile_pics"

    user_id = Column(UUID(as_uuid=True), primary_key=True)
    profile_pic_key = Column(String(1000), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now(), server_default=func.now())

class UserBanner(Base):
    """Storage key of the user's current profile banner."""
    __tablename__ = "user_banners"

    user_id = Column(UUID(as_uuid=True), primary_key=True)
    banner_key = Column(String(1000), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now(), server_default=func.now())
