import uuid
from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

class UserProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    display_name: Optional[str] = None
    bio: Optional[str] = None
    age: Optional[int] = None
    location: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    personality_traits: List[str] = Field(default_factory=list)
    preferences: Dict[str, Any] = Field(default_factory=dict)
    avatar_url: Optional[str] = None
    is_active: bool = True
    last_active_at: Optional[datetime] = None

    @field_validator("interests", "personality_traits", mode="before")
    @classmethod
    def null_lists(cls, v):
        return list(v or [])

    @field_validator("preferences", mode="before")
    @classmethod
    def null_preferences(cls, v):
        return dict(v or {})

class UserProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = Field(None, description="Short bio or summary", max_length=2000)
    age: Optional[int] = Field(None, ge=18, le=120)
    location: Optional[str] = Field(None, max_length=255)
    interests: Optional[List[str]] = None
    personality_traits: Optional[List[str]] = None
    preferences: Optional[Dict[str, Any]] = None

class UserPreferencesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    age_range_min: int = 18
    age_range_max: int = 35
    preferred_personalities: List[str] = Field(default_factory=list)
    preferred_interests: List[str] = Field(default_factory=list)
    communication_style_preference: Optional[str] = None
    relationship_goals: List[str] = Field(default_factory=list)

    @field_validator("preferred_personalities", "preferred_interests", "relationship_goals", mode="before")
    @classmethod
    def null_lists(cls, v):
        return list(v or [])

class UserPreferencesUpdate(BaseModel):
    age_range_min: Optional[int] = Field(None, ge=18, le=120)
    age_range_max: Optional[int] = Field(None, ge=18, le=120)
    preferred_personalities: Optional[List[str]] = None
    preferred_interests: Optional[List[str]] = None
    communication_style_preference: Optional[str] = None
    relationship_goals: Optional[List[str]] = None

    @model_validator(mode='after')
    def check_age_range(self):
        if (
            self.age_range_min is not None
            and self.age_range_max is not None
            and self.age_range_min > self.age_range_max
        ):
            raise ValueError("age_range_min cannot exceed age_range_max")
        return self

class UserStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    total_swipes: int = 0
    total_likes: int = 0
    total_passes: int = 0
    total_super_likes: int = 0
    total_matches: int = 0
    total_conversations: int = 0
    total_messages_sent: int = 0

class ImageUpload(BaseModel):
    """An image received from the browser, validated before it reaches storage."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)
