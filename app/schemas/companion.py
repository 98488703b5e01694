import uuid
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from app.config.constants import (
    DEFAULT_CANDIDATE_PAGE_SIZE,
    MAX_CANDIDATE_PAGE_SIZE,
)
from app.models.swipe_decision import SwipeDecisionType

class CompanionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    age: Optional[int] = None
    bio: str = ""
    personality: str = ""
    interests: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    compatibility_score: Optional[int] = None

    @field_validator("bio", "personality", mode="before")
    @classmethod
    def null_text(cls, v):
        return v or ""

    @field_validator("interests", mode="before")
    @classmethod
    def null_interests(cls, v):
        return list(v or [])

class CandidateFilters(BaseModel):
    """Optional predicate applied on top of the 'not yet decided' candidate set."""
    min_age: Optional[int] = Field(None, ge=18)
    max_age: Optional[int] = Field(None, le=120)
    interests: List[str] = Field(default_factory=list)
    personalities: List[str] = Field(default_factory=list)
    limit: int = Field(DEFAULT_CANDIDATE_PAGE_SIZE, ge=1, le=MAX_CANDIDATE_PAGE_SIZE)

    @model_validator(mode='after')
    def check_age_range(self):
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError("min_age cannot exceed max_age")
        return self

class SwipeRequest(BaseModel):
    companion_id: uuid.UUID
    decision: SwipeDecisionType

class SwipeResult(BaseModel):
    success: bool = True
    decision: SwipeDecisionType
    is_match: bool = False
    match_id: Optional[uuid.UUID] = None
