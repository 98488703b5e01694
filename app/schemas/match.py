import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from app.schemas.companion import CompanionOut

class LastMessagePreview(BaseModel):
    content: str
    created_at: datetime
    sender_id: Optional[uuid.UUID] = None

class MatchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    companion_id: uuid.UUID
    matched_at: datetime
    is_active: bool = True
    companion: Optional[CompanionOut] = None

class MatchWithDetails(BaseModel):
    match_id: uuid.UUID
    matched_at: datetime
    companion: CompanionOut
    conversation_id: Optional[uuid.UUID] = None
    last_message: Optional[LastMessagePreview] = None
    unread_count: int = 0

    @property
    def last_activity_at(self) -> datetime:
        if self.last_message:
            return self.last_message.created_at
        return self.matched_at
