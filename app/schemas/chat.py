import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from app.models.message import MessageAuthor, MessageType
from app.schemas.companion import CompanionOut
from app.schemas.match import LastMessagePreview

class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    conversation_id: uuid.UUID
    content: str
    sender_id: Optional[uuid.UUID] = None
    companion_id: Optional[uuid.UUID] = None
    created_at: datetime
    message_type: MessageType = MessageType.TEXT
    is_read: bool = False

    @property
    def author(self) -> MessageAuthor:
        return MessageAuthor.COMPANION if self.companion_id is not None else MessageAuthor.USER

class ConversationSummary(BaseModel):
    id: uuid.UUID
    companion: CompanionOut
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    last_message: Optional[LastMessagePreview] = None

class ConversationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    companion_id: uuid.UUID
    status: str
    last_message_at: Optional[datetime] = None

class SendMessageRequest(BaseModel):
    content: str = Field(..., max_length=4000)

class MarkReadResult(BaseModel):
    conversation_id: uuid.UUID
    marked: int
