from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, true
from sqlalchemy.dialects.postgresql import insert
from app.models.companion import Companion
from app.models.conversation import Conversation, ConversationStatus
from app.models.message import Message, MessageAuthor, MessageType
from app.models.user_profile import UserStats
from app.schemas.chat import ConversationSummary
from app.services.match_service import (
    MatchService,
    unread_count_column,
    last_message_lateral,
    companion_columns,
    companion_from_row,
    last_message_from_row,
)
from app.core.exceptions import NotFoundError, EmptyMessageError, ValidationError
from app.config.constants import MAX_MESSAGE_LENGTH
from typing import List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)


def validate_message_content(content: Optional[str]) -> str:
    """Normalize outbound content; rejects before anything touches the network."""
    text = (content or "").strip()
    if not text:
        raise EmptyMessageError()
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")
    return text


class ChatService:
    def __init__(self, session: AsyncSession):
        self.session = session

    def build_conversations_query(self, user_id: uuid.UUID):
        last_message = last_message_lateral(Conversation.id)
        return (
            select(
                Conversation.id.label("conversation_id"),
                Conversation.last_message_at,
                *companion_columns(),
                last_message.c.content.label("last_message_content"),
                last_message.c.created_at.label("last_message_created_at"),
                last_message.c.sender_id.label("last_message_sender_id"),
                unread_count_column(Conversation.id).label("unread_count"),
            )
            .select_from(Conversation)
            .join(Companion, Companion.id == Conversation.companion_id)
            .outerjoin(last_message, true())
            .where(
                Conversation.user_id == user_id,
                Conversation.status == ConversationStatus.ACTIVE.value,
            )
            .order_by(Conversation.last_message_at.desc().nulls_last(), Conversation.id)
        )

    async def list_conversations(self, user_id: uuid.UUID) -> List[ConversationSummary]:
        result = await self.session.execute(self.build_conversations_query(user_id))
        return [
            ConversationSummary(
                id=row["conversation_id"],
                companion=companion_from_row(row),
                last_message_at=row.get("last_message_at"),
                unread_count=int(row.get("unread_count") or 0),
                last_message=last_message_from_row(row),
            )
            for row in result.mappings().all()
        ]

    async def get_conversation(self, user_id: uuid.UUID, conversation_id: uuid.UUID) -> Conversation:
        stmt = select(Conversation).where(
            Conversation.id == conversation_id,
            Conversation.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        conversation = result.scalar_one_or_none()
        if not conversation:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    async def get_or_create_conversation(self, user_id: uuid.UUID, match_id: uuid.UUID) -> Conversation:
        """
        Idempotent: concurrent first messages for the same match end up in one conversation.
        """
        match = await MatchService(self.session).get_match(user_id, match_id)
        if not match or not match.is_active:
            raise NotFoundError(f"Match {match_id} not found")

        stmt = (
            insert(Conversation)
            .values(
                user_id=user_id,
                companion_id=match.companion_id,
                status=ConversationStatus.ACTIVE.value,
            )
            .on_conflict_do_nothing(constraint="uq_conversation_user_companion")
            .returning(Conversation.id)
        )
        created_id = (await self.session.execute(stmt)).scalar_one_or_none()
        if created_id is not None:
            await self.session.execute(
                update(UserStats)
                .where(UserStats.user_id == user_id)
                .values(total_conversations=UserStats.total_conversations + 1)
            )
            logger.info(f"Conversation {created_id} created for match {match_id}")
        await self.session.commit()

        existing = await self.session.execute(
            select(Conversation).where(
                Conversation.user_id == user_id,
                Conversation.companion_id == match.companion_id,
            )
        )
        return existing.scalar_one()

    async def list_messages(self, user_id: uuid.UUID, conversation_id: uuid.UUID) -> List[Message]:
        await self.get_conversation(user_id, conversation_id)
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def append_message(
        self,
        user_id: uuid.UUID,
        conversation_id: uuid.UUID,
        author: MessageAuthor,
        content: str,
        message_type: MessageType = MessageType.TEXT,
    ) -> Message:
        """
        Write one message at the tail of the log and return it with its
        server-assigned id and timestamp.
        """
        text = validate_message_content(content)
        conversation = await self.get_conversation(user_id, conversation_id)

        message = Message(
            conversation_id=conversation.id,
            sender_id=user_id if author == MessageAuthor.USER else None,
            companion_id=conversation.companion_id if author == MessageAuthor.COMPANION else None,
            content=text,
            message_type=message_type.value,
            # The author has read their own message
            is_read=author == MessageAuthor.USER,
        )
        self.session.add(message)
        conversation.last_message_at = func.now()

        if author == MessageAuthor.USER:
            await self.session.execute(
                update(UserStats)
                .where(UserStats.user_id == user_id)
                .values(total_messages_sent=UserStats.total_messages_sent + 1)
            )

        await self.session.commit()
        await self.session.refresh(message)
        return message

    async def mark_companion_messages_read(self, user_id: uuid.UUID, conversation_id: uuid.UUID) -> int:
        """Idempotent; returns how many messages changed state."""
        await self.get_conversation(user_id, conversation_id)
        stmt = (
            update(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.companion_id.is_not(None),
                Message.is_read.is_(False),
            )
            .values(is_read=True)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount or 0
