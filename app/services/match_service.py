from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, and_, true
from app.models.companion import Companion
from app.models.match import Match
from app.models.conversation import Conversation
from app.models.message import Message
from app.schemas.companion import CompanionOut
from app.schemas.match import MatchWithDetails, LastMessagePreview
from app.core.exceptions import NotFoundError
from typing import List, Dict, Any, Optional
import uuid
import logging

logger = logging.getLogger(__name__)


def unread_count_column(conversation_id_col):
    """Unread companion-authored messages of a conversation, as a correlated subquery."""
    return (
        select(func.count(Message.id))
        .where(
            Message.conversation_id == conversation_id_col,
            Message.is_read.is_(False),
            Message.companion_id.is_not(None),
        )
        .scalar_subquery()
    )


def last_message_lateral(conversation_id_col):
    """Latest message of a conversation, joined laterally so each row costs no extra round trip."""
    return (
        select(Message.content, Message.created_at, Message.sender_id)
        .where(Message.conversation_id == conversation_id_col)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(1)
        .lateral("last_message")
    )


def companion_columns():
    return [
        Companion.id.label("companion_id"),
        Companion.name.label("companion_name"),
        Companion.age.label("companion_age"),
        Companion.bio.label("companion_bio"),
        Companion.image_url.label("companion_image_url"),
        Companion.personality.label("companion_personality"),
        Companion.interests.label("companion_interests"),
        Companion.compatibility_score.label("companion_compatibility_score"),
    ]


def companion_from_row(row: Dict[str, Any]) -> CompanionOut:
    return CompanionOut(
        id=row["companion_id"],
        name=row["companion_name"],
        age=row.get("companion_age"),
        bio=row.get("companion_bio"),
        image_url=row.get("companion_image_url"),
        personality=row.get("companion_personality"),
        interests=row.get("companion_interests"),
        compatibility_score=row.get("companion_compatibility_score"),
    )


def last_message_from_row(row: Dict[str, Any]) -> Optional[LastMessagePreview]:
    if not row.get("last_message_content"):
        return None
    return LastMessagePreview(
        content=row["last_message_content"],
        created_at=row["last_message_created_at"],
        sender_id=row.get("last_message_sender_id"),
    )


class MatchService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_matches(self, user_id: uuid.UUID) -> List[Match]:
        stmt = (
            select(Match)
            .where(Match.user_id == user_id, Match.is_active.is_(True))
            .order_by(Match.matched_at.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    def build_details_query(self, user_id: uuid.UUID):
        last_message = last_message_lateral(Conversation.id)
        return (
            select(
                Match.id.label("match_id"),
                Match.matched_at,
                *companion_columns(),
                Conversation.id.label("conversation_id"),
                last_message.c.content.label("last_message_content"),
                last_message.c.created_at.label("last_message_created_at"),
                last_message.c.sender_id.label("last_message_sender_id"),
                unread_count_column(Conversation.id).label("unread_count"),
            )
            .select_from(Match)
            .join(Companion, Companion.id == Match.companion_id)
            .outerjoin(
                Conversation,
                and_(
                    Conversation.user_id == Match.user_id,
                    Conversation.companion_id == Match.companion_id,
                ),
            )
            .outerjoin(last_message, true())
            .where(Match.user_id == user_id, Match.is_active.is_(True))
            .order_by(Match.matched_at.desc(), Match.id)
        )

    async def list_matches_with_details(self, user_id: uuid.UUID) -> List[MatchWithDetails]:
        """
        Matches annotated with conversation id, last message preview and unread count,
        computed by the database in a single query.
        """
        result = await self.session.execute(self.build_details_query(user_id))
        rows = result.mappings().all()

        return [
            MatchWithDetails(
                match_id=row["match_id"],
                matched_at=row["matched_at"],
                companion=companion_from_row(row),
                conversation_id=row.get("conversation_id"),
                last_message=last_message_from_row(row),
                unread_count=int(row.get("unread_count") or 0),
            )
            for row in rows
        ]

    async def get_match(self, user_id: uuid.UUID, match_id: uuid.UUID) -> Optional[Match]:
        stmt = select(Match).where(Match.id == match_id, Match.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def deactivate_match(self, user_id: uuid.UUID, match_id: uuid.UUID) -> None:
        """Soft delete; the row and its history are kept."""
        stmt = (
            update(Match)
            .where(Match.id == match_id, Match.user_id == user_id)
            .values(is_active=False)
        )
        result = await self.session.execute(stmt)
        if not result.rowcount:
            raise NotFoundError(f"Match {match_id} not found")
        await self.session.commit()
        logger.info(f"Match {match_id} deactivated by {user_id}")
