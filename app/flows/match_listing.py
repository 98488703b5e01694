"""Match and conversation listings: cached fetch, client-side search and sort."""
import enum
import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from app.core.exceptions import CompanionAppError
from app.flows.cache import KeyedCache
from app.flows.notifications import Notifier
from app.models.message import MessageAuthor
from app.schemas.chat import ConversationSummary, MessageOut
from app.schemas.companion import CompanionOut
from app.schemas.match import LastMessagePreview, MatchWithDetails
from app.services.gateway import DataGateway

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class SortOrder(str, enum.Enum):
    RECENT = "recent"
    COMPATIBILITY = "compatibility"
    ACTIVITY = "activity"


def companion_matches_query(companion: CompanionOut, query: str) -> bool:
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(
        needle in (value or "").lower()
        for value in (companion.name, companion.personality, companion.bio)
    )


def filter_matches(matches: Iterable[MatchWithDetails], query: str) -> List[MatchWithDetails]:
    return [m for m in matches if companion_matches_query(m.companion, query)]


def _aware(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def sort_matches(matches: Iterable[MatchWithDetails], order: SortOrder) -> List[MatchWithDetails]:
    """
    Descending sort on the chosen key. Python's sort is stable, also with
    reverse=True, so ties keep fetch order.
    """
    items = list(matches)
    if order == SortOrder.RECENT:
        return sorted(items, key=lambda m: _aware(m.last_activity_at), reverse=True)
    if order == SortOrder.COMPATIBILITY:
        return sorted(items, key=lambda m: m.companion.compatibility_score or 0, reverse=True)
    if order == SortOrder.ACTIVITY:
        return sorted(items, key=lambda m: m.unread_count, reverse=True)
    raise ValueError(f"Unknown sort order: {order}")


class MatchListing:
    def __init__(self, gateway: DataGateway, notifier: Optional[Notifier] = None):
        self.gateway = gateway
        self.notifier = notifier or Notifier()
        self.cache: KeyedCache[MatchWithDetails] = KeyedCache(key=lambda m: m.match_id)
        self.loading = False

    async def refresh(self) -> bool:
        """Replace the whole collection; on failure the previous one stays visible."""
        self.loading = True
        try:
            matches = await self.gateway.list_matches_with_details()
        except CompanionAppError as e:
            logger.error(f"Failed to load matches: {e}")
            self.notifier.error("Error", str(e) or "Failed to load your matches")
            return False
        finally:
            self.loading = False

        self.cache.replace_all(matches)
        return True

    def view(self, query: str = "", order: SortOrder = SortOrder.RECENT) -> List[MatchWithDetails]:
        return sort_matches(filter_matches(self.cache.values(), query), order)

    def find_by_conversation(self, conversation_id: uuid.UUID) -> Optional[MatchWithDetails]:
        for match in self.cache.values():
            if match.conversation_id == conversation_id:
                return match
        return None

    def zero_unread(self, conversation_id: uuid.UUID) -> int:
        """Returns the previous count so a failed mark-read can be rolled back."""
        match = self.find_by_conversation(conversation_id)
        if match is None:
            return 0
        self.cache.patch(match.match_id, lambda m: m.model_copy(update={"unread_count": 0}))
        return match.unread_count

    def restore_unread(self, conversation_id: uuid.UUID, count: int) -> None:
        match = self.find_by_conversation(conversation_id)
        if match:
            self.cache.patch(match.match_id, lambda m: m.model_copy(update={"unread_count": count}))

    def attach_conversation(self, match_id: uuid.UUID, conversation_id: uuid.UUID) -> None:
        """Link a match to the conversation its first message created."""
        self.cache.patch(match_id, lambda m: m.model_copy(update={"conversation_id": conversation_id}))

    def apply_message(self, message: MessageOut) -> None:
        match = self.find_by_conversation(message.conversation_id)
        if match is None:
            return
        preview = LastMessagePreview(
            content=message.content,
            created_at=message.created_at,
            sender_id=message.sender_id,
        )

        def update(m: MatchWithDetails) -> MatchWithDetails:
            changes = {"last_message": preview}
            if message.author == MessageAuthor.COMPANION and not message.is_read:
                changes["unread_count"] = m.unread_count + 1
            return m.model_copy(update=changes)

        self.cache.patch(match.match_id, update)

    def deactivate(self, match_id: uuid.UUID) -> None:
        """Local removal after a successful soft delete."""
        self.cache.remove(match_id)


class ConversationListing:
    def __init__(self, gateway: DataGateway, notifier: Optional[Notifier] = None):
        self.gateway = gateway
        self.notifier = notifier or Notifier()
        self.cache: KeyedCache[ConversationSummary] = KeyedCache(key=lambda c: c.id)
        self.loading = False

    async def refresh(self) -> bool:
        self.loading = True
        try:
            conversations = await self.gateway.list_conversations()
        except CompanionAppError as e:
            logger.error(f"Failed to load conversations: {e}")
            self.notifier.error("Error", "Failed to load conversations")
            return False
        finally:
            self.loading = False

        self.cache.replace_all(conversations)
        return True

    def view(self, query: str = "") -> List[ConversationSummary]:
        items = [c for c in self.cache.values() if companion_matches_query(c.companion, query)]
        return sorted(items, key=lambda c: _aware(c.last_message_at), reverse=True)

    def get(self, conversation_id: uuid.UUID) -> Optional[ConversationSummary]:
        return self.cache.get(conversation_id)

    def add(self, conversation: ConversationSummary) -> None:
        """Register a conversation created lazily by the first message."""
        if conversation.id not in self.cache:
            self.cache.put(conversation)

    def zero_unread(self, conversation_id: uuid.UUID) -> int:
        """Returns the previous count so a failed mark-read can be rolled back."""
        current = self.cache.get(conversation_id)
        if current is None:
            return 0
        self.cache.patch(conversation_id, lambda c: c.model_copy(update={"unread_count": 0}))
        return current.unread_count

    def restore_unread(self, conversation_id: uuid.UUID, count: int) -> None:
        self.cache.patch(conversation_id, lambda c: c.model_copy(update={"unread_count": count}))

    def apply_message(self, message: MessageOut) -> None:
        """Fold a confirmed message into the row's preview and unread counter."""
        preview = LastMessagePreview(
            content=message.content,
            created_at=message.created_at,
            sender_id=message.sender_id,
        )

        def update(c: ConversationSummary) -> ConversationSummary:
            changes = {"last_message": preview, "last_message_at": message.created_at}
            if message.author == MessageAuthor.COMPANION and not message.is_read:
                changes["unread_count"] = c.unread_count + 1
            return c.model_copy(update=changes)

        self.cache.patch(message.conversation_id, update)
