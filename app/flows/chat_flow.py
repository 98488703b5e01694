"""
Chat screen.

Holds one open conversation at a time. Every write goes through the gateway;
the transcript only shows server-confirmed messages. Companion replies are
written after a delay and rendered only if the same conversation is still
open when they land.
"""
import asyncio
import logging
import uuid
from typing import List, Optional, Set, Tuple, Union
from app.core.exceptions import CompanionAppError, ValidationError
from app.flows.match_listing import ConversationListing, MatchListing
from app.flows.notifications import Notifier
from app.models.message import MessageAuthor
from app.schemas.chat import ConversationSummary, MessageOut
from app.schemas.companion import CompanionOut
from app.schemas.match import MatchWithDetails
from app.services.chat_service import validate_message_content
from app.services.gateway import DataGateway
from app.services.reply_service import ReplyProducer, ReplyRequest

logger = logging.getLogger(__name__)

Listing = Union[ConversationListing, MatchListing]


class ChatFlow:
    def __init__(
        self,
        gateway: DataGateway,
        reply_producer: ReplyProducer,
        notifier: Optional[Notifier] = None,
        listing: Optional[ConversationListing] = None,
        match_listing: Optional[MatchListing] = None,
    ):
        self.gateway = gateway
        self.reply_producer = reply_producer
        self.notifier = notifier or Notifier()
        self.listing = listing
        self.match_listing = match_listing

        self.conversation_id: Optional[uuid.UUID] = None
        self.companion: Optional[CompanionOut] = None
        self.messages: List[MessageOut] = []
        self.is_sending = False

        self._pending_match_id: Optional[uuid.UUID] = None
        # Bumped on every open/close; late completions compare against it
        self._view_token = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_open(self) -> bool:
        return self.conversation_id is not None or self._pending_match_id is not None

    @property
    def listings(self) -> List[Listing]:
        return [listing for listing in (self.listing, self.match_listing) if listing is not None]

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _apply_message(self, message: MessageOut) -> None:
        for listing in self.listings:
            listing.apply_message(message)

    def _read_conversation(self, conversation_id: uuid.UUID) -> None:
        """Zero unread counters now, confirm in the background."""
        previous = [(listing, listing.zero_unread(conversation_id)) for listing in self.listings]
        self._spawn(self._mark_read(conversation_id, previous))

    async def open(self, conversation: ConversationSummary) -> bool:
        self._view_token += 1
        token = self._view_token
        self.conversation_id = conversation.id
        self.companion = conversation.companion
        self._pending_match_id = None
        self.messages = []

        try:
            messages = await self.gateway.list_messages(conversation.id)
        except CompanionAppError as e:
            logger.error(f"Failed to load messages for {conversation.id}: {e}")
            if token == self._view_token:
                self.notifier.error("Error", "Failed to load messages")
            return False

        if token != self._view_token:
            return False
        self.messages = messages
        self._read_conversation(conversation.id)
        return True

    async def open_match(self, match: MatchWithDetails) -> bool:
        """Open from the matches screen; the conversation is created by the first message."""
        if match.conversation_id is not None:
            summary = ConversationSummary(
                id=match.conversation_id,
                companion=match.companion,
                last_message_at=match.last_message.created_at if match.last_message else None,
                unread_count=match.unread_count,
                last_message=match.last_message,
            )
            return await self.open(summary)

        self._view_token += 1
        self.conversation_id = None
        self.companion = match.companion
        self._pending_match_id = match.match_id
        self.messages = []
        return True

    def close(self) -> None:
        self._view_token += 1
        self.conversation_id = None
        self.companion = None
        self._pending_match_id = None
        self.messages = []

    async def _mark_read(
        self, conversation_id: uuid.UUID, previous: List[Tuple[Listing, int]]
    ) -> None:
        try:
            await self.gateway.mark_companion_messages_read(conversation_id)
        except CompanionAppError as e:
            logger.error(f"Failed to mark {conversation_id} as read: {e}")
            for listing, count in previous:
                listing.restore_unread(conversation_id, count)
            self.notifier.error("Error", "Could not mark messages as read")

    async def _ensure_conversation(self, token: int) -> uuid.UUID:
        if self.conversation_id is not None:
            return self.conversation_id

        match_id = self._pending_match_id
        companion = self.companion
        conversation = await self.gateway.start_conversation(match_id)

        if self.listing and companion:
            self.listing.add(ConversationSummary(
                id=conversation.id,
                companion=companion,
                last_message_at=conversation.last_message_at,
            ))
        if self.match_listing:
            self.match_listing.attach_conversation(match_id, conversation.id)

        # Only the screen that asked may adopt the new conversation
        if token == self._view_token:
            self.conversation_id = conversation.id
            self._pending_match_id = None
        return conversation.id

    async def send(self, content: str) -> Optional[MessageOut]:
        """Send the user's message and queue the companion's reply."""
        if not self.is_open or self.is_sending:
            return None

        try:
            text = validate_message_content(content)
        except ValidationError as e:
            self.notifier.error("Error", str(e))
            return None

        token = self._view_token
        companion = self.companion
        history = list(self.messages)
        self.is_sending = True
        try:
            conversation_id = await self._ensure_conversation(token)
            message = await self.gateway.append_message(conversation_id, MessageAuthor.USER, text)
        except CompanionAppError as e:
            logger.error(f"Failed to send message: {e}")
            self.notifier.error("Error", "Failed to send message")
            return None
        finally:
            self.is_sending = False

        if token == self._view_token:
            self.messages.append(message)
        self._apply_message(message)

        request = ReplyRequest(
            conversation_id=conversation_id,
            latest_message=message,
            companion=companion,
            history=history + [message],
        )
        self._spawn(self._deliver_reply(request, token))
        return message

    async def _deliver_reply(self, request: ReplyRequest, token: int) -> Optional[MessageOut]:
        try:
            reply = await self.reply_producer.produce(request)
            await asyncio.sleep(reply.delay)
            message = await self.gateway.append_message(
                request.conversation_id, MessageAuthor.COMPANION, reply.text
            )
        except CompanionAppError as e:
            logger.error(f"Companion reply failed for {request.conversation_id}: {e}")
            return None

        # Counted as unread until the backend confirms it was read
        self._apply_message(message)
        if token == self._view_token and self.conversation_id == request.conversation_id:
            self.messages.append(message)
            self._read_conversation(request.conversation_id)
        return message

    async def drain(self) -> None:
        """Wait for queued replies and background writes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
