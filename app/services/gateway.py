"""
Remote Data Gateway.

Every read and write the screens perform goes through DataGateway. Each
operation resolves the current identity first (no identity is an error, never
a silent no-op), opens its own database session and returns plain schema
objects. Writes are not retried here; callers decide.
"""
import uuid
import logging
from contextlib import asynccontextmanager
from typing import Callable, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from app.db import session as db_session
from app.core.exceptions import AuthenticationRequired, GatewayError
from app.infrastructure.clients.supabase_storage import SupabaseStorageClient
from app.models.message import MessageAuthor
from app.models.swipe_decision import SwipeDecisionType
from app.schemas.auth import Identity
from app.schemas.chat import ConversationOut, ConversationSummary, MessageOut
from app.schemas.companion import CandidateFilters, CompanionOut, SwipeResult
from app.schemas.match import MatchOut, MatchWithDetails
from app.schemas.profile import (
    ImageUpload,
    UserPreferencesOut,
    UserPreferencesUpdate,
    UserProfileOut,
    UserProfileUpdate,
    UserStatsOut,
)
from app.services.chat_service import ChatService, validate_message_content
from app.services.companion_service import CompanionService
from app.services.match_service import MatchService
from app.services.profile_service import ProfileService
from app.services.storage_service import StorageService
from app.services.swipe_service import SwipeService

logger = logging.getLogger(__name__)

IdentityProvider = Callable[[], Optional[Identity]]


class DataGateway:
    def __init__(
        self,
        identity_provider: IdentityProvider,
        session_factory=None,
        storage_client: Optional[SupabaseStorageClient] = None,
    ):
        self._identity_provider = identity_provider
        self._session_factory = session_factory
        self._storage_client = storage_client

    @classmethod
    def for_identity(cls, identity: Optional[Identity], **kwargs) -> "DataGateway":
        return cls(lambda: identity, **kwargs)

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity_provider()

    def _require_identity(self) -> Identity:
        identity = self._identity_provider()
        if identity is None:
            raise AuthenticationRequired()
        return identity

    @asynccontextmanager
    async def _session(self):
        factory = self._session_factory or db_session.AsyncSessionLocal
        try:
            async with factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.exception("Database error in gateway call")
            raise GatewayError(f"Backend request failed: {e}") from e

    # ========================
    # Companions & swipes
    # ========================

    async def list_candidate_companions(self, filters: Optional[CandidateFilters] = None) -> List[CompanionOut]:
        identity = self._require_identity()
        async with self._session() as session:
            companions = await CompanionService(session).list_candidates(identity.id, filters)
            return [CompanionOut.model_validate(c) for c in companions]

    async def record_swipe_decision(self, companion_id: uuid.UUID, decision: SwipeDecisionType) -> SwipeResult:
        identity = self._require_identity()
        async with self._session() as session:
            return await SwipeService(session).record_decision(identity.id, companion_id, decision)

    # ========================
    # Matches
    # ========================

    async def list_matches(self) -> List[MatchOut]:
        identity = self._require_identity()
        async with self._session() as session:
            matches = await MatchService(session).list_matches(identity.id)
            return [MatchOut.model_validate(m) for m in matches]

    async def list_matches_with_details(self) -> List[MatchWithDetails]:
        identity = self._require_identity()
        async with self._session() as session:
            return await MatchService(session).list_matches_with_details(identity.id)

    async def get_match(self, match_id: uuid.UUID) -> Optional[MatchOut]:
        identity = self._require_identity()
        async with self._session() as session:
            match = await MatchService(session).get_match(identity.id, match_id)
            return MatchOut.model_validate(match) if match else None

    async def deactivate_match(self, match_id: uuid.UUID) -> None:
        identity = self._require_identity()
        async with self._session() as session:
            await MatchService(session).deactivate_match(identity.id, match_id)

    # ========================
    # Conversations & messages
    # ========================

    async def list_conversations(self) -> List[ConversationSummary]:
        identity = self._require_identity()
        async with self._session() as session:
            return await ChatService(session).list_conversations(identity.id)

    async def start_conversation(self, match_id: uuid.UUID) -> ConversationOut:
        identity = self._require_identity()
        async with self._session() as session:
            conversation = await ChatService(session).get_or_create_conversation(identity.id, match_id)
            return ConversationOut.model_validate(conversation)

    async def get_conversation_companion(self, conversation_id: uuid.UUID) -> CompanionOut:
        identity = self._require_identity()
        async with self._session() as session:
            conversation = await ChatService(session).get_conversation(identity.id, conversation_id)
            return CompanionOut.model_validate(conversation.companion)

    async def list_messages(self, conversation_id: uuid.UUID) -> List[MessageOut]:
        identity = self._require_identity()
        async with self._session() as session:
            messages = await ChatService(session).list_messages(identity.id, conversation_id)
            return [MessageOut.model_validate(m) for m in messages]

    async def append_message(self, conversation_id: uuid.UUID, author: MessageAuthor, content: str) -> MessageOut:
        identity = self._require_identity()
        text = validate_message_content(content)
        async with self._session() as session:
            message = await ChatService(session).append_message(identity.id, conversation_id, author, text)
            return MessageOut.model_validate(message)

    async def mark_companion_messages_read(self, conversation_id: uuid.UUID) -> int:
        identity = self._require_identity()
        async with self._session() as session:
            return await ChatService(session).mark_companion_messages_read(identity.id, conversation_id)

    # ========================
    # Profile singletons
    # ========================

    async def ensure_profile(self) -> None:
        identity = self._require_identity()
        async with self._session() as session:
            await ProfileService(session).ensure_user_profile_exists(identity)

    async def get_profile(self) -> Optional[UserProfileOut]:
        identity = self._require_identity()
        async with self._session() as session:
            profile = await ProfileService(session).get_profile(identity)
            return UserProfileOut.model_validate(profile) if profile else None

    async def update_profile(self, updates: UserProfileUpdate) -> UserProfileOut:
        identity = self._require_identity()
        async with self._session() as session:
            profile = await ProfileService(session).update_profile(identity, updates)
            return UserProfileOut.model_validate(profile)

    async def get_preferences(self) -> Optional[UserPreferencesOut]:
        identity = self._require_identity()
        async with self._session() as session:
            preferences = await ProfileService(session).get_preferences(identity)
            return UserPreferencesOut.model_validate(preferences) if preferences else None

    async def update_preferences(self, updates: UserPreferencesUpdate) -> UserPreferencesOut:
        identity = self._require_identity()
        async with self._session() as session:
            preferences = await ProfileService(session).update_preferences(identity, updates)
            return UserPreferencesOut.model_validate(preferences)

    async def get_stats(self) -> Optional[UserStatsOut]:
        identity = self._require_identity()
        async with self._session() as session:
            stats = await ProfileService(session).get_stats(identity)
            return UserStatsOut.model_validate(stats) if stats else None

    async def touch_last_active(self) -> None:
        identity = self._require_identity()
        async with self._session() as session:
            await ProfileService(session).touch_last_active(identity.id)

    # ========================
    # Avatar & banner storage
    # ========================

    def _storage(self, session) -> StorageService:
        return StorageService(session, client=self._storage_client)

    async def upload_avatar(self, upload: ImageUpload) -> str:
        identity = self._require_identity()
        StorageService.validate_image(upload)
        async with self._session() as session:
            return await self._storage(session).upload_avatar(identity.id, upload)

    async def delete_avatar(self) -> None:
        identity = self._require_identity()
        async with self._session() as session:
            await self._storage(session).delete_avatar(identity.id)

    async def upload_banner(self, upload: ImageUpload) -> str:
        identity = self._require_identity()
        StorageService.validate_image(upload)
        async with self._session() as session:
            return await self._storage(session).upload_banner(identity.id, upload)

    async def delete_banner(self) -> None:
        identity = self._require_identity()
        async with self._session() as session:
            await self._storage(session).delete_banner(identity.id)

    async def get_avatar_url(self, cache_bust: bool = False) -> Optional[str]:
        identity = self._require_identity()
        async with self._session() as session:
            return await self._storage(session).get_avatar_url(identity.id, cache_bust=cache_bust)

    async def get_banner_url(self, cache_bust: bool = False) -> Optional[str]:
        identity = self._require_identity()
        async with self._session() as session:
            return await self._storage(session).get_banner_url(identity.id, cache_bust=cache_bust)
