"""Persisted auth sessions, keyed by a device/client id."""
import logging
from typing import Dict, Optional
import redis.asyncio as redis
from pydantic import ValidationError as PydanticValidationError
from app.config.constants import SESSION_KEY_PREFIX, SESSION_TTL_SECONDS
from app.core.config import settings
from app.schemas.auth import AuthSession

logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory store; used by tests and short-lived scripts."""

    def __init__(self):
        self._sessions: Dict[str, str] = {}

    async def load(self, key: str) -> Optional[AuthSession]:
        raw = self._sessions.get(key)
        return AuthSession.model_validate_json(raw) if raw else None

    async def save(self, key: str, session: AuthSession) -> None:
        self._sessions[key] = session.model_dump_json()

    async def clear(self, key: str) -> None:
        self._sessions.pop(key, None)


class RedisSessionStore(SessionStore):
    def __init__(self, client: Optional[redis.Redis] = None, ttl: int = SESSION_TTL_SECONDS):
        super().__init__()
        self.client = client or redis.from_url(str(settings.REDIS_URL), decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def _key(key: str) -> str:
        return f"{SESSION_KEY_PREFIX}{key}"

    async def load(self, key: str) -> Optional[AuthSession]:
        raw = await self.client.get(self._key(key))
        if not raw:
            return None
        try:
            return AuthSession.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning(f"Discarding unreadable session for {key}")
            await self.client.delete(self._key(key))
            return None

    async def save(self, key: str, session: AuthSession) -> None:
        await self.client.set(self._key(key), session.model_dump_json(), ex=self.ttl)

    async def clear(self, key: str) -> None:
        await self.client.delete(self._key(key))
