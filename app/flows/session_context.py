"""
Authenticated session shared by every screen.

Exposes the current identity, a loading flag and auth-event subscription.
The first time an identity is seen, its profile rows are provisioned in the
background; that step is best-effort and never blocks sign-in.
"""
import asyncio
import enum
import logging
import uuid
from typing import Awaitable, Callable, List, Optional, Set
from app.core.exceptions import AuthenticationRequired, CompanionAppError
from app.infrastructure.clients.supabase_auth import SupabaseAuthClient
from app.infrastructure.session_store import SessionStore
from app.schemas.auth import AuthSession, Identity
from app.services.gateway import DataGateway

logger = logging.getLogger(__name__)


class AuthEvent(str, enum.Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


AuthListener = Callable[[AuthEvent, Optional[AuthSession]], None]
Provisioner = Callable[[Identity], Awaitable[None]]


async def provision_profile(identity: Identity) -> None:
    await DataGateway.for_identity(identity).ensure_profile()


class SessionContext:
    def __init__(
        self,
        auth_client: SupabaseAuthClient,
        store: Optional[SessionStore] = None,
        store_key: str = "default",
        provisioner: Optional[Provisioner] = None,
    ):
        self.auth_client = auth_client
        self.store = store or SessionStore()
        self.store_key = store_key
        self.provisioner = provisioner or provision_profile

        self.session: Optional[AuthSession] = None
        self.loading = True
        self._listeners: List[AuthListener] = []
        self._provisioned: Set[uuid.UUID] = set()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def identity(self) -> Optional[Identity]:
        return self.session.user if self.session else None

    def gateway(self, **kwargs) -> DataGateway:
        """A gateway that always reads the live identity of this context."""
        return DataGateway(lambda: self.identity, **kwargs)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self.session)
            except Exception:
                logger.exception(f"Auth listener failed on {event.value}")

    async def _set_session(self, session: Optional[AuthSession], event: AuthEvent) -> None:
        self.session = session
        if session is None:
            await self.store.clear(self.store_key)
        else:
            await self.store.save(self.store_key, session)
            self._maybe_provision(session.user)
        self._emit(event)

    def _maybe_provision(self, identity: Identity) -> None:
        if identity.id in self._provisioned:
            return
        self._provisioned.add(identity.id)
        task = asyncio.create_task(self._provision(identity))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _provision(self, identity: Identity) -> None:
        try:
            await self.provisioner(identity)
        except CompanionAppError as e:
            logger.error(f"Profile provisioning failed for {identity.id}: {e}")
            # Allow a retry on the next identity change
            self._provisioned.discard(identity.id)

    async def initialize(self) -> Optional[Identity]:
        """Restore the persisted session, if any, and report it."""
        self.loading = True
        try:
            self.session = await self.store.load(self.store_key)
            if self.session:
                self._maybe_provision(self.session.user)
        finally:
            self.loading = False
        self._emit(AuthEvent.INITIAL_SESSION)
        return self.identity

    async def sign_in(self, email: str, password: str) -> Identity:
        self.loading = True
        try:
            session = await self.auth_client.sign_in_with_password(email, password)
        finally:
            self.loading = False
        await self._set_session(session, AuthEvent.SIGNED_IN)
        return session.user

    async def sign_up(self, email: str, password: str) -> Optional[Identity]:
        """Returns None when the account needs email confirmation first."""
        self.loading = True
        try:
            session = await self.auth_client.sign_up(email, password)
        finally:
            self.loading = False
        if session is None:
            return None
        await self._set_session(session, AuthEvent.SIGNED_IN)
        return session.user

    async def sign_out(self) -> None:
        if self.session:
            try:
                await self.auth_client.sign_out(self.session.access_token)
            except CompanionAppError as e:
                logger.error(f"Remote sign-out failed: {e}")
        await self._set_session(None, AuthEvent.SIGNED_OUT)

    async def refresh(self) -> Optional[Identity]:
        """
        Renew the session with the refresh token. When there is none, the
        access token is re-validated instead. An expired session signs out.
        """
        if self.session is None:
            return None

        event = AuthEvent.TOKEN_REFRESHED
        try:
            if self.session.refresh_token:
                session = await self.auth_client.refresh_session(self.session.refresh_token)
            else:
                identity = await self.auth_client.get_user(self.session.access_token)
                session = self.session.model_copy(update={"user": identity})
                event = AuthEvent.USER_UPDATED
        except AuthenticationRequired:
            logger.info("Session expired, signing out")
            await self._set_session(None, AuthEvent.SIGNED_OUT)
            return None

        await self._set_session(session, event)
        return session.user

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
