"""Client for the hosted auth service (GoTrue REST API)."""
import logging
from typing import Any, Dict, Optional
import aiohttp
from app.config.constants import AUTH_TIMEOUT_SECONDS
from app.core.exceptions import GatewayError, AuthenticationRequired
from app.schemas.auth import AuthSession, Identity

logger = logging.getLogger(__name__)


class AuthApiError(GatewayError):
    """The auth service rejected the request."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class SupabaseAuthClient:
    """Thin async wrapper over the hosted auth endpoints."""

    def __init__(self, base_url: str, api_key: str):
        """
        Args:
            base_url: Project URL of the hosted backend
            api_key: Public (anon) API key
        """
        self.base_url = f"{base_url.rstrip('/')}/auth/v1"
        self.api_key = api_key

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {"apikey": self.api_key, "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(
                    method,
                    url,
                    json=payload,
                    headers=self._headers(access_token),
                    timeout=aiohttp.ClientTimeout(total=AUTH_TIMEOUT_SECONDS),
                ) as response:
                    if response.status == 401:
                        raise AuthenticationRequired("Session expired or invalid")
                    if response.status >= 400:
                        error_text = await response.text()
                        logger.error(f"Auth API error {response.status} on {path}: {error_text}")
                        raise AuthApiError(error_text or "Auth request failed", status=response.status)
                    if response.status == 204:
                        return {}
                    return await response.json()
        except aiohttp.ClientError as e:
            logger.error(f"Auth API network error: {e}")
            raise GatewayError(f"Auth service unreachable: {e}") from e

    @staticmethod
    def _identity(data: Dict[str, Any]) -> Identity:
        return Identity(
            id=data["id"],
            email=data.get("email"),
            user_metadata=data.get("user_metadata") or {},
        )

    def _session(self, data: Dict[str, Any]) -> AuthSession:
        return AuthSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=data.get("expires_at"),
            user=self._identity(data["user"]),
        )

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        data = await self._request(
            "POST", "/token?grant_type=password", {"email": email, "password": password}
        )
        return self._session(data)

    async def sign_up(self, email: str, password: str) -> Optional[AuthSession]:
        """
        Returns a session when the project auto-confirms emails,
        None when the user must confirm by email first.
        """
        data = await self._request("POST", "/signup", {"email": email, "password": password})
        if data.get("access_token"):
            return self._session(data)
        return None

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        data = await self._request(
            "POST", "/token?grant_type=refresh_token", {"refresh_token": refresh_token}
        )
        return self._session(data)

    async def get_user(self, access_token: str) -> Identity:
        data = await self._request("GET", "/user", access_token=access_token)
        return self._identity(data)

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/logout", access_token=access_token)
