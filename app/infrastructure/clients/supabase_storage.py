"""Client for the hosted object storage (Storage REST API)."""
import logging
from typing import Dict, List, Optional
import aiohttp
from app.config.constants import STORAGE_TIMEOUT_SECONDS, STORAGE_CACHE_CONTROL
from app.core.exceptions import GatewayError

logger = logging.getLogger(__name__)


class StorageApiError(GatewayError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class SupabaseStorageClient:
    """Upload, delete and address objects in a storage bucket."""

    def __init__(self, base_url: str, api_key: str):
        """
        Args:
            base_url: Project URL of the hosted backend
            api_key: Key used for storage writes (service role key on the server)
        """
        self.base_url = f"{base_url.rstrip('/')}/storage/v1"
        self.api_key = api_key

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        cache_control: str = STORAGE_CACHE_CONTROL,
        upsert: bool = False,
    ) -> str:
        """
        Upload an object. Returns the storage key.
        """
        url = f"{self.base_url}/object/{bucket}/{path}"
        headers = self._headers({
            "Content-Type": content_type,
            "Cache-Control": f"max-age={cache_control}",
            "x-upsert": "true" if upsert else "false",
        })
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    data=data,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=STORAGE_TIMEOUT_SECONDS),
                ) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        logger.error(f"Storage upload error {response.status}: {error_text}")
                        raise StorageApiError(error_text or "Upload failed", status=response.status)
        except aiohttp.ClientError as e:
            logger.error(f"Storage network error: {e}")
            raise GatewayError(f"Storage unreachable: {e}") from e
        return path

    async def remove(self, bucket: str, paths: List[str]) -> None:
        url = f"{self.base_url}/object/{bucket}"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.delete(
                    url,
                    json={"prefixes": paths},
                    headers=self._headers({"Content-Type": "application/json"}),
                    timeout=aiohttp.ClientTimeout(total=STORAGE_TIMEOUT_SECONDS),
                ) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        logger.error(f"Storage delete error {response.status}: {error_text}")
                        raise StorageApiError(error_text or "Delete failed", status=response.status)
        except aiohttp.ClientError as e:
            logger.error(f"Storage network error: {e}")
            raise GatewayError(f"Storage unreachable: {e}") from e

    def get_public_url(self, bucket: str, path: str) -> str:
        """Pure derivation from the key; no request is made."""
        return f"{self.base_url}/object/public/{bucket}/{path}"
