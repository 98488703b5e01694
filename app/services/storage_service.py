from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from app.models.user_media import UserProfilePic, UserBanner
from app.schemas.profile import ImageUpload
from app.infrastructure.clients.supabase_storage import SupabaseStorageClient
from app.core.config import settings
from app.core.exceptions import InvalidUploadError, GatewayError
from app.config.constants import MAX_IMAGE_UPLOAD_BYTES, DEFAULT_IMAGE_EXTENSION
from datetime import datetime, timezone
from typing import Optional
import secrets
import uuid
import logging

logger = logging.getLogger(__name__)


def default_storage_client() -> SupabaseStorageClient:
    return SupabaseStorageClient(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_ROLE_KEY or settings.SUPABASE_ANON_KEY,
    )


class StorageService:
    """
    Avatar and banner images. Both live in one bucket:
    avatars under {user_id}/{filename}, banners under {user_id}/banner/{filename}.
    The current key of each is tracked in user_profile_pics / user_banners.
    """

    def __init__(
        self,
        session: AsyncSession,
        client: Optional[SupabaseStorageClient] = None,
        bucket: Optional[str] = None,
    ):
        self.session = session
        self.client = client or default_storage_client()
        self.bucket = bucket or settings.STORAGE_BUCKET

    @staticmethod
    def validate_image(upload: ImageUpload) -> None:
        if not (upload.content_type or "").startswith("image/"):
            raise InvalidUploadError("File must be an image")
        if upload.size > MAX_IMAGE_UPLOAD_BYTES:
            raise InvalidUploadError("File size must be less than 5MB")
        if upload.size == 0:
            raise InvalidUploadError("File is empty")

    @staticmethod
    def build_key(user_id: uuid.UUID, filename: str, banner: bool = False, now: Optional[datetime] = None) -> str:
        ext = DEFAULT_IMAGE_EXTENSION
        if "." in (filename or ""):
            ext = filename.rsplit(".", 1)[-1].lower() or DEFAULT_IMAGE_EXTENSION
        stamp = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
        name = f"{stamp}-{secrets.token_hex(6)}.{ext}"
        if banner:
            return f"{user_id}/banner/{name}"
        return f"{user_id}/{name}"

    async def _current_key(self, model, key_column, user_id: uuid.UUID) -> Optional[str]:
        result = await self.session.execute(select(key_column).where(model.user_id == user_id))
        return result.scalar_one_or_none()

    async def _replace_image(self, user_id: uuid.UUID, upload: ImageUpload, banner: bool) -> str:
        self.validate_image(upload)

        model = UserBanner if banner else UserProfilePic
        key_column = UserBanner.banner_key if banner else UserProfilePic.profile_pic_key
        key_field = "banner_key" if banner else "profile_pic_key"

        old_key = await self._current_key(model, key_column, user_id)
        if old_key:
            try:
                await self.client.remove(self.bucket, [old_key])
            except GatewayError as e:
                logger.warning(f"Failed to delete old image {old_key}: {e}")

        key = self.build_key(user_id, upload.filename, banner=banner)
        await self.client.upload(self.bucket, key, upload.data, upload.content_type)

        try:
            await self.session.execute(
                insert(model)
                .values(user_id=user_id, **{key_field: key})
                .on_conflict_do_update(
                    index_elements=[model.user_id],
                    set_={key_field: key, "updated_at": func.now()},
                )
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            # Do not leave an orphaned object behind
            await self.client.remove(self.bucket, [key])
            raise GatewayError(f"Failed to update image record: {e}") from e

        logger.info(f"Stored {'banner' if banner else 'avatar'} {key}")
        return self.client.get_public_url(self.bucket, key)

    async def _delete_image(self, user_id: uuid.UUID, banner: bool) -> None:
        model = UserBanner if banner else UserProfilePic
        key_column = UserBanner.banner_key if banner else UserProfilePic.profile_pic_key

        key = await self._current_key(model, key_column, user_id)
        if not key:
            return

        await self.client.remove(self.bucket, [key])

        try:
            await self.session.execute(delete(model).where(model.user_id == user_id))
            await self.session.commit()
        except SQLAlchemyError as e:
            # The object is already gone; a stale row only yields a broken URL
            logger.error(f"Failed to delete image record for {user_id}: {e}")
            await self.session.rollback()

    async def _image_url(self, user_id: uuid.UUID, banner: bool, cache_bust: bool) -> Optional[str]:
        model = UserBanner if banner else UserProfilePic
        key_column = UserBanner.banner_key if banner else UserProfilePic.profile_pic_key
        try:
            key = await self._current_key(model, key_column, user_id)
        except SQLAlchemyError as e:
            logger.debug(f"Error fetching image key for {user_id}: {e}")
            return None
        if not key:
            return None

        url = self.client.get_public_url(self.bucket, key)
        if cache_bust:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}t={int(datetime.now(timezone.utc).timestamp() * 1000)}"
        return url

    async def upload_avatar(self, user_id: uuid.UUID, upload: ImageUpload) -> str:
        return await self._replace_image(user_id, upload, banner=False)

    async def upload_banner(self, user_id: uuid.UUID, upload: ImageUpload) -> str:
        return await self._replace_image(user_id, upload, banner=True)

    async def delete_avatar(self, user_id: uuid.UUID) -> None:
        await self._delete_image(user_id, banner=False)

    async def delete_banner(self, user_id: uuid.UUID) -> None:
        await self._delete_image(user_id, banner=True)

    async def get_avatar_url(self, user_id: uuid.UUID, cache_bust: bool = False) -> Optional[str]:
        return await self._image_url(user_id, banner=False, cache_bust=cache_bust)

    async def get_banner_url(self, user_id: uuid.UUID, cache_bust: bool = False) -> Optional[str]:
        return await self._image_url(user_id, banner=True, cache_bust=cache_bust)
