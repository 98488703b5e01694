from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from app.models.user_profile import UserProfile, UserPreferences, UserStats
from app.schemas.auth import Identity
from app.schemas.profile import UserProfileUpdate, UserPreferencesUpdate
from app.core.exceptions import NotFoundError
from typing import Optional
import uuid
import logging

logger = logging.getLogger(__name__)

class ProfileService:
    """
    Service for the per-user singleton rows (profile, preferences, stats).
    A missing row is not an error: it triggers provisioning and a re-read.
    """
    def __init__(self, session: AsyncSession):
        """
        Args:
            session: SQLAlchemy AsyncSession for database operations.
        """
        self.session = session

    async def ensure_user_profile_exists(self, identity: Identity) -> None:
        """
        Creates any missing singleton row for the identity.

        Each insert is ON CONFLICT DO NOTHING against the table's unique key,
        so the call is idempotent and safe when several sessions race on the
        same identity.

        Args:
            identity: The authenticated user.
        """
        await self.session.execute(
            insert(UserProfile)
            .values(
                id=identity.id,
                display_name=identity.display_name,
                avatar_url=identity.avatar_url,
            )
            .on_conflict_do_nothing(index_elements=[UserProfile.id])
        )
        await self.session.execute(
            insert(UserPreferences)
            .values(user_id=identity.id)
            .on_conflict_do_nothing(index_elements=[UserPreferences.user_id])
        )
        await self.session.execute(
            insert(UserStats)
            .values(user_id=identity.id)
            .on_conflict_do_nothing(index_elements=[UserStats.user_id])
        )
        await self.session.commit()
        logger.info(f"Ensured profile rows for user {identity.id}")

    async def _get_or_provision(self, identity: Identity, stmt):
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is not None:
            return row

        try:
            await self.ensure_user_profile_exists(identity)
        except SQLAlchemyError:
            logger.exception(f"Error ensuring profile rows exist for {identity.id}")
            await self.session.rollback()
            return None

        retry = await self.session.execute(stmt)
        row = retry.scalar_one_or_none()
        if row is None:
            logger.error(f"Failed to create/fetch singleton row for {identity.id}")
        return row

    async def get_profile(self, identity: Identity) -> Optional[UserProfile]:
        """
        Retrieves the user profile, provisioning it on first access.

        Returns:
            The profile row, or None when provisioning failed.
        """
        stmt = select(UserProfile).where(UserProfile.id == identity.id)
        return await self._get_or_provision(identity, stmt)

    async def get_preferences(self, identity: Identity) -> Optional[UserPreferences]:
        stmt = select(UserPreferences).where(UserPreferences.user_id == identity.id)
        return await self._get_or_provision(identity, stmt)

    async def get_stats(self, identity: Identity) -> Optional[UserStats]:
        stmt = select(UserStats).where(UserStats.user_id == identity.id)
        return await self._get_or_provision(identity, stmt)

    async def update_profile(self, identity: Identity, updates: UserProfileUpdate) -> UserProfile:
        """
        Applies only the fields present in the update.
        """
        profile = await self.get_profile(identity)
        if profile is None:
            raise NotFoundError(f"Profile for {identity.id} not found")

        for field, value in updates.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)

        await self.session.commit()
        await self.session.refresh(profile)
        return profile

    async def update_preferences(self, identity: Identity, updates: UserPreferencesUpdate) -> UserPreferences:
        preferences = await self.get_preferences(identity)
        if preferences is None:
            raise NotFoundError(f"Preferences for {identity.id} not found")

        for field, value in updates.model_dump(exclude_unset=True).items():
            setattr(preferences, field, value)

        await self.session.commit()
        await self.session.refresh(preferences)
        return preferences

    async def touch_last_active(self, user_id: uuid.UUID) -> None:
        try:
            await self.session.execute(
                update(UserProfile)
                .where(UserProfile.id == user_id)
                .values(last_active_at=func.now())
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update last active for {user_id}: {e}")
            await self.session.rollback()
