from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.models.companion import Companion
from app.models.swipe_decision import SwipeDecision
from app.schemas.companion import CandidateFilters
from typing import List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)

class CompanionService:
    def __init__(self, session: AsyncSession):
        self.session = session

    def build_candidates_query(self, user_id: uuid.UUID, filters: Optional[CandidateFilters] = None):
        """
        Active companions the user has not decided on yet, best compatibility first.
        The exclusion is a subquery so the whole page is one round trip.
        """
        filters = filters or CandidateFilters()

        decided = select(SwipeDecision.companion_id).where(SwipeDecision.user_id == user_id)

        stmt = select(Companion).where(
            Companion.is_active.is_(True),
            Companion.id.not_in(decided),
        )

        if filters.min_age is not None:
            stmt = stmt.where(Companion.age >= filters.min_age)
        if filters.max_age is not None:
            stmt = stmt.where(Companion.age <= filters.max_age)
        if filters.interests:
            stmt = stmt.where(Companion.interests.overlap(filters.interests))
        if filters.personalities:
            stmt = stmt.where(Companion.personality.in_(filters.personalities))

        return (
            stmt
            .order_by(Companion.compatibility_score.desc().nulls_last(), Companion.id)
            .limit(filters.limit)
        )

    async def list_candidates(self, user_id: uuid.UUID, filters: Optional[CandidateFilters] = None) -> List[Companion]:
        result = await self.session.execute(self.build_candidates_query(user_id, filters))
        candidates = result.scalars().all()
        logger.debug(f"Fetched {len(candidates)} candidates for user {user_id}")
        return candidates

    async def get_companion(self, companion_id: uuid.UUID) -> Optional[Companion]:
        stmt = select(Companion).where(Companion.id == companion_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
