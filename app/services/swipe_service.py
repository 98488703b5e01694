from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert
from app.models.companion import Companion
from app.models.swipe_decision import SwipeDecision, SwipeDecisionType
from app.models.match import Match
from app.models.user_profile import UserStats
from app.schemas.companion import SwipeResult
from app.services.companion_service import CompanionService
from app.core.config import settings
from app.core.exceptions import NotFoundError, DuplicateDecisionError
from typing import Optional
import uuid
import logging

logger = logging.getLogger(__name__)

class SwipeService:
    """
    Records swipe decisions and creates the match in the same transaction,
    so the caller learns the outcome in one step.
    """

    def __init__(
        self,
        session: AsyncSession,
        like_threshold: Optional[int] = None,
        super_like_threshold: Optional[int] = None,
    ):
        self.session = session
        self.companions = CompanionService(session)
        self.like_threshold = settings.LIKE_MATCH_THRESHOLD if like_threshold is None else like_threshold
        self.super_like_threshold = (
            settings.SUPER_LIKE_MATCH_THRESHOLD if super_like_threshold is None else super_like_threshold
        )

    def is_mutual_interest(self, companion: Companion, decision: SwipeDecisionType) -> bool:
        if not decision.can_match or not companion.is_active:
            return False
        score = companion.compatibility_score or 0
        if decision == SwipeDecisionType.SUPER_LIKE:
            return score >= self.super_like_threshold
        return score >= self.like_threshold

    async def record_decision(
        self,
        user_id: uuid.UUID,
        companion_id: uuid.UUID,
        decision: SwipeDecisionType,
    ) -> SwipeResult:
        companion = await self.companions.get_companion(companion_id)
        if not companion or not companion.is_active:
            raise NotFoundError(f"Companion {companion_id} not found")

        # The unique (user_id, companion_id) constraint settles races between tabs
        decision_stmt = (
            insert(SwipeDecision)
            .values(user_id=user_id, companion_id=companion_id, decision=decision.value)
            .on_conflict_do_nothing(constraint="uq_swipe_decision_user_companion")
            .returning(SwipeDecision.id)
        )
        inserted_id = (await self.session.execute(decision_stmt)).scalar_one_or_none()
        if inserted_id is None:
            await self.session.rollback()
            raise DuplicateDecisionError(f"Already decided on companion {companion_id}")

        match_id = None
        if self.is_mutual_interest(companion, decision):
            match_stmt = (
                insert(Match)
                .values(user_id=user_id, companion_id=companion_id, is_active=True)
                .on_conflict_do_update(
                    constraint="uq_match_user_companion",
                    set_={"is_active": True},
                )
                .returning(Match.id)
            )
            match_id = (await self.session.execute(match_stmt)).scalar_one()

        await self._bump_stats(user_id, decision, matched=match_id is not None)
        await self.session.commit()

        logger.info(f"User {user_id} -> {decision.value} on {companion_id} (match={match_id is not None})")
        return SwipeResult(
            success=True,
            decision=decision,
            is_match=match_id is not None,
            match_id=match_id,
        )

    async def _bump_stats(self, user_id: uuid.UUID, decision: SwipeDecisionType, matched: bool):
        values = {"total_swipes": UserStats.total_swipes + 1}
        if decision == SwipeDecisionType.LIKE:
            values["total_likes"] = UserStats.total_likes + 1
        elif decision == SwipeDecisionType.SUPER_LIKE:
            values["total_super_likes"] = UserStats.total_super_likes + 1
        else:
            values["total_passes"] = UserStats.total_passes + 1
        if matched:
            values["total_matches"] = UserStats.total_matches + 1

        await self.session.execute(
            update(UserStats).where(UserStats.user_id == user_id).values(**values)
        )
