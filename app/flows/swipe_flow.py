"""
Swipe screen state machine.

LOADING -> READY(candidate[i]) -> DECIDING -> READY(candidate[i+1]) | EXHAUSTED

EXHAUSTED is terminal: the screen offers navigation elsewhere instead of
re-querying in a loop.
"""
import enum
import logging
import random
import uuid
from dataclasses import dataclass
from typing import List, Optional, Set
from app.core.exceptions import CompanionAppError
from app.flows.notifications import Notifier, NotificationLevel
from app.models.swipe_decision import SwipeDecisionType
from app.schemas.companion import CandidateFilters, CompanionOut, SwipeResult
from app.services.gateway import DataGateway

logger = logging.getLogger(__name__)


class SwipeState(str, enum.Enum):
    LOADING = "loading"
    READY = "ready"
    DECIDING = "deciding"
    EXHAUSTED = "exhausted"
    ERROR = "error"


class SwipeDirection(str, enum.Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"

    @property
    def decision(self) -> SwipeDecisionType:
        if self is SwipeDirection.RIGHT:
            return SwipeDecisionType.LIKE
        if self is SwipeDirection.UP:
            return SwipeDecisionType.SUPER_LIKE
        return SwipeDecisionType.PASS


@dataclass
class SwipeOutcome:
    companion: CompanionOut
    result: SwipeResult


class SwipeFlow:
    def __init__(
        self,
        gateway: DataGateway,
        notifier: Optional[Notifier] = None,
        filters: Optional[CandidateFilters] = None,
    ):
        self.gateway = gateway
        self.notifier = notifier or Notifier()
        self.filters = filters or CandidateFilters()

        self.state = SwipeState.LOADING
        self.candidates: List[CompanionOut] = []
        self.index = 0
        self.matched_ids: List[uuid.UUID] = []
        self.liked_ids: List[uuid.UUID] = []
        self.passed_ids: List[uuid.UUID] = []
        self._in_flight: Set[uuid.UUID] = set()

    @property
    def current(self) -> Optional[CompanionOut]:
        if self.state not in (SwipeState.READY, SwipeState.DECIDING):
            return None
        if self.index >= len(self.candidates):
            return None
        return self.candidates[self.index]

    @property
    def upcoming(self) -> Optional[CompanionOut]:
        if self.current is None or self.index + 1 >= len(self.candidates):
            return None
        return self.candidates[self.index + 1]

    async def _fetch_page(self) -> Optional[List[CompanionOut]]:
        try:
            return await self.gateway.list_candidate_companions(self.filters)
        except CompanionAppError as e:
            logger.error(f"Failed to load companions: {e}")
            self.notifier.error("Error", "Failed to load companions. Please try again.")
            return None

    async def load(self) -> SwipeState:
        self.state = SwipeState.LOADING
        page = await self._fetch_page()
        if page is None:
            self.state = SwipeState.ERROR
            return self.state

        self.candidates = page
        self.index = 0
        self.state = SwipeState.READY if page else SwipeState.EXHAUSTED
        return self.state

    async def set_filters(self, filters: CandidateFilters) -> SwipeState:
        self.filters = filters
        return await self.load()

    def shuffle(self, rng: Optional[random.Random] = None) -> None:
        """Reorder the unseen part of the current page."""
        if self.state != SwipeState.READY:
            return
        remaining = self.candidates[self.index:]
        (rng or random.Random()).shuffle(remaining)
        self.candidates = self.candidates[:self.index] + remaining

    async def swipe(self, direction: SwipeDirection) -> Optional[SwipeOutcome]:
        return await self.decide(direction.decision)

    async def decide(self, decision: SwipeDecisionType) -> Optional[SwipeOutcome]:
        """
        Submit a decision on the current candidate and advance.
        Returns None when the decision was not submitted (guarded or failed).
        """
        companion = self.current
        if companion is None or self.state != SwipeState.READY:
            return None
        if companion.id in self._in_flight:
            return None

        self._in_flight.add(companion.id)
        self.state = SwipeState.DECIDING
        try:
            result = await self.gateway.record_swipe_decision(companion.id, decision)
        except CompanionAppError as e:
            logger.error(f"Swipe error on {companion.id}: {e}")
            self.notifier.error("Error", str(e) or "Something went wrong. Please try again.")
            self.state = SwipeState.READY
            return None
        finally:
            self._in_flight.discard(companion.id)

        self._record(companion, decision, result)
        await self._advance()
        return SwipeOutcome(companion=companion, result=result)

    def _record(self, companion: CompanionOut, decision: SwipeDecisionType, result: SwipeResult) -> None:
        if not decision.can_match:
            self.passed_ids.append(companion.id)
            return

        self.liked_ids.append(companion.id)
        if result.is_match:
            self.matched_ids.append(companion.id)
            self.notifier.notify(
                "It's a Match!",
                f"You matched with {companion.name}! Start chatting now.",
                NotificationLevel.SUCCESS,
            )
        else:
            self.notifier.notify("Liked!", f"You liked {companion.name}.")

    async def _advance(self) -> None:
        if self.index + 1 < len(self.candidates):
            self.index += 1
            self.state = SwipeState.READY
            return

        # Page exhausted: one fresh query, then terminal if nothing is left
        self.state = SwipeState.LOADING
        page = await self._fetch_page()
        if page is None:
            # Decided page is done either way; load() retries the query
            self.candidates = []
            self.index = 0
            self.state = SwipeState.ERROR
            return
        if not page:
            self.candidates = []
            self.index = 0
            self.state = SwipeState.EXHAUSTED
            return

        self.candidates = page
        self.index = 0
        self.state = SwipeState.READY
