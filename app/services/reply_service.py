"""
Companion replies.

A ReplyProducer turns the latest user message into reply text plus the delay
after which the reply is delivered. The chat flow and the HTTP layer only
depend on this interface, so the placeholder pool can be swapped for a real
generation backend.
"""
import abc
import random
import uuid
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence
from app.core.config import settings
from app.core.scheduler import scheduler
from app.config.constants import (
    COMPANION_REPLY_POOL,
    COMPANION_FALLBACK_REPLY,
    REPLY_CONTEXT_MESSAGES,
)
from app.models.message import MessageAuthor
from app.schemas.auth import Identity
from app.schemas.chat import MessageOut
from app.schemas.companion import CompanionOut
from app.services.gemini_service import GeminiService

logger = logging.getLogger(__name__)


@dataclass
class ReplyRequest:
    conversation_id: uuid.UUID
    latest_message: MessageOut
    companion: Optional[CompanionOut] = None
    history: List[MessageOut] = field(default_factory=list)


@dataclass
class Reply:
    text: str
    delay: float  # seconds


class ReplyProducer(abc.ABC):
    @abc.abstractmethod
    async def produce(self, request: ReplyRequest) -> Reply:
        ...


class RandomReplyProducer(ReplyProducer):
    """Picks a canned reply; the delay is uniform within [min_delay, max_delay]."""

    def __init__(
        self,
        responses: Sequence[str] = COMPANION_REPLY_POOL,
        min_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        if not responses:
            raise ValueError("Reply pool cannot be empty")
        self.responses = list(responses)
        self.min_delay = settings.REPLY_MIN_DELAY_SECONDS if min_delay is None else min_delay
        self.max_delay = settings.REPLY_MAX_DELAY_SECONDS if max_delay is None else max_delay
        if self.min_delay > self.max_delay:
            raise ValueError("min_delay cannot exceed max_delay")
        self.rng = rng or random.Random()

    def pick_delay(self) -> float:
        return self.rng.uniform(self.min_delay, self.max_delay)

    async def produce(self, request: ReplyRequest) -> Reply:
        return Reply(text=self.rng.choice(self.responses), delay=self.pick_delay())


class GeminiReplyProducer(RandomReplyProducer):
    """Generates the reply with Gemini, in character; falls back to the canned pool."""

    def __init__(self, gemini: Optional[GeminiService] = None, **kwargs):
        super().__init__(**kwargs)
        self.gemini = gemini or GeminiService()

    def build_prompt(self, request: ReplyRequest) -> str:
        companion = request.companion
        lines = []
        if companion:
            lines.append(f"You are {companion.name}, an AI companion on a dating app.")
            if companion.age:
                lines.append(f"Age: {companion.age}")
            if companion.personality:
                lines.append(f"Personality: {companion.personality}")
            if companion.bio:
                lines.append(f"Bio: {companion.bio}")
            if companion.interests:
                lines.append(f"Interests: {', '.join(companion.interests)}")
        else:
            lines.append("You are a warm, attentive AI companion on a dating app.")

        lines.append("")
        lines.append("Conversation so far:")
        for message in request.history[-REPLY_CONTEXT_MESSAGES:]:
            speaker = "You" if message.author == MessageAuthor.COMPANION else "User"
            lines.append(f"{speaker}: {message.content}")
        if not request.history or request.history[-1].id != request.latest_message.id:
            lines.append(f"User: {request.latest_message.content}")

        lines.append("")
        lines.append("Reply in one to three short sentences, staying in character. Plain text only.")
        return "\n".join(lines)

    async def produce(self, request: ReplyRequest) -> Reply:
        text = await self.gemini.generate_text(self.build_prompt(request))
        if not text:
            fallback = await super().produce(request)
            return Reply(text=fallback.text or COMPANION_FALLBACK_REPLY, delay=fallback.delay)
        return Reply(text=text, delay=self.pick_delay())


def get_reply_producer() -> ReplyProducer:
    if settings.REPLY_PRODUCER == "gemini":
        return GeminiReplyProducer()
    return RandomReplyProducer()


async def deliver_companion_reply(user_id: str, conversation_id: str, text: str):
    """
    Job function to be executed by APScheduler.
    Writes the companion's turn through the gateway on behalf of the conversation owner.
    """
    from app.services.gateway import DataGateway

    logger.info(f"Delivering companion reply to conversation {conversation_id}")
    gateway = DataGateway.for_identity(Identity(id=user_id))
    try:
        await gateway.append_message(uuid.UUID(conversation_id), MessageAuthor.COMPANION, text)
    except Exception as e:
        logger.exception(f"Companion reply failed for conversation {conversation_id}: {e}")


def schedule_companion_reply(user_id: uuid.UUID, conversation_id: uuid.UUID, reply: Reply) -> str:
    job_id = f"reply:{conversation_id}:{uuid.uuid4().hex[:8]}"
    run_date = datetime.now(timezone.utc) + timedelta(seconds=reply.delay)
    scheduler.add_job(
        deliver_companion_reply,
        'date',
        run_date=run_date,
        args=[str(user_id), str(conversation_id), reply.text],
        id=job_id,
        replace_existing=True,
    )
    logger.info(f"Scheduled companion reply {job_id} in {reply.delay:.1f}s")
    return job_id
