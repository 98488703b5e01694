"""Webapp API endpoints: companions, swipes, matches and chats."""
import logging
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from app.api.deps import get_gateway, http_error
from app.core.exceptions import CompanionAppError
from app.models.message import MessageAuthor
from app.schemas.chat import MarkReadResult, SendMessageRequest
from app.schemas.companion import CandidateFilters, SwipeRequest
from app.services.gateway import DataGateway
from app.services.reply_service import ReplyRequest, get_reply_producer, schedule_companion_reply

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webapp", tags=["webapp"])


# ========================
# Companions & swipes
# ========================

@router.get("/companions")
async def list_companions(
    min_age: Optional[int] = Query(None),
    max_age: Optional[int] = Query(None),
    interests: List[str] = Query([]),
    personalities: List[str] = Query([]),
    limit: int = Query(20, ge=1, le=50),
    gateway: DataGateway = Depends(get_gateway),
):
    """Companions the user has not decided on yet, best compatibility first."""
    try:
        filters = CandidateFilters(
            min_age=min_age,
            max_age=max_age,
            interests=interests,
            personalities=personalities,
            limit=limit,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        companions = await gateway.list_candidate_companions(filters)
    except CompanionAppError as e:
        raise http_error(e)
    return {"companions": companions}


@router.post("/swipes")
async def record_swipe(req: SwipeRequest, gateway: DataGateway = Depends(get_gateway)):
    try:
        return await gateway.record_swipe_decision(req.companion_id, req.decision)
    except CompanionAppError as e:
        raise http_error(e)


# ========================
# Matches
# ========================

@router.get("/matches")
async def list_matches(gateway: DataGateway = Depends(get_gateway)):
    try:
        matches = await gateway.list_matches_with_details()
    except CompanionAppError as e:
        raise http_error(e)
    return {"matches": matches}


@router.delete("/matches/{match_id}")
async def deactivate_match(match_id: uuid.UUID, gateway: DataGateway = Depends(get_gateway)):
    try:
        await gateway.deactivate_match(match_id)
    except CompanionAppError as e:
        raise http_error(e)
    return {"success": True}


@router.post("/matches/{match_id}/conversation")
async def start_conversation(match_id: uuid.UUID, gateway: DataGateway = Depends(get_gateway)):
    try:
        return await gateway.start_conversation(match_id)
    except CompanionAppError as e:
        raise http_error(e)


# ========================
# Chats
# ========================

@router.get("/chats")
async def list_conversations(gateway: DataGateway = Depends(get_gateway)):
    try:
        conversations = await gateway.list_conversations()
    except CompanionAppError as e:
        raise http_error(e)
    return {"conversations": conversations}


@router.get("/chats/{conversation_id}/messages")
async def list_messages(conversation_id: uuid.UUID, gateway: DataGateway = Depends(get_gateway)):
    try:
        messages = await gateway.list_messages(conversation_id)
    except CompanionAppError as e:
        raise http_error(e)
    return {"messages": messages}


@router.post("/chats/{conversation_id}/messages")
async def send_message(
    conversation_id: uuid.UUID,
    req: SendMessageRequest,
    gateway: DataGateway = Depends(get_gateway),
):
    """Store the user's message and schedule the companion's reply."""
    try:
        message = await gateway.append_message(conversation_id, MessageAuthor.USER, req.content)
        companion = await gateway.get_conversation_companion(conversation_id)
        history = await gateway.list_messages(conversation_id)
    except CompanionAppError as e:
        raise http_error(e)

    reply = await get_reply_producer().produce(ReplyRequest(
        conversation_id=conversation_id,
        latest_message=message,
        companion=companion,
        history=history,
    ))
    try:
        job_id = schedule_companion_reply(gateway.identity.id, conversation_id, reply)
    except Exception as e:
        # The user's message is stored; only the reply is lost
        logger.exception(f"Failed to schedule companion reply: {e}")
        job_id = None

    return {"message": message, "reply_job_id": job_id}


@router.post("/chats/{conversation_id}/read", response_model=MarkReadResult)
async def mark_read(conversation_id: uuid.UUID, gateway: DataGateway = Depends(get_gateway)):
    try:
        marked = await gateway.mark_companion_messages_read(conversation_id)
    except CompanionAppError as e:
        raise http_error(e)
    return MarkReadResult(conversation_id=conversation_id, marked=marked)
