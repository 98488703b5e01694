import uuid
import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.exc import OperationalError
from app.core.exceptions import AuthenticationRequired, EmptyMessageError, GatewayError, InvalidUploadError
from app.models.companion import Companion
from app.models.conversation import Conversation
from app.models.message import Message, MessageAuthor
from app.models.swipe_decision import SwipeDecisionType
from app.schemas.profile import ImageUpload
from app.services.gateway import DataGateway
from conftest import make_result, utc


@pytest.fixture
def gateway(identity):
    return DataGateway.for_identity(identity, storage_client=MagicMock())


@pytest.mark.asyncio
@pytest.mark.parametrize("call", [
    lambda g: g.list_candidate_companions(),
    lambda g: g.record_swipe_decision(uuid.uuid4(), SwipeDecisionType.LIKE),
    lambda g: g.list_matches_with_details(),
    lambda g: g.list_conversations(),
    lambda g: g.list_messages(uuid.uuid4()),
    lambda g: g.append_message(uuid.uuid4(), MessageAuthor.USER, "hi"),
    lambda g: g.mark_companion_messages_read(uuid.uuid4()),
    lambda g: g.get_profile(),
    lambda g: g.ensure_profile(),
    lambda g: g.get_avatar_url(),
])
async def test_every_operation_requires_identity(call, mock_async_session_local):
    with pytest.raises(AuthenticationRequired):
        await call(DataGateway(lambda: None))
    mock_async_session_local.assert_not_called()


@pytest.mark.asyncio
async def test_identity_is_resolved_per_call(identity, mock_session):
    current = {"identity": None}
    gateway = DataGateway(lambda: current["identity"])

    with pytest.raises(AuthenticationRequired):
        await gateway.list_conversations()

    current["identity"] = identity
    assert await gateway.list_conversations() == []


@pytest.mark.asyncio
async def test_database_errors_become_gateway_errors(gateway, mock_session):
    mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

    with pytest.raises(GatewayError):
        await gateway.list_candidate_companions()


@pytest.mark.asyncio
async def test_list_candidates_returns_schemas(gateway, mock_session):
    companion = Companion(id=uuid.uuid4(), name="Mira", age=31, bio=None, interests=None, compatibility_score=64)
    mock_session.execute.return_value = make_result(scalars=[companion])

    companions = await gateway.list_candidate_companions()

    assert companions[0].id == companion.id
    assert companions[0].bio == ""
    assert companions[0].interests == []


@pytest.mark.asyncio
async def test_append_message_validates_before_opening_session(gateway, mock_async_session_local):
    with pytest.raises(EmptyMessageError):
        await gateway.append_message(uuid.uuid4(), MessageAuthor.USER, "   ")
    mock_async_session_local.assert_not_called()


@pytest.mark.asyncio
async def test_append_message_returns_confirmed_message(gateway, identity, mock_session):
    conversation = Conversation(id=uuid.uuid4(), user_id=identity.id, companion_id=uuid.uuid4())
    mock_session.execute.side_effect = [make_result(scalar=conversation), make_result(rowcount=1)]

    async def refresh(message):
        message.id = uuid.uuid4()
        message.created_at = utc(2026, 2, 2)

    mock_session.refresh.side_effect = refresh

    message = await gateway.append_message(conversation.id, MessageAuthor.USER, "Hello")

    assert message.content == "Hello"
    assert message.sender_id == identity.id
    assert message.author == MessageAuthor.USER


@pytest.mark.asyncio
async def test_upload_avatar_validates_before_opening_session(gateway, mock_async_session_local):
    upload = ImageUpload(filename="notes.txt", content_type="text/plain", data=b"hello")

    with pytest.raises(InvalidUploadError):
        await gateway.upload_avatar(upload)
    mock_async_session_local.assert_not_called()


@pytest.mark.asyncio
async def test_get_conversation_companion(gateway, identity, mock_session):
    companion = Companion(id=uuid.uuid4(), name="Rue", compatibility_score=70)
    conversation = Conversation(id=uuid.uuid4(), user_id=identity.id, companion_id=companion.id)
    conversation.companion = companion
    mock_session.execute.return_value = make_result(scalar=conversation)

    result = await gateway.get_conversation_companion(conversation.id)

    assert result.name == "Rue"
