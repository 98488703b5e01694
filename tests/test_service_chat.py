import pytest
import uuid
from sqlalchemy.dialects import postgresql
from app.config.constants import MAX_MESSAGE_LENGTH
from app.core.exceptions import EmptyMessageError, NotFoundError, ValidationError
from app.models.conversation import Conversation
from app.models.match import Match
from app.models.message import Message, MessageAuthor
from app.services.chat_service import ChatService, validate_message_content
from app.services.match_service import MatchService
from conftest import make_result, utc


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


def _row(**overrides):
    row = {
        "companion_id": uuid.uuid4(),
        "companion_name": "Iris",
        "companion_age": 29,
        "companion_bio": None,
        "companion_image_url": None,
        "companion_personality": "Witty",
        "companion_interests": None,
        "companion_compatibility_score": 72,
        "last_message_content": None,
        "last_message_created_at": None,
        "last_message_sender_id": None,
        "unread_count": 0,
    }
    row.update(overrides)
    return row


# ========================
# Message validation
# ========================

def test_validate_message_content_strips():
    assert validate_message_content("  hello there \n") == "hello there"


@pytest.mark.parametrize("content", ["", "   ", "\n\t", None])
def test_validate_message_content_rejects_blank(content):
    with pytest.raises(EmptyMessageError):
        validate_message_content(content)


def test_validate_message_content_rejects_too_long():
    with pytest.raises(ValidationError):
        validate_message_content("x" * (MAX_MESSAGE_LENGTH + 1))


# ========================
# Listings
# ========================

def test_match_details_query_is_single_statement():
    sql = _sql(MatchService(None).build_details_query(uuid.uuid4()))

    assert "LATERAL" in sql
    assert "count(messages.id)" in sql
    assert "messages.is_read IS false" in sql
    assert "matches.is_active IS true" in sql


def test_conversations_query_orders_by_last_message():
    sql = _sql(ChatService(None).build_conversations_query(uuid.uuid4()))

    assert "LATERAL" in sql
    assert "ORDER BY conversations.last_message_at DESC NULLS LAST" in sql


@pytest.mark.asyncio
async def test_list_matches_with_details_maps_rows(mock_session):
    match_id = uuid.uuid4()
    conversation_id = uuid.uuid4()
    rows = [
        _row(
            match_id=match_id,
            matched_at=utc(2026, 5, 1),
            conversation_id=conversation_id,
            last_message_content="See you soon",
            last_message_created_at=utc(2026, 5, 2),
            unread_count=3,
        ),
        _row(match_id=uuid.uuid4(), matched_at=utc(2026, 4, 1), conversation_id=None, unread_count=None),
    ]
    mock_session.execute.return_value = make_result(mappings=rows)

    matches = await MatchService(mock_session).list_matches_with_details(uuid.uuid4())

    assert matches[0].match_id == match_id
    assert matches[0].conversation_id == conversation_id
    assert matches[0].last_message.content == "See you soon"
    assert matches[0].unread_count == 3
    assert matches[0].companion.bio == ""
    assert matches[0].companion.interests == []
    assert matches[1].last_message is None
    assert matches[1].unread_count == 0
    assert matches[1].last_activity_at == utc(2026, 4, 1)


@pytest.mark.asyncio
async def test_deactivate_unknown_match_raises(mock_session):
    mock_session.execute.return_value = make_result(rowcount=0)

    with pytest.raises(NotFoundError):
        await MatchService(mock_session).deactivate_match(uuid.uuid4(), uuid.uuid4())
    mock_session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_deactivate_match_commits(mock_session):
    mock_session.execute.return_value = make_result(rowcount=1)

    await MatchService(mock_session).deactivate_match(uuid.uuid4(), uuid.uuid4())
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_list_conversations_maps_rows(mock_session):
    conversation_id = uuid.uuid4()
    mock_session.execute.return_value = make_result(mappings=[
        _row(conversation_id=conversation_id, last_message_at=utc(2026, 6, 1), unread_count=2),
    ])

    conversations = await ChatService(mock_session).list_conversations(uuid.uuid4())

    assert len(conversations) == 1
    assert conversations[0].id == conversation_id
    assert conversations[0].unread_count == 2
    assert conversations[0].companion.name == "Iris"


# ========================
# Conversation lifecycle
# ========================

@pytest.mark.asyncio
async def test_get_or_create_conversation_creates_once(mock_session):
    user_id = uuid.uuid4()
    match = Match(id=uuid.uuid4(), user_id=user_id, companion_id=uuid.uuid4(), is_active=True)
    conversation = Conversation(id=uuid.uuid4(), user_id=user_id, companion_id=match.companion_id)
    mock_session.execute.side_effect = [
        make_result(scalar=match),
        make_result(scalar=conversation.id),
        make_result(rowcount=1),
        make_result(scalar=conversation),
    ]

    result = await ChatService(mock_session).get_or_create_conversation(user_id, match.id)

    assert result is conversation
    assert mock_session.execute.await_count == 4
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_get_or_create_conversation_returns_existing(mock_session):
    user_id = uuid.uuid4()
    match = Match(id=uuid.uuid4(), user_id=user_id, companion_id=uuid.uuid4(), is_active=True)
    conversation = Conversation(id=uuid.uuid4(), user_id=user_id, companion_id=match.companion_id)
    mock_session.execute.side_effect = [
        make_result(scalar=match),
        make_result(scalar=None),
        make_result(scalar=conversation),
    ]

    result = await ChatService(mock_session).get_or_create_conversation(user_id, match.id)

    assert result is conversation
    assert mock_session.execute.await_count == 3


@pytest.mark.asyncio
async def test_get_or_create_conversation_rejects_inactive_match(mock_session):
    match = Match(id=uuid.uuid4(), user_id=uuid.uuid4(), companion_id=uuid.uuid4(), is_active=False)
    mock_session.execute.return_value = make_result(scalar=match)

    with pytest.raises(NotFoundError):
        await ChatService(mock_session).get_or_create_conversation(match.user_id, match.id)


@pytest.mark.asyncio
async def test_append_user_message(mock_session):
    user_id = uuid.uuid4()
    conversation = Conversation(id=uuid.uuid4(), user_id=user_id, companion_id=uuid.uuid4())
    mock_session.execute.side_effect = [make_result(scalar=conversation), make_result(rowcount=1)]

    message = await ChatService(mock_session).append_message(user_id, conversation.id, MessageAuthor.USER, " hi ")

    assert isinstance(message, Message)
    assert message.content == "hi"
    assert message.sender_id == user_id
    assert message.companion_id is None
    assert message.is_read is True
    mock_session.add.assert_called_once_with(message)
    mock_session.refresh.assert_awaited_once_with(message)


@pytest.mark.asyncio
async def test_append_companion_message_is_unread(mock_session):
    user_id = uuid.uuid4()
    conversation = Conversation(id=uuid.uuid4(), user_id=user_id, companion_id=uuid.uuid4())
    mock_session.execute.return_value = make_result(scalar=conversation)

    message = await ChatService(mock_session).append_message(
        user_id, conversation.id, MessageAuthor.COMPANION, "Hey you!"
    )

    assert message.sender_id is None
    assert message.companion_id == conversation.companion_id
    assert message.is_read is False
    assert message.author == MessageAuthor.COMPANION
    # No stats bump for companion turns
    assert mock_session.execute.await_count == 1


@pytest.mark.asyncio
async def test_append_message_validates_before_io(mock_session):
    with pytest.raises(EmptyMessageError):
        await ChatService(mock_session).append_message(uuid.uuid4(), uuid.uuid4(), MessageAuthor.USER, "  ")
    mock_session.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_list_messages_requires_ownership(mock_session):
    with pytest.raises(NotFoundError):
        await ChatService(mock_session).list_messages(uuid.uuid4(), uuid.uuid4())


@pytest.mark.asyncio
async def test_mark_companion_messages_read_returns_rowcount(mock_session):
    user_id = uuid.uuid4()
    conversation = Conversation(id=uuid.uuid4(), user_id=user_id, companion_id=uuid.uuid4())
    mock_session.execute.side_effect = [make_result(scalar=conversation), make_result(rowcount=4)]

    assert await ChatService(mock_session).mark_companion_messages_read(user_id, conversation.id) == 4
