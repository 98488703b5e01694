import time
import uuid
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from jose import jwt
from app.api.deps import get_gateway
from app.core.config import settings
from app.core.exceptions import DuplicateDecisionError, EmptyMessageError, GatewayError, NotFoundError
from app.main import app
from app.models.message import MessageAuthor
from app.models.swipe_decision import SwipeDecisionType
from app.schemas.chat import MessageOut
from app.schemas.companion import SwipeResult
from app.services.gateway import DataGateway
from conftest import make_companion, utc


@pytest.fixture
def gateway(identity):
    gateway = AsyncMock(spec=DataGateway)
    gateway.identity = identity
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield gateway
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_requests_without_token_are_rejected(client):
    assert client.get("/api/webapp/companions").status_code == 401
    assert client.get("/api/webapp/matches", headers={"Authorization": "Bearer bad.token.here"}).status_code == 401


def test_me_reads_identity_from_token(client):
    user_id = uuid.uuid4()
    token = jwt.encode(
        {"sub": str(user_id), "aud": "authenticated", "exp": int(time.time()) + 600, "email": "t@x.test"},
        settings.SUPABASE_JWT_SECRET,
        algorithm="HS256",
    )

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["id"] == str(user_id)


def test_list_companions(client, gateway):
    companion = make_companion("Luna")
    gateway.list_candidate_companions.return_value = [companion]

    response = client.get("/api/webapp/companions", params={"min_age": 21, "interests": ["poetry"]})

    assert response.status_code == 200
    assert response.json()["companions"][0]["name"] == "Luna"
    filters = gateway.list_candidate_companions.await_args.args[0]
    assert filters.min_age == 21
    assert filters.interests == ["poetry"]


def test_list_companions_rejects_inverted_age_range(client, gateway):
    response = client.get("/api/webapp/companions", params={"min_age": 40, "max_age": 30})

    assert response.status_code == 400
    gateway.list_candidate_companions.assert_not_awaited()


def test_swipe_returns_match(client, gateway):
    match_id = uuid.uuid4()
    gateway.record_swipe_decision.return_value = SwipeResult(
        decision=SwipeDecisionType.SUPER_LIKE, is_match=True, match_id=match_id
    )
    companion_id = uuid.uuid4()

    response = client.post("/api/webapp/swipes", json={"companion_id": str(companion_id), "decision": "super_like"})

    assert response.status_code == 200
    assert response.json()["is_match"] is True
    assert response.json()["match_id"] == str(match_id)
    gateway.record_swipe_decision.assert_awaited_once_with(companion_id, SwipeDecisionType.SUPER_LIKE)


@pytest.mark.parametrize("error,status", [
    (DuplicateDecisionError("Already decided"), 409),
    (NotFoundError("Companion not found"), 404),
    (GatewayError("db down"), 502),
])
def test_swipe_error_mapping(client, gateway, error, status):
    gateway.record_swipe_decision.side_effect = error

    response = client.post("/api/webapp/swipes", json={"companion_id": str(uuid.uuid4()), "decision": "like"})

    assert response.status_code == status


def test_deactivate_match(client, gateway):
    match_id = uuid.uuid4()

    response = client.delete(f"/api/webapp/matches/{match_id}")

    assert response.json() == {"success": True}
    gateway.deactivate_match.assert_awaited_once_with(match_id)


def test_send_message_schedules_reply(client, gateway, identity, mock_scheduler):
    conversation_id = uuid.uuid4()
    message = MessageOut(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        content="Hello!",
        sender_id=identity.id,
        created_at=utc(2026, 9, 1),
        is_read=True,
    )
    gateway.append_message.return_value = message
    gateway.get_conversation_companion.return_value = make_companion("Luna")
    gateway.list_messages.return_value = [message]

    response = client.post(f"/api/webapp/chats/{conversation_id}/messages", json={"content": "Hello!"})

    assert response.status_code == 200
    body = response.json()
    assert body["message"]["content"] == "Hello!"
    assert body["reply_job_id"].startswith(f"reply:{conversation_id}:")
    gateway.append_message.assert_awaited_once_with(conversation_id, MessageAuthor.USER, "Hello!")
    job_args = mock_scheduler.add_job.call_args.kwargs["args"]
    assert job_args[0] == str(identity.id)
    assert job_args[1] == str(conversation_id)


def test_send_blank_message_is_bad_request(client, gateway, mock_scheduler):
    gateway.append_message.side_effect = EmptyMessageError()

    response = client.post(f"/api/webapp/chats/{uuid.uuid4()}/messages", json={"content": "   "})

    assert response.status_code == 400
    mock_scheduler.add_job.assert_not_called()


def test_mark_read(client, gateway):
    conversation_id = uuid.uuid4()
    gateway.mark_companion_messages_read.return_value = 3

    response = client.post(f"/api/webapp/chats/{conversation_id}/read")

    assert response.json() == {"conversation_id": str(conversation_id), "marked": 3}


def test_upload_avatar(client, gateway):
    gateway.upload_avatar.return_value = "https://cdn.test/pics/a.png"

    response = client.post(
        "/api/webapp/me/avatar",
        files={"file": ("a.png", b"\x89PNG....", "image/png")},
    )

    assert response.json() == {"url": "https://cdn.test/pics/a.png"}
    upload = gateway.upload_avatar.await_args.args[0]
    assert upload.content_type == "image/png"
    assert upload.data == b"\x89PNG...."
