import pytest
import time
import uuid
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, timezone
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError
from app.core.exceptions import GatewayError, InvalidUploadError, NotFoundError
from app.models.user_profile import UserProfile, UserPreferences
from app.schemas.auth import Identity
from app.schemas.profile import ImageUpload, UserPreferencesUpdate, UserProfileUpdate
from app.services.profile_service import ProfileService
from app.services.storage_service import StorageService
from conftest import make_result


def _db_error():
    return OperationalError("INSERT", {}, Exception("connection reset"))


# ========================
# Identity
# ========================

def test_identity_display_name_fallbacks():
    assert Identity(id=uuid.uuid4(), user_metadata={"name": "Sam"}).display_name == "Sam"
    assert Identity(id=uuid.uuid4(), email="kim@example.com").display_name == "kim"
    assert Identity(id=uuid.uuid4()).display_name == "User"


# ========================
# Profile singletons
# ========================

@pytest.mark.asyncio
async def test_ensure_profile_is_three_idempotent_inserts(mock_session, identity):
    await ProfileService(mock_session).ensure_user_profile_exists(identity)

    assert mock_session.execute.await_count == 3
    for call in mock_session.execute.await_args_list:
        assert "ON CONFLICT DO NOTHING" in str(call.args[0].compile(dialect=postgresql.dialect()))
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_get_profile_returns_existing_row(mock_session, identity):
    profile = UserProfile(id=identity.id, display_name="Alex")
    mock_session.execute.return_value = make_result(scalar=profile)

    assert await ProfileService(mock_session).get_profile(identity) is profile
    assert mock_session.execute.await_count == 1


@pytest.mark.asyncio
async def test_get_profile_provisions_missing_row(mock_session, identity):
    profile = UserProfile(id=identity.id, display_name="Alex")
    mock_session.execute.side_effect = [
        make_result(scalar=None),
        make_result(), make_result(), make_result(),
        make_result(scalar=profile),
    ]

    assert await ProfileService(mock_session).get_profile(identity) is profile
    assert mock_session.execute.await_count == 5


@pytest.mark.asyncio
async def test_get_profile_provisioning_failure_returns_none(mock_session, identity):
    mock_session.execute.side_effect = [make_result(scalar=None), _db_error()]

    assert await ProfileService(mock_session).get_profile(identity) is None
    mock_session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_profile_applies_only_set_fields(mock_session, identity):
    profile = UserProfile(id=identity.id, display_name="Alex", bio="Old bio", age=30)
    mock_session.execute.return_value = make_result(scalar=profile)

    updated = await ProfileService(mock_session).update_profile(identity, UserProfileUpdate(bio="New bio"))

    assert updated.bio == "New bio"
    assert updated.display_name == "Alex"
    assert updated.age == 30
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_preferences_missing_row_raises(mock_session, identity):
    mock_session.execute.side_effect = [make_result(scalar=None), _db_error()]

    with pytest.raises(NotFoundError):
        await ProfileService(mock_session).update_preferences(identity, UserPreferencesUpdate(age_range_max=40))


@pytest.mark.asyncio
async def test_update_preferences(mock_session, identity):
    preferences = UserPreferences(user_id=identity.id, age_range_min=18, age_range_max=35)
    mock_session.execute.return_value = make_result(scalar=preferences)

    updated = await ProfileService(mock_session).update_preferences(
        identity, UserPreferencesUpdate(age_range_min=25, preferred_interests=["hiking"])
    )

    assert updated.age_range_min == 25
    assert updated.age_range_max == 35
    assert updated.preferred_interests == ["hiking"]


def test_preferences_update_rejects_inverted_range():
    with pytest.raises(ValueError):
        UserPreferencesUpdate(age_range_min=40, age_range_max=30)


@pytest.mark.asyncio
async def test_touch_last_active_swallows_db_errors(mock_session):
    mock_session.execute.side_effect = _db_error()

    await ProfileService(mock_session).touch_last_active(uuid.uuid4())
    mock_session.rollback.assert_awaited_once()


# ========================
# Storage
# ========================

@pytest.fixture
def storage_client():
    client = MagicMock()
    client.upload = AsyncMock(side_effect=lambda bucket, path, data, content_type: path)
    client.remove = AsyncMock()
    client.get_public_url = MagicMock(
        side_effect=lambda bucket, path: f"https://cdn.test/{bucket}/{path}"
    )
    return client


def _image(size=1024, content_type="image/png", filename="me.PNG"):
    return ImageUpload(filename=filename, content_type=content_type, data=b"x" * size)


@pytest.mark.parametrize("upload", [
    _image(content_type="application/pdf"),
    _image(size=5 * 1024 * 1024 + 1),
    _image(size=0),
])
def test_validate_image_rejects(upload):
    with pytest.raises(InvalidUploadError):
        StorageService.validate_image(upload)


def test_build_key_layout():
    user_id = uuid.uuid4()
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    avatar = StorageService.build_key(user_id, "Photo.JPG", now=now)
    banner = StorageService.build_key(user_id, "noext", banner=True, now=now)

    assert avatar.startswith(f"{user_id}/{int(now.timestamp() * 1000)}-")
    assert avatar.endswith(".jpg")
    assert banner.startswith(f"{user_id}/banner/")
    assert banner.endswith(".jpg")


def test_build_key_stamp_is_epoch_millis():
    before = int(time.time() * 1000)
    key = StorageService.build_key(uuid.uuid4(), "a.png")
    after = int(time.time() * 1000)

    stamp = int(key.split("/")[1].split("-")[0])
    assert before <= stamp <= after


@pytest.mark.asyncio
async def test_upload_avatar_replaces_previous(mock_session, storage_client):
    user_id = uuid.uuid4()
    mock_session.execute.side_effect = [make_result(scalar=f"{user_id}/old.png"), make_result()]
    service = StorageService(mock_session, client=storage_client, bucket="pics")

    url = await service.upload_avatar(user_id, _image())

    storage_client.remove.assert_awaited_once_with("pics", [f"{user_id}/old.png"])
    uploaded_key = storage_client.upload.await_args.args[1]
    assert uploaded_key.startswith(f"{user_id}/")
    assert uploaded_key.endswith(".png")
    assert url == f"https://cdn.test/pics/{uploaded_key}"
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_upload_continues_when_old_object_removal_fails(mock_session, storage_client):
    user_id = uuid.uuid4()
    storage_client.remove.side_effect = GatewayError("gone")
    mock_session.execute.side_effect = [make_result(scalar=f"{user_id}/old.png"), make_result()]

    url = await StorageService(mock_session, client=storage_client, bucket="pics").upload_banner(user_id, _image())

    assert "/banner/" in url


@pytest.mark.asyncio
async def test_upload_removes_object_when_record_write_fails(mock_session, storage_client):
    user_id = uuid.uuid4()
    mock_session.execute.side_effect = [make_result(scalar=None), _db_error()]
    service = StorageService(mock_session, client=storage_client, bucket="pics")

    with pytest.raises(GatewayError):
        await service.upload_avatar(user_id, _image())

    uploaded_key = storage_client.upload.await_args.args[1]
    storage_client.remove.assert_awaited_once_with("pics", [uploaded_key])
    mock_session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_avatar_without_key_is_noop(mock_session, storage_client):
    await StorageService(mock_session, client=storage_client).delete_avatar(uuid.uuid4())
    storage_client.remove.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_avatar_url_cache_bust(mock_session, storage_client):
    user_id = uuid.uuid4()
    mock_session.execute.return_value = make_result(scalar=f"{user_id}/a.png")
    service = StorageService(mock_session, client=storage_client, bucket="pics")

    plain = await service.get_avatar_url(user_id)
    busted = await service.get_avatar_url(user_id, cache_bust=True)

    assert plain == f"https://cdn.test/pics/{user_id}/a.png"
    assert busted.startswith(plain + "?t=")


@pytest.mark.asyncio
async def test_get_banner_url_missing_is_none(mock_session, storage_client):
    assert await StorageService(mock_session, client=storage_client).get_banner_url(uuid.uuid4()) is None
