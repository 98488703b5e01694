import os

# Required settings must exist before anything under app/ is imported
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-test-jwt-secret-32")

import uuid
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from app.schemas.auth import Identity
from app.schemas.companion import CompanionOut


@pytest.fixture
def mock_session():
    session = AsyncMock()

    # Setup execute result
    mock_result = MagicMock()
    # Ensure scalar_one_or_none returns a value, not a coroutine
    mock_result.scalar_one_or_none.return_value = None
    mock_result.scalars.return_value.all.return_value = []
    mock_result.scalars.return_value.first.return_value = None
    mock_result.mappings.return_value.all.return_value = []
    mock_result.rowcount = 0

    # Configure session.execute to return this result when awaited
    session.execute.side_effect = None
    session.execute.return_value = mock_result

    session.get.return_value = None

    # Standard methods
    session.add = MagicMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.delete = AsyncMock()

    return session


def make_result(scalar=None, scalars=None, rowcount=0, mappings=None):
    """Build one execute() result for side_effect sequences."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = scalar
    result.scalars.return_value.all.return_value = scalars or []
    result.scalars.return_value.first.return_value = (scalars or [None])[0]
    result.mappings.return_value.all.return_value = mappings or []
    result.rowcount = rowcount
    return result


@pytest.fixture
def mock_async_session_local(mock_session, monkeypatch):
    """Mock AsyncSessionLocal to return a mock session context manager."""
    mock_factory = MagicMock()
    mock_factory.return_value.__aenter__.return_value = mock_session
    mock_factory.return_value.__aexit__.return_value = None

    monkeypatch.setattr("app.db.session.AsyncSessionLocal", mock_factory)
    return mock_factory


@pytest.fixture(autouse=True)
def auto_mock_db(mock_async_session_local):
    """Automatically use mock_async_session_local for all tests."""
    return mock_async_session_local


@pytest.fixture
def mock_scheduler(monkeypatch):
    """Mock the global scheduler object in app.core.scheduler"""
    scheduler_mock = MagicMock()
    scheduler_mock.add_job = MagicMock()
    scheduler_mock.remove_job = MagicMock()

    for target in ["app.core.scheduler.scheduler", "app.services.reply_service.scheduler"]:
        monkeypatch.setattr(target, scheduler_mock)

    return scheduler_mock


@pytest.fixture
def identity():
    return Identity(
        id=uuid.uuid4(),
        email="alex@example.com",
        user_metadata={"full_name": "Alex"},
    )


def make_companion(name="Luna", score=80, **kwargs) -> CompanionOut:
    return CompanionOut(
        id=kwargs.pop("id", uuid.uuid4()),
        name=name,
        age=kwargs.pop("age", 25),
        bio=kwargs.pop("bio", "Stargazer and poet"),
        personality=kwargs.pop("personality", "Dreamy"),
        interests=kwargs.pop("interests", ["astronomy", "poetry"]),
        compatibility_score=score,
        **kwargs,
    )


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
