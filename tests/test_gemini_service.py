import pytest
from unittest.mock import MagicMock, patch, AsyncMock
from app.services.gemini_service import GeminiService


@pytest.mark.asyncio
async def test_generate_text_no_api_key():
    with patch("app.core.config.settings.GEMINI_API_KEY", None):
        service = GeminiService()
        assert service.enabled is False
        assert await service.generate_text("hello") is None


@pytest.mark.asyncio
async def test_generate_text_strips_fences():
    with patch("app.core.config.settings.GEMINI_API_KEY", None):
        service = GeminiService()
    service.model = MagicMock()
    service.model.generate_content_async = AsyncMock()
    service.model.generate_content_async.return_value.text = "```\nSounds lovely!\n```"

    assert await service.generate_text("prompt") == "Sounds lovely!"


@pytest.mark.asyncio
async def test_generate_text_api_error_returns_none():
    with patch("app.core.config.settings.GEMINI_API_KEY", None):
        service = GeminiService()
    service.model = MagicMock()
    service.model.generate_content_async = AsyncMock(side_effect=RuntimeError("quota"))

    assert await service.generate_text("prompt") is None
