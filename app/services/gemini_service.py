import google.generativeai as genai
from app.core.config import settings
from app.config.constants import DEFAULT_GEMINI_MODEL
from typing import Optional
import logging

logger = logging.getLogger(__name__)

class GeminiService:
    def __init__(self, api_key: str = None, model_name: str = DEFAULT_GEMINI_MODEL):
        self.api_key = api_key or settings.GEMINI_API_KEY
        if self.api_key:
            try:
                genai.configure(api_key=self.api_key)
                self.model = genai.GenerativeModel(model_name)
            except Exception as e:
                logger.error(f"Failed to configure Gemini: {e}")
                self.model = None
        else:
            self.model = None

    @property
    def enabled(self) -> bool:
        return self.model is not None

    async def generate_text(self, prompt: str) -> Optional[str]:
        """
        Plain-text completion. Returns None when Gemini is not configured or the call fails.
        """
        if not self.model:
            logger.warning("GEMINI_API_KEY not set")
            return None

        try:
            response = await self.model.generate_content_async(prompt)
        except Exception as e:
            logger.exception(f"Gemini API error: {e}")
            return None

        try:
            text = (response.text or "").strip()
        except ValueError:
            # Blocked responses carry no text part
            logger.warning("Gemini returned no text (blocked or empty candidate)")
            return None

        if text.startswith("```"):
            text = text.strip("`").strip()
        return text or None
