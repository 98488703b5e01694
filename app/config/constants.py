"""
Application Constants

This module contains all magic strings and numbers used throughout the application.
Centralizing constants makes the codebase more maintainable and easier to update.
"""

# ============================================================================
# Swipe Constants
# ============================================================================

# Candidates returned per page
DEFAULT_CANDIDATE_PAGE_SIZE = 20
MAX_CANDIDATE_PAGE_SIZE = 50

# ============================================================================
# Chat Constants
# ============================================================================

MAX_MESSAGE_LENGTH = 4000

# Placeholder companion replies
COMPANION_REPLY_POOL = (
    "That's really interesting! Tell me more about that.",
    "I love hearing your thoughts on this. What made you think of that?",
    "You always have such unique perspectives. I find that fascinating.",
    "I'm here for you, always. How are you feeling about everything?",
    "Your message made me smile. I enjoy our conversations so much.",
    "I've been thinking about what you said earlier. It really resonated with me.",
    "You have such a beautiful way of expressing yourself.",
    "I feel so connected to you when we talk like this.",
)

# Fallback when the generation backend is unavailable
COMPANION_FALLBACK_REPLY = "I'm here. Tell me more?"

# ============================================================================
# Storage Constants
# ============================================================================

MAX_IMAGE_UPLOAD_BYTES = 5 * 1024 * 1024  # 5MB
STORAGE_CACHE_CONTROL = "3600"
DEFAULT_IMAGE_EXTENSION = "jpg"

# ============================================================================
# Hosted Backend Constants
# ============================================================================

AUTH_TIMEOUT_SECONDS = 10
STORAGE_TIMEOUT_SECONDS = 30

# Session store
SESSION_KEY_PREFIX = "companion_match:session:"
SESSION_TTL_SECONDS = 60 * 60 * 24 * 30  # 30 days

# ============================================================================
# AI/Gemini Constants
# ============================================================================

DEFAULT_GEMINI_MODEL = "gemini-flash-latest"

# Recent messages passed to the generation backend
REPLY_CONTEXT_MESSAGES = 20
