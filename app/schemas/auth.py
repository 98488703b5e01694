import uuid
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field

class Identity(BaseModel):
    """The authenticated user as reported by the hosted auth service."""
    id: uuid.UUID
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        meta = self.user_metadata or {}
        for key in ("full_name", "name", "first_name"):
            if meta.get(key):
                return meta[key]
        if self.email:
            return self.email.split("@")[0]
        return "User"

    @property
    def avatar_url(self) -> Optional[str]:
        return (self.user_metadata or {}).get("avatar_url")

class AuthSession(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    user: Identity

class Credentials(BaseModel):
    email: str
    password: str = Field(min_length=6)

class RefreshRequest(BaseModel):
    refresh_token: str
