from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import PostgresDsn, RedisDsn, computed_field
from typing import Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    # Security: Remove default credentials - require them to be set in .env
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432

    @computed_field
    def DATABASE_URL(self) -> PostgresDsn:
        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    REDIS_URL: RedisDsn = "redis://localhost:6379/0"

    # Hosted backend (auth + object storage)
    SUPABASE_URL: str
    SUPABASE_ANON_KEY: str
    SUPABASE_JWT_SECRET: str
    # Server-side storage writes; falls back to the anon key
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    SUPABASE_JWT_AUDIENCE: str = "authenticated"
    STORAGE_BUCKET: str = "profile-pics"

    # Public site, used to hide docs in production
    APP_DOMAIN: Optional[str] = None

    # Companion replies: "random" or "gemini"
    REPLY_PRODUCER: str = "random"
    GEMINI_API_KEY: Optional[str] = None
    REPLY_MIN_DELAY_SECONDS: float = 1.0
    REPLY_MAX_DELAY_SECONDS: float = 3.0

    # Mutual interest thresholds on compatibility score
    LIKE_MATCH_THRESHOLD: int = 50
    SUPER_LIKE_MATCH_THRESHOLD: int = 0

settings = Settings()
