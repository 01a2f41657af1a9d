import os
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

PLACEHOLDER_SECRETS = {"", "change-me-in-production"}


class Settings(BaseSettings):
    database_url: Optional[str] = os.environ.get("DATABASE_URL") or None

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.database_url and self.database_url.startswith("postgresql://"):
            # Hosted Postgres URLs use postgresql:// but asyncpg needs postgresql+asyncpg://
            self.database_url = self.database_url.replace(
                "postgresql://", "postgresql+asyncpg://", 1
            )
        if self.session_secret in PLACEHOLDER_SECRETS:
            raise ValueError(
                "SESSION_SECRET environment variable must be set to a strong, unique value. "
                "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
            )

    # Auth settings
    session_secret: str = os.environ.get("SESSION_SECRET", "")
    admin_email: str = os.environ.get("ADMIN_EMAIL", "")
    session_cookie_name: str = "portfolio_session"
    session_max_age_days: int = 7
    session_cookie_secure: bool = False

    # Development only: synthesizes a logged-in user on every request
    dev_auth_bypass: bool = False
    dev_user_email: str = "dev@portfolio.dev"

    # Storage
    storage_fallback: bool = False
    fallback_retry_seconds: float = 30.0
    seed_file: Optional[str] = None

    request_timeout_seconds: float = 10.0
    log_level: str = "INFO"

    # CORS
    cors_origins: str = os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
