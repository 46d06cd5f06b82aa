"""Application configuration."""
from collections import Counter
from functools import lru_cache
import math

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

STYTCH_BASE_URLS = {
    "test": "https://test.stytch.com/v1/",
    "live": "https://api.stytch.com/v1/",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "Stockpile"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Database
    database_url: str = "sqlite:///./data/stockpile.db"

    # Sessions
    secret_key: str
    session_ttl_days: int = 30
    session_cookie_name: str = "stockpile_session"
    session_cookie_path: str = "/"
    session_cookie_samesite: str = "lax"
    session_cookie_secure: bool = True

    # Items
    items_default_page_size: int = 20
    items_max_page_size: int = 100

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_auth: str = "10/minute"
    rate_limit_default: str = "120/minute"

    # Stytch (one-time codes and OAuth)
    stytch_project_id: str = ""
    stytch_secret: str = ""
    stytch_environment: str = "test"
    stytch_timeout_seconds: float = 10.0
    otp_expiration_minutes: int = 5

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, value: str) -> str:
        """Fail closed if SECRET_KEY is weak or placeholder quality."""
        if not value:
            raise ValueError("SECRET_KEY must be set.")

        if len(value) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")

        weak_values = {"changeme", "changeme-in-production", "secret", "password", "test"}
        lowered = value.lower()
        if lowered in weak_values or "changeme" in lowered:
            raise ValueError("SECRET_KEY must not be a placeholder value.")

        counts = Counter(value)
        entropy_per_char = -sum((count / len(value)) * math.log2(count / len(value)) for count in counts.values())
        estimated_entropy_bits = entropy_per_char * len(value)
        if estimated_entropy_bits < 100:
            raise ValueError("SECRET_KEY entropy is too low; use a cryptographically random value.")

        return value

    @field_validator("stytch_environment")
    @classmethod
    def validate_stytch_environment(cls, value: str) -> str:
        if value not in STYTCH_BASE_URLS:
            raise ValueError(f"STYTCH_ENVIRONMENT must be one of: {', '.join(STYTCH_BASE_URLS)}")
        return value

    @property
    def stytch_enabled(self) -> bool:
        return bool(self.stytch_project_id and self.stytch_secret)

    @property
    def stytch_base_url(self) -> str:
        return STYTCH_BASE_URLS[self.stytch_environment]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
