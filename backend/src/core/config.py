"""Application configuration using pydantic-settings."""
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str

    # Session token signing
    token_secret: str
    token_ttl_seconds: int = 86400
    cookie_name: str = "token"
    # Set in production so the cookie is only sent over HTTPS
    cookie_secure: bool = False

    # bcrypt cost factor
    password_hash_rounds: int = Field(default=12, ge=4, le=31)

    # CORS - comma-separated string or list of allowed origins
    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:3000"]

    # Redis (rate limiting)
    redis_url: str = "redis://localhost:6379"
    redis_enabled: bool = True
    redis_max_connections: int = 10

    # When enabled, the acting user id in request bodies must match the session cookie
    enforce_session: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    # Peers whose X-Forwarded-For header is believed (the hosting proxy). "*" trusts any peer.
    forwarded_allow_ips: Annotated[list[str], NoDecode] = ["127.0.0.1"]

    @field_validator("cors_origins", "forwarded_allow_ips", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: str | list[str]) -> list[str]:
        """Split comma-separated values, dropping blanks."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
