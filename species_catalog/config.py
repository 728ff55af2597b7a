"""
Configuration and settings for the species catalog service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Relational store (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # Sessions are minted by the hosted auth service; we only verify them.
    session_secret: str = Field(
        default="dev-only-change-me-please-dev-only-change-me"
    )
    session_algorithm: str = Field(default="HS256")
    session_expire_minutes: int = Field(default=60 * 24 * 7)
    session_cookie_name: str = Field(default="access_token")

    # Species images (S3-compatible storage)
    storage_endpoint: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    image_url_expires_in: int = Field(default=3600)
    default_image_url: str = Field(default="/static/default-image.svg")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
