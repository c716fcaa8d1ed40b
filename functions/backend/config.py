"""
Configuration and settings shared by the Cloud Functions and the FastAPI service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.constants import MAX_BODY_LENGTH


class Settings(BaseSettings):
    """Environment-backed settings, read from ``TRACKER_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Document store: "memory", "sql" (SQLAlchemy URL) or "firestore".
    store_backend: Literal["memory", "sql", "firestore"] = Field(default="memory")
    database_url: Optional[str] = Field(default=None)

    # Attachment storage: "memory", "firebase" or "s3".
    storage_backend: Literal["memory", "firebase", "s3"] = Field(default="memory")
    storage_bucket: Optional[str] = Field(default=None)
    s3_endpoint: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    s3_access_key_id: Optional[str] = Field(default=None)
    s3_secret_access_key: Optional[str] = Field(default=None)
    attachments_prefix: str = Field(default="attachments")

    # Header carrying the caller id, set by the trusted gateway in front of
    # the functions.
    user_id_header: str = Field(default="X-User-Id")

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    max_body_length: int = Field(default=MAX_BODY_LENGTH)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
