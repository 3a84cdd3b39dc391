"""Configuration management for Label Recovery.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the LABEL_RECOVERY_ prefix (e.g., LABEL_RECOVERY_DETAIL_CHUNK_SIZE).
    """

    model_config = SettingsConfigDict(
        env_prefix="LABEL_RECOVERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Gmail Configuration
    gmail_credentials_path: Path = Field(
        default=Path("credentials.json"),
        description="Path to Gmail API credentials file",
    )
    gmail_token_path: Path = Field(
        default=Path("token.json"),
        description="Path to Gmail API token file",
    )
    gmail_scope: str = Field(
        default="https://www.googleapis.com/auth/gmail.modify",
        description=(
            "OAuth scope used for Gmail access. Restoring messages to the inbox "
            "mutates labels, so gmail.modify is required."
        ),
    )
    gmail_user_id: str = Field(
        default="me",
        description="Gmail user id used for every API call",
    )

    # Change-log scanning
    history_retention_days: int = Field(
        default=6,
        ge=0,
        description=(
            "Trailing window (days) in which the mailbox change log is trusted. "
            "Scans starting earlier go straight to the label search."
        ),
    )
    history_max_pages: int | None = Field(
        default=None,
        ge=1,
        description="Optional cap on change-log pages read per scan (None = no cap)",
    )

    # Fetching
    detail_chunk_size: int = Field(
        default=20,
        ge=1,
        description="Number of message details fetched concurrently per chunk",
    )
    search_page_size: int = Field(
        default=500,
        ge=1,
        le=500,
        description="Page size used by the fallback label search",
    )
    default_result_limit: int = Field(
        default=30000,
        ge=1,
        description="Maximum number of messages returned by a scan",
    )
    restore_batch_size: int = Field(
        default=1000,
        ge=1,
        le=1000,
        description="Maximum number of ids sent in one batch label mutation",
    )
    metadata_headers: list[str] = Field(
        default_factory=lambda: ["Subject", "From", "Date"],
        description="Headers requested when fetching message metadata",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_json: bool = Field(
        default=False,
        description="Render log events as JSON lines instead of console output",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
