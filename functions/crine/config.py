"""
Configuration and settings for the Crine backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.constants import DEFAULT_BACKUP_HISTORY_LIMIT, DEFAULT_MAX_CUSTOMERS


class Settings(BaseSettings):
    """Environment-backed settings for the service and callable functions."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Firebase project; when unset the in-memory store is used.
    firebase_project_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "FIREBASE_PROJECT_ID", "GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT"
        ),
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="CRINE_USE_IN_MEMORY_BACKENDS"
    )

    # Quotas and listing defaults
    default_max_customers: int = Field(default=DEFAULT_MAX_CUSTOMERS, ge=0)
    backup_history_limit: int = Field(default=DEFAULT_BACKUP_HISTORY_LIMIT, ge=1)

    # Also reject ID tokens revoked since issue (one extra Auth lookup per request).
    check_revoked_tokens: bool = Field(default=False)

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
