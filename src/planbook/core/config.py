"""Configuration management for PlanBook.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once and is
immutable during runtime.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables (``PLANBOOK_`` prefix)
    and .env files. All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PLANBOOK_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "PlanBook"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Storage Backend Settings
    storage_backend: Literal["memory", "local", "s3"] = "local"
    storage_path: str = "./pb_data/drive"
    trash_folder_name: str = ".trash"

    # Folder Tree Layout
    root_folder_name: str = "PlanBook"
    legacy_root_folder_names: list[str] = Field(
        default_factory=list,
        description="Older root folder names still searched for flat-layout data",
    )

    # S3 Settings (only used when storage_backend == "s3")
    s3_bucket: str | None = None
    s3_region: str = "us-east-1"
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_endpoint_url: str | None = None
    s3_prefix: str = ""

    # Group Settings
    member_mask_visible_chars: int = Field(default=2, ge=0)

    @field_validator("legacy_root_folder_names", mode="before")
    @classmethod
    def parse_legacy_roots(cls, v: str | list[str]) -> list[str]:
        """Parse legacy root names from comma-separated string or list."""
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()]
        return v

    @field_validator("root_folder_name", "trash_folder_name")
    @classmethod
    def validate_folder_name(cls, v: str) -> str:
        """Folder names must be a single path segment."""
        if not v or "/" in v:
            raise ValueError(f"Invalid folder name: {v!r}")
        return v

    @model_validator(mode="after")
    def validate_s3_settings(self) -> "Settings":
        """Require a bucket when the S3 backend is selected."""
        if self.storage_backend == "s3" and not self.s3_bucket:
            raise ValueError(
                "PLANBOOK_S3_BUCKET must be set when PLANBOOK_STORAGE_BACKEND is 's3'"
            )
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
