"""Service configuration with pydantic-settings.

Requires: DATABASE_URL
Optional: GOOGLE_CLIENT_ID, GCP_PROJECT_ID, GCS_BUCKET_NAME (identity and deploys),
OPEN_ROUTER_KEY (generation)

Usage:
    from bizforge.config import get_settings

    settings = get_settings()
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Only DATABASE_URL is mandatory. Cloud and provider settings default to empty
    and are checked by the operations that need them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Required ===

    database_url: str = Field(
        ...,
        description="Database connection URL",
        examples=["postgresql+asyncpg://user:pass@db:5432/bizforge"],
    )

    # === Logging ===

    service_name: str = Field(
        default="bizforge",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    # === Identity ===

    google_client_id: str = Field(
        default="",
        description="OAuth client ID expected as the ID token audience",
    )
    admin_emails: str = Field(
        default="",
        description="Comma-separated emails that are granted the admin role",
    )
    starting_token_balance: int = Field(
        default=10000,
        ge=0,
        description="Token balance granted to newly registered users",
    )

    # === Generation ===

    open_router_key: str = Field(default="", description="OpenRouter API key")
    default_model: str = Field(
        default="google/gemini-2.5-flash",
        description="Model used for standard-reasoning stages",
    )
    reasoning_model: str = Field(
        default="google/gemini-2.5-pro",
        description="Model used for high-reasoning stages",
    )
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    generation_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per stage before generation is considered exhausted",
    )

    # === Accounting ===

    reasoning_rate_per_million: float = Field(
        default=3.5,
        ge=0.0,
        description="USD per million tokens for the reasoning tier",
    )
    standard_rate_per_million: float = Field(
        default=0.075,
        ge=0.0,
        description="USD per million tokens for the standard tier",
    )

    # === Cloud ===

    gcp_project_id: str = Field(default="", description="Google Cloud project for builds")
    gcs_bucket_name: str = Field(default="", description="Bucket holding version artifacts")
    deploy_region: str = Field(default="us-central1")
    artifact_repository: str = Field(
        default="dgbp-apps",
        description="Artifact Registry repository receiving built images",
    )
    gcp_access_token: str = Field(
        default="",
        description="Static OAuth access token; the metadata server is used when empty",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @property
    def admin_email_list(self) -> list[str]:
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Validates required env vars on first call.
    Raises ValidationError if DATABASE_URL is missing.
    """
    return Settings()
