"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation,
type coercion, and sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from apscheduler.triggers.cron import CronTrigger
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IGDBConfig(BaseSettings):
    """IGDB catalog API configuration."""

    model_config = SettingsConfigDict(env_prefix="IGDB_")

    client_id: str = Field(
        default=...,
        description="Twitch application client ID used for IGDB",
    )
    client_secret: SecretStr = Field(
        default=...,
        description="Twitch application client secret",
    )
    base_url: str = Field(
        default="https://api.igdb.com/v4",
        description="Base URL for IGDB API",
    )
    token_url: str = Field(
        default="https://id.twitch.tv/oauth2/token",
        description="Twitch OAuth token endpoint",
    )
    page_size: int = Field(
        default=500,
        ge=1,
        le=500,
        description="Records per catalog query (IGDB caps this at 500)",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=5,
        le=120,
        description="HTTP request timeout in seconds",
    )


class IngestionConfig(BaseSettings):
    """Downstream ingestion service configuration."""

    model_config = SettingsConfigDict(env_prefix="INGESTION_")

    api_domain: str = Field(
        default=...,
        description="Base URL of the ingestion API, e.g. https://api.example.com",
    )
    api_token: SecretStr = Field(
        default=...,
        description="Service token sent as bearer credential",
    )
    chunk_size: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Records per forwarded request",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=5,
        le=120,
        description="HTTP request timeout in seconds",
    )

    @field_validator("api_domain")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the domain so paths can be appended directly."""
        return v.rstrip("/")


class RetryConfig(BaseSettings):
    """Retry behavior configuration."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of attempts per page",
    )
    min_backoff_seconds: float = Field(
        default=30.0,
        ge=0.0,
        le=600.0,
        description="Minimum wait before a retry attempt",
    )
    max_backoff_seconds: float = Field(
        default=300.0,
        ge=1.0,
        le=3600.0,
        description="Maximum wait before a retry attempt",
    )
    exponential_base: float = Field(
        default=2.0,
        ge=1.0,
        le=4.0,
        description="Base for exponential backoff calculation",
    )


class SchedulerConfig(BaseSettings):
    """Recurring trigger configuration."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    job_name: str = Field(
        default="igdb-node-sync",
        description="Name of the recurring sync job",
    )
    cron: str = Field(
        default="0 0 * * *",
        description="Crontab expression for the recurring sync",
    )
    timezone: str = Field(
        default="UTC",
        description="Timezone the crontab is evaluated in",
    )
    run_on_startup: bool = Field(
        default=True,
        description="Run one sync as soon as the service starts",
    )
    page_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Pause between two catalog pages",
    )

    @field_validator("cron")
    @classmethod
    def validate_crontab(cls, v: str) -> str:
        """Reject expressions APScheduler cannot parse."""
        try:
            CronTrigger.from_crontab(v)
        except ValueError as e:
            raise ValueError(f"Invalid crontab expression: {v}") from e
        return v


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format",
    )
    include_timestamp: bool = Field(
        default=True,
        description="Include timestamp in log entries",
    )


class Settings(BaseSettings):
    """
    Main application settings.

    Aggregates all configuration sections and provides
    a single entry point for configuration access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    # Sub-configurations
    igdb: IGDBConfig = Field(default_factory=IGDBConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once
    and reused across the application.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
