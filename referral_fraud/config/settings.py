"""
Referral Fraud Engine - Configuration Settings

Centralized configuration using Pydantic Settings for type-safe
environment variable handling with validation.

Signal weights are NOT configurable here: they are static priors
attached to FraudSignalType. Only detection windows, trigger
thresholds and infrastructure settings live in this module.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Example: APP_ENV=production will set app_env to "production"
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application Settings
    # =========================================================================
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    app_debug: bool = Field(
        default=False,
        description="Enable debug mode (SQL echo)"
    )
    app_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API bind host"
    )
    api_port: int = Field(
        default=8000,
        description="API bind port"
    )

    # =========================================================================
    # Redis Configuration (hot evidence: windows, device hashes, edges)
    # =========================================================================
    redis_host: str = Field(
        default="localhost",
        description="Redis server hostname"
    )
    redis_port: int = Field(
        default=6379,
        description="Redis server port"
    )
    redis_db: int = Field(
        default=0,
        description="Redis database number"
    )
    redis_key_prefix: str = Field(
        default="referral:",
        description="Prefix for all Redis keys to avoid conflicts"
    )
    redis_password: str | None = Field(
        default=None,
        description="Redis password (optional)"
    )
    evidence_ttl_days: int = Field(
        default=30,
        description="TTL applied to sliding-window evidence keys in Redis"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def redis_url(self) -> str:
        """Construct Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # =========================================================================
    # PostgreSQL Configuration (assessment archive)
    # =========================================================================
    postgres_host: str = Field(
        default="localhost",
        description="PostgreSQL server hostname"
    )
    postgres_port: int = Field(
        default=5432,
        description="PostgreSQL server port"
    )
    postgres_db: str = Field(
        default="referral_fraud",
        description="PostgreSQL database name"
    )
    postgres_user: str = Field(
        default="referral_fraud",
        description="PostgreSQL username"
    )
    postgres_password: str = Field(
        default="",
        description="PostgreSQL password (set via POSTGRES_PASSWORD env var)"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL for asyncpg."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # =========================================================================
    # API / Access Control
    # =========================================================================
    api_token: str | None = Field(
        default=None,
        description="API token for assessment endpoints (optional)"
    )
    admin_token: str | None = Field(
        default=None,
        description="Admin token for review endpoints (optional)"
    )
    metrics_token: str | None = Field(
        default=None,
        description="Token required to access /metrics (optional)"
    )

    # =========================================================================
    # Metrics Configuration
    # =========================================================================
    metrics_enabled: bool = Field(
        default=True,
        description="Enable Prometheus metrics"
    )
    metrics_external_enabled: bool = Field(
        default=False,
        description="Enable standalone metrics server (binds separate port)"
    )
    metrics_port: int = Field(
        default=9100,
        description="Prometheus metrics port"
    )
    telemetry_buffer_size: int = Field(
        default=2000,
        description="Number of recent assessment summaries kept in memory"
    )

    # =========================================================================
    # Reference Data
    # =========================================================================
    reference_data_path: str | None = Field(
        default=None,
        description="Optional YAML file overriding disposable domains and datacenter prefixes"
    )

    # =========================================================================
    # Detection Windows and Thresholds
    # =========================================================================
    device_match_limit: int = Field(
        default=5,
        ge=1,
        description="Max device-hash matches fetched for duplicate-device detection"
    )
    new_device_window_minutes: int = Field(
        default=60,
        description="Vendor id first seen within this window is a brand new device"
    )
    duplicate_ip_window_hours: int = Field(
        default=24,
        description="Window for counting signups from the same IP"
    )
    rapid_referral_window_minutes: int = Field(
        default=30,
        description="Window for rapid referral detection"
    )
    rapid_referral_threshold: int = Field(
        default=3,
        description="Referrals within the rapid window that trigger a signal"
    )
    batch_signup_window_minutes: int = Field(
        default=120,
        description="Window for batch signup detection"
    )
    batch_signup_threshold: int = Field(
        default=5,
        description="Referrals within the batch window that trigger a signal"
    )
    unusual_hour_start: int = Field(
        default=2,
        ge=0,
        le=23,
        description="First local hour (inclusive) considered an unusual signup time"
    )
    unusual_hour_end: int = Field(
        default=5,
        ge=0,
        le=23,
        description="Last local hour (inclusive) considered an unusual signup time"
    )
    ring_max_depth: int = Field(
        default=3,
        ge=1,
        description="Max hops walked up the referral chain when looking for rings"
    )

    @model_validator(mode="after")
    def _validate_production_security(self) -> "Settings":
        """Enforce required security settings in production."""
        if self.app_env == "production":
            missing: list[str] = []
            if not self.api_token:
                missing.append("API_TOKEN")
            if not self.admin_token:
                missing.append("ADMIN_TOKEN")
            if not self.metrics_token:
                missing.append("METRICS_TOKEN")
            if missing:
                raise ValueError(
                    "Missing required settings for production: "
                    + ", ".join(missing)
                )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-parsing environment on every call.
    """
    return Settings()


# Singleton settings instance for easy import
settings = get_settings()
