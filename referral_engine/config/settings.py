"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (for Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Worker retries (store outages only)
    task_max_retries: int = 3
    task_min_backoff_ms: int = 1_000
    task_max_backoff_ms: int = 60_000

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/referral_engine.log"

    # Calendar used for the once-per-day earning guard
    business_timezone: str = Field(
        default="UTC",
        description="IANA timezone that defines a member's calendar day",
    )

    # Commission settlement
    commission_max_levels: int = Field(
        default=5, ge=1, le=10,
        description="How many sponsor levels receive commission",
    )
    commission_truncate_at_inactive: bool = Field(
        default=False,
        description=(
            "Stop climbing at the first inactive ancestor instead of "
            "skipping it and paying the levels above"
        ),
    )

    # Sponsor tree traversal
    tree_batch_size: int = Field(
        default=500, ge=1,
        description="Max parent ids per batched children query",
    )

    # Membership expiry notices
    expiry_notice_days: int = Field(default=7, ge=1)
    urgent_expiry_notice_days: int = Field(default=3, ge=1)

    # Scheduler (hour of day in business_timezone)
    expiry_sweep_hour: int = Field(default=0, ge=0, le=23)
    expiry_notice_hour: int = Field(default=9, ge=0, le=23)

    # Plan catalog cache (0 disables caching)
    plan_cache_ttl_seconds: int = Field(default=300, ge=0)

    # Percentage commission model, admin preview only
    commission_preview_version: int = Field(default=1, ge=1)
    commission_preview_rates: list[Decimal] = Field(
        default_factory=lambda: [
            Decimal("0.20"),
            Decimal("0.15"),
            Decimal("0.10"),
            Decimal("0.08"),
            Decimal("0.07"),
        ],
        description="Per-level rates, index 0 is level 1",
    )

    # Analytics
    top_earners_limit: int = Field(default=10, ge=1, le=100)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL uses an async driver."""
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError(
                "DATABASE_URL must start with postgresql+asyncpg:// "
                "or sqlite+aiosqlite://"
            )
        return v

    @field_validator("business_timezone")
    @classmethod
    def validate_business_timezone(cls, v: str) -> str:
        """Validate timezone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown BUSINESS_TIMEZONE: {v}") from e
        return v

    @field_validator("commission_preview_rates")
    @classmethod
    def validate_preview_rates(cls, v: list[Decimal]) -> list[Decimal]:
        """Each rate must be a fraction between 0 and 1."""
        for rate in v:
            if rate < 0 or rate > 1:
                raise ValueError(
                    f"Commission preview rate {rate} must be between 0 and 1"
                )
        return v

    @model_validator(mode="after")
    def validate_notice_windows(self) -> "Settings":
        """Urgent notice must fall inside the regular notice window."""
        if self.urgent_expiry_notice_days > self.expiry_notice_days:
            raise ValueError(
                "URGENT_EXPIRY_NOTICE_DAYS must not exceed EXPIRY_NOTICE_DAYS"
            )
        return self

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )
            if self.database_url.startswith("sqlite"):
                logger.warning(
                    "DATABASE_URL points to SQLite in production. "
                    "Concurrent settlement needs PostgreSQL row locking."
                )
        return self

    @property
    def tz(self) -> ZoneInfo:
        """Business timezone object."""
        return ZoneInfo(self.business_timezone)


# Global settings instance
settings = Settings()
