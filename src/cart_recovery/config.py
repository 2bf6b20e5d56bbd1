"""Application configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    app_name: str = "cart-recovery"
    app_env: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # API Settings
    # -------------------------------------------------------------------------
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 4
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    # -------------------------------------------------------------------------
    # PostgreSQL Database
    # -------------------------------------------------------------------------
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "cart_recovery"
    postgres_password: str = ""
    postgres_db: str = "cart_recovery"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_recycle: int = 1800

    @property
    def database_url(self) -> str:
        """Construct PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def database_url_sync(self) -> str:
        """Construct synchronous PostgreSQL connection URL (for Alembic)."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # -------------------------------------------------------------------------
    # Redis
    # -------------------------------------------------------------------------
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str = ""
    redis_db: int = 0

    @property
    def redis_url(self) -> str:
        """Construct Redis connection URL."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # -------------------------------------------------------------------------
    # Celery
    # -------------------------------------------------------------------------
    celery_broker_url: str = ""
    celery_result_backend: str = ""

    @property
    def celery_broker(self) -> str:
        """Get Celery broker URL, defaulting to Redis URL."""
        return self.celery_broker_url or self.redis_url

    @property
    def celery_backend(self) -> str:
        """Get Celery result backend URL, defaulting to Redis URL."""
        return self.celery_result_backend or self.redis_url

    # -------------------------------------------------------------------------
    # Text Generation (OpenAI)
    # -------------------------------------------------------------------------
    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    openai_max_tokens: int = 100
    openai_temperature: float = 0.7
    openai_timeout_seconds: float = 15.0

    # -------------------------------------------------------------------------
    # SMS Delivery
    # -------------------------------------------------------------------------
    sms_provider: Literal["mock", "twilio"] = "mock"
    sms_timeout_seconds: float = 10.0
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""
    twilio_api_base_url: str = "https://api.twilio.com/2010-04-01"
    mock_sms_storage_path: str = "/tmp/cart_recovery_mock_sms"

    # -------------------------------------------------------------------------
    # Storefront
    # -------------------------------------------------------------------------
    shop_url: str = "http://localhost:3000"
    checkout_path: str = "/checkout"

    # -------------------------------------------------------------------------
    # Abandonment Scan Settings
    # -------------------------------------------------------------------------
    abandonment_window_minutes: int = Field(default=30, ge=1)
    reminder_cooldown_minutes: int | None = Field(default=None, ge=1)
    reminder_dry_run: bool = True
    reminder_pacing_delay_ms: int = Field(default=1000, ge=0)
    reminder_record_undelivered: bool = True
    scan_interval_minutes: int = Field(default=10, ge=1)
    scan_lock_ttl_seconds: int = 540

    @property
    def cooldown_minutes(self) -> int:
        """Reminder cooldown, falling back to the detection window."""
        return self.reminder_cooldown_minutes or self.abandonment_window_minutes


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
