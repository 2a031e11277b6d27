"""Application configuration management."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
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
    app_name: str = "storefront-checkout"
    app_env: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # API Settings
    # -------------------------------------------------------------------------
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 4
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:8081", "https://rarecollectables.co.uk"]
    )

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
    postgres_user: str = "storefront"
    postgres_password: str = ""
    postgres_db: str = "storefront"
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
    # Email Service
    # -------------------------------------------------------------------------
    email_service: Literal["mock", "sendgrid"] = "mock"
    email_from_address: str = "carecentre@rarecollectables.co.uk"
    email_from_name: str = "Rare Collectables"
    email_cc_address: str = "rarecollectablessales@gmail.com"
    sendgrid_api_key: str = ""
    sendgrid_api_url: str = "https://api.sendgrid.com/v3/mail/send"
    email_timeout_seconds: float = 10.0
    mock_email_storage_path: str = "/tmp/storefront_mock_emails"

    # -------------------------------------------------------------------------
    # Storefront
    # -------------------------------------------------------------------------
    storefront_base_url: str = "https://rarecollectables.co.uk"
    storefront_logo_url: str = (
        "https://fhybeyomiivepmlrampr.supabase.co/storage/v1/object/public/utils/"
        "rare-collectables-horizontal-logo.png"
    )
    placeholder_image_url: str = (
        "https://fhybeyomiivepmlrampr.supabase.co/storage/v1/object/public/utils/no-image.png"
    )
    store_name: str = "Rare Collectables"

    # -------------------------------------------------------------------------
    # Abandoned Cart Settings
    # -------------------------------------------------------------------------
    abandoned_cart_delay_seconds: int = 300  # 5 minutes
    abandoned_cart_activity_grace_seconds: int = 270  # 4.5 minutes
    abandoned_cart_poll_interval_seconds: int = 60
    abandoned_cart_batch_size: int = 50
    # Claimed reminders not completed within the lease are claimed again
    abandoned_cart_claim_lease_seconds: int = 600
    abandoned_cart_related_products: int = 3

    # -------------------------------------------------------------------------
    # Checkout Pricing
    # -------------------------------------------------------------------------
    currency: str = "GBP"
    currency_symbol: str = "£"
    express_shipping_cost: Decimal = Decimal("4.99")

    @model_validator(mode="after")
    def check_batch_fits_lease(self) -> "Settings":
        # Worst case every send in a batch waits out the email timeout; the
        # worker's soft time limit is the lease minus 60 seconds
        worst_case = self.abandoned_cart_batch_size * self.email_timeout_seconds
        if worst_case >= self.abandoned_cart_claim_lease_seconds - 60:
            raise ValueError(
                "abandoned_cart_batch_size x email_timeout_seconds must stay under "
                "abandoned_cart_claim_lease_seconds - 60"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
