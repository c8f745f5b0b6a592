# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# The Settings class validates all values at startup, catching configuration
# errors early rather than at runtime.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret used to verify Supabase access tokens"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (for Celery)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker"
    )

    # -------------------------------------------------------------------------
    # fal.ai Configuration
    # -------------------------------------------------------------------------
    # FAL_KEY is the platform-shared key. Users with their own key bypass it.

    FAL_KEY: str = Field(
        default="",
        description="Platform fal.ai API key (generations on it are charged in credits)"
    )

    FAL_QUEUE_URL: str = Field(
        default="https://queue.fal.run",
        description="Base URL of the fal.ai queue API"
    )

    IMAGE_POLL_INTERVAL_SECONDS: float = Field(
        default=1.0,
        gt=0,
        description="Seconds between status polls for image jobs"
    )

    IMAGE_POLL_MAX_ATTEMPTS: int = Field(
        default=60,
        ge=1,
        description="Status polls before an image job times out"
    )

    VIDEO_POLL_INTERVAL_SECONDS: float = Field(
        default=2.0,
        gt=0,
        description="Seconds between status polls for video jobs"
    )

    VIDEO_POLL_MAX_ATTEMPTS: int = Field(
        default=300,
        ge=1,
        description="Status polls before a video job times out"
    )

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------
    # Credits are euros. Only generations on the platform key are charged.

    IMAGE_CREDIT_COST: float = Field(
        default=0.15,
        ge=0,
        description="Credits charged per generated image"
    )

    VIDEO_CREDIT_COST_PER_SECOND: float = Field(
        default=0.15,
        ge=0,
        description="Credits charged per second of generated video"
    )

    VIDEO_DEFAULT_DURATION_SECONDS: int = Field(
        default=8,
        ge=1,
        description="Duration assumed when a video request doesn't set one"
    )

    # -------------------------------------------------------------------------
    # Stripe Configuration
    # -------------------------------------------------------------------------

    STRIPE_SECRET_KEY: str = Field(
        default="",
        description="Stripe secret API key"
    )

    STRIPE_WEBHOOK_SECRET: str = Field(
        default="",
        description="Signing secret of the Stripe webhook endpoint"
    )

    STRIPE_PRICE_IDS: str = Field(
        default=(
            "10:price_1T2Z1QAKRf8sKzTvtzvVaIiy,"
            "20:price_1T2Z1hAKRf8sKzTvo0IP74V5,"
            "50:price_1T2Z1sAKRf8sKzTvPQDaHNLE,"
            "100:price_1T2Z24AKRf8sKzTvaZghgRE5,"
            "250:price_1T2Z2IAKRf8sKzTvpABsGr2d,"
            "500:price_1T2Z2TAKRf8sKzTviprb2Rgp"
        ),
        description="Credit package to Stripe price mapping (comma-separated package:price_id)"
    )

    FRONTEND_URL: str = Field(
        default="http://localhost:3000",
        description="Frontend origin used for checkout redirects when the request has no Origin header"
    )

    # -------------------------------------------------------------------------
    # WhatsApp OTP Configuration
    # -------------------------------------------------------------------------

    WASENDER_API_KEY: str = Field(
        default="",
        description="WaSender API key used to deliver OTP codes over WhatsApp"
    )

    WASENDER_API_URL: str = Field(
        default="https://www.wasenderapi.com/api/send-message",
        description="WaSender send-message endpoint"
    )

    OTP_TTL_MINUTES: int = Field(
        default=5,
        ge=1,
        le=60,
        description="Minutes before an OTP code expires"
    )

    OTP_EMAIL_DOMAIN: str = Field(
        default="magic-ai.app",
        description="Domain of the synthetic emails given to phone-login users"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # Don't fail if .env doesn't exist (useful for production where
        # env vars are set directly)
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def stripe_price_ids(self) -> dict[str, str]:
        """
        Parse STRIPE_PRICE_IDS into a package -> price id dict.

        Example: "10:price_a, 20:price_b" -> {"10": "price_a", "20": "price_b"}
        """
        mapping = {}
        for entry in self.STRIPE_PRICE_IDS.split(","):
            if ":" not in entry:
                continue
            package, price_id = entry.split(":", 1)
            mapping[package.strip()] = price_id.strip()
        return mapping

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
