"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL for the shared cache (unset = process-local cache only)",
    )
    redis_connect_attempts: int = Field(
        default=3, ge=1, description="Connection attempts before falling back to the local cache"
    )
    cache_sweep_interval_seconds: int = Field(
        default=600, ge=1, description="How often expired local cache entries are evicted"
    )

    # Email OTP provider
    email_service_url: str = Field(
        default="http://localhost:8081",
        description="Base URL of the external email service that sends and checks OTP codes",
    )
    email_service_timeout: float = Field(
        default=30.0, description="Email service request timeout in seconds"
    )

    # Auth
    jwt_secret: str = Field(
        default="default-secret-change-in-production!",
        min_length=32,
        description="Secret key for JWT signing",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    jwt_expires_in_seconds: int = Field(
        default=7 * 24 * 3600, description="Bearer token lifetime in seconds"
    )
    otp_ttl_seconds: int = Field(default=600, description="OTP session lifetime in seconds")
    identity_ttl_seconds: int = Field(
        default=30 * 24 * 3600,
        description="Email to user id mapping lifetime in seconds (0 disables expiry)",
    )
    user_session_ttl_seconds: int = Field(
        default=24 * 3600, description="Logged-in session record lifetime in seconds"
    )
    enforce_logout: bool = Field(
        default=False,
        description="Reject bearer tokens whose session record was deleted by logout",
    )

    # API keys
    require_api_key: bool = Field(default=False, description="Require X-API-Key on API routes")
    valid_api_keys: list[str] = Field(default=[], description="Accepted API keys")

    # Rate limiting
    rate_limit_window_seconds: int = Field(default=900, description="API rate limit window")
    rate_limit_max_requests: int = Field(
        default=100, description="Maximum API requests per client per window"
    )

    # App
    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    debug: bool | None = Field(default=None, description="Debug mode (defaults based on environment)")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    port: int = Field(default=8080, description="Port the API server listens on")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins",
    )

    # Sentry
    sentry_dsn: str = Field(default="", description="Sentry DSN for error tracking")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.environment == "test"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def debug_enabled(self) -> bool:
        """Get debug mode, defaulting based on environment if not explicitly set."""
        if self.debug is not None:
            return self.debug
        return self.is_development


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience alias
settings = get_settings()
