"""Application settings and configuration.

This module defines all configuration options for the Inkwell backend.
Settings are loaded from environment variables (and an optional ``.env`` file)
with sensible defaults for local development.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The two JWT secrets have no default: the process refuses to start without
    them, and ``inkwell-verify-env`` reports them as required.
    """

    # Application metadata
    app_name: str = Field(default="Inkwell", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    environment: Literal["development", "production", "test"] = Field(
        default="development",
        alias="ENVIRONMENT",
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    port: int = Field(default=8000, alias="PORT")
    frontend_url: str = Field(default="http://localhost:5001", alias="FRONTEND_URL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./inkwell.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_refresh_secret: str = Field(alias="JWT_REFRESH_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    refresh_token_expire_days: int = Field(default=7, alias="REFRESH_TOKEN_EXPIRE_DAYS")
    password_reset_expire_minutes: int = Field(
        default=60,
        alias="PASSWORD_RESET_EXPIRE_MINUTES",
    )
    bcrypt_rounds: int = Field(default=10, ge=4, le=31, alias="BCRYPT_ROUNDS")

    # Cache configuration; without a Redis URL an in-process store is used
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    cache_ttl_seconds: int = Field(default=300, alias="CACHE_TTL_SECONDS")
    cache_max_entries: int = Field(default=100, alias="CACHE_MAX_ENTRIES")
    cache_invalidation_pages: int = Field(default=10, alias="CACHE_INVALIDATION_PAGES")

    # Per-client request limits; counters share the Redis URL when one is set
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_max_requests: int = Field(default=100, ge=1, alias="RATE_LIMIT_MAX_REQUESTS")
    rate_limit_window_minutes: int = Field(default=15, ge=1, alias="RATE_LIMIT_WINDOW_MINUTES")

    # Comment threads
    comment_max_depth: int = Field(default=3, ge=1, alias="COMMENT_MAX_DEPTH")
    comment_report_threshold: int = Field(default=5, ge=1, alias="COMMENT_REPORT_THRESHOLD")

    # Pagination
    posts_page_size: int = Field(default=10, alias="POSTS_PAGE_SIZE")
    comments_page_size: int = Field(default=20, alias="COMMENTS_PAGE_SIZE")
    max_page_size: int = Field(default=100, alias="MAX_PAGE_SIZE")

    # Health check thresholds
    health_db_timeout_ms: int = Field(default=3000, alias="HEALTH_DB_TIMEOUT_MS")
    readiness_db_timeout_ms: int = Field(default=1000, alias="READINESS_DB_TIMEOUT_MS")
    health_heap_threshold_mb: int = Field(default=150, alias="HEALTH_HEAP_THRESHOLD_MB")
    health_rss_threshold_mb: int = Field(default=300, alias="HEALTH_RSS_THRESHOLD_MB")
    health_disk_threshold: float = Field(default=0.9, gt=0, le=1, alias="HEALTH_DISK_THRESHOLD")
    health_disk_path: str = Field(default="/", alias="HEALTH_DISK_PATH")

    # CORS configuration for the web frontend
    allowed_origins: str = Field(default="http://localhost:5001", alias="ALLOWED_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization", "X-Requested-With"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Return True when running with ``ENVIRONMENT=production``."""
        return self.environment == "production"

    @property
    def cors_origins(self) -> list[str]:
        """Return the comma-separated ``ALLOWED_ORIGINS`` value as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def rate_limit_default(self) -> str:
        """Return the global request limit in ``limits`` notation."""
        return f"{self.rate_limit_max_requests}/{self.rate_limit_window_minutes} minutes"


settings = Settings()  # type: ignore[call-arg]
