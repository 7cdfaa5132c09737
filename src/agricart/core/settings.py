"""Application settings and configuration.

This module defines all configuration options for the AgriCart marketplace API.
Settings are loaded from environment variables with sensible defaults.
"""

from datetime import time

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="AgriCart", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./agricart.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis backs the lockout-check throttle when configured
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # System lock coordinator
    system_lock_status_key: str = Field(default="customer_access", alias="SYSTEM_LOCK_STATUS_KEY")
    system_lock_delay_seconds: int = Field(default=30, ge=0, alias="SYSTEM_LOCK_DELAY_SECONDS")
    system_lock_poll_interval_seconds: float = Field(
        default=5.0,
        alias="SYSTEM_LOCK_POLL_INTERVAL_SECONDS",
    )
    system_lock_worker_enabled: bool = Field(default=True, alias="SYSTEM_LOCK_WORKER_ENABLED")
    daily_lockout_time: time | None = Field(default=None, alias="DAILY_LOCKOUT_TIME")

    # Login and checkout lockouts (step backoff)
    login_max_failed_attempts: int = Field(default=3, ge=1, alias="LOGIN_MAX_FAILED_ATTEMPTS")
    lockout_durations_minutes: list[int] = Field(
        default=[1, 3, 5, 1440],
        alias="LOCKOUT_DURATIONS_MINUTES",
    )
    lockout_reset_after_hours: int = Field(default=24, alias="LOCKOUT_RESET_AFTER_HOURS")
    lockout_check_rate_limit: int = Field(default=10, alias="LOCKOUT_CHECK_RATE_LIMIT")
    lockout_check_window_seconds: int = Field(default=60, alias="LOCKOUT_CHECK_WINDOW_SECONDS")

    # One-time passwords for contact changes
    otp_expire_minutes: int = Field(default=15, alias="OTP_EXPIRE_MINUTES")
    otp_max_attempts: int = Field(default=5, alias="OTP_MAX_ATTEMPTS")

    # Checkout
    min_order_total: float = Field(default=75.0, alias="MIN_ORDER_TOTAL")

    # CORS configuration for web frontend access
    # Peers allowed to report the client address through X-Forwarded-For
    trusted_proxies: list[str] = Field(default_factory=list, alias="TRUSTED_PROXIES")

    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("lockout_durations_minutes")
    @classmethod
    def validate_lockout_durations(cls, v: list[int]) -> list[int]:
        """Require at least one positive lockout duration."""
        if not v or any(minutes <= 0 for minutes in v):
            raise ValueError("LOCKOUT_DURATIONS_MINUTES must hold positive minute values")
        return v

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
