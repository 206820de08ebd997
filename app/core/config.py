"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_db_settings() -> "DatabaseSettings":
    """Build database settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat fields as constructor
    arguments, which is not how BaseSettings is intended to be used.
    """

    return DatabaseSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment."""

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection configuration.

    The DSN is read from ``DATABASE_URL`` and has no default: a missing value
    fails at import with a validation error. The pool is only opened during the
    application lifespan, so importing the app never touches the network.
    """

    url: str = Field(
        ...,
        description="PostgreSQL DSN used by the asyncpg pool (required)",
    )
    pool_min_size: int = Field(
        1,
        description="Minimum number of pooled connections",
        ge=0,
    )
    pool_max_size: int = Field(
        5,
        description="Maximum number of pooled connections",
        ge=1,
    )
    command_timeout_seconds: float = Field(
        30.0,
        description="Per-statement timeout applied by the driver",
        gt=0,
    )
    bootstrap_schema: bool = Field(
        True,
        description="Create the users/pastes tables on startup if missing",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Force DEBUG log level regardless of LOG_LEVEL",
    )
    id_max_attempts: int = Field(
        5,
        description="How many fresh ids to try when an insert hits a primary-key collision",
        ge=1,
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on every request",
    )
    rate_limit_requests: int = Field(
        10,
        description="Maximum number of requests admitted per window (per client)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        10,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_max_keys: int = Field(
        100_000,
        description="Upper bound on tracked clients; least recently seen are evicted first",
        ge=1,
    )
    rate_limit_sweep_interval_seconds: int | None = Field(
        None,
        description="How often expired client records are swept (defaults to the window size)",
        ge=1,
    )
    rate_limit_trust_forwarded_for: bool = Field(
        False,
        description="Key clients on the first X-Forwarded-For hop (only behind a trusted proxy)",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if DATABASE_URL is missing or any
    setting is malformed.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    db: DatabaseSettings = Field(default_factory=_build_db_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
