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


def _build_llm_settings() -> "LLMSettings":
    """Build LLM settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return LLMSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_llm_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_database_settings() -> "DatabaseSettings":
    return DatabaseSettings()  # type: ignore[call-arg]


def _build_github_settings() -> "GitHubSettings":
    return GitHubSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class LLMSettings(BaseSettings):
    """LLM provider configuration used by the README summarizer.

    Validation of provider-specific requirements happens in the factory.
    """

    provider: str = Field(
        "openai",
        description="LLM provider name (currently only openai)",
    )
    model: str = Field(
        "gpt-4o",
        description="Model name (e.g., gpt-4o, gpt-4o-mini)",
    )
    api_key: str | None = Field(
        None,
        description="API key for cloud providers (required for OpenAI)",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint (OpenAI-compatible gateways)",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_header: str = Field(
        "x-api-key",
        description="Request header carrying the caller's API key",
    )
    owner_header: str = Field(
        "X-User-Id",
        description="Header carrying the signed-in owner identity set by the sign-in proxy",
    )
    key_prefix: str = Field(
        "sk-",
        description="Prefix of generated API keys",
    )
    key_length: int = Field(
        32,
        description="Number of random alphanumeric characters after the key prefix",
        ge=8,
    )
    default_limit: float = Field(
        1000,
        description="Usage limit assigned to new keys and assumed when a record has none",
        ge=1,
    )
    accounting_failure_status: int = Field(
        503,
        description=(
            "HTTP status returned when usage could not be recorded after a successful "
            "quota check (set to 401 to restore the legacy mapping)"
        ),
        ge=400,
        le=599,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-Limit and X-RateLimit-Remaining headers on metered responses",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class DatabaseSettings(BaseSettings):
    """Credential store configuration.

    ``url`` accepts any SQLAlchemy URL. The special value ``memory://`` selects
    the in-process store (no persistence).
    """

    url: str = Field(
        "sqlite:///./data/api_keys.db",
        description="SQLAlchemy database URL, or memory:// for the in-memory store",
    )
    echo: bool = Field(
        False,
        description="Log emitted SQL statements",
    )
    sqlite_busy_timeout_ms: int = Field(
        5000,
        description="How long SQLite writers wait on a locked database",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        case_sensitive=False,
    )


class GitHubSettings(BaseSettings):
    """README fetching configuration."""

    raw_base_url: str = Field(
        "https://raw.githubusercontent.com",
        description="Base URL serving raw repository files",
    )
    branches: list[str] = Field(
        default_factory=lambda: ["main", "master"],
        description="Branches tried, in order, when fetching README.md",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Timeout for each README request",
    )
    summary_cache_ttl_seconds: int = Field(
        3600,
        description="How long generated summaries are reused for an identical README",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="GITHUB_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate log file after this many bytes (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation id header")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    database: DatabaseSettings = Field(default_factory=_build_database_settings)
    github: GitHubSettings = Field(default_factory=_build_github_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
