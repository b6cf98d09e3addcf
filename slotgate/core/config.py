"""Library configuration using Pydantic Settings.

Configuration is environment-aware:
- SLOTGATE_ENV selects which .env file is read (default: development)
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file, looked up from the
  current working directory upwards

Env files are read when settings are built and never copied into
os.environ. Only ambient behavior (logging, polling floor) is configurable
here; per-key limits are always registered in code.
"""

from __future__ import annotations

import os

from dotenv import find_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}


def resolve_env_file(env: str | None = None) -> str | None:
    """Locate the .env file for ``env`` starting from the working directory.

    Returns:
        The file path, or None when no file exists or TESTING is set.
    """

    if os.getenv("TESTING"):
        return None
    env = env or os.getenv("SLOTGATE_ENV", "development")
    filename = ENV_FILE_MAP.get(env, ".env.development")
    return find_dotenv(filename, usecwd=True) or None


def _build_log_settings() -> "LogSettings":
    """Build log settings from environment and the resolved env file.

    Nested BaseSettings don't inherit env_file, so each one is handed the
    file explicitly.
    """

    return LogSettings(_env_file=resolve_env_file())  # type: ignore[call-arg]


def _build_limiter_settings() -> "LimiterSettings":
    """Build limiter settings; see _build_log_settings()."""

    return LimiterSettings(_env_file=resolve_env_file())  # type: ignore[call-arg]


class LogSettings(BaseSettings):
    """Logging output for the ``slotgate`` logger namespace."""

    enabled: bool = Field(
        False,
        description="Install slotgate's handler when build_rate_limiter() runs",
    )
    level: str = Field(
        "INFO",
        description="Level of the slotgate logger (DEBUG, INFO, WARNING, ...)",
    )
    format: str = Field(
        "json",
        description="Log format: 'json' for structured output or 'plain'",
    )
    output: str = Field(
        "stdout",
        description="Log destination: 'stdout' or 'file'",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file' (default logs/slotgate.log)",
    )
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size; 0 disables rotation",
        ge=0,
    )
    backup_count: int = Field(
        3,
        description="Number of rotated log files to keep",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="SLOTGATE_LOG_",
        case_sensitive=False,
        extra="ignore",
    )


class LimiterSettings(BaseSettings):
    """Defaults applied to limiters built through ``build_rate_limiter``."""

    min_poll_interval_seconds: float = Field(
        0.0,
        description="Lower bound for the wait-loop polling cadence (per / rate)",
        ge=0.0,
    )
    log_admissions: bool = Field(
        False,
        description="Emit a debug event for every admitted or rejected check",
    )

    model_config = SettingsConfigDict(
        env_prefix="SLOTGATE_LIMITER_",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Main settings container.

    Composed from the domain-specific settings above. Nested settings are
    created via default_factory so env loading works.
    """

    env: str = "development"
    log: LogSettings = Field(default_factory=_build_log_settings)
    limiter: LimiterSettings = Field(default_factory=_build_limiter_settings)

    model_config = SettingsConfigDict(
        env_prefix="SLOTGATE_",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
