"""Configuration management for Quorum.

This module defines the configuration schema using Pydantic settings,
supporting TOML files, environment variables, and programmatic overrides.

Configuration loading priority (highest to lowest):
1. Programmatic overrides (passed to QuorumConfig constructor)
2. Environment variables (QUORUM_* prefix)
3. TOML configuration file
4. Default values defined in this module

Example TOML configuration:
    [database]
    url = "sqlite+aiosqlite:///quorum.db"

    [anthropic]
    model = "claude-sonnet-4-5"

Example environment variable override:
    QUORUM_DATABASE__URL="postgresql+asyncpg://localhost/quorum"
    QUORUM_ANTHROPIC__API_KEY="sk-ant-..."
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database connection configuration.

    Attributes:
        url: SQLAlchemy async database URL (aiosqlite or asyncpg driver)
        pool_size: Number of connections to maintain in the pool
        max_overflow: Maximum number of connections beyond pool_size
        echo: Enable SQL query logging
    """

    model_config = SettingsConfigDict(
        env_prefix="QUORUM_DATABASE__",
        extra="forbid",
    )

    url: str = Field(
        default="sqlite+aiosqlite:///quorum.db",
        description="Async SQLAlchemy connection URL",
    )
    pool_size: int = Field(default=5, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=100)
    echo: bool = Field(default=False)

    @property
    def is_sqlite(self) -> bool:
        """Whether the URL targets SQLite (pool sizing does not apply)."""
        return self.url.startswith("sqlite")


class AnthropicConfig(BaseSettings):
    """Anthropic Messages API configuration.

    Attributes:
        api_key: API key sent in the x-api-key header
        base_url: Base URL of the API (messages endpoint is appended)
        model: Model identifier used for all generation calls
        max_tokens: Default completion budget per request
        timeout_seconds: Request timeout in seconds
        max_retries: Retry attempts on 429/5xx/transport failures
        api_version: Value of the anthropic-version header
    """

    model_config = SettingsConfigDict(
        env_prefix="QUORUM_ANTHROPIC__",
        extra="forbid",
    )

    api_key: str = Field(default="")
    base_url: str = Field(default="https://api.anthropic.com/v1")
    model: str = Field(default="claude-sonnet-4-5")
    max_tokens: int = Field(default=1024, ge=1, le=8192)
    timeout_seconds: int = Field(default=60, ge=1, le=600)
    max_retries: int = Field(default=3, ge=0, le=10)
    api_version: str = Field(default="2023-06-01")


_LOGGING_CHOICES = {
    "level": frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}),
    "format": frozenset({"json", "console"}),
}


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        file: Optional log file path (None for stdout only)
        rotation_size_mb: Log file rotation size in megabytes
        retention_count: Number of rotated log files to keep
        redact_journal_text: Replace answers and other journal text in log
            events with a length marker
    """

    model_config = SettingsConfigDict(
        env_prefix="QUORUM_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=10, ge=1, le=1000)
    retention_count: int = Field(default=5, ge=1, le=100)
    redact_journal_text: bool = Field(default=True)

    @field_validator("level", "format")
    @classmethod
    def validate_choice(cls, v: str, info: ValidationInfo) -> str:
        """Normalize case and reject unknown levels or formats."""
        choices = _LOGGING_CHOICES[info.field_name]
        normalized = v.upper() if info.field_name == "level" else v.lower()
        if normalized not in choices:
            raise ValueError(f"Invalid log {info.field_name}: {v}. Must be one of {sorted(choices)}")
        return normalized


class GovernanceConfig(BaseSettings):
    """Governance session policy.

    Attributes:
        recent_report_days: A quarterly report younger than this raises a warning
        bet_duration_days: Default lifetime of a new bet
        annual_trigger_days: Offset of the annual re-setup trigger from setup
    """

    model_config = SettingsConfigDict(
        env_prefix="QUORUM_GOVERNANCE__",
        extra="forbid",
    )

    recent_report_days: int = Field(default=30, ge=0, le=365)
    bet_duration_days: int = Field(default=90, ge=1, le=730)
    annual_trigger_days: int = Field(default=365, ge=1, le=1095)


class WebConfig(BaseSettings):
    """Web API configuration.

    Attributes:
        host: Bind host address
        port: Bind port number
        cors_origins: Allowed CORS origins
    """

    model_config = SettingsConfigDict(
        env_prefix="QUORUM_WEB__",
        extra="forbid",
    )

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


class QuorumConfig(BaseSettings):
    """Root configuration for Quorum.

    Aggregates all subsystem configurations. Nested values can be supplied
    through environment variables of the form QUORUM_<SECTION>__<KEY>=value.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUORUM_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    governance: GovernanceConfig = Field(default_factory=GovernanceConfig)
    web: WebConfig = Field(default_factory=WebConfig)


def load_config(config_path: Path | None = None) -> QuorumConfig:
    """Load configuration from TOML file with environment variable overrides.

    Configuration search order (first found is used):
    1. config_path if explicitly provided
    2. ./quorum.toml (current directory)
    3. ~/.config/quorum/config.toml (user config directory)

    Args:
        config_path: Explicit path to TOML config file. If None, searches
                    default locations.

    Returns:
        QuorumConfig: Fully resolved configuration instance.

    Raises:
        FileNotFoundError: If config_path is explicitly provided but doesn't exist.
        ValueError: If TOML file contains invalid configuration.
    """
    toml_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        selected_path: Path | None = config_path
    else:
        search_paths = [
            Path.cwd() / "quorum.toml",
            Path.home() / ".config" / "quorum" / "config.toml",
        ]
        selected_path = next((path for path in search_paths if path.exists()), None)

    if selected_path is not None:
        with open(selected_path, "rb") as f:
            try:
                toml_data = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise ValueError(f"Invalid TOML in {selected_path}: {e}") from e

    try:
        return QuorumConfig(**toml_data)
    except Exception as e:
        if selected_path:
            raise ValueError(f"Invalid configuration in {selected_path}: {e}") from e
        raise ValueError(f"Invalid configuration: {e}") from e
