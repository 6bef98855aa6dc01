"""
Configuration management for PostgreSQL backup and restore operations.

This module provides immutable dataclasses for the connection profile and the
application settings, loaded once from environment variables (and an optional
.env file) and then passed explicitly to every component.
"""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _env_port(name: str = "PG_PORT", default: int = 5432) -> int:
    """Read a port number, falling back to the default when unparseable."""
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _env_optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _env_optional_str(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class ConnectionProfile:
    """Connection settings for the target PostgreSQL server."""

    host: str = field(default_factory=lambda: os.getenv("PG_HOST", "localhost"))
    port: int = field(default_factory=_env_port)
    username: str = field(default_factory=lambda: os.getenv("PG_USERNAME", "postgres"))
    password: Optional[str] = field(default_factory=lambda: os.getenv("PG_PASSWORD"), repr=False)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate connection settings."""
        if not self.host:
            raise ValueError("PG_HOST must not be empty")

        if not self.username:
            raise ValueError("PG_USERNAME must not be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(f"PG_PORT must be between 1 and 65535, got {self.port}")


@dataclass(frozen=True)
class AppConfig:
    """Complete configuration for a backup or restore process."""

    # Database server
    db: ConnectionProfile = field(default_factory=ConnectionProfile)

    # Backup / restore locations
    save_path: Path = field(default_factory=lambda: Path(os.getenv("SAVE_PATH", "./dumps")))
    restore_path: Path = field(default_factory=lambda: Path(os.getenv("RESTORE_PATH", "./dumps")))

    # Scheduling
    interval: Optional[int] = field(default_factory=lambda: _env_optional_int("INTERVAL"))
    restore: bool = field(default_factory=lambda: _env_bool("RESTORE"))

    # Notifications
    webhook_url: Optional[str] = field(default_factory=lambda: _env_optional_str("WEBHOOK_URL"))
    webhook_username: str = field(default_factory=lambda: os.getenv("WEBHOOK_USERNAME", "PSQL BACKUPER"))

    # Catalog and external tools
    strict_catalog: bool = field(default_factory=lambda: _env_bool("STRICT_CATALOG"))
    tool_timeout: Optional[float] = field(default_factory=lambda: _env_optional_float("TOOL_TIMEOUT"))
    psql_bin: str = field(default_factory=lambda: os.getenv("PSQL_BIN", "psql"))
    pg_dump_bin: str = field(default_factory=lambda: os.getenv("PG_DUMP_BIN", "pg_dump"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE"))
    log_max_size: int = field(default_factory=lambda: int(os.getenv("LOG_MAX_SIZE", "10485760")))  # 10MB
    log_backup_count: int = field(default_factory=lambda: int(os.getenv("LOG_BACKUP_COUNT", "5")))

    # Development
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG"))
    verbose: bool = field(default_factory=lambda: _env_bool("VERBOSE"))

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """Validate configuration settings."""
        if self.interval is not None and self.interval < 0:
            raise ValueError("INTERVAL must be non-negative")

        if self.tool_timeout is not None and self.tool_timeout <= 0:
            raise ValueError("TOOL_TIMEOUT must be positive")

        if self.webhook_url is not None:
            self._validate_webhook_url(self.webhook_url)

        if self.log_max_size <= 0:
            raise ValueError("LOG_MAX_SIZE must be positive")

    @staticmethod
    def _validate_webhook_url(value: str) -> None:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as e:
            raise ValueError(f"WEBHOOK_URL is not a valid URL: {e}") from e

        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError("WEBHOOK_URL must be an http(s) URL")

    @property
    def notifications_enabled(self) -> bool:
        return self.webhook_url is not None

    def describe(self) -> dict:
        """Return the effective settings with the password masked."""
        return {
            "host": self.db.host,
            "port": self.db.port,
            "username": self.db.username,
            "password": "********" if self.db.password else "(not set)",
            "save_path": str(self.save_path),
            "restore_path": str(self.restore_path),
            "interval": f"{self.interval}s" if self.interval is not None else "run once",
            "restore": self.restore,
            "webhook": "enabled" if self.notifications_enabled else "disabled",
            "strict_catalog": self.strict_catalog,
            "tool_timeout": f"{self.tool_timeout}s" if self.tool_timeout else "none",
        }


def get_app_config(**overrides) -> AppConfig:
    """
    Get application configuration with optional overrides.

    Overrides whose value is None are ignored so CLI options that were not
    given fall back to the environment.

    Args:
        **overrides: Configuration values to override

    Returns:
        AppConfig instance

    Raises:
        ValueError: If an override names an unknown setting or fails validation
    """
    config = AppConfig()

    known = {f.name for f in fields(AppConfig)}
    changes = {}
    for key, value in overrides.items():
        if key not in known:
            raise ValueError(f"Unknown configuration key: {key}")
        if value is not None:
            changes[key] = value

    if not changes:
        return config

    # Path-like overrides arrive as strings from some callers
    for key in ("save_path", "restore_path"):
        if key in changes:
            changes[key] = Path(changes[key])

    return replace(config, **changes)
