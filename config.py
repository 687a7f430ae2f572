"""Application configuration module.

Reads settings from environment variables with sane defaults for a single
event night: one admin, a few hundred participants, a handful of screens
following the wheel.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from core.constants import DatabaseDefaults, SpinDefaults
from core.exceptions import ConfigurationError

# Load environment variables from .env file
load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    """Get integer from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    """Get float from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_str(name: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.getenv(name, default)


def _parse_str_list(value: str) -> tuple[str, ...]:
    """Parse comma-separated strings."""
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Config:
    admin_username: str
    admin_password: str
    environment: str
    debug: bool
    log_level: str
    web_host: str
    web_port: int
    secret_key: str
    database_path: str
    log_folder: str
    db_pool_size: int
    db_busy_timeout: int
    public_base_url: str
    cors_origins: tuple[str, ...]
    spin_reveal_delay: float
    spin_retry_attempts: int
    registration_email_domain: str


def load_config() -> Config:
    """Load application configuration from environment variables.

    Returns:
        Config: Application configuration with validated values
    """
    config = Config(
        admin_username=_get_str("ADMIN_USERNAME", "admin"),
        admin_password=_get_str("ADMIN_PASSWORD", "123456"),
        environment=_get_str("ENVIRONMENT", "development"),
        debug=_get_bool("DEBUG", False),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        web_host=_get_str("WEB_HOST", "0.0.0.0"),
        web_port=_get_int("WEB_PORT", 5000),
        secret_key=_get_str(
            "SECRET_KEY",
            "development_secret_key_must_be_changed_in_production"
        ),
        database_path=_get_str("DATABASE_PATH", "data/prize_wheel.sqlite"),
        log_folder=_get_str("LOG_FOLDER", "logs"),
        db_pool_size=_get_int("DB_POOL_SIZE", DatabaseDefaults.POOL_SIZE),
        db_busy_timeout=_get_int("DB_BUSY_TIMEOUT", DatabaseDefaults.BUSY_TIMEOUT),
        public_base_url=_get_str("PUBLIC_BASE_URL", "http://localhost:5173").rstrip("/"),
        cors_origins=_parse_str_list(_get_str("CORS_ORIGINS", "*")),
        spin_reveal_delay=max(0.0, _get_float("SPIN_REVEAL_DELAY", SpinDefaults.REVEAL_DELAY)),
        spin_retry_attempts=max(1, _get_int("SPIN_RETRY_ATTEMPTS", SpinDefaults.RETRY_ATTEMPTS)),
        registration_email_domain=_get_str("REGISTRATION_EMAIL_DOMAIN", "").lstrip("@").lower(),
    )

    if not config.admin_username or not config.admin_password:
        raise ConfigurationError("ADMIN_USERNAME and ADMIN_PASSWORD must be set")
    if config.db_pool_size < 1:
        raise ConfigurationError("DB_POOL_SIZE must be at least 1")

    return config
