"""
Centralized configuration with environment variable overrides.

Database, notification and booking settings are configurable here.
Nothing is hardcoded in ledger, lifecycle or API logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from grooming_scheduler.logging_context import attach_request_id

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s"


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    return os.getenv(env_var, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection and pool settings for the relational store."""

    url: str = os.getenv("DATABASE_URL", "sqlite:///./grooming_scheduler.db")
    pool_size: int = _safe_int("DB_POOL_SIZE", "20")
    max_overflow: int = _safe_int("DB_MAX_OVERFLOW", "30")
    pool_timeout: int = _safe_int("DB_POOL_TIMEOUT", "30")
    pool_recycle: int = _safe_int("DB_POOL_RECYCLE", "300")
    slow_query_threshold_sec: float = _safe_float("DB_SLOW_QUERY_THRESHOLD", "1.0")


@dataclass(frozen=True)
class NotificationConfig:
    """Outbound WhatsApp confirmation settings."""

    enabled: bool = _safe_bool("NOTIFICATIONS_ENABLED", "false")
    function_url: str = os.getenv("NOTIFICATION_FUNCTION_URL", "")
    content_sid: str = os.getenv("TWILIO_CONTENT_SID", "")
    default_country_code: str = os.getenv("DEFAULT_COUNTRY_CODE", "+91")
    timeout_sec: float = _safe_float("NOTIFICATION_TIMEOUT", "10.0")


@dataclass(frozen=True)
class BookingConfig:
    """Paging and picker limits for ledger and archive queries."""

    page_size: int = _safe_int("BOOKING_PAGE_SIZE", "10")
    max_page_size: int = _safe_int("MAX_PAGE_SIZE", "100")
    open_dates_window: int = _safe_int("OPEN_DATES_WINDOW", "14")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    booking: BookingConfig = field(default_factory=BookingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "grooming-scheduler")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not config.database.url:
        raise ValueError("DATABASE_URL must not be empty")
    if config.database.pool_size < 1:
        raise ValueError(
            f"DB_POOL_SIZE must be >= 1, got {config.database.pool_size}"
        )
    if config.database.max_overflow < 0:
        raise ValueError(
            f"DB_MAX_OVERFLOW must be >= 0, got {config.database.max_overflow}"
        )
    if config.database.slow_query_threshold_sec < 0:
        raise ValueError(
            "DB_SLOW_QUERY_THRESHOLD must be >= 0, "
            f"got {config.database.slow_query_threshold_sec}"
        )
    if config.notifications.timeout_sec <= 0:
        raise ValueError(
            f"NOTIFICATION_TIMEOUT must be > 0, got {config.notifications.timeout_sec}"
        )
    if not config.notifications.default_country_code.startswith("+"):
        raise ValueError(
            "DEFAULT_COUNTRY_CODE must start with '+', "
            f"got {config.notifications.default_country_code!r}"
        )
    if config.notifications.enabled and not config.notifications.function_url:
        raise ValueError(
            "NOTIFICATION_FUNCTION_URL is required when NOTIFICATIONS_ENABLED is set"
        )
    if config.booking.page_size < 1:
        raise ValueError(
            f"BOOKING_PAGE_SIZE must be >= 1, got {config.booking.page_size}"
        )
    if config.booking.max_page_size < config.booking.page_size:
        raise ValueError(
            "MAX_PAGE_SIZE must be >= BOOKING_PAGE_SIZE, "
            f"got {config.booking.max_page_size}"
        )
    if config.booking.open_dates_window < 1:
        raise ValueError(
            f"OPEN_DATES_WINDOW must be >= 1, got {config.booking.open_dates_window}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        attach_request_id(handler)
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
