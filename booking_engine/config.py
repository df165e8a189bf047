"""
Centralized configuration with environment variable overrides.

Scheduling defaults, cache lifetimes, and concurrency switches live here.
Nothing in the availability or booking pipeline hardcodes these values.
"""

import logging
import os
from dataclasses import dataclass, field

import pytz
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


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
    """Parse a boolean flag from an env var."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class SchedulingConfig:
    """Slot search defaults."""

    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "Europe/Madrid")
    default_slot_step_minutes: int = _safe_int("DEFAULT_SLOT_STEP_MINUTES", "0")
    max_search_days: int = _safe_int("MAX_SEARCH_DAYS", "62")
    alternatives_limit: int = _safe_int("ALTERNATIVES_LIMIT", "5")


@dataclass(frozen=True)
class CacheConfig:
    """Read-mostly resource configuration cache."""

    template_cache_ttl_seconds: float = _safe_float("TEMPLATE_CACHE_TTL_SECONDS", "300")


@dataclass(frozen=True)
class ConcurrencyConfig:
    """Commit-step synchronization settings."""

    use_resource_locks: bool = _safe_bool("USE_RESOURCE_LOCKS", "true")
    booking_timeout_seconds: float = _safe_float("BOOKING_TIMEOUT_SECONDS", "10.0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    concurrency: ConcurrencyConfig = field(default_factory=ConcurrencyConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    engine_name: str = os.getenv("ENGINE_NAME", "clinic-booking-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.scheduling.default_timezone not in pytz.all_timezones_set:
        raise ValueError(
            f"DEFAULT_TIMEZONE is not a known timezone: {config.scheduling.default_timezone!r}"
        )
    if config.scheduling.default_slot_step_minutes < 0:
        raise ValueError(
            "DEFAULT_SLOT_STEP_MINUTES must be >= 0, "
            f"got {config.scheduling.default_slot_step_minutes}"
        )
    if not 1 <= config.scheduling.max_search_days <= 366:
        raise ValueError(
            f"MAX_SEARCH_DAYS must be between 1 and 366, got {config.scheduling.max_search_days}"
        )
    if config.scheduling.alternatives_limit < 0:
        raise ValueError(
            f"ALTERNATIVES_LIMIT must be >= 0, got {config.scheduling.alternatives_limit}"
        )
    if config.cache.template_cache_ttl_seconds < 0:
        raise ValueError(
            "TEMPLATE_CACHE_TTL_SECONDS must be >= 0, "
            f"got {config.cache.template_cache_ttl_seconds}"
        )
    if config.concurrency.booking_timeout_seconds <= 0:
        raise ValueError(
            "BOOKING_TIMEOUT_SECONDS must be > 0, "
            f"got {config.concurrency.booking_timeout_seconds}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.engine_name)
    return config


# Singleton instance
settings = load_config()
