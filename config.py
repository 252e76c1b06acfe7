"""Application configuration module.

Reads settings from environment variables (and an optional ``.env`` file)
with defaults suited to a single projector laptop running the draw.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from core.constants import (
    DrawDefaults,
    MessageDefaults,
    MessagePolicy,
    RosterDefaults,
    StorageDefaults,
)
from core.exceptions import ConfigurationError

MESSAGE_PROVIDERS = ("template", "remote")


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


def _get_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


@dataclass(frozen=True)
class DrawSettings:
    """Timing and policy knobs of the draw state machine."""
    roulette_duration: float = DrawDefaults.ROULETTE_DURATION_MS / 1000
    roulette_interval: float = DrawDefaults.ROULETTE_INTERVAL_MS / 1000
    skip_announcement: bool = DrawDefaults.SKIP_ANNOUNCEMENT
    message_policy: MessagePolicy = MessagePolicy.FIRE_AND_FORGET

    @property
    def roulette_steps(self) -> int:
        if self.roulette_interval <= 0:
            return 0
        return max(1, int(self.roulette_duration / self.roulette_interval))


@dataclass(frozen=True)
class Config:
    environment: str
    debug: bool
    web_host: str
    web_port: int
    admin_token: str
    log_folder: str
    # Persistence
    event_key: str
    database_path: str
    db_busy_timeout: int
    fallback_store_path: str
    fallback_store_max_bytes: int
    save_debounce_ms: int
    # Roster
    roster_file: Optional[str]
    default_roster_size: int
    # Draw
    roulette_duration_ms: int
    roulette_interval_ms: int
    skip_announcement: bool
    draw_seed: Optional[int]
    # Messages
    message_policy: MessagePolicy
    message_provider: str
    message_endpoint: str
    message_api_key: str
    message_timeout: float
    message_delay_ms: int

    def draw_settings(self) -> DrawSettings:
        return DrawSettings(
            roulette_duration=self.roulette_duration_ms / 1000,
            roulette_interval=self.roulette_interval_ms / 1000,
            skip_announcement=self.skip_announcement,
            message_policy=self.message_policy,
        )


def _parse_policy(value: str) -> MessagePolicy:
    try:
        return MessagePolicy(value.strip().lower())
    except ValueError:
        allowed = ", ".join(policy.value for policy in MessagePolicy)
        raise ConfigurationError(f"MESSAGE_POLICY must be one of: {allowed}")


def load_config(env_file: Optional[str] = None) -> Config:
    """Load application configuration from environment variables.

    Args:
        env_file: Optional path of a dotenv file, defaults to ``.env`` lookup

    Returns:
        Config: Application configuration with validated values

    Raises:
        ConfigurationError: If a choice-valued setting is not recognised
    """
    load_dotenv(env_file)

    message_provider = _get_str("MESSAGE_PROVIDER", "template").strip().lower()
    if message_provider not in MESSAGE_PROVIDERS:
        raise ConfigurationError(
            f"MESSAGE_PROVIDER must be one of: {', '.join(MESSAGE_PROVIDERS)}"
        )
    message_endpoint = _get_str("MESSAGE_ENDPOINT", "")
    if message_provider == "remote" and not message_endpoint:
        raise ConfigurationError("MESSAGE_ENDPOINT is required for the remote message provider")

    roulette_interval_ms = _get_int("ROULETTE_INTERVAL_MS", DrawDefaults.ROULETTE_INTERVAL_MS)
    if roulette_interval_ms <= 0:
        raise ConfigurationError("ROULETTE_INTERVAL_MS must be positive")

    config = Config(
        environment=_get_str("ENVIRONMENT", "development"),
        debug=_get_bool("DEBUG", False),
        web_host=_get_str("WEB_HOST", "127.0.0.1"),
        web_port=_get_int("WEB_PORT", 5000),
        admin_token=_get_str("ADMIN_TOKEN", ""),
        log_folder=_get_str("LOG_FOLDER", "logs"),
        event_key=_get_str("EVENT_KEY", StorageDefaults.EVENT_KEY),
        database_path=_get_str("DATABASE_PATH", StorageDefaults.DATABASE_PATH),
        db_busy_timeout=_get_int("DB_BUSY_TIMEOUT", StorageDefaults.BUSY_TIMEOUT),
        fallback_store_path=_get_str("FALLBACK_STORE_PATH", StorageDefaults.FALLBACK_PATH),
        fallback_store_max_bytes=_get_int("FALLBACK_STORE_MAX_BYTES", StorageDefaults.FALLBACK_MAX_BYTES),
        save_debounce_ms=_get_int("SAVE_DEBOUNCE_MS", StorageDefaults.SAVE_DEBOUNCE_MS),
        roster_file=_get_str("ROSTER_FILE", "") or None,
        default_roster_size=_get_int("DEFAULT_ROSTER_SIZE", RosterDefaults.SIZE),
        roulette_duration_ms=_get_int("ROULETTE_DURATION_MS", DrawDefaults.ROULETTE_DURATION_MS),
        roulette_interval_ms=roulette_interval_ms,
        skip_announcement=_get_bool("SKIP_ANNOUNCEMENT", DrawDefaults.SKIP_ANNOUNCEMENT),
        draw_seed=_get_optional_int("DRAW_SEED"),
        message_policy=_parse_policy(_get_str("MESSAGE_POLICY", MessagePolicy.FIRE_AND_FORGET.value)),
        message_provider=message_provider,
        message_endpoint=message_endpoint,
        message_api_key=_get_str("MESSAGE_API_KEY", ""),
        message_timeout=_get_float("MESSAGE_TIMEOUT", MessageDefaults.TIMEOUT),
        message_delay_ms=_get_int("MESSAGE_DELAY_MS", MessageDefaults.DELAY_MS),
    )

    return config
