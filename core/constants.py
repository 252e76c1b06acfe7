"""Application-wide constants and configuration values."""

from __future__ import annotations

from enum import Enum


class DrawStage(str, Enum):
    """Stage of the round currently on screen."""
    IDLE = "idle"
    SELECTING_PARTICIPANT = "selecting_participant"
    PARTICIPANT_ANNOUNCED = "participant_announced"
    AWAITING_GIFT_CHOICE = "awaiting_gift_choice"
    GIFT_REVEALED = "gift_revealed"


class MessagePolicy(str, Enum):
    """Whether the reveal waits for the congratulation text."""
    BLOCKING = "blocking"
    FIRE_AND_FORGET = "fire_and_forget"


# Draw constants
class DrawDefaults:
    """Roulette animation timing."""
    ROULETTE_DURATION_MS = 2500
    ROULETTE_INTERVAL_MS = 80
    SKIP_ANNOUNCEMENT = False


# Storage constants
class StorageDefaults:
    """Persistence configuration."""
    SCHEMA_VERSION = 2
    EVENT_KEY = "default"
    SAVE_DEBOUNCE_MS = 300
    DATABASE_PATH = "data/secret_santa.sqlite"
    FALLBACK_PATH = "data/secret_santa_fallback.json"
    FALLBACK_MAX_BYTES = 5 * 1024 * 1024  # 5MB, same order as browser local storage
    BUSY_TIMEOUT = 5000  # milliseconds


# Message constants
class MessageDefaults:
    """Congratulation message generation."""
    DELAY_MS = 600
    TIMEOUT = 8.0  # seconds
    MAX_LENGTH = 280
    FALLBACK_TEMPLATE = "Congratulations {name}! You got Gift #{number}!"
    TEMPLATES = (
        "Congratulations {name}! You got Gift #{number}!",
        "Wow! {name} unpacked Gift #{number}. Hope you like it! 🎁",
        "Merry Christmas, {name}! Gift #{number} is all yours! 🎄",
        "Ho Ho Ho! {name} has chosen Gift #{number}! 🎅",
        "Look at that! {name} goes home with Gift #{number}!",
        "What a surprise! Gift #{number} belongs to {name} now!",
        "{name}'s lucky number is #{number} today! Enjoy the gift!",
        "Nice choice {name}! Gift #{number} looks interesting! ✨",
    )


# Roster constants
class RosterDefaults:
    """Default roster seeded on first start."""
    SIZE = 45
    NAME_TEMPLATE = "Employee {index}"
    GIFT_DESCRIPTION_TEMPLATE = "Mystery Gift #{index} - A wonderful surprise awaits!"
    MAX_NAME_LENGTH = 100
    MAX_DESCRIPTION_LENGTH = 500
