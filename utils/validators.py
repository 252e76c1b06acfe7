"""Input validation helpers for roster documents."""

from typing import Any, Optional

from core.constants import RosterDefaults


def validate_name(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    stripped = value.strip()
    return 1 <= len(stripped) <= RosterDefaults.MAX_NAME_LENGTH


def validate_description(value: Any) -> bool:
    return isinstance(value, str) and len(value) <= RosterDefaults.MAX_DESCRIPTION_LENGTH


def validate_entity_id(value: Any) -> bool:
    """Ids are non-negative integers; booleans are rejected."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def coerce_int(value: Any) -> Optional[int]:
    """Accept ints and digit strings (spreadsheet exports quote numbers)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def normalize_photo_url(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None
