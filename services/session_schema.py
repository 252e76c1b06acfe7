"""Versioned JSON shape of the persisted session.

Records are never trusted as stored: :func:`load_session` migrates older
versions, drops unknown fields, fills in missing ones and repairs the
participant/gift matching before the draw machine sees them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from core import get_logger, DrawStage, StorageDefaults
from database.models import Gift, Participant, SessionRecord

logger = get_logger(__name__)

SCHEMA_VERSION = StorageDefaults.SCHEMA_VERSION

# Stage names used by the first (browser) release
LEGACY_STAGES = {
    "IDLE": DrawStage.IDLE,
    "SELECTING_PERSON": DrawStage.SELECTING_PARTICIPANT,
    "PERSON_ANNOUNCEMENT": DrawStage.PARTICIPANT_ANNOUNCED,
    "PERSON_SELECTED": DrawStage.AWAITING_GIFT_CHOICE,
    "GIFT_REVEALED": DrawStage.GIFT_REVEALED,
    "FINISHED": DrawStage.IDLE,
}


class SchemaError(ValueError):
    """Raised when a stored record cannot be interpreted at all."""


def dump_session(record: SessionRecord) -> dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "participants": [
            {"id": p.id, "name": p.name, "has_drawn": p.has_drawn, "photo_url": p.photo_url}
            for p in record.participants
        ],
        "gifts": [
            {
                "id": g.id,
                "number": g.number,
                "description": g.description,
                "revealed": g.revealed,
                "owner_id": g.owner_id,
                "photo_url": g.photo_url,
            }
            for g in record.gifts
        ],
        "stage": record.stage.value,
        "active_participant_id": record.active_participant_id,
        "active_gift_id": record.active_gift_id,
        "pending_message": record.pending_message,
    }


def load_session(data: Any) -> SessionRecord:
    """Turn a stored document of any known version into a valid record.

    Raises:
        SchemaError: If ``data`` is not a mapping or its version is newer
            than this build understands
    """
    if not isinstance(data, dict):
        raise SchemaError(f"Session record must be an object, got {type(data).__name__}")

    version = data.get("schema_version", 1)
    if not isinstance(version, int) or version < 1:
        raise SchemaError(f"Invalid schema version: {version!r}")
    if version > SCHEMA_VERSION:
        raise SchemaError(f"Session schema {version} is newer than supported {SCHEMA_VERSION}")
    if version == 1:
        data = _migrate_v1(data)

    participants = _participants(data.get("participants"))
    gifts = _gifts(data.get("gifts"))
    _repair_matching(participants, gifts)

    record = SessionRecord(
        participants=participants,
        gifts=gifts,
        stage=_stage(data.get("stage")),
        active_participant_id=_optional_int(data.get("active_participant_id")),
        active_gift_id=_optional_int(data.get("active_gift_id")),
        pending_message=data.get("pending_message") if isinstance(data.get("pending_message"), str) else "",
    )
    return normalize_stage(record)


def normalize_stage(record: SessionRecord) -> SessionRecord:
    """Degrade the stage until every active reference is valid.

    ``selecting_participant`` is never resumed. A revealed round whose gift
    is gone falls back to the gift choice; a round whose participant is gone,
    or that has no unclaimed gift left, falls back to idle.
    """
    participants = {p.id: p for p in record.participants}
    gifts = {g.id: g for g in record.gifts}
    stage = record.stage

    if stage is DrawStage.SELECTING_PARTICIPANT:
        logger.info("Interrupted roulette found on load; resuming at idle")
        stage = DrawStage.IDLE

    if stage is not DrawStage.IDLE:
        participant = participants.get(record.active_participant_id) if record.active_participant_id is not None else None
        if participant is None or participant.has_drawn:
            logger.warning(f"Stored active participant {record.active_participant_id} is not drawable; resuming at idle")
            stage = DrawStage.IDLE

    if stage is DrawStage.GIFT_REVEALED:
        gift = gifts.get(record.active_gift_id) if record.active_gift_id is not None else None
        if gift is None or gift.owner_id is not None:
            logger.warning(f"Stored active gift {record.active_gift_id} is not available; back to gift choice")
            stage = DrawStage.AWAITING_GIFT_CHOICE

    if stage in (DrawStage.PARTICIPANT_ANNOUNCED, DrawStage.AWAITING_GIFT_CHOICE):
        if all(g.owner_id is not None for g in record.gifts):
            logger.warning("Stored round has no gift left to choose; resuming at idle")
            stage = DrawStage.IDLE

    record.stage = stage
    if stage is DrawStage.IDLE:
        record.active_participant_id = None
    if stage is not DrawStage.GIFT_REVEALED:
        record.active_gift_id = None
        record.pending_message = ""
    return record


def _migrate_v1(data: dict[str, Any]) -> dict[str, Any]:
    """Map the browser release's camelCase document onto version 2."""
    raw_stage = data.get("savedStage")
    stage = LEGACY_STAGES.get(raw_stage, DrawStage.IDLE) if isinstance(raw_stage, str) else DrawStage.IDLE
    return {
        "schema_version": 2,
        "participants": [
            {
                "id": p.get("id"),
                "name": p.get("name"),
                "has_drawn": p.get("hasDrawn", False),
                "photo_url": p.get("photoUrl"),
            }
            for p in _list_of_dicts(data.get("people", data.get("participants")))
        ],
        "gifts": [
            {
                "id": g.get("id"),
                "number": g.get("number"),
                "description": g.get("description"),
                "revealed": g.get("revealed", False),
                "owner_id": g.get("ownerId"),
                "photo_url": g.get("photoUrl"),
            }
            for g in _list_of_dicts(data.get("gifts"))
        ],
        "stage": stage.value,
        "active_participant_id": data.get("savedCurrentPersonId"),
        "active_gift_id": data.get("savedCurrentGiftId"),
        "pending_message": data.get("savedAiMessage", ""),
    }


def _participants(raw: Any) -> list[Participant]:
    participants: list[Participant] = []
    seen: set[int] = set()
    for item in _list_of_dicts(raw):
        participant_id = _optional_int(item.get("id"))
        name = item.get("name")
        if participant_id is None or participant_id in seen or not isinstance(name, str):
            logger.warning(f"Dropping malformed stored participant: {item!r}")
            continue
        seen.add(participant_id)
        participants.append(Participant(
            id=participant_id,
            name=name,
            has_drawn=bool(item.get("has_drawn", False)),
            photo_url=_optional_str(item.get("photo_url")),
        ))
    return participants


def _gifts(raw: Any) -> list[Gift]:
    gifts: list[Gift] = []
    seen: set[int] = set()
    for item in _list_of_dicts(raw):
        gift_id = _optional_int(item.get("id"))
        if gift_id is None or gift_id in seen:
            logger.warning(f"Dropping malformed stored gift: {item!r}")
            continue
        seen.add(gift_id)
        number = _optional_int(item.get("number"))
        description = item.get("description")
        gifts.append(Gift(
            id=gift_id,
            number=number if number is not None else gift_id,
            description=description if isinstance(description, str) else "",
            revealed=bool(item.get("revealed", False)),
            owner_id=_optional_int(item.get("owner_id")),
            photo_url=_optional_str(item.get("photo_url")),
        ))
    return gifts


def _repair_matching(participants: list[Participant], gifts: list[Gift]) -> None:
    """Make gift ownership the single source of truth for ``has_drawn``."""
    known = {p.id for p in participants}
    owners: set[int] = set()
    for gift in gifts:
        if gift.owner_id is None:
            gift.revealed = False
            continue
        if gift.owner_id not in known or gift.owner_id in owners:
            logger.warning(f"Clearing invalid owner {gift.owner_id} of stored gift {gift.id}")
            gift.owner_id = None
            gift.revealed = False
            continue
        owners.add(gift.owner_id)
        gift.revealed = True
    for participant in participants:
        if participant.has_drawn != (participant.id in owners):
            logger.warning(f"Repairing has_drawn of stored participant {participant.id}")
            participant.has_drawn = participant.id in owners


def _stage(raw: Any) -> DrawStage:
    if isinstance(raw, str):
        try:
            return DrawStage(raw)
        except ValueError:
            logger.warning(f"Unknown stored stage {raw!r}; resuming at idle")
    return DrawStage.IDLE


def _list_of_dicts(raw: Any) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, dict)]


def _optional_int(value: Any) -> Optional[int]:
    # bool is an int subclass but never a valid id
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None
