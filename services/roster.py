"""Roster seeding, import and export for the admin editor.

Imported documents never carry match state into the draw: ``hasDrawn``,
``ownerId`` and ``revealed`` (in either naming style) are ignored and the
entities are created unmatched.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from core import get_logger, RosterDefaults
from core.exceptions import ValidationError
from database.models import Gift, Participant, SessionRecord
from utils.validators import (
    coerce_int,
    normalize_photo_url,
    validate_description,
    validate_entity_id,
    validate_name,
)

logger = get_logger(__name__)


def default_roster(size: int = RosterDefaults.SIZE) -> tuple[list[Participant], list[Gift]]:
    """Generate placeholder employees and gifts numbered ``1..size``."""
    if size < 0:
        raise ValidationError("Roster size cannot be negative")
    participants = [
        Participant(id=index, name=RosterDefaults.NAME_TEMPLATE.format(index=index))
        for index in range(1, size + 1)
    ]
    gifts = [
        Gift(
            id=index,
            number=index,
            description=RosterDefaults.GIFT_DESCRIPTION_TEMPLATE.format(index=index),
        )
        for index in range(1, size + 1)
    ]
    return participants, gifts


def parse_roster_document(document: Any) -> tuple[list[Participant], list[Gift]]:
    """Validate an exported/edited roster and return clean entities.

    Accepts ``{"participants": [...], "gifts": [...]}`` as well as the
    browser release's ``{"people": [...], "gifts": [...]}``.

    Raises:
        ValidationError: If the document shape or any entity is invalid
    """
    if not isinstance(document, dict):
        raise ValidationError("Roster must be a JSON object")
    raw_participants = document.get("participants", document.get("people"))
    raw_gifts = document.get("gifts")
    if not isinstance(raw_participants, list) or not isinstance(raw_gifts, list):
        raise ValidationError("Roster must contain 'participants' and 'gifts' lists")

    participants = [_parse_participant(item, index) for index, item in enumerate(raw_participants)]
    gifts = [_parse_gift(item, index) for index, item in enumerate(raw_gifts)]
    _ensure_unique("participant", (p.id for p in participants))
    _ensure_unique("gift", (g.id for g in gifts))
    if len(participants) != len(gifts):
        logger.warning(
            f"Roster has {len(participants)} participants but {len(gifts)} gifts; "
            f"the draw will end when either pool runs out"
        )
    return participants, gifts


def export_roster_document(participants: Iterable[Participant], gifts: Iterable[Gift]) -> dict[str, Any]:
    """Serialize the roster, including the current match state, for download."""
    return {
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "participants": [
            {"id": p.id, "name": p.name, "has_drawn": p.has_drawn, "photo_url": p.photo_url}
            for p in participants
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
            for g in gifts
        ],
    }


def load_roster_file(path: str) -> tuple[list[Participant], list[Gift]]:
    """Read a roster JSON file prepared by the organisers.

    Raises:
        ValidationError: If the file is missing, not JSON, or invalid
    """
    roster_path = Path(path)
    try:
        document = json.loads(roster_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValidationError(f"Cannot read roster file {roster_path}: {e}") from e
    except ValueError as e:
        raise ValidationError(f"Roster file {roster_path} is not valid JSON: {e}") from e
    participants, gifts = parse_roster_document(document)
    logger.info(f"Loaded roster from {roster_path}: {len(participants)} participants, {len(gifts)} gifts")
    return participants, gifts


def seed_session(roster_file: str | None = None, size: int = RosterDefaults.SIZE) -> SessionRecord:
    """Fresh session from ``roster_file`` or the generated placeholder roster."""
    if roster_file:
        participants, gifts = load_roster_file(roster_file)
    else:
        participants, gifts = default_roster(size)
    return SessionRecord(participants=participants, gifts=gifts)


def _parse_participant(item: Any, index: int) -> Participant:
    if not isinstance(item, dict):
        raise ValidationError(f"Participant #{index + 1} must be an object")
    participant_id = coerce_int(item.get("id"))
    if participant_id is None or not validate_entity_id(participant_id):
        raise ValidationError(f"Participant #{index + 1} has an invalid id: {item.get('id')!r}")
    name = item.get("name")
    if not validate_name(name):
        raise ValidationError(f"Participant {participant_id} needs a name of 1-{RosterDefaults.MAX_NAME_LENGTH} characters")
    return Participant(
        id=participant_id,
        name=name.strip(),
        photo_url=normalize_photo_url(item.get("photo_url", item.get("photoUrl"))),
    )


def _parse_gift(item: Any, index: int) -> Gift:
    if not isinstance(item, dict):
        raise ValidationError(f"Gift #{index + 1} must be an object")
    gift_id = coerce_int(item.get("id"))
    if gift_id is None or not validate_entity_id(gift_id):
        raise ValidationError(f"Gift #{index + 1} has an invalid id: {item.get('id')!r}")
    number = coerce_int(item.get("number", gift_id))
    if number is None:
        raise ValidationError(f"Gift {gift_id} has an invalid number: {item.get('number')!r}")
    description = item.get("description", "")
    if description is None:
        description = ""
    if not validate_description(description):
        raise ValidationError(
            f"Gift {gift_id} description must be text of at most {RosterDefaults.MAX_DESCRIPTION_LENGTH} characters"
        )
    return Gift(
        id=gift_id,
        number=number,
        description=description,
        photo_url=normalize_photo_url(item.get("photo_url", item.get("photoUrl"))),
    )


def _ensure_unique(kind: str, ids: Iterable[int]) -> None:
    seen: set[int] = set()
    for entity_id in ids:
        if entity_id in seen:
            raise ValidationError(f"Duplicate {kind} id: {entity_id}")
        seen.add(entity_id)
