"""In-memory holder of the roster and its match state."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from core import get_logger
from core.exceptions import InvalidMatchError, ValidationError
from database.models import Gift, Participant

logger = get_logger(__name__)


class EntityStore:
    """Owns the participant and gift collections.

    The only mutations are :meth:`confirm_match` and :meth:`replace_all`, so
    the set of drawn participants always mirrors the set of claimed gifts.
    Callers receive the stored objects and must treat them as read-only.
    """

    def __init__(
        self,
        participants: Iterable[Participant] = (),
        gifts: Iterable[Gift] = (),
    ) -> None:
        self._participants: list[Participant] = []
        self._gifts: list[Gift] = []
        self._load(list(participants), list(gifts))

    def _load(self, participants: list[Participant], gifts: list[Gift]) -> None:
        _ensure_unique_ids("participant", (p.id for p in participants))
        _ensure_unique_ids("gift", (g.id for g in gifts))
        self._participants = [replace(p) for p in participants]
        self._gifts = [replace(g) for g in gifts]
        self._participants_by_id = {p.id: p for p in self._participants}
        self._gifts_by_id = {g.id: g for g in self._gifts}

    @property
    def participants(self) -> list[Participant]:
        return list(self._participants)

    @property
    def gifts(self) -> list[Gift]:
        return list(self._gifts)

    def get_participant(self, participant_id: int) -> Optional[Participant]:
        return self._participants_by_id.get(participant_id)

    def get_gift(self, gift_id: int) -> Optional[Gift]:
        return self._gifts_by_id.get(gift_id)

    def remaining_participants(self) -> list[Participant]:
        return [p for p in self._participants if not p.has_drawn]

    def remaining_gifts(self) -> list[Gift]:
        return [g for g in self._gifts if not g.is_claimed]

    @property
    def drawn_count(self) -> int:
        return sum(1 for p in self._participants if p.has_drawn)

    @property
    def is_complete(self) -> bool:
        """True once nobody can be matched any more, i.e. either pool is empty."""
        return not self.remaining_participants() or not self.remaining_gifts()

    def confirm_match(self, participant_id: int, gift_id: int) -> None:
        """Bind a participant to a gift.

        Both entities are validated before either is touched, so a failure
        leaves the store exactly as it was.

        Raises:
            InvalidMatchError: If either id is unknown or already matched
        """
        participant = self._participants_by_id.get(participant_id)
        gift = self._gifts_by_id.get(gift_id)
        if participant is None:
            raise InvalidMatchError(f"Unknown participant {participant_id}")
        if gift is None:
            raise InvalidMatchError(f"Unknown gift {gift_id}")
        if participant.has_drawn:
            raise InvalidMatchError(f"Participant {participant_id} has already drawn")
        if gift.is_claimed:
            raise InvalidMatchError(f"Gift {gift_id} already belongs to participant {gift.owner_id}")

        participant.has_drawn = True
        gift.owner_id = participant_id
        gift.revealed = True
        logger.info(f"Matched participant {participant_id} ({participant.name}) with gift #{gift.number}")

    def replace_all(self, participants: Iterable[Participant], gifts: Iterable[Gift]) -> None:
        """Swap in a new roster with every match flag cleared.

        Raises:
            ValidationError: If ids repeat within either collection
        """
        new_participants = [replace(p, has_drawn=False) for p in participants]
        new_gifts = [replace(g, owner_id=None, revealed=False) for g in gifts]
        self._load(new_participants, new_gifts)
        logger.info(f"Roster replaced: {len(new_participants)} participants, {len(new_gifts)} gifts")


def _ensure_unique_ids(kind: str, ids: Iterable[int]) -> None:
    seen: set[int] = set()
    for entity_id in ids:
        if entity_id in seen:
            raise ValidationError(f"Duplicate {kind} id: {entity_id}")
        seen.add(entity_id)
