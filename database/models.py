"""Entities of the draw and the persisted session shape."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from core.constants import DrawStage


@dataclass(slots=True)
class Participant:
    id: int
    name: str
    has_drawn: bool = False
    photo_url: Optional[str] = None


@dataclass(slots=True)
class Gift:
    id: int
    number: int
    description: str
    revealed: bool = False
    owner_id: Optional[int] = None
    photo_url: Optional[str] = None

    @property
    def is_claimed(self) -> bool:
        return self.owner_id is not None


@dataclass(slots=True)
class SessionRecord:
    """Everything needed to resume the event after a reload."""
    participants: list[Participant] = field(default_factory=list)
    gifts: list[Gift] = field(default_factory=list)
    stage: DrawStage = DrawStage.IDLE
    active_participant_id: Optional[int] = None
    active_gift_id: Optional[int] = None
    pending_message: str = ""
