"""State machine driving one participant from selection to a confirmed gift."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Callable, Iterable, Optional

from config import DrawSettings
from core import get_logger, DrawStage, MessagePolicy
from core.exceptions import EmptyPoolError, InvalidMatchError
from database.models import Gift, Participant, SessionRecord
from services.entity_store import EntityStore
from services.message_provider import CongratulationService, fallback_message
from services.metrics import ROSTER_COMMITS, ROUNDS_CONFIRMED, TRANSITIONS_REJECTED
from services.selector import RandomSelector

logger = get_logger(__name__)

ChangeListener = Callable[["DrawStateMachine"], None]


class DrawStateMachine:
    """Owns the live session and funnels every mutation through a transition.

    Stages follow ``idle -> selecting_participant -> participant_announced ->
    awaiting_gift_choice -> gift_revealed -> idle``. Each round carries a
    token; the roulette task and pending message deliveries compare their
    token with the current one before touching state, so a callback that
    outlives its round (after a confirmation or a roster commit) is a no-op.

    Guard violations are logged and reported by returning ``False``; they
    never raise into the caller, because the event must not stop on a
    stray click.
    """

    def __init__(
        self,
        store: EntityStore,
        selector: RandomSelector,
        messages: CongratulationService,
        settings: Optional[DrawSettings] = None,
    ) -> None:
        self.store = store
        self.selector = selector
        self.messages = messages
        self.settings = settings or DrawSettings()

        self.stage = DrawStage.IDLE
        self.active_participant_id: Optional[int] = None
        self.active_gift_id: Optional[int] = None
        self.pending_message = ""

        # View-only state, never persisted
        self.highlighted_participant_id: Optional[int] = None
        self.message_loading = False
        self.storage_warning: Optional[str] = None

        self._round = 0
        self._roulette_task: Optional[asyncio.Task] = None
        self._message_tasks: set[asyncio.Task] = set()
        self._listeners: list[ChangeListener] = []

    @classmethod
    def from_record(
        cls,
        record: SessionRecord,
        selector: RandomSelector,
        messages: CongratulationService,
        settings: Optional[DrawSettings] = None,
    ) -> "DrawStateMachine":
        """Resume a machine from a normalized session record."""
        machine = cls(EntityStore(record.participants, record.gifts), selector, messages, settings)
        # Animation cannot be resumed mid-flight
        stage = record.stage
        if stage is DrawStage.SELECTING_PARTICIPANT:
            stage = DrawStage.IDLE
        if stage is not DrawStage.IDLE:
            machine.active_participant_id = record.active_participant_id
            machine.highlighted_participant_id = record.active_participant_id
        if stage is DrawStage.GIFT_REVEALED:
            machine.active_gift_id = record.active_gift_id
            machine.pending_message = record.pending_message or machine._fallback_for_active()
        machine.stage = stage
        logger.info(f"Session resumed at stage '{stage.value}' ({machine.store.drawn_count} matches so far)")
        return machine

    # -- listeners -----------------------------------------------------

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"State change listener failed: {e}", exc_info=True)

    # -- transitions ---------------------------------------------------

    async def start_draw(self) -> bool:
        """Begin a round: run the roulette, then fix the participant."""
        if self.stage is not DrawStage.IDLE:
            return self._reject("start_draw", f"stage is {self.stage.value}")
        remaining = self.store.remaining_participants()
        if not remaining:
            return self._reject("start_draw", "no participants remaining")
        if not self.store.remaining_gifts():
            return self._reject("start_draw", "no gifts remaining")

        token = self._begin_round()
        self._clear_round()
        self.stage = DrawStage.SELECTING_PARTICIPANT
        logger.info(f"Round {token} started with {len(remaining)} participants remaining")
        self._notify()

        if len(remaining) == 1 or self.settings.roulette_steps == 0:
            # Outcome is fixed or animation disabled; no churn needed
            self._finalize_participant(token)
        else:
            self._roulette_task = asyncio.create_task(self._run_roulette(token))
        return True

    async def wait_for_selection(self) -> None:
        """Wait until the running roulette (if any) has finished or been cancelled."""
        task = self._roulette_task
        if task is not None and not task.done():
            await asyncio.wait([task])

    async def _run_roulette(self, token: int) -> None:
        for _ in range(self.settings.roulette_steps):
            await asyncio.sleep(self.settings.roulette_interval)
            if token != self._round:
                return
            pool = self.store.remaining_participants()
            if not pool:
                break
            # Cosmetic churn only, the result is discarded
            self.highlighted_participant_id = self.selector.pick_uniform(pool).id
        self._finalize_participant(token)

    def _finalize_participant(self, token: int) -> None:
        if token != self._round or self.stage is not DrawStage.SELECTING_PARTICIPANT:
            return
        try:
            chosen = self.selector.pick_uniform(self.store.remaining_participants())
        except EmptyPoolError:
            logger.error(f"Round {token}: participant pool emptied during selection", exc_info=True)
            self._clear_round()
            self.stage = DrawStage.IDLE
            self._notify()
            return

        self.active_participant_id = chosen.id
        self.highlighted_participant_id = chosen.id
        self.stage = DrawStage.PARTICIPANT_ANNOUNCED
        logger.info(f"Round {token}: selected participant {chosen.id} ({chosen.name})")
        if self.settings.skip_announcement:
            self.stage = DrawStage.AWAITING_GIFT_CHOICE
        self._notify()

    async def proceed_to_gift(self) -> bool:
        """Move from the announcement to the gift grid."""
        if self.stage is not DrawStage.PARTICIPANT_ANNOUNCED:
            return self._reject("proceed_to_gift", f"stage is {self.stage.value}")
        self.stage = DrawStage.AWAITING_GIFT_CHOICE
        self._notify()
        return True

    async def select_gift(self, gift_id: int) -> bool:
        """Reveal the gift the active participant picked.

        Rejects the click when no participant is waiting, when a gift was
        already chosen this round, or when ``gift_id`` is unknown or taken.
        """
        if self.stage is not DrawStage.AWAITING_GIFT_CHOICE:
            return self._reject("select_gift", f"stage is {self.stage.value}")
        if self.active_gift_id is not None:
            return self._reject("select_gift", f"gift {self.active_gift_id} already chosen this round")
        participant = self._active_participant()
        if participant is None:
            return self._reject("select_gift", "no active participant")
        gift = self.store.get_gift(gift_id)
        if gift is None:
            return self._reject("select_gift", f"unknown gift {gift_id}")
        if gift.is_claimed:
            return self._reject("select_gift", f"gift {gift_id} already claimed")

        token = self._round
        self.active_gift_id = gift.id
        self.pending_message = ""
        self.message_loading = True
        logger.info(f"Round {token}: participant {participant.id} picked gift #{gift.number}")

        if self.settings.message_policy is MessagePolicy.BLOCKING:
            self._notify()
            message = await self.messages.generate_message(participant.name, gift.number, gift.description)
            if token != self._round:
                logger.info(f"Round {token} was superseded while generating its message")
                return False
            self.pending_message = message
            self.message_loading = False
            self.stage = DrawStage.GIFT_REVEALED
            self._notify()
            return True

        self.stage = DrawStage.GIFT_REVEALED
        task = asyncio.create_task(
            self._deliver_message(token, participant.name, gift.number, gift.description)
        )
        self._message_tasks.add(task)
        task.add_done_callback(self._message_tasks.discard)
        self._notify()
        return True

    async def _deliver_message(self, token: int, name: str, number: int, description: str) -> None:
        message = await self.messages.generate_message(name, number, description)
        if token != self._round or self.stage is not DrawStage.GIFT_REVEALED:
            logger.info(f"Discarding message for superseded round {token}")
            return
        self.pending_message = message
        self.message_loading = False
        self._notify()

    async def wait_for_message(self) -> None:
        """Wait for in-flight message deliveries to settle."""
        if self._message_tasks:
            await asyncio.wait(list(self._message_tasks))

    async def auto_select_gift(self) -> bool:
        """Pick a random remaining gift on behalf of the active participant."""
        if self.stage is not DrawStage.AWAITING_GIFT_CHOICE:
            return self._reject("auto_select_gift", f"stage is {self.stage.value}")
        try:
            gift = self.selector.pick_uniform(self.store.remaining_gifts())
        except EmptyPoolError:
            return self._reject("auto_select_gift", "no gifts remaining")
        return await self.select_gift(gift.id)

    async def confirm_match(self) -> bool:
        """Commit the revealed pairing and return to idle."""
        if self.stage is not DrawStage.GIFT_REVEALED:
            return self._reject("confirm_match", f"stage is {self.stage.value}")
        if self.active_participant_id is None or self.active_gift_id is None:
            return self._reject("confirm_match", "no active participant or gift")
        try:
            self.store.confirm_match(self.active_participant_id, self.active_gift_id)
        except InvalidMatchError as e:
            return self._reject("confirm_match", str(e))

        ROUNDS_CONFIRMED.inc()
        self._begin_round()
        self._clear_round()
        self.stage = DrawStage.IDLE
        if self.store.is_complete:
            logger.info("Draw complete: no further matches are possible")
        self._notify()
        return True

    async def admin_commit(self, participants: Iterable[Participant], gifts: Iterable[Gift]) -> None:
        """Replace the roster and abandon any round in progress.

        Raises:
            ValidationError: If the roster repeats ids; nothing changes then
        """
        self.store.replace_all(participants, gifts)
        self._begin_round()
        self._clear_round()
        self.stage = DrawStage.IDLE
        ROSTER_COMMITS.inc()
        self._notify()

    async def reset(self) -> None:
        """Clear every match while keeping the current roster."""
        await self.admin_commit(self.store.participants, self.store.gifts)

    async def close(self) -> None:
        """Cancel background work; used on shutdown."""
        self._begin_round()
        tasks = [t for t in self._message_tasks if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)

    # -- helpers -------------------------------------------------------

    def _begin_round(self) -> int:
        self._round += 1
        if self._roulette_task is not None and not self._roulette_task.done():
            self._roulette_task.cancel()
        self._roulette_task = None
        return self._round

    def _clear_round(self) -> None:
        self.active_participant_id = None
        self.active_gift_id = None
        self.pending_message = ""
        self.highlighted_participant_id = None
        self.message_loading = False

    def _reject(self, action: str, reason: str) -> bool:
        logger.warning(f"Ignored {action}: {reason}")
        TRANSITIONS_REJECTED.labels(action=action).inc()
        return False

    def _active_participant(self) -> Optional[Participant]:
        if self.active_participant_id is None:
            return None
        participant = self.store.get_participant(self.active_participant_id)
        if participant is None or participant.has_drawn:
            return None
        return participant

    def _fallback_for_active(self) -> str:
        participant = self._active_participant()
        gift = self.store.get_gift(self.active_gift_id) if self.active_gift_id is not None else None
        if participant is None or gift is None:
            return ""
        return fallback_message(participant.name, gift.number)

    @property
    def is_complete(self) -> bool:
        return self.store.is_complete

    @property
    def round_token(self) -> int:
        return self._round

    def to_record(self) -> SessionRecord:
        """Copy of the durable part of the session."""
        return SessionRecord(
            participants=[replace(p) for p in self.store.participants],
            gifts=[replace(g) for g in self.store.gifts],
            stage=self.stage,
            active_participant_id=self.active_participant_id,
            active_gift_id=self.active_gift_id,
            pending_message=self.pending_message,
        )

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready view for the projector page."""
        participants = self.store.participants
        gift = self.store.get_gift(self.active_gift_id) if self.active_gift_id is not None else None
        participant = (
            self.store.get_participant(self.active_participant_id)
            if self.active_participant_id is not None
            else None
        )
        return {
            "stage": self.stage.value,
            "active_participant": _participant_view(participant) if participant else None,
            "highlighted_participant_id": self.highlighted_participant_id,
            "active_gift": _gift_view(gift) if gift else None,
            "pending_message": self.pending_message,
            "message_loading": self.message_loading,
            "progress": {"drawn": self.store.drawn_count, "total": len(participants)},
            "remaining_participants": [_participant_view(p) for p in self.store.remaining_participants()],
            "gifts": [_gift_view(g) for g in self.store.gifts],
            "complete": self.store.is_complete,
            "storage_warning": self.storage_warning,
        }


def _participant_view(participant: Participant) -> dict[str, Any]:
    return {
        "id": participant.id,
        "name": participant.name,
        "has_drawn": participant.has_drawn,
        "photo_url": participant.photo_url,
    }


def _gift_view(gift: Gift) -> dict[str, Any]:
    return {
        "id": gift.id,
        "number": gift.number,
        "description": gift.description,
        "revealed": gift.revealed,
        "owner_id": gift.owner_id,
        "photo_url": gift.photo_url,
    }
