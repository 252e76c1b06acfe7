"""Wiring of the draw machine to its persistence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from config import Config
from core import get_logger
from core.exceptions import StorageExhaustedError
from services.draw_machine import DrawStateMachine
from services.message_provider import CongratulationService, build_message_service
from services.persistence import DebouncedSaver, PersistenceGateway
from services.roster import seed_session
from services.selector import RandomSelector

logger = get_logger(__name__)

STORAGE_WARNING = "Progress could not be saved ({details}). The draw continues in memory; export the roster as a backup."


@dataclass
class DrawRuntime:
    machine: DrawStateMachine
    saver: DebouncedSaver
    gateway: PersistenceGateway
    restored: bool

    async def shutdown(self) -> None:
        """Stop background work and make sure the last state is on disk."""
        await self.machine.close()
        await self.saver.flush()


async def create_runtime(
    config: Config,
    gateway: PersistenceGateway,
    selector: Optional[RandomSelector] = None,
    messages: Optional[CongratulationService] = None,
) -> DrawRuntime:
    """Resume the stored session (or seed one) and attach the saver."""
    record, restored = await gateway.load_or_seed(
        lambda: seed_session(config.roster_file, config.default_roster_size)
    )
    machine = DrawStateMachine.from_record(
        record,
        selector or RandomSelector.seeded(config.draw_seed),
        messages or build_message_service(config),
        config.draw_settings(),
    )

    def on_storage_result(error: Optional[StorageExhaustedError]) -> None:
        if error is None:
            machine.storage_warning = None
        else:
            details = ", ".join(f"{f.backend}: {f.reason}" for f in error.failures) or "no storage configured"
            machine.storage_warning = STORAGE_WARNING.format(details=details)

    saver = DebouncedSaver(
        gateway,
        machine.to_record,
        delay=config.save_debounce_ms / 1000,
        on_result=on_storage_result,
    )
    machine.add_listener(saver.schedule)
    if not restored:
        await saver.save_now()
    logger.info(
        f"Draw ready: {machine.store.drawn_count}/{len(machine.store.participants)} matched, "
        f"stage '{machine.stage.value}'"
    )
    return DrawRuntime(machine=machine, saver=saver, gateway=gateway, restored=restored)
