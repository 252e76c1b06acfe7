"""Tests for wiring the draw machine to persistence."""

import asyncio
import random

import pytest

from core import DrawStage
from database.models import SessionRecord
from services.draw_runtime import create_runtime
from services.message_provider import CongratulationService
from services.persistence import PersistenceGateway
from services.selector import RandomSelector
from services.session_schema import dump_session
from tests.helpers import MemoryBackend, StaticMessageProvider, make_roster


async def _runtime(config, *backends):
    return await create_runtime(
        config,
        PersistenceGateway(list(backends)),
        selector=RandomSelector(random.Random(5)),
        messages=CongratulationService(StaticMessageProvider()),
    )


@pytest.mark.asyncio
async def test_fresh_runtime_seeds_and_saves(make_config):
    backend = MemoryBackend()

    runtime = await _runtime(make_config(default_roster_size=4), backend)

    assert runtime.restored is False
    assert len(runtime.machine.store.participants) == 4
    assert backend.writes == 1
    assert runtime.saver.last_backend == "memory"


@pytest.mark.asyncio
async def test_runtime_resumes_stored_session(make_config):
    participants, gifts = make_roster(2)
    stored = dump_session(SessionRecord(
        participants, gifts, stage=DrawStage.AWAITING_GIFT_CHOICE, active_participant_id=2,
    ))
    backend = MemoryBackend(document=stored)

    runtime = await _runtime(make_config(), backend)

    assert runtime.restored is True
    assert runtime.machine.stage is DrawStage.AWAITING_GIFT_CHOICE
    assert runtime.machine.active_participant_id == 2
    assert backend.writes == 0


@pytest.mark.asyncio
async def test_transitions_are_saved_after_quiet_period(make_config):
    backend = MemoryBackend()
    runtime = await _runtime(make_config(save_debounce_ms=20), backend)
    machine = runtime.machine

    await machine.start_draw()
    await machine.wait_for_selection()
    await machine.proceed_to_gift()
    await asyncio.sleep(0.1)

    assert backend.document["stage"] == DrawStage.AWAITING_GIFT_CHOICE.value
    assert backend.document["active_participant_id"] == machine.active_participant_id


@pytest.mark.asyncio
async def test_draw_continues_when_storage_is_exhausted(make_config):
    """Every tier failing shows a warning but leaves the session usable."""
    runtime = await _runtime(
        make_config(),
        MemoryBackend("primary", fail_writes=True),
        MemoryBackend("secondary", fail_writes=True),
    )
    machine = runtime.machine
    assert "primary: quota exceeded" in machine.storage_warning

    await machine.start_draw()
    await machine.wait_for_selection()
    await machine.proceed_to_gift()
    assert await machine.auto_select_gift()
    await machine.wait_for_message()
    assert await machine.confirm_match()
    await runtime.shutdown()

    assert machine.store.drawn_count == 1
    assert machine.stage is DrawStage.IDLE
    assert machine.storage_warning is not None


@pytest.mark.asyncio
async def test_warning_clears_once_storage_recovers(make_config):
    backend = MemoryBackend(fail_writes=True)
    runtime = await _runtime(make_config(), backend)
    assert runtime.machine.storage_warning is not None

    backend.fail_writes = False
    await runtime.saver.save_now()

    assert runtime.machine.storage_warning is None


@pytest.mark.asyncio
async def test_shutdown_flushes_pending_save(make_config):
    backend = MemoryBackend()
    runtime = await _runtime(make_config(save_debounce_ms=10_000), backend)

    await runtime.machine.start_draw()
    await runtime.machine.wait_for_selection()
    await runtime.shutdown()

    assert backend.writes == 2
    assert backend.document["stage"] == DrawStage.PARTICIPANT_ANNOUNCED.value
