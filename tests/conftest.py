"""Pytest configuration and fixtures."""

import dataclasses
import random

import pytest

from config import load_config
from services.draw_machine import DrawStateMachine
from services.entity_store import EntityStore
from services.message_provider import CongratulationService
from services.selector import RandomSelector
from tests.helpers import FAST_SETTINGS, StaticMessageProvider, make_roster


@pytest.fixture
def make_machine():
    """Factory for a draw machine over a fresh roster."""

    def _make(size=3, gifts=None, settings=FAST_SETTINGS, provider=None, seed=7):
        participants, gift_list = make_roster(size, gifts)
        return DrawStateMachine(
            EntityStore(participants, gift_list),
            RandomSelector(random.Random(seed)),
            CongratulationService(provider or StaticMessageProvider()),
            settings,
        )

    return _make


@pytest.fixture
def make_config(tmp_path, monkeypatch):
    """Configuration pointing every file at ``tmp_path``."""
    for name in ("MESSAGE_PROVIDER", "MESSAGE_POLICY", "MESSAGE_ENDPOINT", "ADMIN_TOKEN", "ROSTER_FILE", "DRAW_SEED"):
        monkeypatch.delenv(name, raising=False)

    def _make(**overrides):
        config = load_config()
        defaults = dict(
            database_path=str(tmp_path / "draw.sqlite"),
            fallback_store_path=str(tmp_path / "draw.json"),
            log_folder=str(tmp_path / "logs"),
            default_roster_size=3,
            roulette_duration_ms=20,
            roulette_interval_ms=10,
            save_debounce_ms=10,
            message_delay_ms=0,
        )
        defaults.update(overrides)
        return dataclasses.replace(config, **defaults)

    return _make
