"""Tests for environment configuration."""

import pytest

from config import DrawSettings, load_config
from core import MessagePolicy
from core.exceptions import ConfigurationError

ENV_NAMES = (
    "MESSAGE_PROVIDER", "MESSAGE_ENDPOINT", "MESSAGE_POLICY", "ROULETTE_INTERVAL_MS",
    "ROULETTE_DURATION_MS", "DRAW_SEED", "WEB_PORT", "SKIP_ANNOUNCEMENT", "ROSTER_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = load_config()

    assert config.message_provider == "template"
    assert config.message_policy is MessagePolicy.FIRE_AND_FORGET
    assert config.roulette_duration_ms == 2500
    assert config.roulette_interval_ms == 80
    assert config.save_debounce_ms == 300
    assert config.draw_seed is None
    assert config.roster_file is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("MESSAGE_POLICY", "Blocking")
    monkeypatch.setenv("DRAW_SEED", "42")
    monkeypatch.setenv("WEB_PORT", "not-a-port")
    monkeypatch.setenv("SKIP_ANNOUNCEMENT", "yes")

    config = load_config()

    assert config.message_policy is MessagePolicy.BLOCKING
    assert config.draw_seed == 42
    assert config.web_port == 5000
    assert config.skip_announcement is True


@pytest.mark.parametrize("name, value", [
    ("MESSAGE_PROVIDER", "oracle"),
    ("MESSAGE_POLICY", "sometimes"),
    ("ROULETTE_INTERVAL_MS", "0"),
    ("DRAW_SEED", "lucky"),
])
def test_invalid_settings_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError):
        load_config()


def test_remote_provider_needs_endpoint(monkeypatch):
    monkeypatch.setenv("MESSAGE_PROVIDER", "remote")
    with pytest.raises(ConfigurationError):
        load_config()

    monkeypatch.setenv("MESSAGE_ENDPOINT", "http://localhost:9000/congratulate")
    assert load_config().message_endpoint.endswith("/congratulate")


def test_draw_settings_conversion(monkeypatch):
    monkeypatch.setenv("ROULETTE_DURATION_MS", "1000")
    monkeypatch.setenv("ROULETTE_INTERVAL_MS", "100")

    settings = load_config().draw_settings()

    assert settings.roulette_duration == 1.0
    assert settings.roulette_interval == 0.1
    assert settings.roulette_steps == 10


def test_roulette_steps_edge_cases():
    assert DrawSettings(roulette_duration=0.01, roulette_interval=0.08).roulette_steps == 1
    assert DrawSettings(roulette_duration=1.0, roulette_interval=0).roulette_steps == 0
