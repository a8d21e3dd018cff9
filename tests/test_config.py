from pathlib import Path

import pytest

from engvantage.config import (
    DEFAULT_CHAT_MODEL,
    DEFAULT_STATS_PATH,
    DEFAULT_TIMEOUT_SECONDS,
    GATEWAY_DIRECT,
    GATEWAY_RELAY,
    Settings,
    load_settings,
)

ENV_NAMES = (
    "ENGVANTAGE_GATEWAY",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "ENGVANTAGE_CHAT_MODEL",
    "ENGVANTAGE_RELAY_URL",
    "ENGVANTAGE_TIMEOUT",
    "ENGVANTAGE_STATS_PATH",
    "FIREBASE_CREDENTIALS_PATH",
    "ENGVANTAGE_DEBUG",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env) -> None:
    settings = load_settings(dotenv=False)
    assert settings.gateway == GATEWAY_DIRECT
    assert settings.api_key is None
    assert settings.chat_model == DEFAULT_CHAT_MODEL
    assert settings.timeout == DEFAULT_TIMEOUT_SECONDS
    assert settings.stats_path == DEFAULT_STATS_PATH
    assert settings.firebase_credentials_path is None


def test_relay_mode_from_environment(clean_env, tmp_path) -> None:
    clean_env.setenv("ENGVANTAGE_GATEWAY", " Relay ")
    clean_env.setenv("ENGVANTAGE_RELAY_URL", "https://relay.example/api/generate")
    clean_env.setenv("ENGVANTAGE_TIMEOUT", "10")
    clean_env.setenv("ENGVANTAGE_STATS_PATH", str(tmp_path / "stats.json"))

    settings = load_settings(dotenv=False)
    assert settings.gateway == GATEWAY_RELAY
    assert settings.relay_url == "https://relay.example/api/generate"
    assert settings.timeout == 10.0
    assert settings.stats_path == Path(tmp_path / "stats.json")


@pytest.mark.parametrize("name, value, expected", [
    ("ENGVANTAGE_GATEWAY", "carrier-pigeon", GATEWAY_DIRECT),
    ("ENGVANTAGE_TIMEOUT", "soon", DEFAULT_TIMEOUT_SECONDS),
    ("ENGVANTAGE_TIMEOUT", "-5", DEFAULT_TIMEOUT_SECONDS),
])
def test_bad_values_fall_back(clean_env, name, value, expected) -> None:
    clean_env.setenv(name, value)
    settings = load_settings(dotenv=False)
    field = "gateway" if name == "ENGVANTAGE_GATEWAY" else "timeout"
    assert getattr(settings, field) == expected


def test_debug_switch_controls_logger(clean_env) -> None:
    from engvantage.logger import logger

    clean_env.setenv("ENGVANTAGE_DEBUG", "0")
    assert load_settings(dotenv=False).debug is False
    assert logger.enabled is False


def test_masked_api_key() -> None:
    assert Settings(api_key="sk-abcdefghijklmnop").masked_api_key == "sk-abcde...mnop"
    assert Settings(api_key="short").masked_api_key == "***"
    assert Settings().masked_api_key == "(not set)"
