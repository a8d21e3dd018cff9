"""
Runtime configuration for EngVantage.

Values come from the process environment after a .env file at the project
root (if any) has been loaded:

    ENGVANTAGE_GATEWAY=direct          # or "relay"
    OPENAI_API_KEY=sk-...              # direct mode only
    ENGVANTAGE_RELAY_URL=https://my-relay.example/api/generate

python-dotenv keeps secrets out of git.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .logger import logger

GATEWAY_DIRECT = "direct"
GATEWAY_RELAY = "relay"

DEFAULT_CHAT_MODEL = "gpt-4o-mini"
DEFAULT_TTS_MODEL = "tts-1"
DEFAULT_TTS_VOICE = "nova"

DEFAULT_RELAY_URL = "http://localhost:3001/api/generate"
DEFAULT_RELAY_CHAT_MODEL = "gemini-3-flash-preview"
DEFAULT_RELAY_TTS_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_RELAY_VOICE = "Kore"

DEFAULT_TIMEOUT_SECONDS = 45.0
DEFAULT_STATS_PATH = Path.home() / ".engvantage" / "storage.json"


@dataclass(frozen=True)
class Settings:
    gateway: str = GATEWAY_DIRECT
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    chat_model: str = DEFAULT_CHAT_MODEL
    tts_model: str = DEFAULT_TTS_MODEL
    tts_voice: str = DEFAULT_TTS_VOICE
    relay_url: str = DEFAULT_RELAY_URL
    relay_chat_model: str = DEFAULT_RELAY_CHAT_MODEL
    relay_tts_model: str = DEFAULT_RELAY_TTS_MODEL
    relay_voice: str = DEFAULT_RELAY_VOICE
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    stats_path: Path = DEFAULT_STATS_PATH
    firebase_credentials_path: Optional[str] = None
    debug: bool = True

    @property
    def masked_api_key(self) -> str:
        """First 8 and last 4 characters of the key, for log lines."""
        if not self.api_key:
            return "(not set)"
        if len(self.api_key) <= 12:
            return "***"
        return f"{self.api_key[:8]}...{self.api_key[-4:]}"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off", "")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a number, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, using {default}")
        return default
    return value


def load_settings(dotenv: bool = True) -> Settings:
    """Build Settings from .env and the environment."""
    if dotenv:
        logger.env("Loading environment variables from .env file...")
        if load_dotenv():
            logger.env_success("dotenv file loaded successfully")
        else:
            logger.warning("No .env file found or file is empty")

    gateway = os.getenv("ENGVANTAGE_GATEWAY", GATEWAY_DIRECT).strip().lower()
    if gateway not in (GATEWAY_DIRECT, GATEWAY_RELAY):
        logger.warning(f"Unknown ENGVANTAGE_GATEWAY={gateway!r}, falling back to '{GATEWAY_DIRECT}'")
        gateway = GATEWAY_DIRECT

    stats_path = os.getenv("ENGVANTAGE_STATS_PATH")

    settings = Settings(
        gateway=gateway,
        api_key=os.getenv("OPENAI_API_KEY") or None,
        base_url=os.getenv("OPENAI_BASE_URL") or None,
        chat_model=os.getenv("ENGVANTAGE_CHAT_MODEL", DEFAULT_CHAT_MODEL),
        tts_model=os.getenv("ENGVANTAGE_TTS_MODEL", DEFAULT_TTS_MODEL),
        tts_voice=os.getenv("ENGVANTAGE_TTS_VOICE", DEFAULT_TTS_VOICE),
        relay_url=os.getenv("ENGVANTAGE_RELAY_URL", DEFAULT_RELAY_URL),
        relay_chat_model=os.getenv("ENGVANTAGE_RELAY_CHAT_MODEL", DEFAULT_RELAY_CHAT_MODEL),
        relay_tts_model=os.getenv("ENGVANTAGE_RELAY_TTS_MODEL", DEFAULT_RELAY_TTS_MODEL),
        relay_voice=os.getenv("ENGVANTAGE_RELAY_VOICE", DEFAULT_RELAY_VOICE),
        timeout=_env_float("ENGVANTAGE_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        stats_path=Path(stats_path).expanduser() if stats_path else DEFAULT_STATS_PATH,
        firebase_credentials_path=os.getenv("FIREBASE_CREDENTIALS_PATH") or None,
        debug=_env_bool("ENGVANTAGE_DEBUG", True),
    )
    logger.enabled = settings.debug

    logger.env(f"Gateway mode: {settings.gateway}")
    if settings.gateway == GATEWAY_DIRECT:
        if settings.api_key:
            logger.env_success(f"OPENAI_API_KEY found: {settings.masked_api_key}")
        else:
            logger.env_error("OPENAI_API_KEY not found in environment!")
        logger.env(f"Chat model: {settings.chat_model}, TTS model: {settings.tts_model}")
    else:
        logger.env(f"Relay endpoint: {settings.relay_url}")
        logger.env(f"Relay chat model: {settings.relay_chat_model}, TTS model: {settings.relay_tts_model}")
    logger.env(f"Request timeout: {settings.timeout:.0f}s")
    return settings
