"""
Transports between the content gateway and the generative-AI provider.

Two interchangeable strategies, exactly one active per process:

- OpenAITransport talks to the provider directly through the openai SDK with
  a locally held key.
- RelayTransport sends every request as one POST to a relay backend that
  holds the key server-side and forwards the provider request unmodified.

Both expose generate_json(prompt, schema, name) -> str and
synthesize(text) -> bytes (raw 24 kHz 16-bit PCM).
"""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import openai
import requests
from openai import OpenAI

from .config import GATEWAY_RELAY, Settings
from .errors import ConfigurationError, ContentGenerationError
from .logger import logger, Timer
from .schemas import to_gemini_schema, to_strict_json_schema

# ---------------------------------------------------------------------------
# Relay envelope normalization
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextOk:
    text: str


@dataclass(frozen=True)
class AudioOk:
    data: bytes


@dataclass(frozen=True)
class MissingField:
    path: str


@dataclass(frozen=True)
class ParseError:
    detail: str


RelayText = Union[TextOk, MissingField, ParseError]
RelayAudio = Union[AudioOk, MissingField, ParseError]

_CANDIDATE_PART_PATH = ("candidates", 0, "content", "parts", 0)


def _probe(payload: Any, path) -> Any:
    """Follow a key/index path; raise LookupError naming the first missing step."""
    node = payload
    walked = []
    for step in path:
        walked.append(str(step))
        if isinstance(step, int):
            if not isinstance(node, list) or len(node) <= step:
                raise LookupError(".".join(walked))
        elif not isinstance(node, dict) or step not in node:
            raise LookupError(".".join(walked))
        node = node[step]
    return node


def _decode_envelope(raw: str) -> Union[Dict[str, Any], ParseError]:
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        return ParseError(f"relay body is not JSON: {e}")
    if not isinstance(payload, dict):
        return ParseError(f"relay body is a {type(payload).__name__}, expected an object")
    return payload


def normalize_relay_text(raw: str) -> RelayText:
    """
    Pull generated text out of a relay response body.

    The relay answers either {"text": ...} or the provider's own envelope
    with the text at candidates[0].content.parts[0].text.
    """
    payload = _decode_envelope(raw)
    if isinstance(payload, ParseError):
        return payload

    text = payload.get("text")
    if isinstance(text, str):
        return TextOk(text)

    try:
        part = _probe(payload, _CANDIDATE_PART_PATH)
        text = _probe(part, ("text",))
    except LookupError as e:
        return MissingField(f"text | {e}")
    if not isinstance(text, str):
        return ParseError("candidates[0].content.parts[0].text is not a string")
    return TextOk(text)


def normalize_relay_audio(raw: str) -> RelayAudio:
    """Pull base64 PCM from candidates[0].content.parts[0].inlineData.data."""
    payload = _decode_envelope(raw)
    if isinstance(payload, ParseError):
        return payload

    try:
        encoded = _probe(payload, _CANDIDATE_PART_PATH + ("inlineData", "data"))
    except LookupError as e:
        return MissingField(str(e))
    if not isinstance(encoded, str):
        return ParseError("inlineData.data is not a string")
    try:
        return AudioOk(base64.b64decode(encoded, validate=True))
    except (binascii.Error, ValueError) as e:
        return ParseError(f"inlineData.data is not valid base64: {e}")


# ---------------------------------------------------------------------------
# Direct transport (openai SDK)
# ---------------------------------------------------------------------------


class OpenAITransport:
    """Calls an OpenAI-compatible API directly."""

    name = "direct"

    def __init__(self, client: OpenAI, chat_model: str, tts_model: str, voice: str):
        self.client = client
        self.chat_model = chat_model
        self.tts_model = tts_model
        self.voice = voice

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAITransport":
        if not settings.api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set; add it to .env or switch to relay mode")
        logger.env("Initializing OpenAI client...")
        client = OpenAI(api_key=settings.api_key, base_url=settings.base_url, timeout=settings.timeout)
        logger.env_success("OpenAI client initialized successfully")
        return cls(client, settings.chat_model, settings.tts_model, settings.tts_voice)

    def generate_json(self, prompt: str, schema: Dict[str, Any], name: str) -> str:
        logger.api_call("chat.completions.create", model=self.chat_model)
        try:
            with Timer() as timer:
                completion = self.client.chat.completions.create(
                    model=self.chat_model,
                    messages=[
                        {
                            "role": "system",
                            "content": (
                                "You are an English vocabulary tutor. "
                                "Answer ONLY with JSON matching the requested schema."
                            ),
                        },
                        {"role": "user", "content": prompt},
                    ],
                    response_format={
                        "type": "json_schema",
                        "json_schema": {
                            "name": name,
                            "schema": to_strict_json_schema(schema),
                            "strict": True,
                        },
                    },
                    temperature=0.7,
                )
        except openai.OpenAIError as e:
            raise ContentGenerationError(f"{name} request failed: {e}") from e
        logger.api_response("chat.completions.create", duration_ms=timer.duration_ms)

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    def synthesize(self, text: str) -> bytes:
        logger.api_call("audio.speech.create", model=self.tts_model)
        try:
            with Timer() as timer:
                response = self.client.audio.speech.create(
                    model=self.tts_model,
                    voice=self.voice,
                    input=text,
                    response_format="pcm",
                )
        except openai.OpenAIError as e:
            raise ContentGenerationError(f"speech request failed: {e}") from e
        logger.api_response("audio.speech.create", duration_ms=timer.duration_ms)
        return response.read()


# ---------------------------------------------------------------------------
# Relay transport (requests)
# ---------------------------------------------------------------------------


class RelayTransport:
    """Forwards provider requests through a relay that holds the credentials."""

    name = "relay"

    def __init__(
        self,
        url: str,
        chat_model: str,
        tts_model: str,
        voice: str,
        timeout: float,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.chat_model = chat_model
        self.tts_model = tts_model
        self.voice = voice
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RelayTransport":
        return cls(
            settings.relay_url,
            settings.relay_chat_model,
            settings.relay_tts_model,
            settings.relay_voice,
            settings.timeout,
        )

    def _post(self, body: Dict[str, Any]) -> str:
        endpoint = f"relay:{body.get('model')}"
        logger.api_call(self.url, model=body.get("model"))
        try:
            with Timer() as timer:
                response = self.session.post(self.url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise ContentGenerationError(f"relay request failed: {e}") from e
        logger.api_response(endpoint, duration_ms=timer.duration_ms)

        if not response.ok:
            raise ContentGenerationError(
                f"relay answered HTTP {response.status_code}: {response.text[:200]}"
            )
        return response.text

    def generate_json(self, prompt: str, schema: Dict[str, Any], name: str) -> str:
        body = {
            "model": self.chat_model,
            "contents": prompt,
            "config": {
                "responseMimeType": "application/json",
                "responseSchema": to_gemini_schema(schema),
            },
        }
        result = normalize_relay_text(self._post(body))
        if isinstance(result, TextOk):
            return result.text
        if isinstance(result, MissingField):
            logger.api_error(f"{name}: relay response has no text ({result.path})")
        else:
            logger.api_error(f"{name}: {result.detail}")
        return ""

    def synthesize(self, text: str) -> bytes:
        body = {
            "model": self.tts_model,
            "contents": [{"parts": [{"text": text}]}],
            "config": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.voice}},
                },
            },
        }
        result = normalize_relay_audio(self._post(body))
        if isinstance(result, AudioOk):
            return result.data
        if isinstance(result, MissingField):
            raise ContentGenerationError(f"relay response has no audio ({result.path})")
        raise ContentGenerationError(result.detail)


def create_transport(settings: Settings):
    """Build the transport selected by ENGVANTAGE_GATEWAY."""
    if settings.gateway == GATEWAY_RELAY:
        return RelayTransport.from_settings(settings)
    return OpenAITransport.from_settings(settings)
