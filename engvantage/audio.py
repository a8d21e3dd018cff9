"""
Pronunciation audio: PCM decoding and playback.

Speech arrives as little-endian 16-bit mono PCM at 24 kHz. It is decoded to
float32 samples in [-1.0, 1.0] and handed to pygame's mixer. Each call gets
its own Sound on a free mixer channel, so overlapping pronunciations simply
play over each other.
"""

import threading
from typing import Optional

import numpy as np
import pygame

from .logger import logger

SAMPLE_RATE = 24000
CHANNELS = 1
# 32 selects 32-bit float samples in pygame 2.
MIXER_SIZE = 32


class AudioDecodeError(ValueError):
    """The audio payload could not be turned into samples."""


def decode_pcm16(data: bytes) -> np.ndarray:
    """
    Decode little-endian signed 16-bit PCM into normalized float32 samples.

    A trailing odd byte (half a sample) is dropped.
    """
    if not data:
        raise AudioDecodeError("empty audio payload")
    usable = len(data) - (len(data) % 2)
    if usable == 0:
        raise AudioDecodeError("audio payload shorter than one sample")
    samples = np.frombuffer(data[:usable], dtype="<i2")
    return samples.astype(np.float32) / 32768.0


def _resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linear resampling, only used when the mixer was opened at another rate."""
    if source_rate == target_rate or samples.size == 0:
        return samples
    duration = samples.size / source_rate
    target_count = max(1, int(round(duration * target_rate)))
    source_positions = np.arange(samples.size) / source_rate
    target_positions = np.arange(target_count) / target_rate
    return np.interp(target_positions, source_positions, samples).astype(np.float32)


class PygamePlayer:
    """Plays float sample buffers through the default output device."""

    def __init__(self, sample_rate: int = SAMPLE_RATE):
        self.sample_rate = sample_rate
        self._lock = threading.Lock()

    def _ensure_mixer(self):
        with self._lock:
            mixer_format = pygame.mixer.get_init()
            if mixer_format is None:
                logger.audio(f"Initializing mixer at {self.sample_rate} Hz, mono, float32")
                pygame.mixer.init(frequency=self.sample_rate, size=MIXER_SIZE, channels=CHANNELS)
                mixer_format = pygame.mixer.get_init()
            return mixer_format

    def _to_mixer_bytes(self, samples: np.ndarray, mixer_format) -> bytes:
        frequency, size, channels = mixer_format
        samples = _resample(samples, self.sample_rate, frequency)
        if size == MIXER_SIZE:
            frames = samples.astype(np.float32)
        elif size == -16:
            frames = (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16)
        else:
            raise AudioDecodeError(f"unsupported mixer sample size {size}")
        if channels > 1:
            frames = np.repeat(frames[:, np.newaxis], channels, axis=1)
        return frames.tobytes()

    def play(self, samples: np.ndarray) -> None:
        """Start playback and return immediately."""
        mixer_format = self._ensure_mixer()
        sound = pygame.mixer.Sound(buffer=self._to_mixer_bytes(samples, mixer_format))
        sound.play()
        logger.audio(f"Playing {samples.size / self.sample_rate:.2f}s of audio")


_player: Optional[PygamePlayer] = None


def get_player() -> PygamePlayer:
    """Process-wide player, created on first use."""
    global _player
    if _player is None:
        _player = PygamePlayer()
    return _player
