"""Synthesizes the default alarm clip as a 16-bit mono WAV file."""

from __future__ import annotations

import logging
import math
import struct
import sys
from array import array
from functools import lru_cache
from pathlib import Path
from typing import List, Tuple

from .config import AppConfig

logger = logging.getLogger(__name__)

# Each step is (frequencies in Hz, duration in ms); no frequencies means silence.
Pattern = List[Tuple[Tuple[int, ...], int]]

DEFAULT_PATTERN: Pattern = [
    ((988, 1319), 180),
    ((), 60),
    ((988, 1319), 180),
    ((), 60),
    ((988, 1319), 180),
    ((), 240),
    ((784, 1175), 260),
    ((), 80),
    ((784, 1175), 260),
    ((1046,), 420),
]

PEAK = int(32767 * 0.85)


def _step_samples(freqs: Tuple[int, ...], count: int, sample_rate: int) -> array:
    if not freqs:
        return array("h", bytes(2 * count))
    steps = [2 * math.pi * freq / sample_rate for freq in freqs]
    out = array("h")
    for n in range(count):
        # half-cosine fade-in
        gain = PEAK * (1 - math.cos(math.pi * n / count)) / 2
        out.append(int(gain * sum(math.sin(step * n) for step in steps) / len(steps)))
    return out


@lru_cache(maxsize=None)
def _render(steps: Tuple[Tuple[Tuple[int, ...], int], ...], sample_rate: int) -> bytes:
    samples = array("h")
    for freqs, dur in steps:
        samples.extend(_step_samples(freqs, max(sample_rate * dur // 1000, 1), sample_rate))
    if sys.byteorder == "big":
        samples.byteswap()
    return samples.tobytes()


def render_pattern(pattern: Pattern, sample_rate: int = 44100) -> bytes:
    """Render ``pattern`` to raw little-endian signed 16-bit PCM."""
    return _render(tuple((tuple(freqs), dur) for freqs, dur in pattern), sample_rate)


def wrap_wave(pcm: bytes, sample_rate: int = 44100) -> bytes:
    """Prefix mono 16-bit ``pcm`` with a canonical 44-byte RIFF/WAVE header."""
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF", 36 + len(pcm), b"WAVE",
        b"fmt ", 16, 1, 1, sample_rate, sample_rate * 2, 2, 16,
        b"data", len(pcm),
    )
    return header + pcm


def ensure_default_clip(config: AppConfig, pattern: Pattern = DEFAULT_PATTERN) -> Path:
    """Write the default clip into the sound directory unless it is already there."""
    path = config.default_clip_path
    if path.exists():
        return path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(wrap_wave(render_pattern(pattern, config.sample_rate), config.sample_rate))
    logger.info("Wrote default alarm clip to %s", path)
    return path
