"""PCM16 helpers.

All audio handled by live-infra is raw little-endian signed 16-bit mono PCM.
"""

from __future__ import annotations

import math
import re
import struct
from collections.abc import Iterator

__all__ = [
    "BYTES_PER_SAMPLE",
    "calculate_duration_ms",
    "chunk_audio",
    "parse_sample_rate",
    "sine_pcm16",
]

BYTES_PER_SAMPLE = 2

_RATE_PARAM = re.compile(r"rate\s*=\s*(\d+)", re.IGNORECASE)


def parse_sample_rate(mime_type: str | None, default: int | None = None) -> int | None:
    """Extract the ``rate=`` parameter from a MIME type.

    >>> parse_sample_rate("audio/pcm;rate=24000")
    24000
    """
    if not mime_type:
        return default
    match = _RATE_PARAM.search(mime_type)
    return int(match.group(1)) if match else default


def calculate_duration_ms(audio: bytes, sample_rate: int = 24000) -> float:
    """Duration of PCM16 mono audio in milliseconds."""
    if not audio:
        return 0.0
    return (len(audio) // BYTES_PER_SAMPLE) / sample_rate * 1000.0


def chunk_audio(audio: bytes, chunk_size: int = 4800) -> Iterator[bytes]:
    """Split audio into chunks of at most ``chunk_size`` bytes."""
    for i in range(0, len(audio), chunk_size):
        yield audio[i : i + chunk_size]


def sine_pcm16(
    frequency: float = 440.0,
    duration_ms: int = 2000,
    sample_rate: int = 24000,
    amplitude: int = 10000,
) -> bytes:
    """Generate a sine tone as PCM16 mono.

    Args:
        frequency: Tone frequency in Hz.
        duration_ms: Length of the tone.
        sample_rate: Samples per second.
        amplitude: Peak sample value (0..32767).
    """
    amplitude = max(0, min(amplitude, 32767))
    n = sample_rate * duration_ms // 1000
    samples = (
        int(math.sin(2 * math.pi * frequency * (i / sample_rate)) * amplitude) for i in range(n)
    )
    return struct.pack(f"<{n}h", *samples)
