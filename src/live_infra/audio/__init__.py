"""Audio output (sink) and capture (source) pipelines."""

from live_infra.audio.sink import AudioSink, PlaybackHandle, WriteResult
from live_infra.audio.source import AudioSource, MicrophoneSource
from live_infra.audio.utils import (
    calculate_duration_ms,
    chunk_audio,
    parse_sample_rate,
    sine_pcm16,
)

__all__ = [
    "AudioSink",
    "AudioSource",
    "MicrophoneSource",
    "PlaybackHandle",
    "WriteResult",
    "calculate_duration_ms",
    "chunk_audio",
    "parse_sample_rate",
    "sine_pcm16",
]
