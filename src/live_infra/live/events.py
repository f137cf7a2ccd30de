"""Local events consumed by the session controller.

Every external stimulus (transport, keyboard, microphone) is turned into one of
these values and fed through ``SessionController.dispatch()``. Tests drive the
controller by dispatching synthetic events, no real transport needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

__all__ = [
    "AudioChunkCaptured",
    "Closed",
    "ExitRequested",
    "FrameReceived",
    "LineSubmitted",
    "Opened",
    "SessionEvent",
    "TaskFailed",
    "TransportFailure",
]


@dataclass(frozen=True)
class Opened:
    """The transport connection is open."""


@dataclass(frozen=True)
class FrameReceived:
    """One inbound frame, exactly as delivered by the transport."""

    payload: str | bytes


@dataclass(frozen=True)
class LineSubmitted:
    """The user pressed Return. ``text`` is already trimmed and may be empty."""

    text: str


@dataclass(frozen=True)
class ExitRequested:
    """The user typed the exit sentinel or closed stdin."""


@dataclass(frozen=True)
class AudioChunkCaptured:
    """Raw PCM16 captured from the microphone."""

    data: bytes


@dataclass(frozen=True)
class Closed:
    """The transport closed."""

    code: int | None = None
    reason: str = ""


@dataclass(frozen=True)
class TransportFailure:
    """The transport failed with an error."""

    error: BaseException


@dataclass(frozen=True)
class TaskFailed:
    """A background pump task died with an error."""

    name: str
    error: BaseException


SessionEvent = Union[
    Opened,
    FrameReceived,
    LineSubmitted,
    ExitRequested,
    AudioChunkCaptured,
    Closed,
    TransportFailure,
    TaskFailed,
]
