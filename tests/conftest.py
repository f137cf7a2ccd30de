"""
Root conftest.py for live-infra tests.

This file provides:
1. Common pytest markers for test categorization
2. Fakes for the transport, audio sink and microphone so the session
   controller can be driven with synthetic events
3. Small helpers for building server frames
"""

from __future__ import annotations

import asyncio
import base64
import io
import json
from collections.abc import AsyncIterator
from typing import Any

import pytest
from rich.console import Console

from live_infra.audio.sink import WriteResult
from live_infra.errors import AudioDeviceError

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        norm = str(item.fspath).replace("\\", "/")
        if "/live/" in norm:
            item.add_marker(pytest.mark.live)
        if "/audio/" in norm:
            item.add_marker(pytest.mark.audio)
        if "/cli/" in norm:
            item.add_marker(pytest.mark.cli)


def pytest_configure(config):
    """Register custom markers."""
    for name, desc in [
        ("live", "Session controller, codec and transport tests"),
        ("audio", "Audio sink/source tests"),
        ("cli", "Command line tests"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


# =============================================================================
# TRANSPORT FAKE
# =============================================================================


class FakeConnection:
    """In-memory connection recording sent frames.

    Inbound frames are pushed with ``feed()``; ``finish()`` ends the stream as
    a clean close.
    """

    def __init__(self):
        self.sent: list[str] = []
        self.closed_with: tuple[int, str] | None = None
        self.close_code: int | None = None
        self.close_reason: str = ""
        self._inbound: asyncio.Queue[Any] = asyncio.Queue()

    @property
    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(frame) for frame in self.sent]

    async def send(self, frame: str | bytes) -> None:
        self.sent.append(frame if isinstance(frame, str) else frame.decode())

    def feed(self, frame: str | bytes | dict) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self._inbound.put_nowait(frame)

    def fail(self, error: BaseException) -> None:
        self._inbound.put_nowait(error)

    def finish(self, code: int = 1000, reason: str = "") -> None:
        self.close_code = code
        self.close_reason = reason
        self._inbound.put_nowait(None)

    async def frames(self) -> AsyncIterator[str | bytes]:
        while True:
            item = await self._inbound.get()
            if item is None:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = (code, reason)


# =============================================================================
# AUDIO FAKES
# =============================================================================


class FakeHandle:
    """Playback handle recording writes instead of playing them."""

    def __init__(self, handle_id: int):
        self.handle_id = handle_id
        self.written: list[bytes] = []
        self.terminated = False
        self.dead = False

    @property
    def writable(self) -> bool:
        return not self.terminated and not self.dead

    def write(self, data: bytes) -> WriteResult:
        if not self.writable:
            return WriteResult.DROPPED
        self.written.append(data)
        return WriteResult.WRITTEN

    def terminate(self) -> None:
        self.terminated = True

    async def aclose(self) -> None:
        self.terminate()


class FakeSink:
    """Sink handing out ``FakeHandle`` objects; can be told to fail."""

    def __init__(self, fail: bool = False):
        self.handles: list[FakeHandle] = []
        self.fail = fail

    async def spawn(self) -> FakeHandle:
        if self.fail:
            raise AudioDeviceError("player missing", device="fake")
        handle = FakeHandle(len(self.handles) + 1)
        self.handles.append(handle)
        return handle

    def live_handles(self) -> list[FakeHandle]:
        return [h for h in self.handles if h.writable]


class FakeSource:
    """Microphone stand-in; chunks are pushed with ``push()``."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.started = False
        self.stopped = False
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue()

    async def start(self) -> None:
        if self.fail:
            raise AudioDeviceError("no microphone", device="fake")
        self.started = True

    def push(self, chunk: bytes) -> None:
        self._queue.put_nowait(chunk)

    async def chunks(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                return
            yield chunk

    async def stop(self) -> None:
        self.stopped = True
        self._queue.put_nowait(None)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def fake_sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def console_output() -> tuple[Console, io.StringIO]:
    """A rich Console writing to a buffer, and the buffer."""
    buffer = io.StringIO()
    return Console(file=buffer, force_terminal=False, width=200), buffer


# =============================================================================
# FRAME HELPERS
# =============================================================================


def audio_frame(data: bytes, mime_type: str = "audio/pcm;rate=24000") -> dict[str, Any]:
    return {
        "serverContent": {
            "modelTurn": {
                "parts": [
                    {
                        "inlineData": {
                            "mimeType": mime_type,
                            "data": base64.b64encode(data).decode("ascii"),
                        }
                    }
                ]
            }
        }
    }


def text_frame(*texts: str) -> dict[str, Any]:
    return {"serverContent": {"modelTurn": {"parts": [{"text": t} for t in texts]}}}


SETUP_COMPLETE = {"setupComplete": {}}
TURN_COMPLETE = {"serverContent": {"turnComplete": True}}
