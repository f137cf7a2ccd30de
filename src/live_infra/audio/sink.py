"""Audio output pipeline.

The sink renders raw PCM by piping it into a playback process (ffplay by
default). Each process instance is wrapped in a ``PlaybackHandle``:

- ``AudioSink.spawn()`` starts a new process and returns its handle.
- ``PlaybackHandle.write()`` never raises; it reports ``WriteResult.DROPPED``
  when the handle is no longer writable.
- ``PlaybackHandle.terminate()`` kills the process immediately (no drain) and
  is idempotent. A terminated handle is never reused.

Example:
    ```python
    sink = AudioSink(["ffplay", "-nodisp", "-f", "s16le", "-ar", "24000", "pipe:0"])
    handle = await sink.spawn()
    handle.write(pcm_bytes)
    await handle.aclose()
    ```
"""

from __future__ import annotations

import asyncio
import itertools
import shutil
from enum import Enum
from typing import Protocol

from live_infra.errors import AudioDeviceError
from live_infra.logging import get_logger

__all__ = [
    "AudioSink",
    "PlaybackHandle",
    "PlaybackHandleLike",
    "SinkLike",
    "WriteResult",
]

logger = get_logger("audio.sink")

_handle_ids = itertools.count(1)


class WriteResult(str, Enum):
    """Outcome of a write to a playback handle."""

    WRITTEN = "written"
    DROPPED = "dropped"


class PlaybackHandleLike(Protocol):
    @property
    def handle_id(self) -> int: ...

    @property
    def writable(self) -> bool: ...

    def write(self, data: bytes) -> WriteResult: ...

    def terminate(self) -> None: ...

    async def aclose(self) -> None: ...


class SinkLike(Protocol):
    async def spawn(self) -> PlaybackHandleLike: ...


class PlaybackHandle:
    """One playback process instance."""

    def __init__(self, process: asyncio.subprocess.Process, handle_id: int | None = None):
        self._process = process
        self._handle_id = handle_id if handle_id is not None else next(_handle_ids)
        self._terminated = False

    def __repr__(self) -> str:
        state = "terminated" if self._terminated else "live"
        return f"PlaybackHandle(id={self._handle_id}, pid={self._process.pid}, {state})"

    @property
    def handle_id(self) -> int:
        return self._handle_id

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def writable(self) -> bool:
        stdin = self._process.stdin
        return (
            not self._terminated
            and self._process.returncode is None
            and stdin is not None
            and not stdin.is_closing()
        )

    def write(self, data: bytes) -> WriteResult:
        """Queue PCM bytes for playback.

        Returns ``DROPPED`` instead of raising when the process is gone or the
        handle was terminated.
        """
        if not self.writable:
            logger.debug("Dropped write to stale playback handle", handle=self._handle_id)
            return WriteResult.DROPPED
        try:
            self._process.stdin.write(data)  # type: ignore[union-attr]
        except (BrokenPipeError, ConnectionResetError, RuntimeError) as e:
            logger.warning("Playback pipe closed", handle=self._handle_id, error=str(e))
            return WriteResult.DROPPED
        return WriteResult.WRITTEN

    def terminate(self) -> None:
        """Kill the playback process immediately. Safe to call repeatedly."""
        if self._terminated:
            return
        self._terminated = True
        stdin = self._process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()
        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass
        logger.debug("Playback handle terminated", handle=self._handle_id)

    async def aclose(self) -> None:
        """Terminate and reap the process."""
        self.terminate()
        await self._process.wait()


class AudioSink:
    """Factory for playback handles.

    Args:
        command: argv of a player that reads raw PCM from stdin.
    """

    def __init__(self, command: list[str]):
        if not command:
            raise ValueError("player command must not be empty")
        self._command = list(command)

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @staticmethod
    def is_available(command: list[str]) -> bool:
        return bool(command) and shutil.which(command[0]) is not None

    async def spawn(self) -> PlaybackHandle:
        """Start a new playback process.

        Raises:
            AudioDeviceError: If the player cannot be started.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise AudioDeviceError(
                f"Could not start audio player '{self._command[0]}': {e}",
                device=self._command[0],
                hint="Install ffmpeg (provides ffplay) or pass a different player command.",
            ) from e

        handle = PlaybackHandle(process)
        logger.debug("Playback handle spawned", handle=handle.handle_id, pid=process.pid)
        return handle
