"""Microphone capture for voice mode.

``MicrophoneSource`` opens a sounddevice input stream and exposes captured
PCM16 blocks as an async iterator. The source is single-use: once started it
produces chunks until ``stop()`` and cannot be restarted.

Requirements:
    Install with voice extras: `pip install live-infra[voice]`
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any, Protocol

from live_infra.errors import AudioDeviceError
from live_infra.logging import get_logger

__all__ = ["AudioSource", "MicrophoneSource"]

logger = get_logger("audio.source")


class AudioSource(Protocol):
    async def start(self) -> None: ...

    def chunks(self) -> AsyncIterator[bytes]: ...

    async def stop(self) -> None: ...


class MicrophoneSource:
    """Capture raw PCM16 mono audio from an input device.

    Args:
        sample_rate: Capture rate in Hz.
        block_duration: Seconds of audio per chunk.
        device: Input device index or name. None for system default.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        block_duration: float = 0.1,
        device: int | str | None = None,
    ):
        self._sample_rate = sample_rate
        self._blocksize = max(1, int(sample_rate * block_duration))
        self._device = device
        self._stream: Any = None
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._started = False
        self._stopped = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    async def start(self) -> None:
        """Open the input stream.

        Raises:
            AudioDeviceError: If sounddevice is missing or the device fails.
            RuntimeError: If the source was already started.
        """
        if self._started:
            raise RuntimeError("MicrophoneSource cannot be restarted")
        self._started = True

        try:
            import sounddevice as sd  # type: ignore[import-not-found]
        except (ImportError, OSError) as e:
            raise AudioDeviceError(
                "sounddevice is required for microphone capture",
                device="microphone",
                hint="Install with: pip install live-infra[voice]",
            ) from e

        loop = asyncio.get_running_loop()

        def callback(indata, frame_count, time_info, status):
            if status:
                logger.debug("Input stream status", status=str(status))
            loop.call_soon_threadsafe(self._queue.put_nowait, bytes(indata))

        try:
            self._stream = sd.RawInputStream(
                samplerate=self._sample_rate,
                channels=1,
                dtype="int16",
                blocksize=self._blocksize,
                device=self._device,
                callback=callback,
            )
            self._stream.start()
        except Exception as e:
            raise AudioDeviceError(
                f"Could not open microphone: {e}", device=str(self._device or "default")
            ) from e
        logger.info("Microphone capture started", sample_rate=self._sample_rate)

    async def chunks(self) -> AsyncIterator[bytes]:
        """Yield captured chunks as they arrive, until stopped."""
        while True:
            chunk = await self._queue.get()
            if chunk is None:
                return
            yield chunk

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception as e:
                logger.warning("Error closing microphone stream", error=str(e))
            self._stream = None
        self._queue.put_nowait(None)
        logger.info("Microphone capture stopped")
