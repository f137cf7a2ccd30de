"""Terminal line input.

Terminals and pipes are watched with ``loop.add_reader`` so waiting for the
next line never blocks the event loop, and the descriptor keeps its blocking
mode. Regular files and streams without a descriptor are read in a worker
thread. Each line is trimmed; ``exit`` (any case) and end-of-input become
``ExitRequested``.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import stat
import sys
from collections.abc import AsyncIterator
from typing import IO

from live_infra.live.events import ExitRequested, LineSubmitted
from live_infra.logging import get_logger

__all__ = ["EXIT_SENTINEL", "LineInputSource", "parse_line"]

logger = get_logger("live.input")

EXIT_SENTINEL = "exit"

_READ_SIZE = 65536


def parse_line(raw: str) -> LineSubmitted | ExitRequested:
    text = raw.strip()
    if text.lower() == EXIT_SENTINEL:
        return ExitRequested()
    return LineSubmitted(text=text)


def _selectable(stream: IO[str]) -> bool:
    """Whether the stream has a descriptor the event loop can watch."""
    try:
        fd = stream.fileno()
        mode = os.fstat(fd).st_mode
    except (AttributeError, OSError, ValueError):
        return False
    return not stat.S_ISREG(mode)


class LineInputSource:
    """Lazy sequence of line events from a text stream.

    Args:
        reader: Pre-built reader (tests feed one directly). When omitted,
            ``stream`` is read instead.
        stream: File to read; defaults to ``sys.stdin``.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader | None = None,
        stream: IO[str] | None = None,
    ):
        self._reader = reader
        self._stream = stream
        self._watched_fd: int | None = None

    async def events(self) -> AsyncIterator[LineSubmitted | ExitRequested]:
        async with contextlib.aclosing(self._lines()) as lines:
            async for raw in lines:
                event = parse_line(raw)
                yield event
                if isinstance(event, ExitRequested):
                    return
        yield ExitRequested()

    async def _lines(self) -> AsyncIterator[str]:
        if self._reader is not None:
            async for line in self._reader_lines(self._reader):
                yield line
            return

        stream = self._stream or sys.stdin
        reader = self._attach(stream) if _selectable(stream) else None
        if reader is None:
            while line := await asyncio.to_thread(stream.readline):
                yield line
            return

        try:
            async for line in self._reader_lines(reader):
                yield line
        finally:
            self._detach()

    @staticmethod
    async def _reader_lines(reader: asyncio.StreamReader) -> AsyncIterator[str]:
        while True:
            raw = await reader.readline()
            if not raw:
                return
            yield raw.decode("utf-8", errors="replace")

    def _attach(self, stream: IO[str]) -> asyncio.StreamReader | None:
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        fd = stream.fileno()

        def on_readable() -> None:
            try:
                data = os.read(fd, _READ_SIZE)
            except BlockingIOError:
                return
            except OSError as e:
                self._detach()
                reader.set_exception(e)
                return
            if data:
                reader.feed_data(data)
            else:
                self._detach()
                reader.feed_eof()

        try:
            loop.add_reader(fd, on_readable)
        except (NotImplementedError, OSError):
            logger.debug("Event loop cannot watch input; reading in a thread", fd=fd)
            return None
        self._watched_fd = fd
        return reader

    def _detach(self) -> None:
        if self._watched_fd is None:
            return
        fd, self._watched_fd = self._watched_fd, None
        with contextlib.suppress(RuntimeError):
            asyncio.get_running_loop().remove_reader(fd)
