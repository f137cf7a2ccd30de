"""Live session controller.

The controller owns one conversation: the transport connection, the current
playback handle and (in voice mode) the microphone. Every stimulus becomes a
``SessionEvent`` that goes through ``dispatch()``; ``run()`` feeds the events
from background pumps through a single queue, so all state changes happen one
event at a time on the event loop.

States::

    CONNECTING -> AWAITING_SETUP_ACK -> READY -> CLOSED
                  (turn sub-state: IDLE | AWAITING_MODEL_TURN)

Rules:
    - ``Setup`` is the first frame sent after the connection opens.
    - Nothing user-originated is sent, and the microphone is not started,
      before ``setupComplete`` arrives.
    - An interrupt kills the current playback handle before a new one is
      installed. Audio decoded afterwards only ever reaches the new handle.
    - A malformed frame is logged and dropped; the session continues.

Example:
    ```python
    controller = SessionController(config, sink=AudioSink(cmd))
    exit_code = await controller.run(build_url(config, api_key), LineInputSource())
    ```
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Coroutine
from enum import Enum
from pathlib import Path
from typing import IO, Any

from rich.console import Console
from rich.markup import escape

from live_infra.audio.sink import PlaybackHandleLike, SinkLike, WriteResult
from live_infra.audio.source import AudioSource
from live_infra.config import LiveConfig, SessionMode
from live_infra.errors import (
    AudioDeviceError,
    ProtocolError,
    TransportError,
    log_exception,
)
from live_infra.live.codec import (
    ClientMessage,
    ModelAudio,
    ModelText,
    RealtimeAudioChunk,
    ServerMessage,
    Setup,
    SetupComplete,
    TurnComplete,
    UsageMetadata,
    UserTextTurn,
    decode_server_frame,
    encode,
)
from live_infra.live.events import (
    AudioChunkCaptured,
    Closed,
    ExitRequested,
    FrameReceived,
    LineSubmitted,
    Opened,
    SessionEvent,
    TaskFailed,
    TransportFailure,
)
from live_infra.live.input import LineInputSource
from live_infra.live.transport import Connection, connect, redact_url
from live_infra.logging import get_logger

__all__ = ["ConnectionState", "SessionController", "TurnState"]

logger = get_logger("live.session")

PROMPT = "➤ You: "


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AWAITING_SETUP_ACK = "awaiting_setup_ack"
    READY = "ready"
    CLOSED = "closed"


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL_TURN = "awaiting_model_turn"


class SessionController:
    """Drives one live conversation.

    Args:
        config: Session configuration (mode, model, voice...).
        sink: Factory for playback handles.
        source_factory: Builds the microphone source in voice mode. Called
            once, after the setup acknowledgment.
        console: Where user-facing output goes.
        connection: An already-open connection. ``run()`` connects when
            this is omitted.
    """

    def __init__(
        self,
        config: LiveConfig,
        *,
        sink: SinkLike,
        source_factory: Callable[[], AudioSource] | None = None,
        console: Console | None = None,
        connection: Connection | None = None,
    ):
        self.config = config
        self.state = ConnectionState.CONNECTING
        self.turn_state = TurnState.IDLE
        self.setup_complete = False
        self.exit_code = 0

        self._sink = sink
        self._source_factory = source_factory
        self._console = console or Console()
        self._connection = connection

        self._handle: PlaybackHandleLike | None = None
        self._source: AudioSource | None = None
        self._inbox: asyncio.Queue[SessionEvent] = asyncio.Queue()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._dump: IO[bytes] | None = None
        self._last_malformed_warning: float | None = None
        self._shut_down = False

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def handle(self) -> PlaybackHandleLike | None:
        """The current playback handle, if any."""
        return self._handle

    @property
    def source(self) -> AudioSource | None:
        return self._source

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    @property
    def voice_mode(self) -> bool:
        return self.config.mode is SessionMode.VOICE

    # -------------------------------------------------------------------------
    # Run loop
    # -------------------------------------------------------------------------

    async def run(self, url: str, line_input: LineInputSource | None = None) -> int:
        """Connect, converse until exit or close, and return an exit code.

        Raises:
            ConnectError: If the connection cannot be established.
        """
        if self._connection is None:
            self._status(f"Connecting to {redact_url(url)} ...")
            self._connection = await connect(url, open_timeout=self.config.open_timeout)

        self._spawn(self._pump_frames(), "frames")
        try:
            await self.dispatch(Opened())
            if line_input is not None:
                self._spawn(self._pump_lines(line_input), "lines")
            while not self.closed:
                event = await self._inbox.get()
                await self.dispatch(event)
        finally:
            await self._shutdown()
        return self.exit_code

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        task = asyncio.create_task(coro, name=f"live-{name}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled() or task.exception() is None:
            return
        error = task.exception()
        log_exception(logger, f"Task {task.get_name()} failed", error, level="error")
        # A dead pump means no more events from that side; end the session.
        if not self.closed:
            self._inbox.put_nowait(TaskFailed(task.get_name(), error))

    async def _pump_frames(self) -> None:
        assert self._connection is not None
        try:
            async for frame in self._connection.frames():
                await self._inbox.put(FrameReceived(frame))
        except TransportError as e:
            await self._inbox.put(TransportFailure(e))
            return
        await self._inbox.put(
            Closed(
                code=getattr(self._connection, "close_code", None),
                reason=getattr(self._connection, "close_reason", "") or "",
            )
        )

    async def _pump_lines(self, line_input: LineInputSource) -> None:
        async for event in line_input.events():
            await self._inbox.put(event)

    async def _pump_capture(self, source: AudioSource) -> None:
        async for chunk in source.chunks():
            await self._inbox.put(AudioChunkCaptured(chunk))

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def dispatch(self, event: SessionEvent) -> None:
        """Apply one event to the session. Events after close are ignored."""
        if self.closed:
            logger.debug("Event after close ignored", event=type(event).__name__)
            return

        if isinstance(event, Opened):
            await self._on_opened()
        elif isinstance(event, FrameReceived):
            await self._on_frame(event.payload)
        elif isinstance(event, LineSubmitted):
            await self._on_line(event.text)
        elif isinstance(event, ExitRequested):
            self._status("👋 Bye.")
            await self.close()
        elif isinstance(event, AudioChunkCaptured):
            await self._on_audio_captured(event.data)
        elif isinstance(event, Closed):
            reason = escape(event.reason or "-")
            self._status(f"🔌 Connection closed: code={event.code}, reason={reason}")
            self.exit_code = 0 if event.code in (None, 1000) else 1
            await self._shutdown()
        elif isinstance(event, TransportFailure):
            log_exception(logger, "Transport failed", event.error, level="error")
            self._console.print(f"[red]❌ Connection error:[/red] {escape(str(event.error))}")
            self.exit_code = 1
            await self._shutdown()
        elif isinstance(event, TaskFailed):
            self._console.print(
                f"[red]❌ {escape(event.name)} stopped:[/red] {escape(str(event.error))}"
            )
            self.exit_code = 1
            await self.close(1011, "client error")
        else:
            raise TypeError(f"Unknown session event: {event!r}")

    async def _on_opened(self) -> None:
        self._status("✅ Connected")
        self.state = ConnectionState.AWAITING_SETUP_ACK
        await self._send(Setup.from_config(self.config))
        if self.closed:
            return
        logger.info("Setup sent", model=self.config.model_path)

        if self.config.audio_dump_path is not None:
            self._open_dump(self.config.audio_dump_path)
        self._handle = await self._try_spawn()

    async def _on_frame(self, payload: str | bytes) -> None:
        try:
            messages = decode_server_frame(payload)
        except ProtocolError as e:
            self._report_malformed(e)
            return
        for message in messages:
            await self._on_server_message(message)
            if self.closed:
                return

    async def _on_server_message(self, message: ServerMessage) -> None:
        if isinstance(message, SetupComplete):
            await self._on_setup_complete()
        elif isinstance(message, ModelText):
            self._console.print(f"🤖: {message.text}", markup=False, highlight=False)
        elif isinstance(message, ModelAudio):
            self._play(message)
        elif isinstance(message, TurnComplete):
            await self._on_turn_complete()
        elif isinstance(message, UsageMetadata):
            if message.total_token_count is not None:
                self._status(f"📊 Tokens used: {message.total_token_count}")

    async def _on_setup_complete(self) -> None:
        if self.setup_complete:
            logger.warning("Duplicate setupComplete ignored")
            return
        self.setup_complete = True
        self.state = ConnectionState.READY
        logger.info("Setup acknowledged")

        if self.voice_mode:
            await self._start_capture()
            if self.closed:
                return
            self._status(
                "🚀 Model ready. Speak now. Press Return to interrupt, type 'exit' to quit."
            )
        else:
            self._status("🚀 Model ready. Type a message ('exit' to quit).")
            self._prompt()

    async def _on_turn_complete(self) -> None:
        logger.debug("Model turn complete")
        self.turn_state = TurnState.IDLE
        if self._handle is None or not self._handle.writable:
            self._handle = await self._try_spawn()
        if not self.voice_mode:
            self._prompt()

    async def _on_line(self, text: str) -> None:
        if not self.setup_complete:
            self._status("[yellow]⏳ Model is not ready yet; input ignored.[/yellow]")
            return

        if self.voice_mode:
            await self.interrupt()
            if text:
                self._status("[dim]Typed text is not sent in voice mode.[/dim]")
            return

        if not text:
            self._prompt()
            return

        self._status("🤫 Thinking about the new question...")
        await self.interrupt(announce=False)
        await self._send(UserTextTurn(text=text))
        if not self.closed:
            self.turn_state = TurnState.AWAITING_MODEL_TURN

    async def _on_audio_captured(self, data: bytes) -> None:
        if not self.setup_complete or not self.voice_mode:
            logger.debug("Captured audio dropped before setup", size=len(data))
            return
        await self._send(RealtimeAudioChunk(data=data, mime_type=self.config.input_mime_type))

    # -------------------------------------------------------------------------
    # Audio
    # -------------------------------------------------------------------------

    async def interrupt(self, *, announce: bool = True) -> None:
        """Stop audible output now and install a fresh playback handle.

        The old handle is killed and reaped before the new one is created, so
        two handles never run at the same time.
        """
        old, self._handle = self._handle, None
        if old is not None:
            await old.aclose()
            logger.debug("Playback interrupted", handle=old.handle_id)
        if announce:
            self._status("🤫 Interrupted.")
        self._handle = await self._try_spawn()

    async def _try_spawn(self) -> PlaybackHandleLike | None:
        try:
            return await self._sink.spawn()
        except AudioDeviceError as e:
            log_exception(logger, "Playback unavailable", e, level="warning", include_traceback=False)
            self._status(f"[yellow]⚠ Audio playback unavailable:[/yellow] {escape(e.message)}")
            return None

    def _open_dump(self, path: Path) -> None:
        try:
            self._dump = open(path, "ab")
        except OSError as e:
            log_exception(logger, "Audio dump disabled", e, level="warning", include_traceback=False)
            self._status(f"[yellow]⚠ Cannot write audio dump:[/yellow] {escape(str(e))}")

    def _write_dump(self, data: bytes) -> None:
        # Synchronous: chunks are small and the file is local.
        assert self._dump is not None
        try:
            self._dump.write(data)
        except OSError as e:
            log_exception(logger, "Audio dump disabled", e, level="warning", include_traceback=False)
            self._status(f"[yellow]⚠ Audio dump stopped:[/yellow] {escape(str(e))}")
            dump, self._dump = self._dump, None
            try:
                dump.close()
            except OSError:
                logger.debug("Error closing audio dump after write failure")

    def _play(self, audio: ModelAudio) -> WriteResult:
        if self._dump is not None:
            self._write_dump(audio.data)
        if audio.sample_rate and audio.sample_rate != self.config.output_sample_rate:
            logger.debug(
                "Audio rate differs from playback rate",
                rate=audio.sample_rate,
                playback_rate=self.config.output_sample_rate,
            )
        if self._handle is None:
            return WriteResult.DROPPED
        return self._handle.write(audio.data)

    async def _start_capture(self) -> None:
        if self._source_factory is None:
            logger.warning("Voice mode without a microphone source")
            return
        try:
            source = self._source_factory()
            await source.start()
        except AudioDeviceError as e:
            log_exception(logger, "Microphone unavailable", e, level="error", include_traceback=False)
            self._console.print(f"[red]❌ Microphone unavailable:[/red] {escape(str(e))}")
            self.exit_code = 1
            await self.close(1011, "microphone unavailable")
            return
        self._source = source
        self._spawn(self._pump_capture(source), "capture")

    # -------------------------------------------------------------------------
    # Outbound / teardown
    # -------------------------------------------------------------------------

    async def _send(self, message: ClientMessage) -> None:
        assert self._connection is not None, "no connection"
        try:
            await self._connection.send(encode(message))
        except TransportError as e:
            await self.dispatch(TransportFailure(e))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection and release audio resources."""
        if self._connection is not None and not self.closed:
            try:
                await self._connection.close(code, reason)
            except TransportError as e:
                logger.debug("Error while closing connection", error=str(e))
        await self._shutdown()

    async def _shutdown(self) -> None:
        self.state = ConnectionState.CLOSED
        if self._shut_down:
            return
        self._shut_down = True

        handle, self._handle = self._handle, None
        if handle is not None:
            await handle.aclose()
        if self._source is not None:
            await self._source.stop()
        if self._dump is not None:
            self._dump.close()
            self._dump = None

        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Session closed", exit_code=self.exit_code)

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def _status(self, text: str) -> None:
        self._console.print(text, highlight=False)

    def _prompt(self) -> None:
        self._console.print(PROMPT, end="", markup=False, highlight=False)

    def _report_malformed(self, error: ProtocolError) -> None:
        logger.error("Malformed frame dropped", error=error.message, payload=error.payload)
        interval = self.config.malformed_warning_interval
        if interval <= 0:
            return
        now = time.monotonic()
        if self._last_malformed_warning is None or now - self._last_malformed_warning >= interval:
            self._last_malformed_warning = now
            self._status("[yellow]⚠ Dropped a malformed message from the service.[/yellow]")
