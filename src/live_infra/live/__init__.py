"""Live bidirectional session: codec, transport, input and controller.

Example:
    ```python
    import asyncio

    from live_infra.audio import AudioSink
    from live_infra.config import LiveConfig
    from live_infra.live import LineInputSource, SessionController, build_url

    config = LiveConfig()
    controller = SessionController(config, sink=AudioSink(config.resolved_player_command()))
    asyncio.run(controller.run(build_url(config, "AIza..."), LineInputSource()))
    ```
"""

from live_infra.live.codec import (
    ModelAudio,
    ModelText,
    RealtimeAudioChunk,
    Setup,
    SetupComplete,
    TurnComplete,
    UsageMetadata,
    UserTextTurn,
    decode_client_frame,
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
from live_infra.live.session import ConnectionState, SessionController, TurnState
from live_infra.live.transport import Connection, WebSocketConnection, build_url, connect

__all__ = [
    # Controller
    "SessionController",
    "ConnectionState",
    "TurnState",
    # Transport
    "Connection",
    "WebSocketConnection",
    "build_url",
    "connect",
    # Input
    "LineInputSource",
    # Events
    "SessionEvent",
    "Opened",
    "FrameReceived",
    "LineSubmitted",
    "ExitRequested",
    "AudioChunkCaptured",
    "Closed",
    "TransportFailure",
    "TaskFailed",
    # Codec
    "Setup",
    "UserTextTurn",
    "RealtimeAudioChunk",
    "SetupComplete",
    "ModelText",
    "ModelAudio",
    "TurnComplete",
    "UsageMetadata",
    "encode",
    "decode_server_frame",
    "decode_client_frame",
]
