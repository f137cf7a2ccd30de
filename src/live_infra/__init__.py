import os

from dotenv import find_dotenv, load_dotenv

if not os.environ.get("LIVE_INFRA_ENV_LOADED"):
    load_dotenv(find_dotenv(usecwd=True))
    os.environ["LIVE_INFRA_ENV_LOADED"] = "1"

from live_infra.audio import AudioSink, MicrophoneSource, PlaybackHandle, WriteResult
from live_infra.config import LiveConfig, SessionMode, VoiceSettings

# Cross-cutting concerns
from live_infra.errors import (
    AudioDeviceError,
    ConfigurationError,
    ConnectError,
    LiveInfraError,
    ProtocolError,
    SearchError,
    TransportError,
)
from live_infra.live import (
    ConnectionState,
    LineInputSource,
    SessionController,
    TurnState,
    build_url,
    connect,
)
from live_infra.logging import configure_logging, get_logger
from live_infra.tools import KeyStore, TavilySearchTool

__version__ = "0.3.0"

__all__ = [
    # Session
    "SessionController",
    "ConnectionState",
    "TurnState",
    "LineInputSource",
    "build_url",
    "connect",
    # Config
    "LiveConfig",
    "SessionMode",
    "VoiceSettings",
    # Audio
    "AudioSink",
    "PlaybackHandle",
    "WriteResult",
    "MicrophoneSource",
    # Tools
    "TavilySearchTool",
    "KeyStore",
    # Errors
    "LiveInfraError",
    "ConfigurationError",
    "ConnectError",
    "TransportError",
    "ProtocolError",
    "AudioDeviceError",
    "SearchError",
    # Logging
    "configure_logging",
    "get_logger",
]
