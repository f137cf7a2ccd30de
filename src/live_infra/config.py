"""Session configuration.

``LiveConfig`` holds everything a live session needs besides the credential:
endpoint, model, voice, mode and audio device settings.

Example:
    ```python
    from live_infra.config import LiveConfig, SessionMode

    config = LiveConfig(mode=SessionMode.VOICE, voice={"voice_name": "Kore"})
    config = LiveConfig.from_env(model="models-id-override")
    ```
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from live_infra.errors import ConfigurationError

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_MODEL",
    "DEFAULT_SERVICE_PATH",
    "LiveConfig",
    "SessionMode",
    "VoiceSettings",
    "default_player_command",
]

DEFAULT_HOST = "generativelanguage.googleapis.com"
DEFAULT_SERVICE_PATH = "ws/google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
DEFAULT_MODEL = "gemini-2.5-flash-native-audio-preview-12-2025"

# Environment variables read by LiveConfig.from_env()
_ENV_FIELDS = {
    "host": "LIVE_INFRA_HOST",
    "model": "LIVE_INFRA_MODEL",
}
_ENV_VOICE_FIELDS = {
    "voice_name": "LIVE_INFRA_VOICE",
    "language_code": "LIVE_INFRA_LANGUAGE",
}


class SessionMode(str, Enum):
    """How the user talks to the model."""

    TEXT = "text"
    VOICE = "voice"


def default_player_command(sample_rate: int = 24000) -> list[str]:
    """ffplay reading raw little-endian 16-bit mono PCM from stdin."""
    return [
        "ffplay",
        "-nodisp",
        "-loglevel",
        "quiet",
        "-f",
        "s16le",
        "-ar",
        str(sample_rate),
        "pipe:0",
    ]


class VoiceSettings(BaseModel):
    """Speech output settings sent in the setup message."""

    language_code: str = "en-US"
    voice_name: str = "Puck"


class LiveConfig(BaseModel):
    """Configuration for one live session.

    Attributes:
        host: Service host (no scheme).
        service_path: Path of the bidirectional streaming endpoint.
        model: Model id, without the ``models/`` prefix.
        response_modalities: Modality requested from the model.
        voice: Speech output settings.
        mode: ``text`` (typed turns) or ``voice`` (microphone streaming).
        input_sample_rate: Microphone rate in Hz.
        output_sample_rate: Playback rate in Hz.
        player_command: argv of the playback process; reads PCM on stdin.
        open_timeout: Seconds to wait for the connection handshake.
        malformed_warning_interval: Minimum seconds between user-visible
            warnings about malformed frames. ``0`` disables the warnings
            (frames are still logged).
        audio_dump_path: If set, decoded model audio is appended here.
    """

    host: str = DEFAULT_HOST
    service_path: str = DEFAULT_SERVICE_PATH
    model: str = DEFAULT_MODEL
    response_modalities: str = "audio"
    voice: VoiceSettings = Field(default_factory=VoiceSettings)
    mode: SessionMode = SessionMode.TEXT
    input_sample_rate: int = Field(default=16000, gt=0)
    output_sample_rate: int = Field(default=24000, gt=0)
    player_command: list[str] | None = None
    open_timeout: float = Field(default=10.0, gt=0)
    malformed_warning_interval: float = Field(default=5.0, ge=0)
    audio_dump_path: Path | None = None

    @field_validator("model")
    @classmethod
    def _strip_models_prefix(cls, v: str) -> str:
        v = v.strip().removeprefix("models/")
        if not v:
            raise ValueError("model must not be empty")
        return v

    @field_validator("host")
    @classmethod
    def _strip_scheme(cls, v: str) -> str:
        for scheme in ("wss://", "ws://", "https://", "http://"):
            v = v.removeprefix(scheme)
        v = v.strip("/")
        if not v:
            raise ValueError("host must not be empty")
        return v

    @property
    def model_path(self) -> str:
        return f"models/{self.model}"

    @property
    def input_mime_type(self) -> str:
        return f"audio/pcm;rate={self.input_sample_rate}"

    def resolved_player_command(self) -> list[str]:
        return self.player_command or default_player_command(self.output_sample_rate)

    @classmethod
    def from_env(cls, **overrides: Any) -> LiveConfig:
        """Build a config from ``LIVE_INFRA_*`` environment variables.

        Explicit keyword overrides (ignored when ``None``) take precedence.

        Raises:
            ConfigurationError: If the resulting values are invalid.
        """
        values: dict[str, Any] = {}
        for field, env in _ENV_FIELDS.items():
            if os.environ.get(env):
                values[field] = os.environ[env]

        voice: dict[str, Any] = {}
        for field, env in _ENV_VOICE_FIELDS.items():
            if os.environ.get(env):
                voice[field] = os.environ[env]

        for key, value in overrides.items():
            if value is None:
                continue
            if key in _ENV_VOICE_FIELDS:
                voice[key] = value
            else:
                values[key] = value

        try:
            if voice:
                values["voice"] = VoiceSettings(**voice)
            return cls(**values)
        except ValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(p) for p in first["loc"]) or None
            raise ConfigurationError(
                f"Invalid configuration ({key}): {first['msg']}",
                config_key=key,
                details={"errors": e.errors()},
            ) from e
