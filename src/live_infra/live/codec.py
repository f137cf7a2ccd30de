"""Wire codec for the bidirectional streaming protocol.

Pure translation between typed messages and the JSON envelopes exchanged with
the service. No I/O happens here.

Client -> server:
    - ``Setup``               ``{"setup": {...}}``, sent once, first
    - ``UserTextTurn``        ``{"client_content": {...}}``, always complete
    - ``RealtimeAudioChunk``  ``{"realtime_input": {"media_chunks": [...]}}``

Server -> client (``decode_server_frame``):
    - ``SetupComplete``  top-level ``setupComplete`` present
    - ``ModelText`` / ``ModelAudio``  ``serverContent.modelTurn.parts[]``
    - ``TurnComplete``   ``serverContent.turnComplete`` truthy
    - ``UsageMetadata``  ``usageMetadata.totalTokenCount``

A frame that is not a JSON object raises ``ProtocolError``; the caller drops it.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, Field

from live_infra.audio.utils import parse_sample_rate
from live_infra.config import LiveConfig, VoiceSettings
from live_infra.errors import ProtocolError
from live_infra.logging import get_logger

__all__ = [
    "ClientMessage",
    "ModelAudio",
    "ModelText",
    "RealtimeAudioChunk",
    "ServerMessage",
    "Setup",
    "SetupComplete",
    "TurnComplete",
    "UsageMetadata",
    "UserTextTurn",
    "decode_client_frame",
    "decode_server_frame",
    "encode",
]

logger = get_logger("live.codec")

_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


# =============================================================================
# Outbound messages
# =============================================================================


class Setup(BaseModel):
    """Session configuration, sent immediately after the connection opens."""

    model: str
    response_modalities: str = "audio"
    voice: VoiceSettings = Field(default_factory=VoiceSettings)

    @classmethod
    def from_config(cls, config: LiveConfig) -> Setup:
        return cls(
            model=config.model_path,
            response_modalities=config.response_modalities,
            voice=config.voice,
        )

    def to_wire(self) -> dict[str, Any]:
        return {
            "setup": {
                "model": self.model,
                "generationConfig": {
                    "responseModalities": self.response_modalities,
                    "speechConfig": {
                        "languageCode": self.voice.language_code,
                        "voiceConfig": {
                            "prebuiltVoiceConfig": {"voiceName": self.voice.voice_name},
                        },
                    },
                },
            }
        }


class UserTextTurn(BaseModel):
    """A complete user turn holding one text part."""

    text: str

    def to_wire(self) -> dict[str, Any]:
        return {
            "client_content": {
                "turns": [{"role": "user", "parts": [{"text": self.text}]}],
                "turn_complete": True,
            }
        }


class RealtimeAudioChunk(BaseModel):
    """One streamed microphone chunk. Carries no turn-completion marker."""

    data: bytes
    mime_type: str = "audio/pcm;rate=16000"

    def to_wire(self) -> dict[str, Any]:
        return {
            "realtime_input": {
                "media_chunks": [
                    {
                        "mime_type": self.mime_type,
                        "data": base64.b64encode(self.data).decode("ascii"),
                    }
                ]
            }
        }


ClientMessage = Union[Setup, UserTextTurn, RealtimeAudioChunk]


def encode(message: ClientMessage) -> str:
    """Serialize a client message to its JSON envelope."""
    return json.dumps(message.to_wire(), ensure_ascii=False)


# =============================================================================
# Inbound messages
# =============================================================================


@dataclass(frozen=True)
class SetupComplete:
    pass


@dataclass(frozen=True)
class ModelText:
    text: str


@dataclass(frozen=True)
class ModelAudio:
    """Decoded inline audio; ``sample_rate`` is the hint from the MIME type."""

    data: bytes
    mime_type: str | None = None
    sample_rate: int | None = None


@dataclass(frozen=True)
class TurnComplete:
    pass


@dataclass(frozen=True)
class UsageMetadata:
    total_token_count: int | None


ServerMessage = Union[SetupComplete, ModelText, ModelAudio, TurnComplete, UsageMetadata]


def _load_object(payload: str | bytes) -> dict[str, Any]:
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = bytes(payload).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Frame is not valid UTF-8: {e}", payload=payload) from e
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Frame is not valid JSON: {e}", payload=payload) from e
    if not isinstance(data, dict):
        raise ProtocolError(
            f"Frame must be a JSON object, got {type(data).__name__}", payload=payload
        )
    return data


def _b64decode(value: Any) -> bytes:
    """Decode standard or URL-safe base64, with or without padding."""
    if not isinstance(value, str):
        raise TypeError("inline data must be a base64 string")
    value = value.strip().translate(_URLSAFE_TO_STANDARD)
    value += "=" * (-len(value) % 4)
    return base64.b64decode(value, validate=True)


def _decode_part(part: Any, payload: str | bytes) -> list[ServerMessage]:
    if not isinstance(part, dict):
        raise ProtocolError("Model turn part must be an object", payload=payload)

    out: list[ServerMessage] = []
    text = part.get("text")
    if text:
        out.append(ModelText(text=str(text)))

    inline = part.get("inlineData")
    if isinstance(inline, dict) and inline.get("data"):
        mime_type = inline.get("mimeType")
        try:
            data = _b64decode(inline["data"])
        except (TypeError, ValueError) as e:
            # Only this part is lost; its siblings still play.
            logger.warning("Undecodable inline data skipped", mime_type=mime_type, error=str(e))
            return out
        out.append(
            ModelAudio(data=data, mime_type=mime_type, sample_rate=parse_sample_rate(mime_type))
        )
    return out


def decode_server_frame(payload: str | bytes) -> list[ServerMessage]:
    """Decode one inbound frame into messages, in presentation order.

    Order: ``SetupComplete``, model parts (array order), ``TurnComplete``,
    ``UsageMetadata``. A frame may decode to an empty list.

    Raises:
        ProtocolError: If the frame is not a well-formed JSON object. Nothing
            is returned for a malformed frame, so it is dropped as a whole.
    """
    data = _load_object(payload)
    messages: list[ServerMessage] = []

    if "setupComplete" in data:
        messages.append(SetupComplete())

    content = data.get("serverContent")
    if content is not None:
        if not isinstance(content, dict):
            raise ProtocolError("serverContent must be an object", payload=payload)
        turn = content.get("modelTurn")
        if isinstance(turn, dict):
            parts = turn.get("parts") or []
            if not isinstance(parts, list):
                raise ProtocolError("modelTurn.parts must be a list", payload=payload)
            for part in parts:
                messages.extend(_decode_part(part, payload))
        if content.get("turnComplete"):
            messages.append(TurnComplete())

    usage = data.get("usageMetadata")
    if isinstance(usage, dict):
        total = usage.get("totalTokenCount")
        messages.append(UsageMetadata(total_token_count=total if isinstance(total, int) else None))

    return messages


def decode_client_frame(payload: str | bytes) -> ClientMessage:
    """Decode a client envelope back into its message.

    Inverse of ``encode``; used by tests and local fake servers.

    Raises:
        ProtocolError: If the envelope is not one of the client message kinds.
    """
    data = _load_object(payload)
    try:
        if "setup" in data:
            setup = data["setup"]
            gen = setup["generationConfig"]
            speech = gen["speechConfig"]
            return Setup(
                model=setup["model"],
                response_modalities=gen["responseModalities"],
                voice=VoiceSettings(
                    language_code=speech["languageCode"],
                    voice_name=speech["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"],
                ),
            )
        if "client_content" in data:
            turn = data["client_content"]["turns"][0]
            return UserTextTurn(text=turn["parts"][0]["text"])
        if "realtime_input" in data:
            chunk = data["realtime_input"]["media_chunks"][0]
            return RealtimeAudioChunk(
                mime_type=chunk["mime_type"],
                data=_b64decode(chunk["data"]),
            )
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise ProtocolError(f"Incomplete client envelope: {e}", payload=payload) from e
    raise ProtocolError("Unknown client envelope", payload=payload)
