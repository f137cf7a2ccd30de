"""Transport connection to the live service.

A thin wrapper over a ``websockets`` client connection exposing exactly what
the session controller needs: ``send()``, ordered async iteration over inbound
frames, and ``close()``. Connection failures are reported as ``ConnectError``;
there is no reconnect.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection
from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedOK,
    InvalidHandshake,
    InvalidURI,
)

from live_infra.config import LiveConfig
from live_infra.errors import ConnectError, TransportError
from live_infra.logging import get_logger

__all__ = [
    "Connection",
    "WebSocketConnection",
    "build_url",
    "connect",
    "redact_url",
]

logger = get_logger("live.transport")


class Connection(Protocol):
    async def send(self, frame: str | bytes) -> None: ...

    def frames(self) -> AsyncIterator[str | bytes]: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


def build_url(config: LiveConfig, credential: str) -> str:
    """``wss://<host>/<service-path>?key=<credential>``"""
    path = config.service_path.strip("/")
    return f"wss://{config.host}/{path}?{urlencode({'key': credential})}"


def redact_url(url: str) -> str:
    """Hide the credential in a URL before logging or printing it."""
    head, sep, query = url.partition("?")
    if not sep:
        return url
    params = []
    for pair in query.split("&"):
        name, eq, _ = pair.partition("=")
        params.append(f"{name}=***" if eq and name == "key" else pair)
    return f"{head}?{'&'.join(params)}"


class WebSocketConnection:
    """Message-oriented full-duplex channel over a websocket."""

    def __init__(self, ws: ClientConnection):
        self._ws = ws

    @property
    def close_code(self) -> int | None:
        return self._ws.close_code

    @property
    def close_reason(self) -> str:
        return self._ws.close_reason or ""

    async def send(self, frame: str | bytes) -> None:
        try:
            await self._ws.send(frame)
        except ConnectionClosed as e:
            raise TransportError(
                "Connection closed while sending",
                code=self._ws.close_code,
                reason=self._ws.close_reason,
            ) from e

    async def frames(self) -> AsyncIterator[str | bytes]:
        """Yield inbound frames in arrival order.

        Ends normally on a clean close; raises ``TransportError`` on an
        abnormal one.
        """
        try:
            async for message in self._ws:
                yield message
        except ConnectionClosedOK:
            return
        except ConnectionClosed as e:
            raise TransportError(
                f"Connection lost: {e}",
                code=self._ws.close_code,
                reason=self._ws.close_reason,
            ) from e

    async def close(self, code: int = 1000, reason: str = "") -> None:
        await self._ws.close(code, reason)


async def connect(url: str, *, open_timeout: float = 10.0, **kwargs: Any) -> WebSocketConnection:
    """Open a connection to ``url``.

    Raises:
        ConnectError: Refused, unreachable, rejected handshake or timeout.
    """
    safe_url = redact_url(url)
    logger.info("Connecting", url=safe_url)
    try:
        ws = await ws_connect(url, open_timeout=open_timeout, max_size=None, **kwargs)
    except InvalidURI as e:
        raise ConnectError(f"Invalid service URL: {safe_url}", url=safe_url) from e
    except InvalidHandshake as e:
        raise ConnectError(f"Service rejected the connection: {e}", url=safe_url) from e
    except TimeoutError as e:
        raise ConnectError(
            f"Timed out after {open_timeout}s connecting to {safe_url}", url=safe_url
        ) from e
    except OSError as e:
        raise ConnectError(f"Could not connect to {safe_url}: {e}", url=safe_url) from e
    logger.info("Connected", url=safe_url)
    return WebSocketConnection(ws)
