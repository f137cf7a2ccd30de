"""Error hierarchy for live-infra.

All errors raised by the package derive from ``LiveInfraError`` so callers can
catch one type. Each error carries a human message plus optional structured
``details``, a ``hint`` for fixing the problem and a ``docs_url``.

Example:
    ```python
    from live_infra.errors import ConnectError, LiveInfraError

    try:
        await session.run()
    except ConnectError as e:
        print(e.hint)
    except LiveInfraError as e:
        print(e)
    ```
"""

from __future__ import annotations

import logging
from typing import Any, Literal

__all__ = [
    "LiveInfraError",
    "ConfigurationError",
    "ConnectError",
    "TransportError",
    "ProtocolError",
    "AudioDeviceError",
    "SearchError",
    "log_exception",
]


def log_exception(
    logger: logging.Logger | Any,
    message: str,
    exc: BaseException,
    *,
    level: Literal["debug", "info", "warning", "error", "critical"] = "warning",
    include_traceback: bool = True,
) -> None:
    """Log an exception with a consistent format.

    Args:
        logger: Logger to write to.
        message: Context message (what was being attempted).
        exc: The exception that occurred.
        level: Log level name.
        include_traceback: Attach exception info to the record.
    """
    log = getattr(logger, level)
    text = f"{message}: {type(exc).__name__}: {exc}"
    if include_traceback:
        log(text, exc_info=(type(exc), exc, exc.__traceback__))
    else:
        log(text)


# =============================================================================
# Base
# =============================================================================


class LiveInfraError(Exception):
    """Base exception for all live-infra errors."""

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
        docs_url: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.hint = hint
        self.docs_url = docs_url

    def __str__(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"  Hint: {self.hint}")
        if self.docs_url:
            parts.append(f"  Docs: {self.docs_url}")
        return "\n".join(parts)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ConfigurationError(LiveInfraError):
    """Invalid or missing configuration."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.config_key = config_key


# =============================================================================
# Transport / Protocol
# =============================================================================


class ConnectError(LiveInfraError):
    """The transport connection could not be established.

    Fatal for the session: there is no automatic reconnect.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("hint", "Check the host, your network and the API key.")
        super().__init__(message, **kwargs)
        self.url = url


class TransportError(LiveInfraError):
    """An established connection failed (reset, abnormal close)."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        reason: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.code = code
        self.reason = reason


class ProtocolError(LiveInfraError):
    """An inbound frame could not be decoded.

    Recoverable: the controller drops the frame and continues.
    """

    def __init__(
        self,
        message: str,
        *,
        payload: str | bytes | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.payload = payload


# =============================================================================
# Devices / Tools
# =============================================================================


class AudioDeviceError(LiveInfraError):
    """Audio playback or capture device could not be opened or used."""

    def __init__(
        self,
        message: str,
        *,
        device: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.device = device


class SearchError(LiveInfraError):
    """The web search tool failed (missing key or API error)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
