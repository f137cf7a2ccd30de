"""Logging helpers for live-infra.

Thin layer over the standard ``logging`` module:

- ``configure_logging()`` installs one handler on the ``live_infra`` logger
  with either a human-readable or a JSON formatter.
- ``get_logger()`` returns a ``StructuredLogger`` whose methods accept keyword
  fields that end up as ``extra`` attributes on the log record.

Logs are written to stderr by default so the conversation printed on stdout
stays readable.

Example:
    ```python
    from live_infra.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", format="json")
    log = get_logger("live.session")
    log.info("Frame received", size=512)
    ```
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any, Literal

__all__ = [
    "ROOT_LOGGER",
    "HumanFormatter",
    "JSONFormatter",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]

ROOT_LOGGER = "live_infra"

# Attributes every LogRecord has; anything else was passed through ``extra``.
_RESERVED = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys() | {"message", "asctime"}
)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED}


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.levelno >= logging.ERROR:
            data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        data.update(_extra_fields(record))
        return json.dumps(data, default=str)


class HumanFormatter(logging.Formatter):
    """Compact single-line format for terminals."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s", "%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        extra = _extra_fields(record)
        if extra:
            text += " " + " ".join(f"{k}={v}" for k, v in extra.items())
        return text


# =============================================================================
# StructuredLogger
# =============================================================================


class StructuredLogger:
    """Logger wrapper that turns keyword arguments into structured fields."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def child(self, suffix: str) -> StructuredLogger:
        return StructuredLogger(f"{self._logger.name}.{suffix}")

    def isEnabledFor(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def _log(self, level: int, msg: str, exc_info: Any = None, **fields: Any) -> None:
        self._logger.log(level, msg, exc_info=exc_info, extra=fields or None, stacklevel=3)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, **fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, **fields)

    def critical(self, msg: str, **fields: Any) -> None:
        self._log(logging.CRITICAL, msg, **fields)

    def exception(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, exc_info=True, **fields)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger inside the ``live_infra`` namespace.

    Args:
        name: Component name, e.g. ``"live.session"``. Names already starting
            with ``live_infra`` are used as-is.
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return StructuredLogger(name)


def configure_logging(
    level: str | int = "WARNING",
    format: Literal["human", "json"] = "human",
    stream: IO[str] | None = None,
) -> None:
    """Configure the ``live_infra`` logger.

    Calling this again replaces the handler installed by the previous call.

    Args:
        level: Level name or number.
        format: ``"human"`` or ``"json"``.
        stream: Output stream (defaults to stderr).
    """
    logger = logging.getLogger(ROOT_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_live_infra", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if format == "json" else HumanFormatter())
    handler._live_infra = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
