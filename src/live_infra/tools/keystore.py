"""Small persistent key-value store for tool credentials.

Values live in a JSON file under the user config directory
(``~/.config/live-infra/settings.json`` by default, or
``$LIVE_INFRA_CONFIG_DIR/settings.json``).
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path

from live_infra.logging import get_logger

__all__ = ["KeyStore", "default_store_path"]

logger = get_logger("tools.keystore")


def default_store_path() -> Path:
    base = os.environ.get("LIVE_INFRA_CONFIG_DIR")
    if base:
        return Path(base) / "settings.json"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    root = Path(xdg) if xdg else Path.home() / ".config"
    return root / "live-infra" / "settings.json"


class KeyStore:
    """String key-value storage backed by a JSON file."""

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path) if path else default_store_path()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable key store", path=str(self._path), error=str(e))
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)} if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        # mkstemp creates the file with mode 0600; the rename keeps that mode.
        parent = self._path.parent
        parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=parent, prefix=".settings-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> bool:
        data = self._load()
        if key not in data:
            return False
        del data[key]
        self._save(data)
        return True
