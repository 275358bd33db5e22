"""JSON-file backed key-value store for settings and conversation snapshots."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from .exceptions import StorageError, StorageFormatError

LOGGER = logging.getLogger(__name__)

KEY_BASE_URL = "baseUrl"
KEY_API_KEY = "apiKey"
KEY_SYSTEM_PROMPT = "systemPrompt"
KEY_CHAT = "chat"
KEY_LANGUAGE = "lang"
KEY_THEME = "theme"
KEY_SIDEBAR_COLLAPSED = "sidebarCollapsed"
KEY_MODELS = "models"


class KeyValueStore:
    """String-to-string mapping mirrored to a single JSON object on disk.

    Every write rewrites the whole file through a temporary sibling and an
    atomic replace, so a crash never leaves a half-written store behind.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self._values: dict[str, str] | None = None

    def _enforce_permissions(self, path: Path, mode: int = 0o600) -> None:
        if os.name != "posix":
            return
        try:
            path.chmod(mode)
        except OSError:
            pass

    def _load(self) -> dict[str, str]:
        if self._values is not None:
            return self._values
        if not self.path.exists():
            self._values = {}
            return self._values
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise StorageError(f"Unable to read store at {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StorageFormatError(
                f"Store at {self.path} is not valid JSON: {exc}"
            ) from exc
        if not isinstance(payload, dict):
            raise StorageFormatError(f"Store at {self.path} must hold a JSON object.")
        self._values = {
            str(key): value for key, value in payload.items() if isinstance(value, str)
        }
        return self._values

    def _flush(self) -> None:
        values = self._load()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._enforce_permissions(self.path.parent, 0o700)
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        try:
            tmp_path.write_text(
                json.dumps(values, ensure_ascii=False, indent=2, sort_keys=True),
                encoding="utf-8",
            )
            self._enforce_permissions(tmp_path)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageError(f"Unable to write store at {self.path}: {exc}") from exc
        LOGGER.debug(
            "storage.flush",
            extra={"event": "storage.flush", "path": str(self.path), "keys": len(values)},
        )

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the stored string for ``key`` or ``default``."""
        return self._load().get(key, default)

    def set(self, key: str, value: str) -> None:
        """Store a single value and flush to disk."""
        self._load()[key] = str(value)
        self._flush()

    def update(self, values: dict[str, str]) -> None:
        """Store several values with a single flush."""
        current = self._load()
        for key, value in values.items():
            current[key] = str(value)
        self._flush()
