from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = str(value)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._values)


class JsonFileStorage:
    """String key/value pairs kept in a single JSON object file.

    Every call re-reads the file so that separate processes sharing the file
    observe each other's writes. Unreadable or corrupt files behave as empty;
    failed writes are logged and dropped.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable filter storage %s: %s", self.path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Ignoring filter storage %s: expected a JSON object", self.path)
            return {}
        return {str(key): value for key, value in payload.items() if isinstance(value, str)}

    def _write(self, values: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(values, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            LOGGER.warning("Failed writing filter storage %s: %s", self.path, exc)

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._read()
        values[key] = str(value)
        self._write(values)

    def remove(self, key: str) -> None:
        values = self._read()
        if values.pop(key, None) is not None:
            self._write(values)

    def keys(self) -> list[str]:
        return sorted(self._read())
