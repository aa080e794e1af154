"""JSON file state storage implementation"""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonFileStateStorage:
    """Store client-local state in a JSON file"""

    def __init__(self, path: str | Path):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _read_file(self) -> dict[str, Any]:
        """Read state from file"""
        if not self._path.exists():
            return {}

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"[State] Ignoring unreadable state file {self._path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"[State] Ignoring state file {self._path}: not an object")
            return {}
        return data

    def _write_file(self, data: dict[str, Any]) -> None:
        """Write state to file"""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def get(self, key: str) -> Any | None:
        return self._read_file().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read_file()
        data[key] = value
        self._write_file(data)

    def remove(self, key: str) -> None:
        data = self._read_file()
        if data.pop(key, None) is not None:
            self._write_file(data)


class MemoryStateStorage:
    """In-memory state, for one-off runs and tests"""

    def __init__(self, initial: dict[str, Any] | None = None):
        self.data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any | None:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)
