"""Key-value storage for per-table scratch state (carts, alert flags)."""
import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract JSON-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serialisable value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key if present."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Values are round-tripped through JSON."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class FileKeyValueStore(KeyValueStore):
    """One JSON file per key under a directory; survives restarts."""

    _UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{self._UNSAFE.sub('_', key)}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            # A corrupt entry reads as missing
            logger.warning(f"[KV STORE] Could not read {path.name}: {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(value, f)
        tmp_path.replace(path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
