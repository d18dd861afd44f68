"""
Legacy storage adapters

The pre-database frontend kept links and meetings as JSON arrays in the
browser's localStorage. These adapters expose that key/value store to the
migration service.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class LegacyStorage(ABC):
    """Key/value view of client-local storage"""

    @abstractmethod
    def list(self) -> list[str]:
        """All keys currently stored"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def put(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class InMemoryLegacyStorage(LegacyStorage):
    def __init__(self, data: Optional[dict[str, Any]] = None):
        self.data = dict(data or {})

    def list(self) -> list[str]:
        return list(self.data)

    def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    def put(self, key: str, value: Any) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileLegacyStorage(LegacyStorage):
    """A JSON object file, e.g. an export of the browser's localStorage"""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            content = f.read().strip()
        if not content:
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a JSON object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def list(self) -> list[str]:
        return list(self._read())

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def put(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)
            logger.debug(f"Removed legacy key '{key}' from {self.path}")
