"""Per-session key/value storage for customer-local state.

Carts and delivery locations live here rather than in DynamoDB: they belong to
one customer session and are never shared across devices.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class SessionStorage(ABC):
    """Abstract string key/value store."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""


class InMemorySessionStorage(SessionStorage):
    """Process-local storage, used in tests and single-process development."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class FileSessionStorage(SessionStorage):
    """Stores each key as a JSON file under a base directory.

    File names are a hash of the key so arbitrary session identifiers cannot
    escape the directory.
    """

    def __init__(self, base_dir: str | Path) -> None:
        """Initialize storage.

        Args:
            base_dir: Directory for session files (created if missing)
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.base_dir / f"{digest}.json"

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def delete(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)
