"""Local durable cache of the device replica.

The replica is stored as one document so that ``state``, ``known_version``
and ``last_synced_snapshot`` are always written together.
"""

import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog

from .change_detector import normalize_state

logger = structlog.get_logger(__name__)

CACHE_FORMAT_VERSION = 1


class LocalCache(ABC):
    """Survives process restarts; private to one device."""

    @abstractmethod
    def load(self) -> Optional[dict]:
        """Return the stored replica document, or None if there is none."""

    @abstractmethod
    def save(self, data: dict) -> None:
        """Replace the stored replica document."""

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored replica document."""


class InMemoryCache(LocalCache):
    """Cache held in memory, for tests and ephemeral devices."""

    def __init__(self, data: Optional[dict] = None):
        self._data = copy.deepcopy(data)
        self.save_count = 0

    def load(self) -> Optional[dict]:
        return copy.deepcopy(self._data)

    def save(self, data: dict) -> None:
        self.save_count += 1
        self._data = copy.deepcopy(data)

    def clear(self) -> None:
        self._data = None


class JsonFileCache(LocalCache):
    """Cache stored as a JSON file.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash never leaves a half-written replica behind.
    """

    def __init__(self, path: str | Path):
        """Initialize the cache.

        Args:
            path: Location of the cache file. ``~`` is expanded.
        """
        self.path = Path(path).expanduser()

    def load(self) -> Optional[dict]:
        if not self.path.exists():
            return None
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable replica cache", path=str(self.path), error=str(e))
            return None

        if not isinstance(document, dict) or not isinstance(document.get("replica"), dict):
            logger.warning("Ignoring malformed replica cache", path=str(self.path))
            return None
        return document["replica"]

    def save(self, data: dict) -> None:
        """Write the replica synchronously.

        Runs on every local edit from inside the event loop, so it blocks the
        loop for the duration of one small file write. There is no fsync: a
        power loss may lose the latest edit but never corrupts the file.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = {
            "format": CACHE_FORMAT_VERSION,
            "replica": normalize_state(data),
        }
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, default=str)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
