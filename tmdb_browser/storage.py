"""
Local key-value storage backends.

The watchlist store only needs ``get(key) -> bytes | None`` and
``set(key, bytes) -> bool``; anything offering those two methods can be
injected in place of the backends below.
"""

import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from .exceptions import StorageError

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStorage(ABC):
    """String-keyed blob store."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the stored value, or None when the key was never set."""

    @abstractmethod
    def set(self, key: str, value: bytes) -> bool:
        """Store value under key. Returns True on success."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key if present. Returns True if something was removed."""


class MemoryStorage(KeyValueStorage):
    """In-process dict storage (tests, ephemeral sessions)."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})
        self._lock = Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> bool:
        if not isinstance(value, (bytes, bytearray)):
            raise StorageError(f"Value for {key!r} must be bytes")
        with self._lock:
            self._data[key] = bytes(value)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None


class FileStorage(KeyValueStorage):
    """
    One file per key under a directory.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so a crash mid-write never leaves a truncated value.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def set(self, key: str, value: bytes) -> bool:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageError(f"Could not write {path}: {e}") from e
        return True

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Could not delete {path}: {e}") from e
