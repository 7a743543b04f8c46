from __future__ import annotations

import logging
import os
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Protocol, runtime_checkable
from urllib.parse import quote, unquote

logger = logging.getLogger(__name__)


@runtime_checkable
class Storage(Protocol):
    """Key-value blob store keyed by module id."""

    def exists(self, key: str) -> bool:
        ...

    def read(self, key: str) -> Optional[str]:
        """Return the stored payload, or None if nothing is stored under ``key``."""
        ...

    def write(self, key: str, payload: str) -> None:
        ...

    def delete(self, key: str) -> bool:
        """Delete the payload. Returns False if there was nothing to delete."""
        ...

    def keys(self) -> List[str]:
        ...


def _atomic_write(path: Path, data: str) -> None:
    """Write text to ``path`` via a temp file and ``os.replace`` so readers never see a partial payload."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as fh:
        fh.write(data)
        fh.flush()
        os.fsync(fh.fileno())
    os.replace(tmp, path)


def encode_key(key: str) -> str:
    """Turn a module id into a file name stem.

    Everything outside ``[A-Za-z0-9_.~-]`` is percent-encoded, so separators
    cannot escape the save directory. A leading dot is encoded as well, which
    keeps ``.``/``..`` and hidden files out of the directory.
    """
    if not key:
        raise ValueError(f"Invalid storage key: {key!r}")
    name = quote(key, safe="")
    if name.startswith("."):
        name = "%2E" + name[1:]
    return name


def decode_key(name: str) -> str:
    return unquote(name)


class FileStorage:
    """One file per module: ``<root>/<encoded module id><extension>``."""

    def __init__(self, root: Path, extension: str = ".save") -> None:
        if not extension.startswith("."):
            extension = "." + extension
        self.root = Path(root)
        self.extension = extension
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.root / f"{encode_key(key)}{self.extension}"

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No save file at %s", path)
            return None

    def write(self, key: str, payload: str) -> None:
        path = self.path_for(key)
        _atomic_write(path, payload)
        logger.debug("Wrote %d chars to %s", len(payload), path)

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def keys(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            decode_key(p.name[: -len(self.extension)]) for p in self.root.glob(f"*{self.extension}") if p.is_file()
        )

    def clear(self) -> int:
        """Delete every save file under root. Returns the number of files removed."""
        removed = 0
        for key in self.keys():
            if self.delete(key):
                removed += 1
        logger.info("Deleted %d save files from %s", removed, self.root)
        return removed


class InMemoryStorage:
    """Storage that holds payloads in a dict. For tests and headless runs."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = RLock()

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def read(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def write(self, key: str, payload: str) -> None:
        with self._lock:
            self._data[key] = payload

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._data)
            self._data.clear()
        return removed
