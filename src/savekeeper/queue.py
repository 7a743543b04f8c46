from __future__ import annotations

import logging
from threading import Lock
from typing import Dict, List

from .registry import ModuleRegistry

logger = logging.getLogger(__name__)


class SaveQueue:
    """Insertion-ordered, duplicate-free set of module ids waiting to be saved.

    Enqueue may happen at any time, including while a flush is running. The
    drain is the batch boundary: ids added after it belong to the next flush.
    """

    def __init__(self, registry: ModuleRegistry) -> None:
        self._registry = registry
        # dict keeps insertion order and gives O(1) membership
        self._pending: Dict[str, None] = {}
        self._lock = Lock()

    def enqueue(self, save_id: str) -> bool:
        """Queue ``save_id`` for the next flush. Returns True if it was newly added."""
        if save_id not in self._registry:
            logger.warning("Cannot request save for unregistered module: %s", save_id)
            return False
        with self._lock:
            if save_id in self._pending:
                logger.debug("Module already queued for save: %s", save_id)
                return False
            self._pending[save_id] = None
        logger.debug("Module queued for save: %s", save_id)
        return True

    def drain_all(self) -> List[str]:
        """Remove and return every queued id in insertion order."""
        with self._lock:
            drained = list(self._pending)
            self._pending = {}
        return drained

    def pending(self) -> List[str]:
        with self._lock:
            return list(self._pending)

    def clear(self) -> None:
        with self._lock:
            self._pending = {}

    def __contains__(self, save_id: object) -> bool:
        with self._lock:
            return save_id in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
