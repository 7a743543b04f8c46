from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Optional

from .errors import ConfigurationError
from .manager import SaveManager

logger = logging.getLogger(__name__)


class AutoSaver:
    """Periodic autosave driven by the host's update loop.

    Call ``update(dt)`` from the application's tick with the seconds elapsed
    since the previous tick; every ``interval`` seconds a background flush is
    triggered. It never blocks the tick.
    """

    def __init__(self, manager: SaveManager, interval: float = 60.0, enabled: bool = True) -> None:
        self.manager = manager
        self.interval = float(interval)
        self.enabled = enabled
        self._elapsed = 0.0

    @classmethod
    def from_config(cls, manager: SaveManager, config) -> "AutoSaver":
        return cls(manager, interval=config.autosave_interval, enabled=config.autosave_enabled)

    @property
    def elapsed(self) -> float:
        return self._elapsed

    def reset(self) -> None:
        self._elapsed = 0.0

    def update(self, dt: float) -> Optional[Future]:
        """Advance the timer. Returns the flush future when a flush was started."""
        if not self.enabled or self.interval <= 0:
            return None
        self._elapsed += dt
        if self._elapsed < self.interval:
            return None
        self._elapsed = 0.0
        try:
            future = self.manager.force_flush()
        except ConfigurationError as e:
            logger.warning("Autosave skipped: %s", e)
            return None
        if future is not None:
            logger.debug("Autosave flush started")
        return future
