from __future__ import annotations

import logging
from threading import Lock
from typing import TYPE_CHECKING, Any, Callable, Dict, Tuple

if TYPE_CHECKING:
    from .manager import FlushReport
    from .module import SaveModule

logger = logging.getLogger(__name__)

SAVE_COMPLETED = "save_completed"
MODULE_LOADED = "module_loaded"

# Channel name -> the single keyword argument its handlers receive
CHANNELS: Dict[str, str] = {
    SAVE_COMPLETED: "report",
    MODULE_LOADED: "module",
}

Handler = Callable[..., Any]


class EventBus:
    """Delivers the save manager's two notifications to subscribed handlers.

    ``save_completed`` fires once per flush with ``report=FlushReport`` after
    every write of the batch has finished, on the thread that ran the flush.
    ``module_loaded`` fires with ``module=SaveModule`` for each successful load,
    on the loading thread.

    Handlers run in subscription order. A handler that raises is logged and
    the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, Tuple[Handler, ...]] = {name: () for name in CHANNELS}
        self._lock = Lock()

    @staticmethod
    def _check(event: str) -> None:
        if event not in CHANNELS:
            raise ValueError(f"Unknown save event {event!r}; expected one of {sorted(CHANNELS)}")

    def subscribe(self, event: str, handler: Handler) -> None:
        """Add ``handler`` to ``event``. Subscribing the same handler twice has no effect."""
        self._check(event)
        with self._lock:
            if handler in self._handlers[event]:
                return
            self._handlers[event] += (handler,)
        logger.debug("Subscribed %r to %s", handler, event)

    def unsubscribe(self, event: str, handler: Handler) -> bool:
        """Remove ``handler`` from ``event``. Returns False if it was not subscribed."""
        self._check(event)
        with self._lock:
            current = self._handlers[event]
            if handler not in current:
                return False
            self._handlers[event] = tuple(h for h in current if h != handler)
        logger.debug("Unsubscribed %r from %s", handler, event)
        return True

    def subscribers(self, event: str) -> Tuple[Handler, ...]:
        self._check(event)
        with self._lock:
            return self._handlers[event]

    def emit(self, event: str, payload: Any) -> int:
        """Call every handler of ``event`` with the payload under the channel's keyword.

        Returns the number of handlers that completed without raising.
        """
        handlers = self.subscribers(event)
        keyword = CHANNELS[event]
        delivered = 0
        for handler in handlers:
            try:
                handler(**{keyword: payload})
            except Exception:  # noqa: BLE001 subscriber bugs must not break a flush or load
                logger.exception("Handler %r failed for %s", handler, event)
            else:
                delivered += 1
        logger.debug("Delivered %s to %d of %d handlers", event, delivered, len(handlers))
        return delivered

    def publish_save_completed(self, report: "FlushReport") -> int:
        return self.emit(SAVE_COMPLETED, report)

    def publish_module_loaded(self, module: "SaveModule") -> int:
        return self.emit(MODULE_LOADED, module)
