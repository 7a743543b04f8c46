from __future__ import annotations

import logging
from threading import RLock
from typing import Dict, Optional, Tuple, Type, TypeVar

from .module import SaveModule

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SaveModule)


class ModuleRegistry:
    """Mapping from module id to the registered module instance.

    Alongside each instance the registry keeps the schema (concrete class)
    used to decode that id's payload, recorded at registration time. Iteration
    order is registration order; replacing an id keeps its original position.
    """

    def __init__(self) -> None:
        self._modules: Dict[str, SaveModule] = {}
        self._schemas: Dict[str, Type[SaveModule]] = {}
        self._lock = RLock()

    def register(self, module: Optional[SaveModule], schema: Optional[Type[SaveModule]] = None) -> bool:
        """Register or replace a module. Reports and returns False on an invalid module."""
        if module is None:
            logger.error("Cannot register a null module")
            return False
        save_id = getattr(module, "save_id", "")
        if not save_id:
            logger.error("Cannot register module %s: empty save_id", type(module).__name__)
            return False
        with self._lock:
            replaced = save_id in self._modules
            self._modules[save_id] = module
            self._schemas[save_id] = schema or type(module)
        if replaced:
            logger.info("Replaced save module: %s", save_id)
        else:
            logger.info("Registered save module: %s", save_id)
        return True

    def unregister(self, save_id: str) -> bool:
        with self._lock:
            if save_id not in self._modules:
                return False
            del self._modules[save_id]
            self._schemas.pop(save_id, None)
        logger.info("Unregistered save module: %s", save_id)
        return True

    def replace(self, save_id: str, module: SaveModule) -> None:
        """Swap in a new instance for an already registered id, keeping its schema."""
        with self._lock:
            if save_id not in self._modules:
                raise KeyError(save_id)
            self._modules[save_id] = module

    def get(self, save_id: str) -> Optional[SaveModule]:
        with self._lock:
            return self._modules.get(save_id)

    def schema_for(self, save_id: str) -> Optional[Type[SaveModule]]:
        with self._lock:
            return self._schemas.get(save_id)

    def all(self) -> Tuple[SaveModule, ...]:
        """Snapshot of the registered modules at call time, in registration order.

        Later register/unregister calls are not reflected in the returned tuple.
        """
        with self._lock:
            return tuple(self._modules.values())

    def ids(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._modules.keys())

    def find_by_capability(self, cls: Type[T]) -> Optional[T]:
        """Return the first registered module that is an instance of ``cls``.

        When several modules qualify, the first in registration order wins; that
        choice is implementation-defined and callers should not rely on it.
        """
        for module in self.all():
            if isinstance(module, cls):
                return module
        return None

    def __contains__(self, save_id: object) -> bool:
        with self._lock:
            return save_id in self._modules

    def __len__(self) -> int:
        with self._lock:
            return len(self._modules)
