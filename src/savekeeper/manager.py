from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as futures_wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from .adapters import SerializerAdapter, StorageAdapter
from .config import SaveConfig
from .errors import ConfigurationError, SaveError
from .events import EventBus
from .graph import DependencyCycle, resolve_load_order
from .module import SaveModule
from .queue import SaveQueue
from .registry import ModuleRegistry
from .serializers import Serializer, get_serializer
from .storage import FileStorage, Storage

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SaveModule)


class LoadStatus(Enum):
    LOADED = "loaded"
    NOT_FOUND = "not_found"
    NOT_REGISTERED = "not_registered"
    FAILED = "failed"


@dataclass
class FlushReport:
    """Outcome of one flush.

    - saved: ids written, in save order
    - failed: id -> error message for modules whose save failed
    - dropped: ids that were queued but unregistered before the flush ran
    """

    saved: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    dropped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass
class LoadReport:
    """Outcome of load_all: the resolved order and the status of each module."""

    order: List[str] = field(default_factory=list)
    statuses: Dict[str, LoadStatus] = field(default_factory=dict)
    cycles: List[DependencyCycle] = field(default_factory=list)

    def _with(self, status: LoadStatus) -> List[str]:
        return [mid for mid in self.order if self.statuses.get(mid) is status]

    @property
    def loaded(self) -> List[str]:
        return self._with(LoadStatus.LOADED)

    @property
    def not_found(self) -> List[str]:
        return self._with(LoadStatus.NOT_FOUND)

    @property
    def failed(self) -> List[str]:
        return self._with(LoadStatus.FAILED)


class SaveManager:
    """Persistence orchestrator for registered save modules.

    Build one per application (the composition root owns it) and pass it to
    whatever needs to register modules or request saves.

    Saving is batched: ``request_save`` only queues the module id, and a flush
    (``force_flush`` in the background, ``flush`` on the calling thread) writes
    every queued module in save_priority order. Only one flush runs at a time;
    triggers arriving while one is active are absorbed and the queue carries
    the backlog to the next flush.

    Loading happens on the calling thread in dependency order, replacing each
    registered instance with the freshly decoded one.
    """

    def __init__(
        self,
        storage: Storage,
        serializer: Optional[Serializer] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self.registry = ModuleRegistry()
        self.queue = SaveQueue(self.registry)
        self.events = events or EventBus()
        self._storage = StorageAdapter(storage)
        self._serializer: Optional[SerializerAdapter] = SerializerAdapter(serializer) if serializer else None
        self._flush_lock = Lock()
        self._flushing = False
        self._current: Optional[Future] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="savekeeper-flush")
        self._closed = False

    @classmethod
    def from_config(cls, config: SaveConfig, events: Optional[EventBus] = None) -> "SaveManager":
        storage = FileStorage(config.save_dir, extension=config.file_extension)
        return cls(storage, serializer=get_serializer(config.serializer), events=events)

    # Configuration

    @property
    def storage(self) -> Storage:
        return self._storage.storage

    @property
    def serializer(self) -> Optional[Serializer]:
        return self._serializer.serializer if self._serializer else None

    def set_serializer(self, serializer: Optional[Serializer]) -> None:
        self._serializer = SerializerAdapter(serializer) if serializer else None

    def _require_serializer(self, operation: str) -> SerializerAdapter:
        serializer = self._serializer
        if serializer is None:
            logger.error("Cannot %s: no serializer set", operation)
            raise ConfigurationError(f"Cannot {operation}: no serializer set")
        return serializer

    # Registry

    def register_module(self, module: SaveModule, schema: Optional[Type[SaveModule]] = None) -> bool:
        return self.registry.register(module, schema)

    def unregister_module(self, module_id: str) -> bool:
        return self.registry.unregister(module_id)

    def modules(self) -> Tuple[SaveModule, ...]:
        return self.registry.all()

    def get_module(self, cls: Type[T]) -> Optional[T]:
        module = self.registry.find_by_capability(cls)
        if module is None:
            logger.warning("No module of type %s found", cls.__name__)
        return module

    def get_module_by_id(self, module_id: str, cls: Optional[Type[T]] = None) -> Optional[Any]:
        module = self.registry.get(module_id)
        if module is None:
            return None
        if cls is not None and not isinstance(module, cls):
            logger.warning("Module with id %s is not of type %s", module_id, cls.__name__)
            return None
        return module

    # Notifications

    def subscribe(self, event: str, handler: Callable[..., Any]) -> None:
        self.events.subscribe(event, handler)

    def unsubscribe(self, event: str, handler: Callable[..., Any]) -> bool:
        return self.events.unsubscribe(event, handler)

    # Saving

    def request_save(self, module_id: str) -> bool:
        """Mark a module dirty. Returns True if it was newly queued."""
        return self.queue.enqueue(module_id)

    @property
    def pending_saves(self) -> List[str]:
        return self.queue.pending()

    @property
    def is_flushing(self) -> bool:
        with self._flush_lock:
            return self._flushing

    def force_flush(self) -> Optional[Future]:
        """Start a flush on the background worker and return its future without waiting.

        The future resolves to a FlushReport. Returns None when a flush is
        already running or nothing is queued.

        Raises:
            ConfigurationError if no serializer is set.
            SaveError if the manager has been shut down.
        """
        if self._closed:
            raise SaveError("SaveManager has been shut down")
        serializer = self._begin_flush()
        if serializer is None:
            return None
        try:
            future = self._executor.submit(self._run_flush, serializer)
        except RuntimeError:
            self._end_flush()
            raise
        self._current = future
        return future

    def flush(self) -> Optional[FlushReport]:
        """Run a flush on the calling thread. Returns None when one is already running or nothing is queued."""
        serializer = self._begin_flush()
        if serializer is None:
            return None
        return self._run_flush(serializer)

    def _begin_flush(self) -> Optional[SerializerAdapter]:
        serializer = self._require_serializer("save modules")
        with self._flush_lock:
            if self._flushing:
                logger.debug("Flush already in progress; trigger ignored")
                return None
            if len(self.queue) == 0:
                logger.debug("Save queue is empty; nothing to flush")
                return None
            self._flushing = True
        return serializer

    def _end_flush(self) -> None:
        with self._flush_lock:
            self._flushing = False

    def _run_flush(self, serializer: SerializerAdapter) -> FlushReport:
        report = FlushReport()
        try:
            modules: List[SaveModule] = []
            for module_id in self.queue.drain_all():
                module = self.registry.get(module_id)
                if module is None:
                    logger.warning("Dropping queued save for unregistered module: %s", module_id)
                    report.dropped.append(module_id)
                    continue
                modules.append(module)

            modules.sort(key=lambda m: m.save_priority)
            for module in modules:
                try:
                    self._save_module(module, serializer)
                except SaveError as e:
                    logger.error("Error saving module %s: %s", module.save_id, e)
                    report.failed[module.save_id] = str(e)
                except Exception as e:  # noqa: BLE001 hook errors stay local to the module
                    logger.exception("Error saving module %s", module.save_id)
                    report.failed[module.save_id] = str(e)
                else:
                    report.saved.append(module.save_id)
        finally:
            self._end_flush()
        logger.info("Flush complete: %d saved, %d failed, %d dropped", len(report.saved), len(report.failed), len(report.dropped))
        self.events.publish_save_completed(report)
        return report

    def _save_module(self, module: SaveModule, serializer: SerializerAdapter) -> None:
        module.on_before_save()
        payload = serializer.serialize(module)
        self._storage.write(module.save_id, payload)
        logger.info("Saved module: %s", module.save_id)

    # Loading

    def load_all(self) -> LoadReport:
        """Load every registered module in dependency order.

        Per-module failures are reported in the result and logged; they never
        raise. Raises ConfigurationError if no serializer is set.
        """
        self._require_serializer("load modules")
        order = resolve_load_order(self.registry.all())
        report = LoadReport(order=order.ids, cycles=list(order.cycles))
        for module_id in report.order:
            report.statuses[module_id] = self.load_module(module_id)
        logger.info(
            "Loaded %d of %d modules (%d without save data, %d failed)",
            len(report.loaded),
            len(report.order),
            len(report.not_found),
            len(report.failed),
        )
        return report

    def load_module(self, module_id: str) -> LoadStatus:
        """Load one module's payload and replace the registered instance with it.

        The payload is decoded as the class recorded when the module was
        registered. A module without stored data is left untouched and
        reported as NOT_FOUND.
        """
        serializer = self._require_serializer("load modules")
        schema = self.registry.schema_for(module_id)
        if schema is None:
            logger.warning("Cannot load unregistered module: %s", module_id)
            return LoadStatus.NOT_REGISTERED

        try:
            payload = self._storage.read(module_id) if self._storage.exists(module_id) else None
            if payload is None:
                logger.info("No save data found for module: %s", module_id)
                return LoadStatus.NOT_FOUND
            loaded = serializer.deserialize(module_id, payload, schema)
        except SaveError as e:
            logger.error("Error loading module %s: %s", module_id, e)
            return LoadStatus.FAILED

        try:
            self.registry.replace(module_id, loaded)
        except KeyError:
            logger.warning("Module %s was unregistered while loading; discarding loaded data", module_id)
            return LoadStatus.NOT_REGISTERED

        try:
            loaded.on_after_load()
        except Exception:  # noqa: BLE001 hook errors stay local to the module
            logger.exception("Error in after-load hook of module %s", module_id)
            return LoadStatus.FAILED

        self.events.publish_module_loaded(loaded)
        logger.info("Loaded module: %s", module_id)
        return LoadStatus.LOADED

    # Stored data

    def has_saved_data(self, module_id: str) -> bool:
        return self._storage.exists(module_id)

    def delete_module_data(self, module_id: str) -> bool:
        """Delete a module's stored payload. Returns False if there was nothing to delete."""
        try:
            deleted = self._storage.delete(module_id)
        except SaveError as e:
            logger.error("Error deleting save data for module %s: %s", module_id, e)
            return False
        if deleted:
            logger.info("Deleted save data for module: %s", module_id)
        else:
            logger.info("No save data to delete for module: %s", module_id)
        return deleted

    def delete_all_data(self) -> int:
        """Delete every stored payload, registered or not. Returns how many were removed."""
        removed = 0
        for key in self._storage.keys():
            if self.delete_module_data(key):
                removed += 1
        logger.info("Deleted %d save payloads", removed)
        return removed

    # Lifecycle

    def wait(self, timeout: Optional[float] = None) -> Optional[FlushReport]:
        """Block until the most recent background flush finishes and return its report."""
        future = self._current
        if future is None:
            return None
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            logger.warning("Timed out after %ss waiting for flush to finish", timeout)
            return None

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Flush anything still queued and stop the background worker.

        The final flush is queued on the worker behind any in-flight flush,
        so ids requested while that flush runs are still written. With
        ``wait`` the call blocks for both, but never past ``timeout``; work
        that has not finished by then completes in the background.
        """
        if self._closed:
            return
        self._closed = True
        pending = [f for f in (self._current,) if f is not None and not f.done()]
        if len(self.queue):
            if self._serializer is None:
                logger.warning("Discarding %d pending saves: no serializer set", len(self.queue))
            else:
                pending.append(self._executor.submit(self._final_flush))
        unfinished = False
        if wait and pending:
            _, not_done = futures_wait(pending, timeout=timeout)
            if not_done:
                unfinished = True
                logger.warning("Timed out after %ss waiting for final saves; they continue in the background", timeout)
        self._executor.shutdown(wait=wait and not unfinished)
        logger.debug("SaveManager shut down")

    def _final_flush(self) -> Optional[FlushReport]:
        report = self.flush()
        if report is None and len(self.queue):
            logger.warning("Could not run final flush; %d saves still pending", len(self.queue))
        return report

    def __enter__(self) -> "SaveManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
