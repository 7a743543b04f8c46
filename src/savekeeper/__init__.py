"""savekeeper: modular save/load orchestration.

This package provides:
- SaveModule, the base class for independently persisted pieces of state
- SaveManager, which orders loads by dependency, batches save requests and
  writes them on a background worker
- JSON and YAML serializers, file and in-memory storage backends
- YAML configuration with platform-specific default save directories
"""

from .autosave import AutoSaver
from .config import SaveConfig, default_save_dir, load_config
from .errors import (
    ConfigurationError,
    SaveError,
    SerializationError,
    StorageError,
)
from .events import MODULE_LOADED, SAVE_COMPLETED, EventBus
from .graph import DependencyCycle, LoadOrder, build_dependency_graph, find_priority_conflicts, resolve_load_order
from .manager import FlushReport, LoadReport, LoadStatus, SaveManager
from .module import SaveModule
from .queue import SaveQueue
from .registry import ModuleRegistry
from .serializers import JsonSerializer, Serializer, YamlSerializer, get_serializer
from .storage import FileStorage, InMemoryStorage, Storage

__version__ = "0.1.0"

__all__ = [
    "AutoSaver",
    "SaveConfig",
    "default_save_dir",
    "load_config",
    "ConfigurationError",
    "SaveError",
    "SerializationError",
    "StorageError",
    "MODULE_LOADED",
    "SAVE_COMPLETED",
    "EventBus",
    "DependencyCycle",
    "LoadOrder",
    "build_dependency_graph",
    "find_priority_conflicts",
    "resolve_load_order",
    "FlushReport",
    "LoadReport",
    "LoadStatus",
    "SaveManager",
    "SaveModule",
    "SaveQueue",
    "ModuleRegistry",
    "JsonSerializer",
    "Serializer",
    "YamlSerializer",
    "get_serializer",
    "FileStorage",
    "InMemoryStorage",
    "Storage",
]
