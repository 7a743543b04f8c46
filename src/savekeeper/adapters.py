from __future__ import annotations

from typing import List, Optional, Type, TypeVar

from .errors import SerializationError, StorageError
from .module import SaveModule
from .serializers import Serializer
from .storage import Storage

T = TypeVar("T", bound=SaveModule)


class SerializerAdapter:
    """Wraps a Serializer so every failure surfaces as a SerializationError."""

    def __init__(self, serializer: Serializer) -> None:
        self.serializer = serializer

    def serialize(self, module: SaveModule) -> str:
        try:
            return self.serializer.serialize(module)
        except Exception as e:
            raise SerializationError(f"Failed to serialize {module.save_id}: {e}", module.save_id) from e

    def deserialize(self, module_id: str, payload: str, schema: Type[T]) -> T:
        try:
            loaded = self.serializer.deserialize(payload, schema)
        except Exception as e:
            raise SerializationError(f"Failed to deserialize {module_id}: {e}", module_id) from e
        if type(loaded) is not schema:
            raise SerializationError(
                f"Serializer returned {type(loaded).__name__} for {module_id}, expected {schema.__name__}",
                module_id,
            )
        return loaded


class StorageAdapter:
    """Wraps a Storage so I/O failures surface as StorageError."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def exists(self, key: str) -> bool:
        try:
            return self.storage.exists(key)
        except Exception as e:
            raise StorageError(f"Failed to check save data for {key}: {e}", key) from e

    def read(self, key: str) -> Optional[str]:
        try:
            return self.storage.read(key)
        except Exception as e:
            raise StorageError(f"Failed to read save data for {key}: {e}", key) from e

    def write(self, key: str, payload: str) -> None:
        try:
            self.storage.write(key, payload)
        except Exception as e:
            raise StorageError(f"Failed to write save data for {key}: {e}", key) from e

    def delete(self, key: str) -> bool:
        try:
            return self.storage.delete(key)
        except Exception as e:
            raise StorageError(f"Failed to delete save data for {key}: {e}", key) from e

    def keys(self) -> List[str]:
        try:
            return list(self.storage.keys())
        except Exception as e:
            raise StorageError(f"Failed to list save data: {e}") from e
