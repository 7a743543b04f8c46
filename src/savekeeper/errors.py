from __future__ import annotations

from typing import Optional


class SaveError(Exception):
    """Base exception for save/load errors."""

    def __init__(self, message: str, module_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.module_id = module_id


class ConfigurationError(SaveError):
    """Raised when an operation needs configuration that is missing or invalid (e.g. no serializer)."""


class SerializationError(SaveError):
    """Raised when a module cannot be encoded or decoded."""


class StorageError(SaveError):
    """Raised when the storage backend fails to read, write or delete a payload."""
