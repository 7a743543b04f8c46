"""Serializers turning a SaveModule into a text payload and back.

Deserialization is type directed: the caller passes the concrete module class
and gets an instance of exactly that class, or an exception.
"""

from __future__ import annotations

from typing import Protocol, Type, TypeVar, runtime_checkable

import yaml
from pydantic import ValidationError

from .module import SaveModule

T = TypeVar("T", bound=SaveModule)


@runtime_checkable
class Serializer(Protocol):
    def serialize(self, module: SaveModule) -> str:
        ...

    def deserialize(self, payload: str, target_type: Type[T]) -> T:
        ...


class JsonSerializer:
    """Pretty-printed JSON via pydantic."""

    def __init__(self, indent: int = 2) -> None:
        self.indent = indent

    def serialize(self, module: SaveModule) -> str:
        return module.model_dump_json(indent=self.indent)

    def deserialize(self, payload: str, target_type: Type[T]) -> T:
        try:
            return target_type.model_validate_json(payload)
        except ValidationError as e:
            # pydantic reports malformed JSON and schema errors the same way
            raise ValueError(f"Invalid {target_type.__name__} payload: {e}") from e


class YamlSerializer:
    """Human-editable YAML. Values are dumped in pydantic's JSON mode so only plain types reach PyYAML."""

    def serialize(self, module: SaveModule) -> str:
        return yaml.safe_dump(module.model_dump(mode="json"), sort_keys=True, allow_unicode=True)

    def deserialize(self, payload: str, target_type: Type[T]) -> T:
        try:
            data = yaml.safe_load(payload)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML: {e}") from e
        if data is None:
            # A blank file is a truncated save, not a module with default state
            raise ValueError(f"Empty YAML document for {target_type.__name__}")
        if not isinstance(data, dict):
            raise ValueError(f"Expected a mapping for {target_type.__name__}, got {type(data).__name__}")
        try:
            return target_type.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid {target_type.__name__} payload: {e}") from e


SERIALIZERS = {
    "json": JsonSerializer,
    "yaml": YamlSerializer,
}


def get_serializer(name: str) -> Serializer:
    try:
        return SERIALIZERS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown serializer '{name}'. Choose from: {', '.join(sorted(SERIALIZERS))}") from None
