from __future__ import annotations

from typing import ClassVar, Tuple

from pydantic import BaseModel, ConfigDict


class SaveModule(BaseModel):
    """A named unit of persistable application state.

    Subclasses declare their identity and ordering hints as class attributes
    and their persisted state as regular pydantic fields::

        class SettingsModule(SaveModule):
            save_id: ClassVar[str] = "Settings"
            load_priority: ClassVar[int] = 1

            music_volume: float = 0.5

    - save_id: unique, stable storage key
    - dependencies: ids of modules that must be loaded before this one
    - save_priority / load_priority: lower values go first
    """

    model_config = ConfigDict(validate_assignment=True)

    save_id: ClassVar[str] = ""
    dependencies: ClassVar[Tuple[str, ...]] = ()
    save_priority: ClassVar[int] = 100
    load_priority: ClassVar[int] = 100

    def on_before_save(self) -> None:
        """Called right before the module is serialized."""

    def on_after_load(self) -> None:
        """Called after a freshly deserialized instance replaces the registered one."""


def declared_dependencies(module: SaveModule) -> Tuple[str, ...]:
    """Return the module's dependency ids in declaration order, without duplicates."""
    seen = []
    for dep in module.dependencies or ():
        if dep and dep not in seen:
            seen.append(dep)
    return tuple(seen)
