"""Sample modules showing how an application splits its state.

Settings loads first, PlayerStats needs Settings, GameProgress needs
PlayerStats.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import ClassVar, List, Optional, Tuple

from pydantic import Field

from .module import SaveModule

logger = logging.getLogger(__name__)


class SettingsModule(SaveModule):
    save_id: ClassVar[str] = "Settings"
    load_priority: ClassVar[int] = 1

    music_volume: float = Field(0.5, ge=0.0, le=1.0)
    sfx_volume: float = Field(0.7, ge=0.0, le=1.0)
    fullscreen: bool = True
    quality_level: int = 2

    def on_after_load(self) -> None:
        logger.info("Settings loaded: music=%s, sfx=%s", self.music_volume, self.sfx_volume)


class PlayerStatsModule(SaveModule):
    save_id: ClassVar[str] = "PlayerStats"
    dependencies: ClassVar[Tuple[str, ...]] = ("Settings",)
    load_priority: ClassVar[int] = 10

    health: int = 100
    score: int = 0
    last_updated: Optional[datetime] = None

    def on_before_save(self) -> None:
        self.last_updated = datetime.now(timezone.utc)

    def on_after_load(self) -> None:
        logger.info("Player stats loaded: health=%s, score=%s", self.health, self.score)


class GameProgressModule(SaveModule):
    save_id: ClassVar[str] = "GameProgress"
    dependencies: ClassVar[Tuple[str, ...]] = ("PlayerStats",)
    load_priority: ClassVar[int] = 50

    current_level: int = 1
    level_completion: float = Field(0.0, ge=0.0, le=1.0)
    completed_objectives: List[str] = Field(default_factory=list)

    def on_after_load(self) -> None:
        logger.info("Game progress loaded: level=%s, completion=%.0f%%", self.current_level, self.level_completion * 100)


SAMPLE_MODULES = (SettingsModule, PlayerStatsModule, GameProgressModule)
