from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from platformdirs import PlatformDirs

from .errors import ConfigurationError
from .serializers import SERIALIZERS

logger = logging.getLogger(__name__)

APP_NAME = "savekeeper"

# Environment variable overrides (useful for tests and power users)
ENV_SAVE_DIR = "SAVEKEEPER_SAVE_DIR"
ENV_AUTOSAVE_INTERVAL = "SAVEKEEPER_AUTOSAVE_INTERVAL"


def default_save_dir(app_name: str = APP_NAME) -> Path:
    """Platform-specific user data dir with a ``saves`` subdirectory.

    Linux: ~/.local/share/<app>/saves
    macOS: ~/Library/Application Support/<app>/saves
    Windows: %LOCALAPPDATA%\\<app>\\saves
    """
    dirs = PlatformDirs(appname=app_name, appauthor=False)
    return Path(dirs.user_data_dir) / "saves"


@dataclass
class SaveConfig:
    """Settings for a SaveManager built with ``SaveManager.from_config``.

    Attributes:
        save_dir: Directory holding one payload file per module.
        file_extension: Suffix of payload files.
        serializer: Name of the payload format ("json" or "yaml").
        autosave_enabled: Whether the AutoSaver should trigger flushes.
        autosave_interval: Seconds between autosave flushes.
    """

    save_dir: Path = field(default_factory=default_save_dir)
    file_extension: str = ".save"
    serializer: str = "json"
    autosave_enabled: bool = True
    autosave_interval: float = 60.0

    def __post_init__(self) -> None:
        self.save_dir = Path(self.save_dir).expanduser()
        if not self.file_extension:
            raise ConfigurationError("file_extension must be a non-empty string")
        if self.serializer.lower() not in SERIALIZERS:
            raise ConfigurationError(
                f"Unknown serializer '{self.serializer}'. Choose from: {', '.join(sorted(SERIALIZERS))}"
            )
        self.serializer = self.serializer.lower()
        try:
            self.autosave_interval = float(self.autosave_interval)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"autosave_interval must be a number, got {self.autosave_interval!r}") from e
        if self.autosave_interval <= 0:
            raise ConfigurationError("autosave_interval must be positive")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SaveConfig":
        known = {"save_dir", "file_extension", "serializer", "autosave_enabled", "autosave_interval"}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", sorted(unknown))
        kwargs = {k: v for k, v in data.items() if k in known and v is not None}
        if "autosave_enabled" in kwargs:
            kwargs["autosave_enabled"] = bool(kwargs["autosave_enabled"])
        return cls(**kwargs)


def load_config(path: Optional[Path] = None) -> SaveConfig:
    """Load configuration from a YAML file, then apply environment overrides.

    A missing ``path`` (None) means defaults. A path that does not exist or
    does not contain a mapping is a ConfigurationError.
    """
    raw: Dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        raw.update(loaded)
        logger.debug("Loaded save config from %s", path)

    save_dir = os.getenv(ENV_SAVE_DIR)
    if save_dir:
        raw["save_dir"] = save_dir
    interval = os.getenv(ENV_AUTOSAVE_INTERVAL)
    if interval:
        raw["autosave_interval"] = interval

    config = SaveConfig.from_dict(raw)
    logger.info("Save dir: %s | serializer=%s", config.save_dir, config.serializer)
    return config
