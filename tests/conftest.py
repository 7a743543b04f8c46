import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from savekeeper import InMemoryStorage, JsonSerializer, SaveManager  # noqa: E402
from savekeeper.samples import GameProgressModule, PlayerStatsModule, SettingsModule  # noqa: E402


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def manager(storage: InMemoryStorage):
    mgr = SaveManager(storage, serializer=JsonSerializer())
    yield mgr
    mgr.shutdown()


@pytest.fixture()
def sample_modules(manager: SaveManager):
    """Register the three sample modules (in an order that is not their load order)."""
    modules = [GameProgressModule(), PlayerStatsModule(), SettingsModule()]
    for m in modules:
        manager.register_module(m)
    return modules
