from __future__ import annotations

from pathlib import Path

import pytest

from savekeeper import FileStorage, InMemoryStorage, StorageError
from savekeeper.adapters import StorageAdapter


def test_file_storage_write_read_delete(tmp_path: Path):
    fs = FileStorage(tmp_path / "saves")
    assert fs.read("Settings") is None
    assert not fs.exists("Settings")

    fs.write("Settings", '{"music_volume": 0.5}')
    assert fs.exists("Settings")
    assert fs.read("Settings") == '{"music_volume": 0.5}'
    assert (tmp_path / "saves" / "Settings.save").is_file()

    assert fs.delete("Settings") is True
    assert fs.delete("Settings") is False
    assert fs.read("Settings") is None


def test_file_storage_overwrite_leaves_no_temp_files(tmp_path: Path):
    fs = FileStorage(tmp_path)
    fs.write("A", "one")
    fs.write("A", "two")
    assert fs.read("A") == "two"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["A.save"]


def test_file_storage_keys_and_clear(tmp_path: Path):
    fs = FileStorage(tmp_path, extension="json")
    assert fs.extension == ".json"
    fs.write("B", "{}")
    fs.write("A", "{}")
    (tmp_path / "notes.txt").write_text("keep me", encoding="utf-8")

    assert fs.keys() == ["A", "B"]
    assert fs.clear() == 2
    assert fs.keys() == []
    assert (tmp_path / "notes.txt").exists()


@pytest.mark.parametrize("key", ["Player Stats", "Réglages", "..", ".", "../escape", "a/b", "a\\b", "100%"])
def test_file_storage_round_trips_any_key_inside_root(tmp_path: Path, key: str):
    root = tmp_path / "saves"
    fs = FileStorage(root)
    fs.write(key, "payload")

    assert fs.read(key) == "payload"
    assert fs.keys() == [key]
    files = list(root.iterdir())
    assert len(files) == 1
    assert files[0].parent == root
    assert not files[0].name.startswith(".")
    assert fs.delete(key) is True
    assert list(root.iterdir()) == []


def test_file_storage_rejects_empty_key(tmp_path: Path):
    fs = FileStorage(tmp_path)
    with pytest.raises(ValueError):
        fs.write("", "x")


def test_in_memory_storage():
    mem = InMemoryStorage()
    mem.write("B", "2")
    mem.write("A", "1")
    assert mem.keys() == ["A", "B"]
    assert mem.read("A") == "1"
    assert mem.delete("A") is True
    assert mem.delete("A") is False
    assert mem.clear() == 1


class BrokenStorage(InMemoryStorage):
    def read(self, key):
        raise PermissionError("denied")


def test_adapter_wraps_backend_failures():
    adapter = StorageAdapter(BrokenStorage())
    with pytest.raises(StorageError) as exc_info:
        adapter.read("Settings")
    assert exc_info.value.module_id == "Settings"
    assert isinstance(exc_info.value.__cause__, PermissionError)


def test_adapter_wraps_invalid_key(tmp_path: Path):
    adapter = StorageAdapter(FileStorage(tmp_path))
    with pytest.raises(StorageError):
        adapter.write("", "data")
