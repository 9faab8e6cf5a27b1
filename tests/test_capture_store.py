"""Tests for in-memory and on-disk record stores."""

from pathlib import Path

import pytest

from src.utils.capture_store import STORE_CAPTURES, STORE_MODELS, MemoryStore, PthStore


def test_memory_store_ids_increment_per_collection() -> None:
    """Each collection should number its records from 1."""
    store = MemoryStore()

    assert store.put(STORE_MODELS, {"name": "a"}) == 1
    assert store.put(STORE_MODELS, {"name": "b"}) == 2
    assert store.put(STORE_CAPTURES, {"filename": "x"}) == 1
    assert [item["name"] for item in store.list_all(STORE_MODELS)] == ["a", "b"]


def test_memory_store_returns_copies() -> None:
    """Mutating inputs or outputs must not change stored data."""
    store = MemoryStore()
    payload = {"tags": ["a"]}
    record_id = store.put(STORE_CAPTURES, payload)
    payload["tags"].append("b")

    fetched = store.get(STORE_CAPTURES, record_id)
    fetched["tags"].append("c")

    assert store.get(STORE_CAPTURES, record_id)["tags"] == ["a"]
    assert "id" not in payload


def test_memory_store_delete_does_not_reuse_ids() -> None:
    """Deleted ids are gone and new records get fresh ids."""
    store = MemoryStore()
    first = store.put(STORE_MODELS, {"name": "a"})
    store.delete(STORE_MODELS, first)
    store.delete(STORE_MODELS, 99)

    assert store.get(STORE_MODELS, first) is None
    assert store.put(STORE_MODELS, {"name": "b"}) == 2


def test_pth_store_persists_across_instances(tmp_path) -> None:
    """Records and id counters should survive reopening the directory."""
    store = PthStore(tmp_path / "store")
    store.put(STORE_MODELS, {"name": "m", "blob": b"\x01\x02"})
    second = store.put(STORE_MODELS, {"name": "n", "blob": b""})
    store.delete(STORE_MODELS, second)

    reopened = PthStore(tmp_path / "store")

    assert (tmp_path / "store" / "models.pth").exists()
    assert reopened.get(STORE_MODELS, 1) == {"name": "m", "blob": b"\x01\x02", "id": 1}
    assert reopened.get(STORE_MODELS, second) is None
    assert reopened.put(STORE_MODELS, {"name": "o"}) == 3


def test_pth_store_failed_save_keeps_previous_file(tmp_path, monkeypatch) -> None:
    """An interrupted save should leave the last complete file readable."""
    store = PthStore(tmp_path)
    store.put(STORE_CAPTURES, {"filename": "kept"})

    def _crashing_save(payload, file_path):
        Path(file_path).write_bytes(b"partial")
        raise OSError("disk full")

    monkeypatch.setattr("src.utils.capture_store.torch.save", _crashing_save)
    with pytest.raises(OSError):
        store.put(STORE_CAPTURES, {"filename": "lost"})
    monkeypatch.undo()

    reopened = PthStore(tmp_path)
    assert [item["filename"] for item in reopened.list_all(STORE_CAPTURES)] == ["kept"]
