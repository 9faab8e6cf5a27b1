"""Blob-capable record stores for models and captures."""

from __future__ import annotations

import copy
import threading
from pathlib import Path
from typing import Any, Protocol

import torch
from loguru import logger


STORE_MODELS = "models"
STORE_CAPTURES = "captures"


class RecordStore(Protocol):
    """Key/value store with an auto-incrementing id per collection."""

    def put(self, collection: str, record: dict[str, Any]) -> int:
        ...

    def get(self, collection: str, record_id: int) -> dict[str, Any] | None:
        ...

    def list_all(self, collection: str) -> list[dict[str, Any]]:
        ...

    def delete(self, collection: str, record_id: int) -> None:
        ...


class MemoryStore:
    """In-process store; records are deep-copied in and out.

    Examples
    --------
    >>> store = MemoryStore()
    >>> store.put("captures", {"filename": "a"})
    1
    >>> store.get("captures", 1)["id"]
    1
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[int, dict[str, Any]]] = {}
        self._next_ids: dict[str, int] = {}
        self._lock = threading.Lock()

    def put(self, collection: str, record: dict[str, Any]) -> int:
        """Insert a record and return its new id."""
        with self._lock:
            record_id = self._next_ids.get(collection, 1)
            self._next_ids[collection] = record_id + 1
            stored = copy.deepcopy(record)
            stored["id"] = record_id
            self._collections.setdefault(collection, {})[record_id] = stored
        return record_id

    def get(self, collection: str, record_id: int) -> dict[str, Any] | None:
        """Return one record or ``None``."""
        with self._lock:
            record = self._collections.get(collection, {}).get(record_id)
            return None if record is None else copy.deepcopy(record)

    def list_all(self, collection: str) -> list[dict[str, Any]]:
        """Return all records in insertion order."""
        with self._lock:
            return [
                copy.deepcopy(record)
                for record in self._collections.get(collection, {}).values()
            ]

    def delete(self, collection: str, record_id: int) -> None:
        """Remove a record; unknown ids are ignored."""
        with self._lock:
            self._collections.get(collection, {}).pop(record_id, None)


class PthStore(MemoryStore):
    """Directory-backed store writing one ``.pth`` file per collection.

    Parameters
    ----------
    root_dir : str | Path
        Directory holding ``<collection>.pth`` files.
    """

    def __init__(self, root_dir: str | Path) -> None:
        super().__init__()
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)
        for file_path in sorted(self.root_dir.glob("*.pth")):
            self._load_collection(file_path)

    def _load_collection(self, file_path: Path) -> None:
        """Load one collection file saved by :meth:`_save_collection`."""
        payload = torch.load(file_path, map_location="cpu", weights_only=False)
        collection = file_path.stem
        records = {int(key): value for key, value in payload["records"].items()}
        self._collections[collection] = records
        self._next_ids[collection] = int(payload["next_id"])
        logger.debug(f"Loaded {len(records)} records from {file_path}")

    def _save_collection(self, collection: str) -> None:
        """Persist one collection to disk."""
        payload = {
            "next_id": self._next_ids.get(collection, 1),
            "records": self._collections.get(collection, {}),
        }
        target_path = self.root_dir / f"{collection}.pth"
        # previous file stays intact until the swap
        temp_path = target_path.with_name(f"{target_path.name}.tmp")
        torch.save(payload, temp_path)
        temp_path.replace(target_path)

    def put(self, collection: str, record: dict[str, Any]) -> int:
        record_id = super().put(collection, record)
        with self._lock:
            self._save_collection(collection)
        return record_id

    def delete(self, collection: str, record_id: int) -> None:
        super().delete(collection, record_id)
        with self._lock:
            self._save_collection(collection)
