"""
Record storage for the flat JSON collections (users, shifts, reviews).

Every collection is one document rewritten in full on each save. Saves go to
a temp file in the same directory and are moved into place, so readers never
see a half-written collection. mutate() wraps load/modify/save in a
per-collection lock so concurrent writers do not drop each other's changes.
"""

import copy
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, ContextManager, Dict, Iterator, List

from ..core.locks import LOCK_TIMEOUT_SECONDS, acquire_lock, clear_stale_locks, lock_key_collection
from ..utils.exceptions import StorageError
from ..utils.logger import get_logger

logger = get_logger(__name__)

USERS = "users"
SHIFTS = "shifts"
REVIEWS = "reviews"
COLLECTIONS = (USERS, SHIFTS, REVIEWS)

Record = Dict[str, Any]


class RecordStore(ABC):
    """Load/save of whole collections plus a locked read-modify-write."""

    @abstractmethod
    def load(self, collection: str) -> List[Record]:
        """Return every record in the collection, in stored order."""

    @abstractmethod
    def save(self, collection: str, records: List[Record]) -> None:
        """Replace the collection atomically."""

    @abstractmethod
    def _locked(self, collection: str) -> ContextManager[None]:
        ...

    @contextmanager
    def mutate(self, collection: str) -> Iterator[List[Record]]:
        """
        Yield the loaded collection for in-place changes and save it on exit.

        Nothing is written if the block raises.
        """
        with self._locked(collection):
            records = self.load(collection)
            yield records
            self.save(collection, records)


class JsonRecordStore(RecordStore):
    """One ``<collection>.json`` file per collection under ``data_dir``, holding a JSON array."""

    def __init__(self, data_dir: Path, lock_timeout_seconds: float = LOCK_TIMEOUT_SECONDS):
        self.data_dir = Path(data_dir)
        self.locks_dir = self.data_dir / "locks"
        self.lock_timeout_seconds = lock_timeout_seconds

    def path_for(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def ensure_collections(self) -> None:
        """
        Create the data directory and empty collection files if missing, and
        remove lock files left by a process that died while holding them.
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)
        clear_stale_locks(self.locks_dir)
        for collection in COLLECTIONS:
            if not self.path_for(collection).exists():
                self.save(collection, [])
                logger.info("Created collection", collection=collection, path=str(self.path_for(collection)))

    def load(self, collection: str) -> List[Record]:
        path = self.path_for(collection)
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = f.read()
            if not raw.strip():
                return []
            data = json.loads(raw)
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(f"Failed to load {collection} from {path}: {e}")

        # Older files wrap the array as {collection: [...]}
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            return list(data.get(collection) or [])
        raise StorageError(f"Unexpected document shape in {path}")

    def save(self, collection: str, records: List[Record]) -> None:
        path = self.path_for(collection)
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(path.parent), prefix=f".{collection}.", suffix=".tmp",
            delete=False, encoding="utf-8",
        ) as tf:
            json.dump(records, tf, indent=2, ensure_ascii=False)
            temp_path = Path(tf.name)

        try:
            # Atomic move/replace
            os.replace(temp_path, path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Failed to save {collection} to {path}: {e}")

    def _locked(self, collection: str) -> ContextManager[None]:
        return acquire_lock(self.locks_dir, lock_key_collection(collection), self.lock_timeout_seconds)


class MemoryRecordStore(RecordStore):
    """Process-local store. Records are copied in and out like the file store."""

    def __init__(self):
        self._data: Dict[str, List[Record]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def load(self, collection: str) -> List[Record]:
        return copy.deepcopy(self._data.get(collection, []))

    def save(self, collection: str, records: List[Record]) -> None:
        self._data[collection] = copy.deepcopy(list(records))

    @contextmanager
    def _locked(self, collection: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(collection, threading.Lock())
        with lock:
            yield
