"""Key -> record persistence.

Engines depend on RecordStore, not on a concrete backend, so a transactional
or locked backing store can replace the JSON files without touching call
sites. Keys are '/'-separated paths such as 'approvals/add-auth'.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import weakref
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from changegate.domain.constants import RECORD_SUFFIX, RECORD_TEMP_SUFFIX
from changegate.domain.errors import StoreError

logger = logging.getLogger(__name__)


class KeyedLocks:
    """Per-key mutexes that exist only while some caller holds or awaits them.

    Entries are weak: once the last `hold` for a key exits, its lock is
    dropped, so the map never outgrows the keys currently in use.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
        with lock:
            yield


class RecordStore(ABC):
    """Pluggable persistence for approval records, review sets and check history.

    Reads of a missing key return None and never raise. Writers that do a
    read-modify-write should wrap it in `locked(key)` so concurrent callers
    inside this process are serialized per key.
    """

    def __init__(self) -> None:
        self._locks = KeyedLocks()

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the record stored under key, or None."""

    @abstractmethod
    def put(self, key: str, record: Any) -> None:
        """Create or replace the record stored under key."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key. Returns False if it did not exist."""

    @abstractmethod
    def list_keys(self, prefix: str = "") -> list[str]:
        """Return all keys starting with prefix, sorted ascending."""

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """Serialize writers of one key."""
        with self._locks.hold(key):
            yield


class JsonFileRecordStore(RecordStore):
    """One pretty-printed JSON file per key under a root directory."""

    def __init__(self, root: Path) -> None:
        """
        Initialize the store.

        Args:
            root: Directory holding all records (e.g. <project>/openspec)
        """
        super().__init__()
        self.root = root

    def _path(self, key: str) -> Path:
        return self.root / f"{key}{RECORD_SUFFIX}"

    def get(self, key: str) -> Any | None:
        """
        Load a record.

        Raises:
            StoreError: If the file exists but is not valid JSON
        """
        path = self._path(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreError(f"Invalid record at {path}: {e}") from e

    def put(self, key: str, record: Any) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = path.with_name(path.name[: -len(RECORD_SUFFIX)] + RECORD_TEMP_SUFFIX)

        # Write atomically - write to temp, then rename
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2, ensure_ascii=False)

        temp_file.replace(path)
        logger.debug(f"Wrote record {key} to {path}")

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def list_keys(self, prefix: str = "") -> list[str]:
        # Walk only the deepest directory the prefix names
        base_dir = self.root / prefix.rsplit("/", 1)[0] if "/" in prefix else self.root
        if not base_dir.is_dir():
            return []

        keys = []
        for path in base_dir.rglob(f"*{RECORD_SUFFIX}"):
            if not path.is_file():
                continue
            key = path.relative_to(self.root).as_posix()[: -len(RECORD_SUFFIX)]
            if key.startswith(prefix):
                keys.append(key)

        return sorted(keys)


class InMemoryRecordStore(RecordStore):
    """Process-local store; records are deep-copied on the way in and out."""

    def __init__(self) -> None:
        super().__init__()
        self._records: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        record = self._records.get(key)
        return copy.deepcopy(record) if record is not None else None

    def put(self, key: str, record: Any) -> None:
        self._records[key] = copy.deepcopy(record)

    def delete(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    def list_keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._records if k.startswith(prefix))
