"""
Key-value storage for the tracker's collections.

The services only need a flat blob store:

    save(key, value) / load(key) / delete(key) / clear()

Each call returns a Result; nothing here raises on I/O or decoding problems.
Two implementations:

- MemoryStorage:   serialized JSON strings in a dict (used by tests and as a
                   scratch store); an optional quota mimics a full disk
- JsonFileStorage: a single JSON document on disk; the CLI points it at
                   Settings.storage_path (see config.py)

Values must be JSON-serializable (the services store lists of plain records
with ISO 8601 timestamp strings).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, TypeVar

from weektrack.errors import MissingDataError, Result, StorageError

logger = logging.getLogger(__name__)

QUOTA_MESSAGE = "Storage quota exceeded. Please free up space."


class KeyValueStorage(Protocol):
    def save(self, key: str, value: Any) -> Result[None]: ...

    def load(self, key: str) -> Result[Any]: ...

    def delete(self, key: str) -> Result[None]: ...

    def clear(self) -> Result[None]: ...


R = TypeVar("R")


def _encode(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def load_collection(
    storage: KeyValueStorage,
    key: str,
    decode: Callable[[Any], R],
) -> Tuple[List[R], List[Any], Optional[StorageError]]:
    """
    Read a stored list of records.

    Returns (items, unreadable, error):
    - items:      records that decoded cleanly
    - unreadable: raw records that did not; the caller writes them back
                  untouched so one bad record never costs the others
    - error:      set when the stored value as a whole is unusable (corrupted
                  or not a list); the caller must not overwrite it
    Nothing stored yet is not an error.
    """
    result = storage.load(key)
    if not result.ok:
        if isinstance(result.error, MissingDataError):
            return [], [], None
        logger.warning("Stored %s is unusable, refusing writes: %s", key, result.error)
        error = result.error if isinstance(result.error, StorageError) else StorageError(str(result.error))
        return [], [], error

    if not isinstance(result.value, list):
        logger.warning("Stored %s is not a list, refusing writes", key)
        return [], [], StorageError(f"Corrupted data for key: {key}")

    items: List[R] = []
    unreadable: List[Any] = []
    for rec in result.value:
        try:
            items.append(decode(rec))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Keeping unreadable record under %s as-is: %s", key, e)
            unreadable.append(rec)
    return items, unreadable, None


class MemoryStorage:
    """
    In-memory store holding serialized JSON text per key.

    Values go through json.dumps/json.loads so a MemoryStorage behaves like
    a real store: callers never share mutable objects with it.
    """

    def __init__(self, quota: Optional[int] = None) -> None:
        self.items: Dict[str, str] = {}
        self.quota = quota

    def _used_without(self, key: str) -> int:
        return sum(len(v) for k, v in self.items.items() if k != key)

    def save(self, key: str, value: Any) -> Result[None]:
        try:
            serialized = _encode(value)
        except (TypeError, ValueError) as e:
            return Result.failure(StorageError(f"Failed to save data: {e}"))

        if self.quota is not None and self._used_without(key) + len(serialized) > self.quota:
            logger.warning("MemoryStorage quota exceeded key=%s size=%s", key, len(serialized))
            return Result.failure(StorageError(QUOTA_MESSAGE))

        self.items[key] = serialized
        return Result.success()

    def load(self, key: str) -> Result[Any]:
        serialized = self.items.get(key)
        if serialized is None:
            return Result.failure(MissingDataError(f"No data found for key: {key}"))
        try:
            return Result.success(json.loads(serialized))
        except json.JSONDecodeError:
            return Result.failure(StorageError(f"Corrupted data for key: {key}"))

    def delete(self, key: str) -> Result[None]:
        self.items.pop(key, None)
        return Result.success()

    def clear(self) -> Result[None]:
        self.items.clear()
        return Result.success()


class JsonFileStorage:
    """
    One JSON object on disk: {key: value, ...}.

    Every save rewrites the whole file through a temp file + os.replace, so a
    crash mid-write leaves the previous version intact.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> Result[Dict[str, Any]]:
        # First run: file does not exist yet -> no keys
        if not self.path.exists():
            return Result.success({})
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Corrupted storage file %s", self.path)
            return Result.failure(StorageError(f"Corrupted data in {self.path}"))
        except OSError as e:
            return Result.failure(StorageError(f"Failed to load data: {e}"))
        if not isinstance(data, dict):
            return Result.failure(StorageError(f"Corrupted data in {self.path}"))
        return Result.success(data)

    def _write_all(self, data: Dict[str, Any]) -> Result[None]:
        try:
            # Lone surrogates (e.g. from undecodable argv) fail here, not mid-write
            payload = json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            return Result.failure(StorageError(f"Failed to save data: {e}"))

        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".tracker-", suffix=".tmp")
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.warning("Writing %s failed: %s", self.path, e)
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            return Result.failure(StorageError(f"Failed to save data: {e}"))
        return Result.success()

    def save(self, key: str, value: Any) -> Result[None]:
        current = self._read_all()
        if not current.ok:
            return Result.failure(current.error)  # type: ignore[arg-type]
        data = dict(current.value or {})
        data[key] = value
        return self._write_all(data)

    def load(self, key: str) -> Result[Any]:
        current = self._read_all()
        if not current.ok:
            return current
        data = current.value or {}
        if key not in data:
            return Result.failure(MissingDataError(f"No data found for key: {key}"))
        return Result.success(data[key])

    def delete(self, key: str) -> Result[None]:
        current = self._read_all()
        if not current.ok:
            return Result.failure(current.error)  # type: ignore[arg-type]
        data = dict(current.value or {})
        if key not in data:
            return Result.success()
        del data[key]
        return self._write_all(data)

    def clear(self) -> Result[None]:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            return Result.failure(StorageError(f"Failed to clear storage: {e}"))
        return Result.success()
