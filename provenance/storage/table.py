# provenance/storage/table.py
"""
Ordered key-value tables backing the registry stores.

A table maps string keys to values and iterates in key order. Two
implementations:
- MemoryTable: process-local dict
- JsonFileTable: MemoryTable persisted to a JSON file after every write

Both are safe to call from several threads. Coordinating writes across
keys and tables is the registry's job, not the table's.
"""

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


class Table(ABC, Generic[V]):
    """Contract of an ordered key-value table."""

    @abstractmethod
    def get(self, key: str) -> Optional[V]:
        """Return the value for key, or None if absent."""

    @abstractmethod
    def put(self, key: str, value: V) -> None:
        """Insert or overwrite the value for key."""

    @abstractmethod
    def discard(self, key: str) -> None:
        """Remove key if present."""

    @abstractmethod
    def items(self) -> List[Tuple[str, V]]:
        """Snapshot of (key, value) pairs in key order."""

    def keys(self) -> List[str]:
        return [key for key, _ in self.items()]

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self.items())

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())


class MemoryTable(Table[V]):
    """In-memory table."""

    def __init__(self):
        self._data: Dict[str, V] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: V) -> None:
        with self._lock:
            self._data[key] = value

    def discard(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def items(self) -> List[Tuple[str, V]]:
        with self._lock:
            return sorted(self._data.items(), key=lambda kv: kv[0])

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


def _identity(value: Any) -> Any:
    return value


class JsonFileTable(MemoryTable[V]):
    """
    Table persisted to a single JSON file.

    The whole table is rewritten on each change: the new content goes to a
    temporary file in the same directory which then replaces the old one,
    so a crash leaves either the old or the new table on disk.

    Structure:
        path                # {"version": "1.0", "entries": {key: value}}

    Args:
        path: File to load from and save to
        encode: Turns a value into JSON-compatible data
        decode: Inverse of encode
    """

    def __init__(
        self,
        path: Path | str,
        encode: Callable[[V], Any] = _identity,
        decode: Callable[[Any], V] = _identity,
    ):
        super().__init__()
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._encode = encode
        self._decode = decode
        self._load()

    def _load(self):
        """Load table from disk."""
        if not self.path.exists():
            return
        with open(self.path) as f:
            data = json.load(f)
        self._data = {
            key: self._decode(value)
            for key, value in data.get("entries", {}).items()
        }
        logger.debug(f"Loaded {len(self._data)} entries from {self.path}")

    def _save(self):
        """Save table to disk. Caller holds self._lock."""
        data = {
            "version": "1.0",
            "entries": {
                key: self._encode(value)
                for key, value in sorted(self._data.items(), key=lambda kv: kv[0])
            },
        }
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def put(self, key: str, value: V) -> None:
        with self._lock:
            previous = self._data.get(key)
            self._data[key] = value
            try:
                self._save()
            except OSError:
                self._restore(key, previous)
                raise

    def discard(self, key: str) -> None:
        with self._lock:
            if key not in self._data:
                return
            previous = self._data.pop(key)
            try:
                self._save()
            except OSError:
                self._data[key] = previous
                raise

    def _restore(self, key: str, previous: Optional[V]):
        if previous is None:
            self._data.pop(key, None)
        else:
            self._data[key] = previous
