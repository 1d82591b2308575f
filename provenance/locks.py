# provenance/locks.py
"""
Per-key locking.

Operations touching the same key run one after another; operations on
disjoint keys run in parallel. Several keys are always taken in sorted
order so two operations can never wait on each other.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Tuple


class KeyedLock:
    """
    A lock per string key.

    Usage:
        locks = KeyedLock()
        with locks.hold("asset:1", "holder:alice"):
            ...
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str):
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                # Nobody holds or waits on it; drop so the map stays small
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Hold the locks for all keys for the duration of the block."""
        ordered = sorted(set(keys))
        acquired: List[Tuple[str, threading.Lock]] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

    def active_keys(self) -> Iterable[str]:
        """Keys currently held or waited on."""
        with self._guard:
            return list(self._locks)
