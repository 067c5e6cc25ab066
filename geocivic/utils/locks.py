"""
Per-key mutual exclusion.

Transitions on the same report id (and ledger writes for the same user)
must serialize; different keys proceed in parallel. A key's lock lives
only while someone holds or waits on it.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class KeyedLocks:
    """Registry of reentrant locks, one per key, dropped when the last holder releases."""

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._locks: Dict[str, List] = {}

    def _acquire_entry(self, key: str) -> threading.RLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.RLock(), 0]
            entry[1] += 1
            return entry[0]

    def _release_entry(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._acquire_entry(key)
        try:
            with lock:
                yield
        finally:
            self._release_entry(key)
