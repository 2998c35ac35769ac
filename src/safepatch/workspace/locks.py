"""Per-file locks serializing check-and-apply for one file identity."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class FileLocks:
    """Registry of one ``threading.Lock`` per file URI.

    Locks are created on first use and kept for the registry's lifetime.
    Pass one registry to every caller that may touch the same files.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def lock_for(self, uri: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(uri)
            if lock is None:
                lock = self._locks[uri] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, uri: str) -> Iterator[None]:
        lock = self.lock_for(uri)
        with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
