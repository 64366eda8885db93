"""In-memory TTL cache for the community rule index."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from ..models import RegistrySnapshot


class IndexCache:
    """Holds at most one registry snapshot and the time it was fetched.

    The snapshot is swapped as a whole under ``lock``; callers that refresh
    hold the same lock so concurrent queries never race a refresh.
    """

    def __init__(self, ttl: float = 300.0, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._snapshot: Optional[RegistrySnapshot] = None
        self._fetched_at: Optional[float] = None
        self.lock = threading.RLock()

    def get_fresh(self) -> Optional[RegistrySnapshot]:
        with self.lock:
            if self._snapshot is None or self.is_stale():
                return None
            return self._snapshot

    def get_any(self) -> Optional[RegistrySnapshot]:
        with self.lock:
            return self._snapshot

    def replace(self, snapshot: RegistrySnapshot) -> None:
        with self.lock:
            self._snapshot = snapshot
            self._fetched_at = self._clock()

    def is_stale(self) -> bool:
        with self.lock:
            if self._fetched_at is None:
                return True
            return self._clock() - self._fetched_at >= self.ttl

    def clear(self) -> None:
        with self.lock:
            self._snapshot = None
            self._fetched_at = None


__all__ = ["IndexCache"]
