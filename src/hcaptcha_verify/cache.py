"""In-process TTL cache of siteverify results keyed by response token."""

import threading
import time
from typing import Callable, Optional

from .types import CacheEntry, VerificationResult


class ResponseCache:
    """
    Cache of siteverify results with a fixed time-to-live.

    Entries expire ``ttl`` seconds after they were stored; reads do not
    extend that. Expired entries are dropped when ``get`` finds them, there
    is no background sweep, and the cache is unbounded. Tokens are single-use
    and short-lived so the size stays small in practice, but a flood of
    distinct tokens that are never looked up again is only released by
    ``clear()``.
    """

    def __init__(self, ttl: float = 120.0, clock: Callable[[], float] = time.monotonic):
        self._ttl = float(ttl)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, token: str) -> Optional[VerificationResult]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            if now - entry.timestamp < self._ttl:
                return entry.result
            del self._entries[token]
        return None

    def set(self, token: str, result: VerificationResult) -> None:
        entry = CacheEntry(token=token, result=result, timestamp=self._clock())
        with self._lock:
            self._entries[token] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
