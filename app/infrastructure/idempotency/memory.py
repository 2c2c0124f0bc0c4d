"""In-process idempotency cache with per-entry TTL."""

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.logging import get_module_logger

logger = get_module_logger()


class InMemoryCache(IdempotencyCache):
    """Thread-safe dict-backed cache.

    Expired entries are dropped lazily on read and swept on write once the
    cache grows past ``max_entries``.
    """

    def __init__(
        self,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._max_entries = max_entries
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            expires_at, response = entry
            if expires_at <= self._clock():
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return response

    def set(self, key: str, response: Dict[str, Any], ttl_seconds: int) -> None:
        with self._lock:
            if len(self._entries) >= self._max_entries:
                self._sweep()
            self._entries[key] = (self._clock() + ttl_seconds, response)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "backend": "memory",
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
            }

    def _sweep(self) -> None:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        logger.debug("idempotency_cache_swept", removed=len(expired))
