from __future__ import annotations

import threading
import time
from typing import Any, Callable

_DEFAULT_TTL = 24 * 60 * 60  # 1 day


class TTLCache:
    """Small in-process cache for values that rarely change, such as filter options."""

    def __init__(self, ttl_seconds: float = _DEFAULT_TTL, clock: Callable[[], float] = time.time) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry and self._clock() - entry["created_at"] < self._ttl:
                self._hits += 1
                return entry["value"]
            if entry:
                del self._entries[key]
            self._misses += 1
            return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = {"value": value, "created_at": self._clock()}

    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            }
