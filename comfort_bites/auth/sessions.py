from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable

from ..config import SESSION_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionEntry:
    user_id: int
    expires_at: float


class SessionStore:
    """
    Server-side session table: opaque token -> user id.

    Entries expire ``ttl_seconds`` after creation. Expired entries are
    ignored on lookup and removed by ``sweep``, which the application runs
    periodically.
    """

    def __init__(self, ttl_seconds: float = SESSION_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, SessionEntry] = {}
        self._lock = threading.Lock()

    def create(self, user_id: int) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._entries[token] = SessionEntry(user_id=user_id, expires_at=self._clock() + self.ttl_seconds)
        return token

    def get(self, token: str) -> int | None:
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[token]
                return None
            return entry.user_id

    def revoke(self, token: str) -> None:
        with self._lock:
            self._entries.pop(token, None)

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [t for t, e in self._entries.items() if e.expires_at <= now]
            for token in expired:
                del self._entries[token]
        if expired:
            logger.info("Swept %d expired sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
