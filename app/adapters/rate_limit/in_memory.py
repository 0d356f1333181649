"""In-memory rate limit store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading

from app.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitEntry


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Dictionary-backed store for fixed-window entries.

    Important:
        State lives in the current process and is lost on restart. If the
        API runs with multiple workers or instances, each one enforces its
        own independent limits.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}

    def get(self, key: str) -> RateLimitEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            # Callers get a snapshot; mutation goes through set/increment.
            return RateLimitEntry(count=entry.count, reset_at=entry.reset_at)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        with self._lock:
            self._entries[key] = RateLimitEntry(count=entry.count, reset_at=entry.reset_at)

    def increment(self, key: str) -> RateLimitEntry:
        with self._lock:
            entry = self._entries[key]
            entry.count += 1
            return RateLimitEntry(count=entry.count, reset_at=entry.reset_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def purge_expired(self, now_ms: int) -> int:
        with self._lock:
            expired_keys = [k for k, entry in self._entries.items() if entry.is_expired(now_ms)]
            for key in expired_keys:
                del self._entries[key]
            return len(expired_keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryRateLimitStore(size={len(self)})"
