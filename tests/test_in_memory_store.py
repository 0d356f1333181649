"""Unit tests for the in-memory rate limit store."""

import threading

import pytest

from app.adapters.rate_limit.base import RateLimitEntry
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore


def test_get_missing_returns_none() -> None:
    assert InMemoryRateLimitStore().get("k") is None


def test_get_returns_snapshot() -> None:
    store = InMemoryRateLimitStore()
    store.set("k", RateLimitEntry(count=1, reset_at=5_000))

    snapshot = store.get("k")
    snapshot.count = 99

    assert store.get("k").count == 1


def test_increment_returns_updated_entry() -> None:
    store = InMemoryRateLimitStore()
    store.set("k", RateLimitEntry(count=1, reset_at=5_000))

    updated = store.increment("k")

    assert updated == RateLimitEntry(count=2, reset_at=5_000)
    assert store.get("k").count == 2


def test_increment_missing_key_raises() -> None:
    with pytest.raises(KeyError):
        InMemoryRateLimitStore().increment("k")


def test_delete_is_idempotent() -> None:
    store = InMemoryRateLimitStore()
    store.set("k", RateLimitEntry(count=1, reset_at=5_000))

    store.delete("k")
    store.delete("k")

    assert len(store) == 0


def test_purge_expired_removes_only_ended_windows() -> None:
    store = InMemoryRateLimitStore()
    store.set("ended", RateLimitEntry(count=3, reset_at=1_000))
    store.set("ends_now", RateLimitEntry(count=1, reset_at=2_000))
    store.set("live", RateLimitEntry(count=1, reset_at=2_001))

    removed = store.purge_expired(2_000)

    assert removed == 2
    assert store.get("live") is not None
    assert len(store) == 1


def test_concurrent_increments_are_atomic() -> None:
    store = InMemoryRateLimitStore()
    store.set("k", RateLimitEntry(count=0, reset_at=10_000))

    def _bump() -> None:
        for _ in range(100):
            store.increment("k")

    threads = [threading.Thread(target=_bump) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.get("k").count == 1_000
