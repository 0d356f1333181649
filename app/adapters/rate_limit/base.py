"""Rate limiter interfaces.

The limiter depends on this store abstraction (not the concrete
implementation) so the in-process dictionary can later be replaced by a
shared, atomic-increment-capable backend (e.g., Redis) without touching
``RateLimiter.check``.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone


def format_epoch_ms(epoch_ms: int) -> str:
    """Render epoch milliseconds as an ISO-8601 UTC timestamp.

    Uses millisecond precision and a ``Z`` suffix
    (e.g. ``2024-01-01T00:01:00.000Z``).
    """
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def seconds_until(epoch_ms: int, now_ms: int) -> int:
    """Whole seconds from ``now_ms`` until ``epoch_ms``, rounded up, floored at 0."""
    return max(0, math.ceil((epoch_ms - now_ms) / 1000))


@dataclass
class RateLimitEntry:
    """Per-identifier window state.

    Attributes:
        count: Requests counted in the current window (starts at 1).
        reset_at: Epoch milliseconds when the window ends.
    """

    count: int
    reset_at: int

    def is_expired(self, now_ms: int) -> bool:
        return self.reset_at <= now_ms


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: Epoch milliseconds when the current window resets.
    """

    allowed: bool
    remaining: int
    reset_at: int

    @property
    def reset_at_iso(self) -> str:
        return format_epoch_ms(self.reset_at)

    def retry_after_seconds(self, now_ms: int) -> int:
        return seconds_until(self.reset_at, now_ms)


class AbstractRateLimitStore(ABC):
    """Storage backend for rate limit entries.

    Implementations must make ``increment`` atomic with respect to other
    operations on the same key.
    """

    @abstractmethod
    def get(self, key: str) -> RateLimitEntry | None:
        """Return the entry stored for ``key``, or None."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, entry: RateLimitEntry) -> None:
        """Store ``entry`` for ``key``; it expires at ``entry.reset_at``."""
        raise NotImplementedError

    @abstractmethod
    def increment(self, key: str) -> RateLimitEntry:
        """Atomically add one to the entry's count and return the updated entry.

        Raises:
            KeyError: If no entry exists for ``key``.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the entry for ``key``. Missing keys are ignored."""
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self, now_ms: int) -> int:
        """Delete every entry whose window ended at or before ``now_ms``.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError
