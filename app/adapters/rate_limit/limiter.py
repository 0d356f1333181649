"""Fixed-window rate limiter with lazy expiry and a background sweep.

A ``RateLimiter`` owns its store, its lock and its sweeper thread, so tests
can build isolated instances and the sweeper's lifecycle is explicit:

    limiter = RateLimiter()
    limiter.start()       # begin periodic cleanup
    limiter.check_policy("user:alice", "AI_CHAT")
    limiter.stop()        # join the sweeper thread

Expired entries are dropped in two places on purpose: lazily, when ``check``
sees a window that has ended, and eagerly by the sweep, which bounds memory
for identifiers that never come back.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Mapping

from app.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitEntry,
    RateLimitResult,
)
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from app.adapters.rate_limit.policies import (
    DEFAULT_POLICY,
    RATE_LIMIT_POLICIES,
    RateLimitPolicy,
)
from app.core.errors import RateLimitConfigError

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 300.0


def epoch_ms() -> int:
    """Current UNIX time in milliseconds."""
    return int(time.time() * 1000)


class RateLimiter:
    """Per-identifier fixed-window request counter.

    Important:
        Limits are enforced per store. With the default in-memory store and
        several warm instances, the effective limit for one identifier is
        ``limit`` times the number of instances.
    """

    def __init__(
        self,
        *,
        store: AbstractRateLimitStore | None = None,
        policies: Mapping[str, RateLimitPolicy] = RATE_LIMIT_POLICIES,
        clock: Callable[[], int] = epoch_ms,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Entry storage backend (defaults to a fresh in-memory store).
            policies: Named policy table used by ``check_policy``.
            clock: Time source returning UNIX time in milliseconds.
            sweep_interval_seconds: Delay between background cleanup passes.

        Raises:
            ValueError: If sweep_interval_seconds is not positive.
        """
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        self._store = store if store is not None else InMemoryRateLimitStore()
        self._policies = policies
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds
        self._lock = threading.RLock()
        self._lifecycle_lock = threading.Lock()
        self._sweeper: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    @property
    def store(self) -> AbstractRateLimitStore:
        return self._store

    @property
    def running(self) -> bool:
        sweeper = self._sweeper
        return sweeper is not None and sweeper.is_alive()

    def __enter__(self) -> "RateLimiter":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def policy(self, name: str) -> RateLimitPolicy:
        """Resolve a named policy.

        Raises:
            RateLimitConfigError: If no policy is registered under ``name``.
        """
        try:
            return self._policies[name]
        except KeyError:
            raise RateLimitConfigError(
                code="rate_limit_unknown_policy",
                message=f"Unknown rate limit policy: '{name}'",
                details={"hint": f"Known policies: {', '.join(sorted(self._policies))}"},
            ) from None

    def check_policy(self, identifier: str, name: str = DEFAULT_POLICY) -> RateLimitResult:
        """Check ``identifier`` against the policy registered as ``name``."""
        policy = self.policy(name)
        return self.check(identifier, policy.limit, policy.window_ms)

    def check(self, identifier: str, limit: int, window_ms: int) -> RateLimitResult:
        """Count one request for ``identifier`` and decide whether it may proceed.

        Denied requests are not counted, so ``count`` never exceeds ``limit``.

        Args:
            identifier: Bucket key (e.g. ``"user:<id>"`` or ``"ip:<addr>"``).
            limit: Maximum requests per window.
            window_ms: Window length in milliseconds.

        Returns:
            RateLimitResult with the decision, remaining quota and reset time.

        Raises:
            ValueError: If identifier is empty.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        with self._lock:
            now = self._clock()
            entry = self._store.get(identifier)

            if entry is None or entry.is_expired(now):
                return self._open_window(identifier, limit, window_ms, now)

            if entry.count >= limit:
                return RateLimitResult(allowed=False, remaining=0, reset_at=entry.reset_at)

            try:
                entry = self._store.increment(identifier)
            except KeyError:
                # Swept between read and increment: the window has ended.
                return self._open_window(identifier, limit, window_ms, now)

            return RateLimitResult(
                allowed=True,
                remaining=max(0, limit - entry.count),
                reset_at=entry.reset_at,
            )

    def _open_window(self, identifier: str, limit: int, window_ms: int, now: int) -> RateLimitResult:
        reset_at = now + window_ms
        self._store.set(identifier, RateLimitEntry(count=1, reset_at=reset_at))
        return RateLimitResult(allowed=True, remaining=limit - 1, reset_at=reset_at)

    def reset(self, identifier: str) -> None:
        """Drop any window state for ``identifier``. No-op when absent."""
        with self._lock:
            self._store.delete(identifier)

    def cleanup(self) -> int:
        """Run one sweep pass removing every expired entry.

        Returns:
            Number of entries removed.
        """
        removed = self._store.purge_expired(self._clock())
        if removed:
            logger.debug(
                "rate_limit.sweep",
                extra={"removed": removed, "remaining_entries": len(self._store)},
            )
        return removed

    def start(self) -> None:
        """Start the background sweeper thread. Idempotent."""
        with self._lifecycle_lock:
            if self.running:
                return
            stop_event = threading.Event()
            sweeper = threading.Thread(
                target=self._run_sweeper,
                args=(stop_event,),
                daemon=True,
                name="rate-limit-sweeper",
            )
            self._stop_event = stop_event
            self._sweeper = sweeper
            sweeper.start()

        logger.info(
            "rate_limit.sweeper_started",
            extra={"sweep_interval_s": self._sweep_interval},
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the sweeper thread and wait for it to exit. Idempotent."""
        with self._lifecycle_lock:
            sweeper, stop_event = self._sweeper, self._stop_event
            self._sweeper = None
            self._stop_event = None

        if sweeper is None or stop_event is None:
            return

        stop_event.set()
        sweeper.join(timeout)
        logger.info("rate_limit.sweeper_stopped")

    def _run_sweeper(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._sweep_interval):
            try:
                self.cleanup()
            except Exception:
                # A failing backend must not kill the sweeper; retry next pass.
                logger.exception("rate_limit.sweep_failed")
