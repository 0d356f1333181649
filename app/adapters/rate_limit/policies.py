"""Named rate limit policies.

Each endpoint category maps to an immutable ``RateLimitPolicy``. Adding a
category means adding an entry here; ``RateLimiter.check`` does not change.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class RateLimitPolicy:
    """Maximum ``limit`` requests per ``window_ms`` milliseconds.

    Raises:
        ValueError: If limit or window_ms are not positive integers.
    """

    limit: int
    window_ms: int

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")


DEFAULT_POLICY = "DEFAULT"

RATE_LIMIT_POLICIES: Mapping[str, RateLimitPolicy] = MappingProxyType(
    {
        # LLM-backed chat completions: 20 requests per minute
        "AI_CHAT": RateLimitPolicy(limit=20, window_ms=60_000),
        "URL_SCAN": RateLimitPolicy(limit=30, window_ms=60_000),
        # Uploads are the most expensive: strictest cap
        "FILE_UPLOAD": RateLimitPolicy(limit=10, window_ms=60_000),
        "SEARCH": RateLimitPolicy(limit=50, window_ms=60_000),
        DEFAULT_POLICY: RateLimitPolicy(limit=100, window_ms=60_000),
    }
)
