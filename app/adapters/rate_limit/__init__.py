"""Rate limiting adapters.

This package provides the fixed-window ``RateLimiter`` and a small storage
abstraction so the service can start with an in-process store and later
migrate to Redis or another shared store without changing the API layer.
"""

from app.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitEntry,
    RateLimitResult,
)
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from app.adapters.rate_limit.limiter import RateLimiter
from app.adapters.rate_limit.policies import RATE_LIMIT_POLICIES, RateLimitPolicy

__all__ = [
    "AbstractRateLimitStore",
    "InMemoryRateLimitStore",
    "RATE_LIMIT_POLICIES",
    "RateLimitEntry",
    "RateLimitPolicy",
    "RateLimitResult",
    "RateLimiter",
]
