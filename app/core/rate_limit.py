"""Rate limiting integration for FastAPI routes.

This module wires the ``RateLimiter`` adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: the limiter's store can be replaced (e.g., Redis) behind an
  abstract interface.
- One denial shape: every throttled request gets the same 429 body and
  headers, built by ``build_denial_response``.

Identifier strategy, in priority order:
- Authenticated caller id (``user:<id>``).
- First address in ``X-Forwarded-For`` (``ip:<addr>``).
- ``X-Real-IP`` (``ip:<addr>``).
- ``anonymous``: one shared bucket for all unidentifiable traffic.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated, Any, Callable, Coroutine, Mapping

from fastapi import Depends, Request, status
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.base import RateLimitResult, format_epoch_ms, seconds_until
from app.adapters.rate_limit.limiter import RateLimiter, epoch_ms
from app.adapters.rate_limit.policies import DEFAULT_POLICY, RATE_LIMIT_POLICIES
from app.core.auth import verify_api_key
from app.core.config import settings
from app.core.errors import RateLimitConfigError, RateLimitExceededError

logger = logging.getLogger(__name__)

ANONYMOUS_IDENTIFIER = "anonymous"


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup on any string mapping."""
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


def derive_identifier(headers: Mapping[str, str], user_id: str | None = None) -> str:
    """Resolve the rate limit bucket for a request.

    Args:
        headers: Request headers (Starlette ``Headers`` or a plain dict).
        user_id: Caller id resolved by the auth layer, if any.

    Returns:
        str: Namespaced identifier.

    Examples:
        >>> derive_identifier({"x-forwarded-for": "203.0.113.5"}, "u1")
        'user:u1'
        >>> derive_identifier({"x-forwarded-for": "203.0.113.5, 10.0.0.1"})
        'ip:203.0.113.5'
        >>> derive_identifier({})
        'anonymous'
    """
    if user_id:
        return f"user:{user_id}"

    forwarded = _get_header(headers, "x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"

    real_ip = _get_header(headers, "x-real-ip")
    if real_ip and real_ip.strip():
        return f"ip:{real_ip.strip()}"

    return ANONYMOUS_IDENTIFIER


def hash_identifier(identifier: str) -> str:
    """Hash the rate limit identifier for logging without exposing addresses."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Informational headers for an allowed response."""
    return {
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": result.reset_at_iso,
    }


def build_denial_response(
    reset_at: int,
    cors_headers: Mapping[str, str] | None = None,
    *,
    now_ms: int | None = None,
) -> JSONResponse:
    """Build the standardized HTTP 429 response.

    Args:
        reset_at: Epoch milliseconds when the caller's window resets.
        cors_headers: Cross-origin headers to include verbatim.
        now_ms: Current time in epoch milliseconds (defaults to the wall clock).

    Returns:
        JSONResponse with status 429, a retry hint in the body and the
        ``Retry-After`` / ``X-RateLimit-Reset`` headers.
    """
    now = epoch_ms() if now_ms is None else now_ms
    retry_after = seconds_until(reset_at, now)

    headers = dict(cors_headers or {})
    headers.update(
        {
            "Content-Type": "application/json",
            "Retry-After": str(retry_after),
            "X-RateLimit-Reset": format_epoch_ms(reset_at),
        }
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "Rate limit exceeded",
            "message": f"Too many requests. Please try again in {retry_after} seconds.",
            "retryAfter": retry_after,
        },
        headers=headers,
    )


def build_rate_limiter() -> RateLimiter:
    """Create a limiter configured from settings (sweeper not started)."""
    return RateLimiter(
        sweep_interval_seconds=settings.app.rate_limit_sweep_interval_seconds,
    )


def get_rate_limiter(request: Request) -> RateLimiter:
    """Return the limiter owned by the running application.

    The app factory stores one instance on ``app.state`` so state survives
    across requests; it is created lazily if the factory was bypassed.
    """
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        limiter = build_rate_limiter()
        request.app.state.rate_limiter = limiter
    return limiter


RateLimitDependency = Callable[..., Coroutine[Any, Any, RateLimitResult | None]]


def rate_limited(policy_name: str = DEFAULT_POLICY) -> RateLimitDependency:
    """Build a FastAPI dependency enforcing the named policy.

    Usage:
        @router.post("/chat")
        async def chat(rate: Annotated[RateLimitResult | None, Depends(rate_limited("AI_CHAT"))]):
            ...

    Raises:
        RateLimitConfigError: At definition time, if the policy is unknown.
    """
    if policy_name not in RATE_LIMIT_POLICIES:
        raise RateLimitConfigError(
            code="rate_limit_unknown_policy",
            message=f"Unknown rate limit policy: '{policy_name}'",
        )

    async def enforce_rate_limit(
        request: Request,
        caller_id: Annotated[str | None, Depends(verify_api_key)],
    ) -> RateLimitResult | None:
        """Consume one unit of the caller's budget or raise a 429.

        Raises:
            RateLimitExceededError: When the caller's window quota is used up.
        """
        if not settings.app.rate_limit_enabled:
            return None

        limiter = get_rate_limiter(request)
        identifier = derive_identifier(request.headers, caller_id)
        identifier_hash = hash_identifier(identifier)
        identifier_type = identifier.split(":", 1)[0]

        result = limiter.check_policy(identifier, policy_name)
        request.state.rate_limit = result

        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "identifier_type": identifier_type,
                    "identifier_hash": identifier_hash,
                    "policy": policy_name,
                    "remaining": result.remaining,
                },
            )
            return result

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "identifier_type": identifier_type,
                "identifier_hash": identifier_hash,
                "policy": policy_name,
                "reset_at": result.reset_at_iso,
            },
        )
        raise RateLimitExceededError(
            code="rate_limit_exceeded",
            message="Rate limit exceeded",
            details={"policy": policy_name},
            reset_at=result.reset_at,
        )

    return enforce_rate_limit
