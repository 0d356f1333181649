from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from app.adapters.rate_limit.limiter import RateLimiter
from app.core.auth import verify_api_key
from app.core.rate_limit import get_rate_limiter, hash_identifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])


@router.delete(
    "/admin/rate-limits/{identifier:path}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(verify_api_key)],
)
async def reset_rate_limit(
    identifier: str,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> Response:
    """Clear the current window for one identifier (e.g. ``ip:203.0.113.5``).

    Idempotent: resetting an identifier without state succeeds as well.
    """
    limiter.reset(identifier)
    logger.info(
        "rate_limit.reset",
        extra={"identifier_hash": hash_identifier(identifier)},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
