"""Rate limiting dependency for the AI evaluation routes.

A dependency rather than middleware: only the routes that fan out to
hosted models declare it.  Buckets are keyed by the authenticated user,
so this must run after require_role.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Response, status

from gradeflow.api.dependencies import ServicesDep, require_role
from gradeflow.core.metrics import RATE_LIMIT_HITS
from gradeflow.models.principal import PROFESSOR, Principal
from gradeflow.services.rate_limiter import RateLimitResult

logger = logging.getLogger(__name__)


async def require_ai_rate_limit(
    response: Response,
    services: ServicesDep,
    principal: Annotated[Principal, Depends(require_role(PROFESSOR))],
) -> Principal:
    key = f"ai-eval:user:{principal.user_id}"
    result: RateLimitResult = await services.rate_limiter.check(
        key, services.ai_rate_limit
    )

    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)

    if not result.allowed:
        RATE_LIMIT_HITS.labels(key_type="user").inc()
        logger.warning("AI evaluation rate limit exceeded user=%s", principal.user_id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={
                "Retry-After": str(int(result.retry_after) + 1),
                "X-RateLimit-Limit": str(result.limit),
                "X-RateLimit-Remaining": "0",
            },
        )
    return principal


RateLimitedProfessor = Annotated[Principal, Depends(require_ai_rate_limit)]
