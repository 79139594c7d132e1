"""Redis sliding-window rate limiting for the one-shot counter endpoint."""

import os
import time
from typing import Callable
from uuid import uuid4

from fastapi import Depends, Request

from salesboard.auth import bearer_token, token_subject
from salesboard.dependencies import get_rate_limiter
from salesboard.errors import RateLimited
from salesboard.logging_config import get_logger

logger = get_logger(__name__)

# 10 requests per second per caller
DEFAULT_LIMIT = int(os.getenv("TL_UPDATE_RATE_LIMIT", "10"))
DEFAULT_WINDOW = float(os.getenv("TL_UPDATE_RATE_WINDOW_SECONDS", "1"))


class SlidingWindowRateLimiter:
    """Redis sliding window limiter (ZADD + ZREMRANGEBYSCORE)."""

    def __init__(
        self,
        redis_getter: Callable,
        limit: int = DEFAULT_LIMIT,
        window: float = DEFAULT_WINDOW,
        scope: str = "tl-update",
    ):
        self._redis_getter = redis_getter
        self.limit = limit
        self.window = window
        self.scope = scope

    async def hit(self, identifier: str) -> int:
        """Record one request for ``identifier``; raise RateLimited above the ceiling.

        Returns the request count inside the current window. If Redis is
        unavailable the request is allowed through and 0 is returned.
        """
        key = f"ratelimit:{self.scope}:{identifier}"

        try:
            redis = self._redis_getter()
            now = time.time()
            window_start = now - self.window

            pipe = redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zadd(key, {f"{now}:{uuid4().hex[:8]}": now})
            pipe.zcard(key)
            pipe.expire(key, int(self.window) + 1)
            results = await pipe.execute()
        except Exception as e:
            logger.warning("rate_limit_redis_error", error=str(e))
            return 0

        request_count = results[2]
        if request_count > self.limit:
            logger.warning(
                "rate_limit_exceeded",
                identifier=identifier,
                scope=self.scope,
                count=request_count,
                limit=self.limit,
            )
            raise RateLimited(self.limit, self.window)
        return request_count


def caller_identifier(request: Request) -> str:
    """Prefer the token's user id, fall back to the client address."""
    subject = token_subject(bearer_token(request))
    if subject:
        return f"user:{subject}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


async def enforce_counter_rate_limit(
    request: Request,
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
) -> None:
    """FastAPI dependency guarding the counter endpoint."""
    await limiter.hit(caller_identifier(request))
