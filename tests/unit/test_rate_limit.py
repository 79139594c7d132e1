"""Tests for the Redis sliding-window limiter on the counter endpoint."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from salesboard.auth import create_access_token
from salesboard.errors import RateLimited
from salesboard.middleware.rate_limit import SlidingWindowRateLimiter, caller_identifier


def _redis_with_count(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[0, 1, count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


def _request(headers=None, host="10.0.0.7"):
    request = MagicMock()
    request.headers = headers or {}
    request.client = MagicMock()
    request.client.host = host
    return request


class TestSlidingWindowRateLimiter:
    @pytest.mark.asyncio
    async def test_under_limit_passes(self):
        redis = _redis_with_count(3)
        limiter = SlidingWindowRateLimiter(lambda: redis, limit=10, window=1)

        assert await limiter.hit("user:abc") == 3

        pipe = redis.pipeline.return_value
        key = "ratelimit:tl-update:user:abc"
        pipe.zremrangebyscore.assert_called_once()
        assert pipe.zremrangebyscore.call_args.args[0] == key
        pipe.zadd.assert_called_once()
        pipe.zcard.assert_called_once_with(key)
        pipe.expire.assert_called_once_with(key, 2)

    @pytest.mark.asyncio
    async def test_at_limit_passes(self):
        limiter = SlidingWindowRateLimiter(lambda: _redis_with_count(10), limit=10, window=1)
        assert await limiter.hit("user:abc") == 10

    @pytest.mark.asyncio
    async def test_over_limit_raises(self):
        limiter = SlidingWindowRateLimiter(lambda: _redis_with_count(11), limit=10, window=1)
        with pytest.raises(RateLimited) as exc_info:
            await limiter.hit("user:abc")
        assert exc_info.value.limit == 10
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_redis_unavailable_allows(self):
        def _missing():
            raise RuntimeError("Redis not initialized")

        limiter = SlidingWindowRateLimiter(_missing, limit=1, window=1)
        assert await limiter.hit("user:abc") == 0

    @pytest.mark.asyncio
    async def test_redis_error_on_execute_allows(self):
        redis = _redis_with_count(0)
        redis.pipeline.return_value.execute = AsyncMock(side_effect=ConnectionError("refused"))
        limiter = SlidingWindowRateLimiter(lambda: redis, limit=1, window=1)
        assert await limiter.hit("user:abc") == 0


class TestCallerIdentifier:
    def test_uses_token_subject(self):
        token = create_access_token("user-42")
        request = _request({"Authorization": f"Bearer {token}"})
        assert caller_identifier(request) == "user:user-42"

    def test_falls_back_to_client_ip(self):
        assert caller_identifier(_request()) == "ip:10.0.0.7"

    def test_bad_token_falls_back_to_ip(self):
        request = _request({"Authorization": "Bearer nonsense"})
        assert caller_identifier(request) == "ip:10.0.0.7"
