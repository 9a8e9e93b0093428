from fastapi import Request, status
from fastapi.responses import JSONResponse
import time
import redis.asyncio as redis
import structlog
from app.core.config import settings

logger = structlog.get_logger()

EXEMPT_PATHS = {"/health", "/"}


class RateLimiter:
    """Per-client request limiter.

    Uses a Redis sorted-set sliding window once ``connect`` reaches Redis,
    otherwise an in-process token bucket per key.
    """

    def __init__(self, rate: int, period: int, redis_url: str | None = None):
        """
        Args:
            rate: Number of requests allowed
            period: Time period in seconds
            redis_url: Redis to share counters through; None keeps them in memory
        """
        self.rate = rate
        self.period = period
        self.redis_url = redis_url
        self.buckets: dict[str, dict[str, float]] = {}
        self.redis_client = None

    async def connect(self) -> None:
        if not self.redis_url:
            return

        client = redis.from_url(self.redis_url, decode_responses=False, socket_connect_timeout=1)
        try:
            await client.ping()
            self.redis_client = client
            logger.info("rate_limiter_using_redis")
        except Exception as e:
            await client.aclose()
            logger.warning("rate_limiter_redis_failed_using_memory", error=str(e))

    async def close(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None

    @property
    def use_redis(self) -> bool:
        return self.redis_client is not None

    async def is_allowed(self, key: str) -> bool:
        if self.use_redis:
            return await self._is_allowed_redis(key)
        return self._is_allowed_memory(key)

    async def _is_allowed_redis(self, key: str) -> bool:
        redis_key = f"analytics_rate_limit:{key}"
        now = time.time()

        async with self.redis_client.pipeline() as pipe:
            pipe.zremrangebyscore(redis_key, 0, now - self.period)
            pipe.zcard(redis_key)
            pipe.zadd(redis_key, {str(now): now})
            pipe.expire(redis_key, self.period)
            results = await pipe.execute()

        # count before this request was added
        return results[1] < self.rate

    def _is_allowed_memory(self, key: str) -> bool:
        now = time.time()
        bucket = self.buckets.setdefault(key, {"tokens": float(self.rate), "last_update": now})

        elapsed = now - bucket["last_update"]
        bucket["last_update"] = now
        bucket["tokens"] = min(self.rate, bucket["tokens"] + elapsed / self.period * self.rate)

        if bucket["tokens"] >= 1:
            bucket["tokens"] -= 1
            return True
        return False

    async def get_remaining(self, key: str) -> int:
        if self.use_redis:
            now = time.time()
            count = await self.redis_client.zcount(f"analytics_rate_limit:{key}", now - self.period, now)
            return max(0, self.rate - count)

        bucket = self.buckets.get(key)
        if not bucket:
            return self.rate
        return int(bucket["tokens"])


rate_limiter = RateLimiter(
    rate=settings.rate_limit_requests,
    period=settings.rate_limit_period,
    redis_url=settings.redis_url if settings.rate_limit_enabled else None
)


def _limit_headers(remaining: int) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(rate_limiter.rate),
        "X-RateLimit-Remaining": str(max(0, remaining)),
        "X-RateLimit-Reset": str(rate_limiter.period),
    }


async def rate_limit_middleware(request: Request, call_next):
    """Limit requests per API key, falling back to the client IP"""
    if request.url.path in EXEMPT_PATHS:
        return await call_next(request)

    api_key = request.headers.get("X-API-Key")
    if api_key and settings.api_key and api_key == settings.api_key:
        key = f"api_key:{api_key}"
    else:
        key = f"ip:{request.client.host if request.client else 'unknown'}"

    if not await rate_limiter.is_allowed(key):
        remaining = await rate_limiter.get_remaining(key)
        logger.warning("rate_limit_exceeded", key=key, path=request.url.path, remaining=remaining)

        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": "Rate limit exceeded. Please try again later."},
            headers={**_limit_headers(remaining), "Retry-After": str(rate_limiter.period)}
        )

    response = await call_next(request)
    response.headers.update(_limit_headers(await rate_limiter.get_remaining(key)))
    return response
