import pytest

from app.middleware.rate_limit import RateLimiter


@pytest.mark.asyncio
async def test_memory_bucket_limits_per_key():
    limiter = RateLimiter(rate=2, period=60)

    assert not limiter.use_redis
    assert await limiter.is_allowed("ip:1")
    assert await limiter.is_allowed("ip:1")
    assert not await limiter.is_allowed("ip:1")
    assert await limiter.is_allowed("ip:2")


@pytest.mark.asyncio
async def test_remaining_for_unseen_key_is_full_rate():
    limiter = RateLimiter(rate=5, period=60)
    assert await limiter.get_remaining("ip:new") == 5


@pytest.mark.asyncio
async def test_connect_without_url_stays_in_memory():
    limiter = RateLimiter(rate=1, period=60)

    await limiter.connect()

    assert not limiter.use_redis
    await limiter.close()


@pytest.mark.asyncio
async def test_unreachable_redis_falls_back_to_memory():
    limiter = RateLimiter(rate=1, period=60, redis_url="redis://127.0.0.1:1/0")

    await limiter.connect()

    assert not limiter.use_redis
    assert await limiter.is_allowed("ip:1")
    assert not await limiter.is_allowed("ip:1")
    await limiter.close()
