"""Redis connection pool used by the rate limiter and readiness probe.

Redis is optional: with no URL configured the pool stays uninitialized and
``get_redis`` raises ``RuntimeError``, which callers treat as "disabled".
"""

import redis.asyncio as redis
import structlog

logger = structlog.get_logger()

_pool: redis.Redis | None = None


async def init_redis(url: str | None) -> None:
    """Initialize the Redis connection pool, or leave it disabled when ``url`` is empty."""
    global _pool  # noqa: PLW0603
    if not url:
        logger.info("redis_disabled")
        return
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool
