"""Redis connection management.

When REDIS_URL is configured, a shared connection pool backs the
document store so every API instance sees the same organizations,
memberships, classes and invite codes.  When it's None (local dev,
tests), the store falls back to an in-process tree and no Redis server
is needed.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from membership.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # return str instead of bytes
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook: verify connectivity, release the pool on exit.

    There is no in-memory fallback once Redis is configured: an unreachable
    server is logged and every operation raises StoreUnavailable until it
    comes back.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured, using the in-memory document store")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        logger.exception("Redis connection failed on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
