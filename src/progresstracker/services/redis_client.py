"""Async Redis connection factory.

Returns a client, or None when Redis is not configured or never answers.
Callers handle the None case by running on the process-local cache.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Exceptions that should trigger a reconnect attempt
CONNECT_ERRORS = (
    RedisError,
    ConnectionError,
    OSError,
)


async def create_redis_client(redis_url: str | None, attempts: int = 3) -> aioredis.Redis | None:
    """Connect to Redis and return a client, or None on failure.

    Args:
        redis_url: Redis connection URL, or None to skip Redis entirely
        attempts: Connection attempts before giving up

    Returns:
        Connected client, or None if Redis is unavailable
    """
    if not redis_url:
        logger.info("Redis URL not configured, using in-memory cache")
        return None

    client = aioredis.from_url(redis_url, decode_responses=True)
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=0.1, max=3),
            retry=retry_if_exception_type(CONNECT_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                await client.ping()
    except CONNECT_ERRORS as e:
        logger.warning(f"Redis unavailable after {attempts} attempts, using in-memory cache: {e!r}")
        await client.aclose()
        return None

    # Mask credentials before logging
    logger.info(f"Redis connected at {redis_url.split('@')[-1]}")
    return client
