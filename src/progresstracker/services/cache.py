"""Key-value cache with per-key expiry.

Redis is the primary store. When no Redis client is configured, or any Redis
call fails, the same operation is served by a process-local store with
equivalent TTL semantics. The fallback is logged, never raised, so callers
cannot tell which store answered.

The local store offers no cross-process consistency. Two app instances that
both lose Redis will each see only their own entries.
"""

import asyncio
import json
import logging
import time
from collections.abc import Callable
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# Failures that send an operation to the local store
CACHE_ERRORS = (
    RedisError,
    ConnectionError,
    OSError,
    asyncio.TimeoutError,
)


class LocalTTLCache:
    """Process-local cache with per-key expiry.

    Values are stored JSON-encoded, mirroring what Redis holds, so a value
    read back is never the same object the caller stored.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # Maps key to (encoded value, monotonic expiry or None)
        self._entries: dict[str, tuple[str, float | None]] = {}
        self._lock = asyncio.Lock()

    def _expires_at(self, ttl: int | None) -> float | None:
        return self._clock() + ttl if ttl else None

    def _live(self, key: str) -> tuple[str, float | None] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Any:
        async with self._lock:
            entry = self._live(key)
            return None if entry is None else json.loads(entry[0])

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        async with self._lock:
            self._entries[key] = (json.dumps(value), self._expires_at(ttl))

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def incr(self, key: str, ttl: int | None = None) -> int:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                value, expires_at = 1, self._expires_at(ttl)
            else:
                value, expires_at = int(json.loads(entry[0])) + 1, entry[1]
            self._entries[key] = (json.dumps(value), expires_at)
            return value

    async def add(self, key: str, value: Any, ttl: int | None = None) -> bool:
        async with self._lock:
            if self._live(key) is not None:
                return False
            self._entries[key] = (json.dumps(value), self._expires_at(ttl))
            return True

    async def cleanup_expired(self) -> int:
        """Remove expired entries from memory.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        async with self._lock:
            expired = [
                key
                for key, (_, expires_at) in self._entries.items()
                if expires_at is not None and expires_at <= now
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)


class Cache:
    """Cache facade over Redis with a local fallback.

    A ``ttl`` of ``None`` or ``0`` stores the key without expiry.
    """

    def __init__(
        self,
        redis_client: aioredis.Redis | None = None,
        local: LocalTTLCache | None = None,
    ) -> None:
        self._redis = redis_client
        self.local = local or LocalTTLCache()

    @property
    def backend(self) -> str:
        """Name of the configured primary store."""
        return "redis" if self._redis is not None else "local"

    def _fallback(self, operation: str, key: str, error: BaseException) -> None:
        logger.warning(f"Cache {operation} failed for {key!r}, using local cache: {error!r}")

    async def get(self, key: str) -> Any:
        """Return the value stored under ``key``, or None if absent or expired."""
        if self._redis is not None:
            try:
                raw = await self._redis.get(key)
                return None if raw is None else json.loads(raw)
            except CACHE_ERRORS as e:
                self._fallback("get", key, e)
        return await self.local.get(key)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store ``value`` under ``key``, replacing any existing entry."""
        if self._redis is not None:
            try:
                await self._redis.set(key, json.dumps(value), ex=ttl or None)
                return
            except CACHE_ERRORS as e:
                self._fallback("set", key, e)
        await self.local.set(key, value, ttl)

    async def delete(self, key: str) -> None:
        if self._redis is not None:
            try:
                await self._redis.delete(key)
                return
            except CACHE_ERRORS as e:
                self._fallback("delete", key, e)
        await self.local.delete(key)

    async def incr(self, key: str, ttl: int | None = None) -> int:
        """Atomically increment a counter and return the new value.

        A missing key counts from zero and gets ``ttl``; an existing key keeps
        its expiry.
        """
        if self._redis is not None:
            try:
                value = await self._redis.incr(key)
                if value == 1 and ttl:
                    await self._redis.expire(key, ttl)
                return int(value)
            except CACHE_ERRORS as e:
                self._fallback("incr", key, e)
        return await self.local.incr(key, ttl)

    async def add(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store ``value`` only if ``key`` is absent. Returns True if stored."""
        if self._redis is not None:
            try:
                stored = await self._redis.set(key, json.dumps(value), ex=ttl or None, nx=True)
                return bool(stored)
            except CACHE_ERRORS as e:
                self._fallback("add", key, e)
        return await self.local.add(key, value, ttl)

    async def ping(self) -> bool:
        """Check whether the primary store answers."""
        if self._redis is None:
            return False
        try:
            return bool(await self._redis.ping())
        except CACHE_ERRORS as e:
            logger.warning(f"Redis ping failed: {e!r}")
            return False

    async def aclose(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
