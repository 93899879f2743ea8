"""Explicitly constructed service graph for one application instance."""

import logging
import time
from dataclasses import dataclass, field

import httpx
import redis.asyncio as aioredis

from progresstracker.config import Settings
from progresstracker.services.auth import TokenIssuer
from progresstracker.services.cache import Cache
from progresstracker.services.email_otp import EmailOTPClient
from progresstracker.services.identity import IdentityResolver
from progresstracker.services.otp import OTPSessionManager
from progresstracker.services.rate_limit import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimitType,
)
from progresstracker.services.redis_client import create_redis_client

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Services shared by every request handled by one app instance."""

    settings: Settings
    cache: Cache
    provider: EmailOTPClient
    identity: IdentityResolver
    tokens: TokenIssuer
    otp: OTPSessionManager
    rate_limiter: InMemoryRateLimiter
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    async def sweep(self) -> int:
        """Drop expired local cache entries and stale rate limit windows."""
        removed = await self.cache.local.cleanup_expired()
        removed += await self.rate_limiter.cleanup_old_entries()
        return removed

    async def aclose(self) -> None:
        """Close outbound connections."""
        await self.provider.aclose()
        await self.cache.aclose()


def build_container(
    settings: Settings,
    redis_client: aioredis.Redis | None = None,
    provider_transport: httpx.AsyncBaseTransport | None = None,
) -> ServiceContainer:
    """Wire services together from settings and already-open connections."""
    cache = Cache(redis_client)
    provider = EmailOTPClient(
        settings.email_service_url,
        timeout=settings.email_service_timeout,
        transport=provider_transport,
    )
    identity = IdentityResolver(cache, ttl=settings.identity_ttl_seconds)
    otp = OTPSessionManager(
        cache,
        provider,
        identity,
        otp_ttl=settings.otp_ttl_seconds,
        user_session_ttl=settings.user_session_ttl_seconds,
    )
    tokens = TokenIssuer(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_in=settings.jwt_expires_in_seconds,
    )
    rate_limiter = InMemoryRateLimiter(
        {
            RateLimitType.API: RateLimitConfig(
                requests=settings.rate_limit_max_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        }
    )
    return ServiceContainer(
        settings=settings,
        cache=cache,
        provider=provider,
        identity=identity,
        tokens=tokens,
        otp=otp,
        rate_limiter=rate_limiter,
    )


async def create_container(settings: Settings) -> ServiceContainer:
    """Connect to Redis (if configured) and build the service container."""
    redis_client = await create_redis_client(
        settings.redis_url, attempts=settings.redis_connect_attempts
    )
    container = build_container(settings, redis_client=redis_client)
    logger.info(f"Services initialized (cache backend: {container.cache.backend})")
    return container
