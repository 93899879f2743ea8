"""Per-client sliding-window rate limits for the OTP and general API routes."""

import asyncio
import time
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum

from fastapi import Request


class RateLimitType(str, Enum):
    """Rate limit types for different endpoint categories."""

    API = "api"
    AUTH = "auth"


@dataclass
class RateLimitConfig:
    """Configuration for a rate limit type."""

    requests: int
    window_seconds: int


# Auth endpoints have stricter limits to slow down OTP guessing and email spam
DEFAULT_RATE_LIMIT_CONFIG: dict[RateLimitType, RateLimitConfig] = {
    RateLimitType.API: RateLimitConfig(requests=100, window_seconds=900),
    RateLimitType.AUTH: RateLimitConfig(requests=10, window_seconds=60),
}


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""

    success: bool
    limit: int
    remaining: int
    reset: int  # Unix timestamp in seconds


class InMemoryRateLimiter:
    """Sliding-window limiter held by one app instance.

    Windows are not shared between instances, so the effective limit scales
    with the number of replicas.
    """

    def __init__(self, config: dict[RateLimitType, RateLimitConfig] | None = None) -> None:
        self.config = {**DEFAULT_RATE_LIMIT_CONFIG, **(config or {})}
        # Store request timestamps per identifier (maps identifier to list of timestamps)
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def check(
        self,
        identifier: str,
        limit_type: RateLimitType,
    ) -> RateLimitResult:
        """Check rate limit for an identifier.

        Args:
            identifier: Client key from get_identifier, e.g. "ip:1.2.3.4"
            limit_type: Type of rate limit to apply

        Returns:
            RateLimitResult with success status and limit info
        """
        config = self.config[limit_type]
        key = f"{limit_type.value}:{identifier}"
        now = time.time()
        window_start = now - config.window_seconds

        async with self._lock:
            timestamps = [t for t in self._requests[key] if t > window_start]
            self._requests[key] = timestamps

            current_count = len(timestamps)
            remaining = max(0, config.requests - current_count)

            if current_count >= config.requests:
                # Oldest timestamp in the window determines the reset time
                oldest = min(timestamps) if timestamps else now
                return RateLimitResult(
                    success=False,
                    limit=config.requests,
                    remaining=0,
                    reset=int(oldest + config.window_seconds),
                )

            timestamps.append(now)

            return RateLimitResult(
                success=True,
                limit=config.requests,
                remaining=remaining - 1,  # Account for this request
                reset=int(now + config.window_seconds),
            )

    def reset(self) -> None:
        """Reset all rate limit entries. Useful for testing."""
        self._requests.clear()

    async def cleanup_old_entries(self) -> int:
        """Remove expired entries from memory.

        Returns:
            Number of entries removed
        """
        removed = 0
        now = time.time()

        async with self._lock:
            keys_to_remove = []
            for key, timestamps in self._requests.items():
                limit_type_str = key.split(":")[0]
                try:
                    window = self.config[RateLimitType(limit_type_str)].window_seconds
                except ValueError:
                    window = 60  # Default window

                valid_timestamps = [t for t in timestamps if t > now - window]
                if not valid_timestamps:
                    keys_to_remove.append(key)
                    removed += 1
                else:
                    self._requests[key] = valid_timestamps

            for key in keys_to_remove:
                del self._requests[key]

        return removed


def get_client_ip(request: Request) -> str | None:
    """Extract client IP from request headers.

    Checks common headers used by proxies and load balancers.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # x-forwarded-for can be a comma-separated list, take the first IP
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return None


def get_identifier(ip: str | None) -> str:
    """Rate limit key for a client. OTP callers are anonymous, so this is per IP."""
    return f"ip:{ip or 'unknown'}"


async def check_rate_limit(
    limiter: InMemoryRateLimiter,
    request: Request,
    limit_type: RateLimitType,
) -> RateLimitResult:
    """Check rate limit for a request."""
    identifier = get_identifier(get_client_ip(request))
    return await limiter.check(identifier, limit_type)


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Generate rate limit headers for response."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }

    if not result.success:
        retry_after = max(0, result.reset - int(time.time()))
        headers["Retry-After"] = str(retry_after)

    return headers
