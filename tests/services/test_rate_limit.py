"""Rate limiter tests."""

from unittest.mock import MagicMock

import pytest

from progresstracker.services.rate_limit import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimitResult,
    RateLimitType,
    get_client_ip,
    get_identifier,
    rate_limit_headers,
)


def make_request(headers: dict[str, str] | None = None, host: str | None = "10.0.0.1"):
    request = MagicMock()
    request.headers = headers or {}
    request.client = MagicMock(host=host) if host else None
    return request


class TestInMemoryRateLimiter:
    @pytest.mark.asyncio
    async def test_allows_up_to_limit(self):
        limiter = InMemoryRateLimiter({RateLimitType.AUTH: RateLimitConfig(3, 60)})

        results = [await limiter.check("ip:1.2.3.4", RateLimitType.AUTH) for _ in range(4)]

        assert [r.success for r in results] == [True, True, True, False]
        assert [r.remaining for r in results] == [2, 1, 0, 0]

    @pytest.mark.asyncio
    async def test_identifiers_are_independent(self):
        limiter = InMemoryRateLimiter({RateLimitType.AUTH: RateLimitConfig(1, 60)})

        assert (await limiter.check("ip:a", RateLimitType.AUTH)).success
        assert (await limiter.check("ip:b", RateLimitType.AUTH)).success
        assert not (await limiter.check("ip:a", RateLimitType.AUTH)).success

    @pytest.mark.asyncio
    async def test_limit_types_are_independent(self):
        limiter = InMemoryRateLimiter({RateLimitType.AUTH: RateLimitConfig(1, 60)})

        await limiter.check("ip:a", RateLimitType.AUTH)

        assert (await limiter.check("ip:a", RateLimitType.API)).success

    @pytest.mark.asyncio
    async def test_config_merges_with_defaults(self):
        limiter = InMemoryRateLimiter({RateLimitType.API: RateLimitConfig(5, 30)})

        assert limiter.config[RateLimitType.API].requests == 5
        assert limiter.config[RateLimitType.AUTH].requests == 10

    @pytest.mark.asyncio
    async def test_reset(self):
        limiter = InMemoryRateLimiter({RateLimitType.AUTH: RateLimitConfig(1, 60)})
        await limiter.check("ip:a", RateLimitType.AUTH)

        limiter.reset()

        assert (await limiter.check("ip:a", RateLimitType.AUTH)).success

    @pytest.mark.asyncio
    async def test_cleanup_old_entries(self, monkeypatch):
        limiter = InMemoryRateLimiter({RateLimitType.AUTH: RateLimitConfig(5, 60)})
        await limiter.check("ip:a", RateLimitType.AUTH)

        import progresstracker.services.rate_limit as rate_limit

        real_time = rate_limit.time.time
        monkeypatch.setattr(rate_limit.time, "time", lambda: real_time() + 120)

        assert await limiter.cleanup_old_entries() == 1


class TestHelpers:
    def test_client_ip_from_forwarded_for(self):
        request = make_request({"x-forwarded-for": "203.0.113.7, 10.0.0.2"})
        assert get_client_ip(request) == "203.0.113.7"

    def test_client_ip_from_real_ip(self):
        request = make_request({"x-real-ip": " 203.0.113.8 "})
        assert get_client_ip(request) == "203.0.113.8"

    def test_client_ip_from_connection(self):
        assert get_client_ip(make_request()) == "10.0.0.1"

    def test_client_ip_unknown(self):
        assert get_client_ip(make_request(host=None)) is None

    def test_identifier(self):
        assert get_identifier("1.2.3.4") == "ip:1.2.3.4"
        assert get_identifier(None) == "ip:unknown"

    def test_headers_include_retry_after_when_limited(self):
        headers = rate_limit_headers(RateLimitResult(success=False, limit=10, remaining=0, reset=0))

        assert headers["X-RateLimit-Limit"] == "10"
        assert headers["Retry-After"] == "0"

    def test_headers_without_retry_after(self):
        headers = rate_limit_headers(RateLimitResult(success=True, limit=10, remaining=9, reset=0))

        assert "Retry-After" not in headers
