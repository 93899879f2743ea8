"""Pytest configuration and fixtures."""

import json
import os
from collections.abc import AsyncGenerator
from typing import Any

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from progresstracker.config import Settings
from progresstracker.main import create_app
from progresstracker.services.container import ServiceContainer, build_container

TEST_EMAIL = "test@example.com"


class FakeClock:
    """Manually advanced monotonic clock for cache expiry tests."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeEmailService:
    """In-memory stand-in for the external email service.

    Every send issues a new 6-digit code and only the latest code for an
    email is accepted. Wrong codes get a 401, like the real service.
    """

    def __init__(self) -> None:
        self.codes: dict[str, str] = {}
        self.requests: list[tuple[str, dict[str, Any]]] = []
        self.fail_status: int | None = None
        self.error: Exception | None = None
        self.send_success = True
        self._next_code = 100000

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append((request.url.path, body))

        if self.error is not None:
            raise self.error
        if self.fail_status is not None:
            return httpx.Response(
                self.fail_status, json={"success": False, "message": "Upstream failure"}
            )

        email = body["email"]
        if request.url.path == "/send-otp":
            if not self.send_success:
                return httpx.Response(
                    200, json={"success": False, "message": "Email address rejected"}
                )
            self._next_code += 1
            self.codes[email] = str(self._next_code)
            return httpx.Response(200, json={"success": True, "message": "OTP sent successfully"})

        if request.url.path == "/verify-otp":
            if self.codes.get(email) == body["otp"]:
                del self.codes[email]
                return httpx.Response(
                    200, json={"success": True, "message": "OTP verified successfully"}
                )
            return httpx.Response(401, json={"success": False, "message": "Invalid OTP"})

        return httpx.Response(404, json={"success": False, "message": "Not found"})

    def code_for(self, email: str) -> str:
        return self.codes[email]

    def calls_to(self, path: str) -> int:
        return sum(1 for p, _ in self.requests if p == path)


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        environment="test",
        redis_url=None,
        email_service_url="http://email.test",
        jwt_secret="test-secret-key-that-is-at-least-32-characters",
    )


@pytest.fixture
def email_service() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture
async def container(
    test_settings: Settings, email_service: FakeEmailService
) -> AsyncGenerator[ServiceContainer, None]:
    """Services wired to the fake email service and the local cache."""
    container = build_container(
        test_settings,
        provider_transport=httpx.MockTransport(email_service.handler),
    )
    yield container
    await container.aclose()


@pytest.fixture
def app(test_settings: Settings, container: ServiceContainer) -> FastAPI:
    app = create_app(test_settings)
    app.state.container = container
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def user_token(container: ServiceContainer) -> str:
    """Create a JWT token for the test user."""
    return container.tokens.issue("test-user-id", TEST_EMAIL)


@pytest.fixture
def auth_headers(user_token: str) -> dict[str, str]:
    """Create authorization headers for the test user."""
    return {"Authorization": f"Bearer {user_token}"}


# Helper to make authenticated requests
class AuthenticatedClient:
    """Wrapper for AsyncClient with authentication."""

    def __init__(self, client: AsyncClient, headers: dict[str, str]):
        self.client = client
        self.headers = headers

    async def get(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.get(url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.post(url, **kwargs)


@pytest.fixture
def authenticated_client(client: AsyncClient, auth_headers: dict[str, str]) -> AuthenticatedClient:
    """Create an authenticated test client."""
    return AuthenticatedClient(client, auth_headers)
