"""Email service client tests."""

import httpx
import pytest

from progresstracker.services.email_otp import EmailOTPClient
from tests.conftest import FakeEmailService


@pytest.fixture
def fake() -> FakeEmailService:
    return FakeEmailService()


def make_client(handler) -> EmailOTPClient:
    return EmailOTPClient("http://email.test/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_send_and_verify(fake: FakeEmailService):
    async with make_client(fake.handler) as client:
        sent = await client.send_otp("a@example.com")
        code = fake.code_for("a@example.com")
        verified = await client.verify_otp("a@example.com", code)

    assert sent.success is True
    assert sent.message == "OTP sent successfully"
    assert verified.success is True
    assert fake.requests[1] == ("/verify-otp", {"email": "a@example.com", "otp": code})


@pytest.mark.asyncio
async def test_strips_trailing_slash():
    client = make_client(lambda request: httpx.Response(200, json={"success": True}))
    assert client.base_url == "http://email.test"
    assert client.is_configured is True
    await client.aclose()


@pytest.mark.asyncio
async def test_sends_json_headers():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True})

    async with make_client(handler) as client:
        await client.send_otp("a@example.com")

    assert str(seen[0].url) == "http://email.test/send-otp"
    assert seen[0].headers["content-type"] == "application/json"
    assert seen[0].headers["accept"] == "application/json"


@pytest.mark.asyncio
async def test_reports_body_failure():
    handler = lambda request: httpx.Response(200, json={"success": False})  # noqa: E731

    async with make_client(handler) as client:
        result = await client.send_otp("a@example.com")

    assert result.success is False
    assert result.message is None


@pytest.mark.asyncio
async def test_raises_on_error_status(fake: FakeEmailService):
    async with make_client(fake.handler) as client:
        await client.send_otp("a@example.com")
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await client.verify_otp("a@example.com", "000000")

    assert exc_info.value.response.status_code == 401


@pytest.mark.asyncio
async def test_raises_on_transport_error(fake: FakeEmailService):
    fake.error = httpx.ConnectError("connection refused")

    async with make_client(fake.handler) as client:
        with pytest.raises(httpx.RequestError):
            await client.send_otp("a@example.com")


@pytest.mark.asyncio
async def test_non_object_body():
    handler = lambda request: httpx.Response(200, json=["unexpected"])  # noqa: E731

    async with make_client(handler) as client:
        result = await client.verify_otp("a@example.com", "123456")

    assert result.success is False
