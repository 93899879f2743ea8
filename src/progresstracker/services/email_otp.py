"""Client for the external email service that sends and checks OTP codes."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass
class ProviderResult:
    """Outcome reported in the email service's JSON body."""

    success: bool
    message: str | None = None


class EmailOTPClient:
    """Async client for the email service's ``/send-otp`` and ``/verify-otp``.

    Non-2xx responses raise ``httpx.HTTPStatusError``. Transport failures,
    timeouts included, raise ``httpx.RequestError``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    async def _post(self, path: str, payload: dict[str, Any]) -> ProviderResult:
        response = await self._client.post(path, json=payload)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            data = {}
        message = data.get("message")
        return ProviderResult(
            success=bool(data.get("success")),
            message=str(message) if message else None,
        )

    async def send_otp(self, email: str) -> ProviderResult:
        """Ask the email service to generate and deliver a code."""
        return await self._post("/send-otp", {"email": email})

    async def verify_otp(self, email: str, otp: str) -> ProviderResult:
        """Ask the email service whether ``otp`` is the live code for ``email``."""
        return await self._post("/verify-otp", {"email": email, "otp": otp})

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "EmailOTPClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
