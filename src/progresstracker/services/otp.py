"""OTP session management for email login.

One verification cycle per email lives in the cache:

- ``otp_session:{email}`` holds ``{email, created_at}`` for the OTP lifetime.
  Requesting a new code overwrites it and resets the attempt counter.
- ``otp_attempts:{email}`` is an atomic counter charged before every call to
  the email service, so induced provider failures still consume attempts.

Code generation and checking are delegated to the external email service.
Verification ends in one of three terminal states: verified (session
deleted), exhausted (session deleted on the attempt after the fifth), or
expired (the cache entry lapses).
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import httpx

from progresstracker.schemas.auth import UserProfile
from progresstracker.services.cache import Cache
from progresstracker.services.email_otp import EmailOTPClient
from progresstracker.services.identity import IdentityResolver, normalize_email

logger = logging.getLogger(__name__)

MAX_OTP_ATTEMPTS = 5

MSG_SENT = "OTP sent successfully"
MSG_SEND_FAILED = "Failed to send OTP"
MSG_PROVIDER_ERROR = "Email service error. Please try again."
MSG_PROVIDER_UNAVAILABLE = "Email service unavailable. Please try again later."
MSG_REQUEST_FAILED = "Failed to process request. Please try again."
MSG_VERIFIED = "OTP verified successfully"
MSG_SESSION_EXPIRED = "OTP session expired. Please request a new OTP."
MSG_MAX_ATTEMPTS = "Maximum attempts exceeded. Please request a new OTP."
MSG_INVALID_OTP = "Invalid OTP"
MSG_INVALID_OR_EXPIRED = "Invalid or expired OTP"
MSG_VERIFY_FAILED = "Failed to verify OTP. Please try again."


class OTPOutcome(str, Enum):
    """Why an OTP operation ended the way it did."""

    SENT = "sent"
    VERIFIED = "verified"
    SESSION_EXPIRED = "session_expired"
    MAX_ATTEMPTS = "max_attempts"
    INVALID_CODE = "invalid_code"
    PROVIDER_ERROR = "provider_error"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    INTERNAL_ERROR = "internal_error"


@dataclass
class OTPResult:
    """Result of requesting or verifying a code."""

    success: bool
    message: str
    outcome: OTPOutcome
    user_id: str | None = None


def _now() -> datetime:
    return datetime.now(UTC)


class OTPSessionManager:
    """Tracks outstanding OTP verifications and logged-in session records."""

    def __init__(
        self,
        cache: Cache,
        provider: EmailOTPClient,
        identity: IdentityResolver,
        otp_ttl: int = 600,
        user_session_ttl: int = 86400,
    ):
        self.cache = cache
        self.provider = provider
        self.identity = identity
        self.otp_ttl = otp_ttl
        self.user_session_ttl = user_session_ttl

    @staticmethod
    def session_key(email: str) -> str:
        return f"otp_session:{email}"

    @staticmethod
    def attempts_key(email: str) -> str:
        return f"otp_attempts:{email}"

    @staticmethod
    def user_session_key(user_id: str) -> str:
        return f"session:{user_id}"

    async def _clear(self, email: str) -> None:
        await self.cache.delete(self.session_key(email))
        await self.cache.delete(self.attempts_key(email))

    async def request_code(self, email: str) -> OTPResult:
        """Have the email service send a code and open a fresh session.

        No session is written unless the email service reports success.
        """
        email = normalize_email(email)
        logger.info(f"Sending OTP request to email service for {email}")

        try:
            result = await self.provider.send_otp(email)
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Email service responded with error {e.response.status_code}: {e.response.text}"
            )
            return OTPResult(False, MSG_PROVIDER_ERROR, OTPOutcome.PROVIDER_ERROR)
        except httpx.RequestError as e:
            logger.error(f"No response from email service: {e!r}")
            return OTPResult(False, MSG_PROVIDER_UNAVAILABLE, OTPOutcome.PROVIDER_UNAVAILABLE)
        except Exception:
            logger.exception("Error setting up email service request")
            return OTPResult(False, MSG_REQUEST_FAILED, OTPOutcome.INTERNAL_ERROR)

        if not result.success:
            return OTPResult(False, result.message or MSG_SEND_FAILED, OTPOutcome.PROVIDER_ERROR)

        await self.cache.set(
            self.session_key(email),
            {"email": email, "created_at": _now().isoformat()},
            self.otp_ttl,
        )
        await self.cache.delete(self.attempts_key(email))

        return OTPResult(True, result.message or MSG_SENT, OTPOutcome.SENT)

    async def verify_code(self, email: str, code: str) -> OTPResult:
        """Check a code against the email service, enforcing the attempt limit.

        On success the session is consumed, the email's user id is resolved,
        and a session record is written for it.
        """
        email = normalize_email(email)
        logger.info(f"Verifying OTP for {email}")

        session = await self.cache.get(self.session_key(email))
        if not session:
            return OTPResult(False, MSG_SESSION_EXPIRED, OTPOutcome.SESSION_EXPIRED)

        attempts = await self.cache.incr(self.attempts_key(email), self.otp_ttl)
        if attempts > MAX_OTP_ATTEMPTS:
            await self._clear(email)
            logger.warning(f"OTP attempts exhausted for {email}")
            return OTPResult(False, MSG_MAX_ATTEMPTS, OTPOutcome.MAX_ATTEMPTS)

        try:
            result = await self.provider.verify_otp(email, code)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                return OTPResult(False, MSG_INVALID_OR_EXPIRED, OTPOutcome.INVALID_CODE)
            logger.error(f"Email service rejected OTP verification with {e.response.status_code}")
            return OTPResult(False, MSG_VERIFY_FAILED, OTPOutcome.PROVIDER_ERROR)
        except httpx.RequestError as e:
            logger.error(f"No response from email service while verifying OTP: {e!r}")
            return OTPResult(False, MSG_VERIFY_FAILED, OTPOutcome.PROVIDER_UNAVAILABLE)
        except Exception:
            logger.exception("Error verifying OTP")
            return OTPResult(False, MSG_VERIFY_FAILED, OTPOutcome.INTERNAL_ERROR)

        if not result.success:
            return OTPResult(False, result.message or MSG_INVALID_OTP, OTPOutcome.INVALID_CODE)

        # One-time use
        await self._clear(email)

        user_id = await self.identity.resolve(email)
        await self._record_login(user_id, email)
        logger.info(f"OTP verified for {email} after {attempts} attempt(s)")

        return OTPResult(True, MSG_VERIFIED, OTPOutcome.VERIFIED, user_id=user_id)

    async def _record_login(self, user_id: str, email: str) -> None:
        key = self.user_session_key(user_id)
        now = _now().isoformat()
        previous = await self.cache.get(key)
        created_at = previous.get("created_at", now) if isinstance(previous, dict) else now
        await self.cache.set(
            key,
            {
                "user_id": user_id,
                "email": email,
                "created_at": created_at,
                "last_login": now,
                "active": True,
            },
            self.user_session_ttl,
        )

    async def get_profile(self, user_id: str, email: str) -> UserProfile:
        """Build a profile from the user's session record, if one is live."""
        record = await self.cache.get(self.user_session_key(user_id))
        if not isinstance(record, dict):
            record = {}
        now = _now()
        return UserProfile(
            user_id=user_id,
            email=normalize_email(email),
            created_at=record.get("created_at") or now,
            last_login=record.get("last_login") or now,
            metadata=record.get("metadata") or {},
        )

    async def is_session_active(self, user_id: str) -> bool:
        record = await self.cache.get(self.user_session_key(user_id))
        return isinstance(record, dict) and bool(record.get("active"))

    async def logout(self, user_id: str) -> None:
        """Delete the user's session record.

        Issued tokens stay cryptographically valid until they expire; they are
        only refused afterwards when the gate checks session records.
        """
        await self.cache.delete(self.user_session_key(user_id))
        logger.info(f"Logged out user {user_id}")
