"""Authentication service for JWT token management."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import ExpiredSignatureError, JOSEError, jwt

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Authentication error."""

    pass


class TokenInvalidError(AuthError):
    """Token is malformed, tampered with, or missing required claims."""


class TokenExpiredError(AuthError):
    """Token signature is valid but its expiry has passed."""


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a validated bearer token."""

    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Issues and validates HS256-signed bearer tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", expires_in: int = 7 * 24 * 3600):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_in = expires_in

    def issue(self, user_id: str, email: str) -> str:
        """Create a JWT token for a user."""
        now = datetime.now(UTC)
        payload = {
            "sub": user_id,
            "email": email,
            "iat": now,
            "exp": now + timedelta(seconds=self.expires_in),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> TokenClaims:
        """Decode and validate a JWT token.

        Raises:
            TokenExpiredError: If the token is past its expiry
            TokenInvalidError: For any other verification failure
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token expired") from e
        except JOSEError as e:
            raise TokenInvalidError(f"Invalid token: {e}") from e

        user_id = payload.get("sub")
        email = payload.get("email")
        exp = payload.get("exp")
        iat = payload.get("iat")
        if not user_id or not isinstance(email, str) or not isinstance(exp, int | float):
            raise TokenInvalidError("Invalid token: missing claims")

        try:
            expires_at = datetime.fromtimestamp(exp, UTC)
            if isinstance(iat, int | float):
                issued_at = datetime.fromtimestamp(iat, UTC)
            else:
                issued_at = expires_at - timedelta(seconds=self.expires_in)
        except (OverflowError, OSError, ValueError) as e:
            raise TokenInvalidError(f"Invalid token: bad timestamp ({e})") from e

        # Checked again here in case the library applied leeway
        if expires_at <= datetime.now(UTC):
            raise TokenExpiredError("Token expired")

        return TokenClaims(
            user_id=str(user_id),
            email=email,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def validate(self, token: str) -> TokenClaims | None:
        """Return the token's claims, or None if it is not valid."""
        try:
            return self.decode(token)
        except AuthError as e:
            logger.debug(f"Token verification failed: {e}")
            return None
