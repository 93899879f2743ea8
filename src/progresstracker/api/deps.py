"""FastAPI dependencies for dependency injection."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from progresstracker.services.auth import AuthError, TokenClaims, TokenExpiredError
from progresstracker.services.container import ServiceContainer
from progresstracker.services.rate_limit import (
    RateLimitType,
    check_rate_limit,
    rate_limit_headers,
)

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    """Services built for this app instance at startup."""
    return request.app.state.container


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]
BearerCredentials = Annotated[HTTPAuthorizationCredentials | None, Depends(security)]


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    container: ContainerDep,
    credentials: BearerCredentials,
) -> TokenClaims:
    """Get the caller's identity from the bearer token or raise 401.

    The messages differ so clients can tell "log in" (no token) from
    "log in again" (invalid or expired token).
    """
    if not credentials:
        raise _unauthorized("No token provided")

    try:
        claims = container.tokens.decode(credentials.credentials)
    except TokenExpiredError as e:
        raise _unauthorized("Token expired") from e
    except AuthError as e:
        logger.debug(f"Token verification failed: {e!r}")
        raise _unauthorized("Invalid token") from e

    if container.settings.enforce_logout and not await container.otp.is_session_active(
        claims.user_id
    ):
        raise _unauthorized("Session has been logged out")

    return claims


async def get_optional_identity(
    container: ContainerDep,
    credentials: BearerCredentials,
) -> TokenClaims | None:
    """Get the caller's identity if a valid token was sent, None otherwise."""
    if not credentials:
        return None

    claims = container.tokens.validate(credentials.credentials)
    if claims is None:
        return None
    if container.settings.enforce_logout and not await container.otp.is_session_active(
        claims.user_id
    ):
        return None
    return claims


async def require_api_key(request: Request, container: ContainerDep) -> None:
    """Check X-API-Key when the deployment requires API keys."""
    if not container.settings.require_api_key:
        return

    api_key = request.headers.get("X-API-Key")
    if not api_key:
        logger.warning("Missing API key in request")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="API key required")

    if api_key not in container.settings.valid_api_keys:
        logger.warning("Invalid API key attempted")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


# Type aliases for common dependencies
CurrentIdentity = Annotated[TokenClaims, Depends(get_current_identity)]
OptionalIdentity = Annotated[TokenClaims | None, Depends(get_optional_identity)]


class RateLimitDependency:
    """Dependency class for rate limiting endpoints.

    Usage:
        @router.post("/endpoint")
        async def endpoint(
            rate_limit: Annotated[None, Depends(RateLimitDependency(RateLimitType.AUTH))]
        ):
            ...
    """

    def __init__(self, limit_type: RateLimitType) -> None:
        self.limit_type = limit_type

    async def __call__(self, request: Request, container: ContainerDep) -> None:
        """Check rate limit and raise 429 if exceeded."""
        result = await check_rate_limit(container.rate_limiter, request, self.limit_type)

        if not result.success:
            headers = rate_limit_headers(result)
            retry_after = headers.get("Retry-After", "60")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many requests. Please try again in {retry_after} seconds.",
                headers=headers,
            )


# Pre-configured rate limit dependency for the OTP endpoints
AuthRateLimit = Annotated[None, Depends(RateLimitDependency(RateLimitType.AUTH))]
