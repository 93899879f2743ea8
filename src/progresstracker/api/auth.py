"""Authentication endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from progresstracker.api.deps import (
    AuthRateLimit,
    ContainerDep,
    CurrentIdentity,
    OptionalIdentity,
)
from progresstracker.schemas.auth import (
    MeResponse,
    RefreshTokenResponse,
    SendOTPRequest,
    SendOTPResponse,
    ValidatedUser,
    ValidateResponse,
    VerifyOTPRequest,
    VerifyOTPResponse,
)
from progresstracker.schemas.common import SuccessResponse
from progresstracker.services.auth import TokenClaims

logger = logging.getLogger(__name__)

router = APIRouter()


def _validated_user(identity: TokenClaims) -> ValidatedUser:
    return ValidatedUser(
        user_id=identity.user_id,
        email=identity.email,
        iat=int(identity.issued_at.timestamp()),
        exp=int(identity.expires_at.timestamp()),
    )


@router.post("/send-otp", response_model=SendOTPResponse)
async def send_otp(
    request: SendOTPRequest,
    container: ContainerDep,
    _rate_limit: AuthRateLimit,
):
    """
    Send a one-time code to the given email.

    Any code previously sent to this email stops being accepted.
    """
    result = await container.otp.request_code(request.email)

    if not result.success:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)

    return SendOTPResponse(
        message="OTP sent successfully to your email",
        expires_in=container.settings.otp_ttl_seconds * 1000,
    )


@router.post("/verify-otp", response_model=VerifyOTPResponse)
async def verify_otp(
    request: VerifyOTPRequest,
    container: ContainerDep,
    _rate_limit: AuthRateLimit,
):
    """
    Verify a one-time code and return a bearer token.
    """
    result = await container.otp.verify_code(request.email, request.otp)

    if not result.success or result.user_id is None:
        logger.info(f"OTP verification rejected for {request.email} ({result.outcome.value})")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result.message)

    token = container.tokens.issue(result.user_id, request.email)
    profile = await container.otp.get_profile(result.user_id, request.email)

    return VerifyOTPResponse(
        message="Authentication successful",
        token=token,
        user=profile,
        expires_in=container.settings.jwt_expires_in_seconds,
    )


@router.post("/refresh-token", response_model=RefreshTokenResponse)
async def refresh_token(identity: CurrentIdentity, container: ContainerDep):
    """Issue a fresh token for the identity in a still-valid one."""
    token = container.tokens.issue(identity.user_id, identity.email)
    return RefreshTokenResponse(
        token=token,
        expires_in=container.settings.jwt_expires_in_seconds,
    )


@router.post("/logout", response_model=SuccessResponse)
async def logout(identity: CurrentIdentity, container: ContainerDep):
    """
    Logout endpoint.

    Deletes the server-side session record. The token itself stays valid
    until it expires unless ENFORCE_LOGOUT is enabled.
    """
    await container.otp.logout(identity.user_id)
    return SuccessResponse(message="Logged out successfully")


@router.get("/me", response_model=MeResponse)
async def get_current_user_info(identity: CurrentIdentity, container: ContainerDep):
    """Get current authenticated user info."""
    profile = await container.otp.get_profile(identity.user_id, identity.email)
    return MeResponse(user=profile)


@router.post("/validate", response_model=ValidateResponse)
async def validate(identity: CurrentIdentity):
    """Echo back the claims of a valid token."""
    return ValidateResponse(user=_validated_user(identity))


class SessionStatusResponse(BaseModel):
    """Whether the caller presented a valid token."""

    success: bool = True
    authenticated: bool
    user: ValidatedUser | None = None


@router.get("/session", response_model=SessionStatusResponse)
async def session_status(identity: OptionalIdentity):
    """Report the caller's identity without requiring login."""
    if identity is None:
        return SessionStatusResponse(authenticated=False)
    return SessionStatusResponse(authenticated=True, user=_validated_user(identity))
