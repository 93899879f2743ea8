"""Pydantic schemas for API requests/responses."""

from progresstracker.schemas.auth import (
    MeResponse,
    RefreshTokenResponse,
    SendOTPRequest,
    SendOTPResponse,
    UserProfile,
    ValidatedUser,
    ValidateResponse,
    VerifyOTPRequest,
    VerifyOTPResponse,
)
from progresstracker.schemas.common import CamelModel, ErrorResponse, SuccessResponse

__all__ = [
    "CamelModel",
    "ErrorResponse",
    "MeResponse",
    "RefreshTokenResponse",
    "SendOTPRequest",
    "SendOTPResponse",
    "SuccessResponse",
    "UserProfile",
    "ValidatedUser",
    "ValidateResponse",
    "VerifyOTPRequest",
    "VerifyOTPResponse",
]
