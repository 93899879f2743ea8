"""Request and response schemas for the authentication endpoints."""

from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field, field_validator

from progresstracker.schemas.common import CamelModel


class SendOTPRequest(CamelModel):
    """Request body for sending an OTP."""

    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.strip().lower()


class VerifyOTPRequest(SendOTPRequest):
    """Request body for verifying an OTP. Codes are exactly six ASCII digits."""

    otp: str = Field(pattern=r"^[0-9]{6}$", description="6-digit code from the email")


class UserProfile(CamelModel):
    """Profile of a logged-in user."""

    user_id: str
    email: str
    created_at: datetime
    last_login: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class SendOTPResponse(CamelModel):
    success: bool = True
    message: str
    expires_in: int = Field(description="OTP lifetime in milliseconds")


class VerifyOTPResponse(CamelModel):
    success: bool = True
    message: str
    token: str
    user: UserProfile
    expires_in: int = Field(description="Token lifetime in seconds")


class RefreshTokenResponse(CamelModel):
    success: bool = True
    token: str
    expires_in: int = Field(description="Token lifetime in seconds")


class MeResponse(CamelModel):
    success: bool = True
    user: UserProfile


class ValidatedUser(CamelModel):
    """Claims of a validated token, with Unix timestamps."""

    user_id: str
    email: str
    iat: int
    exp: int


class ValidateResponse(CamelModel):
    success: bool = True
    valid: bool = True
    user: ValidatedUser
