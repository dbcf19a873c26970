"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
JSON keys are camelCase on the wire; Python attributes stay snake_case.
Every response is an envelope: ``{success, message, ...data}``.
"""

from datetime import datetime
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel

from shoecreatify.domain.account import AccountProfile, AccountStatus

MAX_EMAIL_LENGTH = 100
MIN_REGISTRATION_NAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_email_length(value: str) -> str:
    if len(value) > MAX_EMAIL_LENGTH:
        raise ValueError("Valid email is required")
    return value


Email = Annotated[EmailStr, AfterValidator(_check_email_length)]


# ----------------------------------------------------------------------
# Requests
# ----------------------------------------------------------------------


class RegisterRequest(ApiModel):
    """Request model for local registration."""

    first_name: str = Field(..., description="First name (min 3 characters)")
    last_name: str = Field(..., description="Last name (min 3 characters)")
    email: Email
    password: str = Field(
        ...,
        min_length=MIN_PASSWORD_LENGTH,
        description="User password (min 6 characters)",
    )

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_and_check_name(cls, value: str, info: ValidationInfo) -> str:
        value = value.strip()
        if len(value) < MIN_REGISTRATION_NAME_LENGTH:
            label = "First name" if info.field_name == "first_name" else "Last name"
            raise ValueError(f"{label} must be at least {MIN_REGISTRATION_NAME_LENGTH} characters")
        return value


class EmailRequest(ApiModel):
    """Request model carrying only an email (resend OTP, forgot password)."""

    email: Email


class OtpRequest(ApiModel):
    """Request model for registration and reset OTP verification."""

    email: Email
    otp: str = Field(..., pattern=r"^\d{6}$", description="6-digit one-time code")


class LoginRequest(ApiModel):
    email: Email
    password: str = Field(..., min_length=1)
    remember_me: bool = False


class ResetPasswordRequest(ApiModel):
    email: Email
    password: str = Field(
        ...,
        min_length=MIN_PASSWORD_LENGTH,
        description="New password (min 6 characters)",
    )
    reset_token: str | None = Field(
        default=None,
        description="Token from verify-reset-otp; accepted but not required",
    )


class UpdateProfileRequest(ApiModel):
    first_name: str | None = None
    last_name: str | None = None
    profile_image: str | None = Field(default=None, description="http(s) image URL")


# ----------------------------------------------------------------------
# Responses
# ----------------------------------------------------------------------


class PreferencesOut(ApiModel):
    email_notifications: bool
    two_factor_enabled: bool
    login_alerts: bool


class UserOut(ApiModel):
    """Public account representation."""

    id: str
    email: str
    first_name: str | None
    last_name: str | None
    full_name: str
    profile_image: str | None
    account_type: str
    registration_status: str
    is_email_verified: bool
    preferences: PreferencesOut
    created_at: datetime | None

    @classmethod
    def from_profile(cls, profile: AccountProfile) -> "UserOut":
        return cls(
            id=profile.id,
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            full_name=profile.full_name,
            profile_image=profile.profile_image,
            account_type=profile.account_type.value,
            registration_status=profile.registration_status.value,
            is_email_verified=profile.is_email_verified,
            preferences=PreferencesOut(
                email_notifications=profile.preferences.email_notifications,
                two_factor_enabled=profile.preferences.two_factor_enabled,
                login_alerts=profile.preferences.login_alerts,
            ),
            created_at=profile.created_at,
        )


class Envelope(ApiModel):
    success: bool = True
    message: str | None = None


class RegisterResponse(Envelope):
    email: str
    user_id: str
    registration_status: str = "pending_verification"
    expires_in_seconds: int


class ResendOtpResponse(Envelope):
    email: str
    expires_in_seconds: int


class SessionResponse(Envelope):
    """Returned whenever a session was established (verification, login)."""

    user: UserOut
    redirect_to: str | None = None
    registration_status: str | None = None


class ResetTicketResponse(Envelope):
    reset_token: str
    expires_in_seconds: int


class UserResponse(Envelope):
    user: UserOut | None


class AccountStatusResponse(Envelope):
    exists: bool
    account_type: str | None = None
    is_email_verified: bool | None = None
    is_locked: bool | None = None
    registration_status: str | None = None

    @classmethod
    def from_status(cls, status: AccountStatus) -> "AccountStatusResponse":
        if not status.exists:
            return cls(exists=False, message="Account not found")
        return cls(
            exists=True,
            account_type=status.account_type.value if status.account_type else None,
            is_email_verified=status.is_email_verified,
            is_locked=status.is_locked,
            registration_status=(
                status.registration_status.value if status.registration_status else None
            ),
        )


class ErrorResponse(ApiModel):
    """Standard error envelope."""

    success: bool = False
    message: str
    errors: list[str] | None = None
    account_type: str | None = None
    is_email_verified: bool | None = None
    email: str | None = None
    details: str | None = None


class EndpointListResponse(Envelope):
    endpoints: dict[str, str]
