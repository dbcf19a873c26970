"""
API v1 auth routes.

Defines REST endpoints for registration, OTP verification, login,
password reset and profile management. Handlers are plain ``def`` so
blocking database and bcrypt work runs in FastAPI's threadpool.
Domain errors propagate to the handlers in ``shoecreatify.api.errors``.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import TypeAdapter, ValidationError

from shoecreatify.api.dependencies import (
    client_ip,
    get_app_settings,
    get_identity_service,
    get_session_token,
    require_account,
)
from shoecreatify.api.limiter import (
    login_limit,
    otp_request_limit,
    otp_verify_limit,
    registration_limit,
)
from shoecreatify.api.models import (
    AccountStatusResponse,
    Email,
    EmailRequest,
    EndpointListResponse,
    Envelope,
    ErrorResponse,
    LoginRequest,
    OtpRequest,
    RegisterRequest,
    RegisterResponse,
    ResendOtpResponse,
    ResetPasswordRequest,
    ResetTicketResponse,
    SessionResponse,
    UpdateProfileRequest,
    UserOut,
    UserResponse,
)
from shoecreatify.config.settings import Settings
from shoecreatify.domain.account import AccountProfile
from shoecreatify.domain.exceptions import NotAuthenticated, ValidationFailed
from shoecreatify.domain.identity import AuthenticatedSession, IdentityService

router = APIRouter(tags=["auth"])

_email_adapter = TypeAdapter(Email)

ENDPOINTS = {
    "register": "POST /v1/auth/register",
    "verifyRegistrationOtp": "POST /v1/auth/verify-registration-otp",
    "resendRegistrationOtp": "POST /v1/auth/resend-registration-otp",
    "login": "POST /v1/auth/login",
    "forgotPassword": "POST /v1/auth/forgot-password",
    "verifyResetOtp": "POST /v1/auth/verify-reset-otp",
    "resetPassword": "POST /v1/auth/reset-password",
    "updateProfile": "PUT /v1/auth/update-profile",
    "me": "GET /v1/auth/me",
    "user": "GET /v1/auth/user",
    "logout": "POST /v1/auth/logout",
    "checkAccount": "GET /v1/auth/check-account/{email}",
    "google": "GET /v1/auth/google",
}


def set_session_cookie(
    response: Response, settings: Settings, session: AuthenticatedSession
) -> None:
    """Attach the HttpOnly session cookie for a freshly opened session."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.session_token,
        max_age=int(session.expires_in.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


@router.get("/", response_model=EndpointListResponse, summary="List auth endpoints")
def list_endpoints() -> EndpointListResponse:
    return EndpointListResponse(message="Auth API", endpoints=ENDPOINTS)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(registration_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
    },
    summary="Register a new local account",
    description="Creates a pending account and emails a 6-digit verification code.",
)
def register(
    request_data: RegisterRequest,
    request: Request,
    service: IdentityService = Depends(get_identity_service),
) -> RegisterResponse:
    """
    Register a new user and send a verification OTP.

    - **firstName**, **lastName**: at least 3 characters
    - **email**: valid address, at most 100 characters
    - **password**: at least 6 characters
    """
    receipt = service.register(
        first_name=request_data.first_name,
        last_name=request_data.last_name,
        email=request_data.email,
        password=request_data.password,
        ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return RegisterResponse(
        message="Registration successful. Please check your email for the verification code.",
        email=receipt.email,
        user_id=receipt.account_id,
        expires_in_seconds=receipt.expires_in_seconds,
    )


@router.post(
    "/verify-registration-otp",
    response_model=SessionResponse,
    dependencies=[Depends(otp_verify_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired OTP"},
        404: {"model": ErrorResponse, "description": "No pending registration"},
    },
    summary="Verify the registration OTP",
)
def verify_registration_otp(
    request_data: OtpRequest,
    response: Response,
    service: IdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_app_settings),
) -> SessionResponse:
    """Activate the account and log it in with a session cookie."""
    session = service.verify_registration_otp(request_data.email, request_data.otp)
    set_session_cookie(response, settings, session)
    return SessionResponse(
        message="Email verified successfully",
        user=UserOut.from_profile(session.account),
        registration_status=session.account.registration_status.value,
        redirect_to=f"{settings.frontend_url}/dashboard",
    )


@router.post(
    "/resend-registration-otp",
    response_model=ResendOtpResponse,
    dependencies=[Depends(otp_request_limit)],
    responses={404: {"model": ErrorResponse, "description": "No pending registration"}},
    summary="Send a fresh registration OTP",
)
def resend_registration_otp(
    request_data: EmailRequest,
    service: IdentityService = Depends(get_identity_service),
) -> ResendOtpResponse:
    receipt = service.resend_registration_otp(request_data.email)
    return ResendOtpResponse(
        message="A new verification code has been sent to your email",
        email=receipt.email,
        expires_in_seconds=receipt.expires_in_seconds,
    )


@router.post(
    "/login",
    response_model=SessionResponse,
    dependencies=[Depends(login_limit)],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid email or password"},
        403: {"model": ErrorResponse, "description": "Email not verified"},
        423: {"model": ErrorResponse, "description": "Account locked"},
        429: {"model": ErrorResponse, "description": "Too many failed attempts"},
    },
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    request: Request,
    response: Response,
    service: IdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_app_settings),
) -> SessionResponse:
    """
    Check credentials and open a session.

    Five consecutive wrong passwords lock the account for 15 minutes.
    ``rememberMe`` extends the session to 30 days.
    """
    session = service.login(
        request_data.email,
        request_data.password,
        ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        remember_me=request_data.remember_me,
    )
    set_session_cookie(response, settings, session)
    return SessionResponse(message="Login successful", user=UserOut.from_profile(session.account))


@router.post(
    "/forgot-password",
    response_model=Envelope,
    dependencies=[Depends(otp_request_limit)],
    summary="Request a password reset OTP",
)
def forgot_password(
    request_data: EmailRequest,
    service: IdentityService = Depends(get_identity_service),
) -> Envelope:
    """Answers identically whether or not the account exists."""
    service.forgot_password(request_data.email)
    return Envelope(
        message="If an account exists with this email, a password reset code has been sent."
    )


@router.post(
    "/verify-reset-otp",
    response_model=ResetTicketResponse,
    dependencies=[Depends(otp_verify_limit)],
    responses={400: {"model": ErrorResponse, "description": "Invalid or expired OTP"}},
    summary="Verify the password reset OTP",
)
def verify_reset_otp(
    request_data: OtpRequest,
    service: IdentityService = Depends(get_identity_service),
) -> ResetTicketResponse:
    ticket = service.verify_reset_otp(request_data.email, request_data.otp)
    return ResetTicketResponse(
        message="OTP verified successfully",
        reset_token=ticket.reset_token,
        expires_in_seconds=ticket.expires_in_seconds,
    )


@router.post(
    "/reset-password",
    response_model=Envelope,
    responses={400: {"model": ErrorResponse, "description": "Reset not possible"}},
    summary="Set a new password",
)
def reset_password(
    request_data: ResetPasswordRequest,
    service: IdentityService = Depends(get_identity_service),
) -> Envelope:
    service.reset_password(request_data.email, request_data.password, request_data.reset_token)
    return Envelope(message="Password reset successfully. Please log in with your new password.")


@router.put(
    "/update-profile",
    response_model=UserResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
    summary="Update names or profile image",
)
def update_profile(
    request_data: UpdateProfileRequest,
    account: AccountProfile = Depends(require_account),
    service: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    profile = service.update_profile(
        account.id,
        first_name=request_data.first_name,
        last_name=request_data.last_name,
        profile_image=request_data.profile_image,
    )
    return UserResponse(message="Profile updated successfully", user=UserOut.from_profile(profile))


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
    summary="Current account",
)
def me(account: AccountProfile = Depends(require_account)) -> UserResponse:
    return UserResponse(user=UserOut.from_profile(account))


@router.get("/user", response_model=UserResponse, summary="Current account, if any")
def current_user(
    token: str | None = Depends(get_session_token),
    service: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    """Like /me, but anonymous callers get ``success: false`` with a 200."""
    try:
        account = service.current_account(token)
    except NotAuthenticated as e:
        return UserResponse(success=False, message=e.message, user=None)
    return UserResponse(user=UserOut.from_profile(account))


@router.post("/logout", response_model=Envelope, summary="End the current session")
def logout(
    response: Response,
    token: str | None = Depends(get_session_token),
    service: IdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_app_settings),
) -> Envelope:
    service.logout(token)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return Envelope(message="Logged out successfully")


@router.get(
    "/check-account/{email}",
    response_model=AccountStatusResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid email"}},
    summary="Report whether an account exists and how it signs in",
)
def check_account(
    email: str,
    service: IdentityService = Depends(get_identity_service),
) -> AccountStatusResponse:
    try:
        email = _email_adapter.validate_python(email)
    except ValidationError:
        raise ValidationFailed(["Valid email is required"], message="Valid email is required") from None
    return AccountStatusResponse.from_status(service.check_account(email))
