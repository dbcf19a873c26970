"""
Exception handlers - map domain errors onto the JSON error envelope.

Every failure leaves the API as ``{"success": false, "message": ...}``
with optional ``errors`` and context fields. Domain exceptions carry
no HTTP knowledge; the status table below is the only place where
they meet status codes.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shoecreatify.domain.exceptions import (
    AccountLocked,
    AccountNotFound,
    EmailAlreadyRegistered,
    EmailNotVerified,
    ExternalProviderAccount,
    IdentityError,
    InvalidCredentials,
    InvalidOrExpiredOtp,
    NotAuthenticated,
    PasswordReuse,
    PendingRegistrationNotFound,
    ProviderAccountExists,
    ResetNotRequested,
    ValidationFailed,
)

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[IdentityError], int] = {
    ValidationFailed: status.HTTP_400_BAD_REQUEST,
    InvalidOrExpiredOtp: status.HTTP_400_BAD_REQUEST,
    ResetNotRequested: status.HTTP_400_BAD_REQUEST,
    PasswordReuse: status.HTTP_400_BAD_REQUEST,
    InvalidCredentials: status.HTTP_401_UNAUTHORIZED,
    ExternalProviderAccount: status.HTTP_401_UNAUTHORIZED,
    NotAuthenticated: status.HTTP_401_UNAUTHORIZED,
    EmailNotVerified: status.HTTP_403_FORBIDDEN,
    PendingRegistrationNotFound: status.HTTP_404_NOT_FOUND,
    AccountNotFound: status.HTTP_404_NOT_FOUND,
    EmailAlreadyRegistered: status.HTTP_409_CONFLICT,
    ProviderAccountExists: status.HTTP_409_CONFLICT,
    AccountLocked: status.HTTP_423_LOCKED,
}


class RateLimitExceeded(Exception):
    """Raised by the rate-limit dependency when a window is exhausted."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def status_for(exc: IdentityError) -> int:
    """Resolve the status code of a domain error, honouring subclassing."""
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return status.HTTP_400_BAD_REQUEST


def error_body(exc: IdentityError) -> dict[str, Any]:
    """Build the error envelope for a domain error."""
    body: dict[str, Any] = {"success": False, "message": exc.message}
    if isinstance(exc, ValidationFailed):
        body["errors"] = exc.errors
    if isinstance(exc, (ProviderAccountExists, ExternalProviderAccount)):
        body["accountType"] = exc.account_type
    if isinstance(exc, EmailNotVerified):
        body["isEmailVerified"] = False
        body["email"] = exc.email
    return body


def _format_validation_error(error: dict[str, Any]) -> str:
    message = error.get("msg", "Invalid value")
    # Pydantic prefixes messages raised from custom validators
    if message.startswith("Value error, "):
        return message[len("Value error, ") :]
    location = [str(part) for part in error.get("loc", ()) if part != "body"]
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


def register_error_handlers(app: FastAPI, expose_details: bool = False) -> None:
    """
    Register global exception handlers on the FastAPI app.

    Args:
        app: Application to attach handlers to
        expose_details: Include the exception text in 500 responses
            (never enabled in production)
    """

    @app.exception_handler(IdentityError)
    async def identity_error_handler(request: Request, exc: IdentityError) -> JSONResponse:
        return JSONResponse(status_code=status_for(exc), content=error_body(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [_format_validation_error(error) for error in exc.errors()]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Validation failed", "errors": errors},
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        logger.warning("Rate limit exceeded on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"success": False, "message": exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content: dict[str, Any] = {"success": False, "message": "Internal server error"}
        if expose_details:
            content["details"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
