"""
Domain exceptions - Semantic error types for the identity lifecycle.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
The API layer maps each one to a status code and a client message.
"""

from datetime import datetime


class IdentityError(Exception):
    """Base class for identity domain errors."""

    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(IdentityError):
    """Input violates a field constraint."""

    default_message = "Validation failed"

    def __init__(self, errors: list[str], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = errors


class EmailAlreadyRegistered(IdentityError):
    """A verified account already owns this email."""

    default_message = "An account with this email already exists. Try logging in instead."


class ProviderAccountExists(IdentityError):
    """Email belongs to an account that signs in through an external provider."""

    def __init__(self, account_type: str) -> None:
        super().__init__(
            f"Account already exists with {account_type.capitalize()}. "
            f"Please use {account_type.capitalize()} login."
        )
        self.account_type = account_type


class PendingRegistrationNotFound(IdentityError):
    """No account awaiting verification for this email."""

    default_message = "No pending registration found. Please register again."


class InvalidOrExpiredOtp(IdentityError):
    """OTP digest mismatch or expiry passed."""

    default_message = "Invalid or expired OTP"


class ResetNotRequested(IdentityError):
    """No reset OTP is outstanding for this account."""

    default_message = "No active OTP found. Please request a new one."


class PasswordReuse(IdentityError):
    """New password equals the current one."""

    default_message = "New password cannot be the same as old password"


class InvalidCredentials(IdentityError):
    """Unknown email or wrong password; both read the same."""

    default_message = "Invalid email or password"


class AccountLocked(IdentityError):
    """Too many consecutive failed logins."""

    default_message = "Account is temporarily locked. Try again later."

    def __init__(self, locked_until: datetime) -> None:
        super().__init__()
        self.locked_until = locked_until


class ExternalProviderAccount(IdentityError):
    """Local password login attempted on an external-provider account."""

    def __init__(self, account_type: str) -> None:
        super().__init__(f"Please use {account_type.capitalize()} to sign in with this account")
        self.account_type = account_type


class EmailNotVerified(IdentityError):
    """Login attempted before the registration OTP was verified."""

    default_message = "Please verify your email before logging in."

    def __init__(self, email: str) -> None:
        super().__init__()
        self.email = email


class NotAuthenticated(IdentityError):
    """No valid session for the caller."""

    default_message = "Not authenticated. Please log in."


class AccountNotFound(IdentityError):
    """Account referenced by id no longer exists."""

    default_message = "User not found"
