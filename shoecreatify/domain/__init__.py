"""
Domain layer - Pure business logic with zero framework imports.

This package contains the identity lifecycle: account projections,
OTP/token generation, the login-attempt guard and the IdentityService
that orchestrates them. It defines its own port interfaces for
infrastructure abstraction.
"""

from .account import (
    AccountCredentials,
    AccountProfile,
    AccountStatus,
    AccountType,
    ExternalIdentity,
    NewAccount,
    Preferences,
    RegistrationStatus,
)
from .exceptions import IdentityError
from .guard import LoginGuard
from .identity import (
    AuthenticatedSession,
    IdentityService,
    RegistrationReceipt,
    ResetTicket,
)
from .ports import (
    AccountRepository,
    EmailSender,
    Notification,
    NotificationKind,
    NotificationQueue,
    SendResult,
    SessionStore,
)

__all__ = [
    "AccountCredentials",
    "AccountProfile",
    "AccountRepository",
    "AccountStatus",
    "AccountType",
    "AuthenticatedSession",
    "EmailSender",
    "ExternalIdentity",
    "IdentityError",
    "IdentityService",
    "LoginGuard",
    "NewAccount",
    "Notification",
    "NotificationKind",
    "NotificationQueue",
    "Preferences",
    "RegistrationReceipt",
    "RegistrationStatus",
    "ResetTicket",
    "SendResult",
    "SessionStore",
]
