"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Protocol

from .account import (
    AccountCredentials,
    AccountProfile,
    ExternalIdentity,
    NewAccount,
    RegistrationStatus,
)


class NotificationKind(str, Enum):
    """Transactional emails the identity lifecycle can trigger."""

    VERIFICATION_OTP = "verification_otp"
    WELCOME = "welcome"
    LOGIN_ALERT = "login_alert"
    PASSWORD_RESET_OTP = "password_reset_otp"
    PASSWORD_CHANGED = "password_changed"


@dataclass(frozen=True)
class Notification:
    """
    A transactional email to deliver out of band.

    ``context`` carries template variables (first name, OTP, login details).
    It is the only place a plaintext OTP travels after generation.
    """

    kind: NotificationKind
    to: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SendResult:
    """Outcome of one email send attempt."""

    success: bool
    info: str | None = None
    error: str | None = None


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def create(self, account: NewAccount) -> str:
        """
        Insert a pending, locally-registered account.

        Returns:
            New account id

        Raises:
            EmailAlreadyRegistered: If the email is already taken (unique constraint)
        """
        ...

    def create_external(self, identity: ExternalIdentity, now: datetime) -> str:
        """
        Insert a verified, COMPLETED account for an external-provider identity.

        Raises:
            EmailAlreadyRegistered: If the email or provider id is already taken
        """
        ...

    def find_profile_by_id(self, account_id: str) -> AccountProfile | None:
        ...

    def find_profile_by_email(self, email: str) -> AccountProfile | None:
        ...

    def find_profile_by_provider_id(self, provider_user_id: str) -> AccountProfile | None:
        ...

    def find_credentials_by_email(
        self, email: str, status: RegistrationStatus | None = None
    ) -> AccountCredentials | None:
        """
        Load the credential-check view.

        Args:
            email: Normalized email
            status: When given, only an account in this registration status matches
        """
        ...

    def save_credentials(self, credentials: AccountCredentials) -> None:
        """Write back every mutable field of the credential view in one update."""
        ...

    def record_login(self, account_id: str, ip: str | None, at: datetime) -> None:
        ...

    def delete_pending(self, account_id: str) -> bool:
        """
        Delete an account only while it is still pending verification.

        Returns:
            True if a row was deleted
        """
        ...

    def link_provider(self, account_id: str, identity: ExternalIdentity) -> AccountProfile:
        """Attach a provider id to an existing account, filling missing names/image."""
        ...

    def update_profile(
        self,
        account_id: str,
        first_name: str | None = None,
        last_name: str | None = None,
        profile_image: str | None = None,
    ) -> AccountProfile | None:
        ...


class SessionStore(Protocol):
    """Port interface for server-side sessions keyed by account id."""

    def create(self, account_id: str, ttl: timedelta) -> str:
        """
        Establish a session.

        Returns:
            Opaque session token to hand to the client
        """
        ...

    def resolve(self, token: str) -> str | None:
        """Return the account id for a live session, or None."""
        ...

    def destroy(self, token: str) -> None:
        ...


class NotificationQueue(Protocol):
    """
    Port interface for fire-and-forget email delivery.

    ``enqueue`` must not block on, or raise because of, the mail transport.
    """

    def enqueue(self, notification: Notification) -> None:
        ...


class EmailSender(Protocol):
    """Port interface for the transactional email transport."""

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> SendResult:
        """
        Deliver one email.

        Returns:
            SendResult; transport errors are reported here, not raised
        """
        ...
