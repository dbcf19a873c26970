"""
Account record - projections and lifecycle invariants.

The account table is read through two explicit projections:

- AccountProfile: the public view, safe to return to clients.
- AccountCredentials: the credential-check view, carrying the password hash,
  OTP/token digests and login-failure counters. Only this projection is
  mutated by the identity lifecycle and written back by the repository.

Registration Lifecycle (forward-only)
=====================================

    PENDING_VERIFICATION -> COMPLETED   (registration OTP verified)

A pending record that never verifies may be deleted and recreated by a new
registration for the same email. No path demotes COMPLETED back to pending.
Password reset is orthogonal and never touches verification state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AccountType(str, Enum):
    """How the account authenticates."""

    LOCAL = "local"
    GOOGLE = "google"


class RegistrationStatus(str, Enum):
    """
    Registration lifecycle states.

    ACTIVE is accepted when reading legacy rows; new code only writes
    PENDING_VERIFICATION and COMPLETED.
    """

    PENDING_VERIFICATION = "pending_verification"
    COMPLETED = "completed"
    ACTIVE = "active"


@dataclass(frozen=True)
class Preferences:
    email_notifications: bool = True
    two_factor_enabled: bool = False
    login_alerts: bool = True


@dataclass(frozen=True)
class AccountProfile:
    """Public view of an account."""

    id: str
    email: str
    first_name: str | None
    last_name: str | None
    account_type: AccountType
    registration_status: RegistrationStatus
    is_email_verified: bool
    email_verified_at: datetime | None = None
    profile_image: str | None = None
    preferences: Preferences = field(default_factory=Preferences)
    created_at: datetime | None = None

    @property
    def full_name(self) -> str:
        """First and last name, or the local part of the email when either is missing."""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.email.split("@")[0]


@dataclass
class AccountCredentials:
    """
    Credential-check view of an account.

    Holds every secret-bearing field. Digests are salted hashes produced by
    ``domain.tokens``; the password hash is bcrypt.
    """

    id: str
    email: str
    account_type: AccountType
    registration_status: RegistrationStatus
    is_email_verified: bool
    password_hash: str | None = None
    email_verified_at: datetime | None = None
    verification_otp_hash: str | None = None
    verification_otp_expires_at: datetime | None = None
    reset_otp_hash: str | None = None
    reset_otp_expires_at: datetime | None = None
    email_verification_token_hash: str | None = None
    email_verification_token_expires_at: datetime | None = None
    reset_password_token_hash: str | None = None
    reset_password_token_expires_at: datetime | None = None
    failed_login_attempts: int = 0
    locked_until: datetime | None = None
    last_password_change_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.registration_status == RegistrationStatus.PENDING_VERIFICATION

    @property
    def uses_local_password(self) -> bool:
        """External-provider accounts never go through local password checks."""
        return self.account_type == AccountType.LOCAL and self.password_hash is not None

    def activate(self, now: datetime) -> None:
        """Promote a pending registration to COMPLETED with a verified email."""
        self.is_email_verified = True
        self.email_verified_at = now
        self.verification_otp_hash = None
        self.verification_otp_expires_at = None
        self.registration_status = RegistrationStatus.COMPLETED

    def clear_secrets(self) -> None:
        """Drop every outstanding OTP and link token."""
        self.verification_otp_hash = None
        self.verification_otp_expires_at = None
        self.reset_otp_hash = None
        self.reset_otp_expires_at = None
        self.email_verification_token_hash = None
        self.email_verification_token_expires_at = None
        self.reset_password_token_hash = None
        self.reset_password_token_expires_at = None


@dataclass(frozen=True)
class NewAccount:
    """Field set for inserting a locally-registered, pending account."""

    email: str
    first_name: str
    last_name: str
    password_hash: str
    verification_otp_hash: str
    verification_otp_expires_at: datetime
    registration_ip: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class ExternalIdentity:
    """Identity asserted by an external provider after a successful OAuth flow."""

    provider: AccountType
    provider_user_id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    display_name: str = ""
    picture: str = ""


@dataclass(frozen=True)
class AccountStatus:
    """Result of an account-by-email status check."""

    exists: bool
    account_type: AccountType | None = None
    is_email_verified: bool | None = None
    is_locked: bool | None = None
    registration_status: RegistrationStatus | None = None
