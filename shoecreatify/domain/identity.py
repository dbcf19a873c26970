"""
Identity lifecycle domain service.

This module contains the core business logic for local registration,
email-OTP verification, login with lockout, password reset and
external-provider sign-in.

Identity Lifecycle
==================

Registration (forward-only):
    unregistered -> PENDING_VERIFICATION   (register)
    PENDING_VERIFICATION -> COMPLETED      (verify_registration_otp)
    PENDING_VERIFICATION -> (deleted)      (register again with same email)

Password reset (orthogonal, never touches verification state):
    COMPLETED -> reset requested           (forgot_password)
    reset requested -> COMPLETED           (reset_password)

No distributed lock spans the multi-step flows. Each step re-reads the
account record and re-validates what it depends on; reset_password checks
the stored reset OTP again instead of trusting the ticket handed out by
verify_reset_otp.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .account import (
    AccountProfile,
    AccountStatus,
    AccountType,
    ExternalIdentity,
    NewAccount,
    RegistrationStatus,
)
from .exceptions import (
    AccountLocked,
    AccountNotFound,
    EmailAlreadyRegistered,
    EmailNotVerified,
    ExternalProviderAccount,
    InvalidCredentials,
    InvalidOrExpiredOtp,
    NotAuthenticated,
    PasswordReuse,
    PendingRegistrationNotFound,
    ProviderAccountExists,
    ResetNotRequested,
    ValidationFailed,
)
from .guard import LoginGuard
from .passwords import DEFAULT_BCRYPT_COST, check_password, hash_password
from .ports import (
    AccountRepository,
    Notification,
    NotificationKind,
    NotificationQueue,
    SessionStore,
)
from .tokens import SECRET_TTLS, SecretPurpose, check_secret, generate_token, issue_otp

logger = logging.getLogger(__name__)

MIN_PROFILE_NAME_LENGTH = 2


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """Strip whitespace and lowercase."""
    return email.strip().lower()


@dataclass(frozen=True)
class RegistrationReceipt:
    account_id: str
    email: str
    expires_in_seconds: int


@dataclass(frozen=True)
class AuthenticatedSession:
    """An account together with the session token established for it."""

    account: AccountProfile
    session_token: str
    expires_in: timedelta


@dataclass(frozen=True)
class ResetTicket:
    """Advisory proof that a reset OTP was valid when checked."""

    reset_token: str
    expires_in_seconds: int


@dataclass
class IdentityService:
    """
    Domain service for the identity lifecycle.

    Every collaborator is injected: the account store, the session store,
    the notification queue and the clock. Nothing here touches HTTP,
    SQL or SMTP directly.
    """

    repository: AccountRepository
    sessions: SessionStore
    notifications: NotificationQueue
    guard: LoginGuard = field(default_factory=LoginGuard)
    otp_ttl: timedelta = SECRET_TTLS[SecretPurpose.VERIFICATION_OTP]
    session_ttl: timedelta = timedelta(days=1)
    remember_me_ttl: timedelta = timedelta(days=30)
    bcrypt_cost: int = DEFAULT_BCRYPT_COST
    clock: Callable[[], datetime] = utc_now

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> RegistrationReceipt:
        """
        Begin local registration and send a verification OTP.

        An unverified account with the same email is discarded and recreated.

        Raises:
            ProviderAccountExists: Email belongs to an external-provider account
            EmailAlreadyRegistered: Email belongs to a verified account, or a
                concurrent registration won the insert
        """
        normalized_email = normalize_email(email)

        existing = self.repository.find_credentials_by_email(normalized_email)
        if existing is not None:
            if existing.account_type != AccountType.LOCAL:
                raise ProviderAccountExists(existing.account_type.value)
            if existing.is_email_verified or not existing.is_pending:
                raise EmailAlreadyRegistered()
            logger.info("Discarding unverified registration for %s", normalized_email)
            self.repository.delete_pending(existing.id)

        otp = issue_otp(SecretPurpose.VERIFICATION_OTP, self.clock(), self.otp_ttl)
        account_id = self.repository.create(
            NewAccount(
                email=normalized_email,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                password_hash=hash_password(password, self.bcrypt_cost),
                verification_otp_hash=otp.digest,
                verification_otp_expires_at=otp.expires_at,
                registration_ip=ip,
                user_agent=user_agent,
            )
        )
        logger.info("Registration pending verification: %s (%s)", normalized_email, account_id)

        self.notifications.enqueue(
            Notification(
                kind=NotificationKind.VERIFICATION_OTP,
                to=normalized_email,
                context={"first_name": first_name.strip(), "otp": otp.value},
            )
        )
        return RegistrationReceipt(
            account_id=account_id,
            email=normalized_email,
            expires_in_seconds=int(self.otp_ttl.total_seconds()),
        )

    def verify_registration_otp(self, email: str, otp: str) -> AuthenticatedSession:
        """
        Activate a pending account and log it in.

        Raises:
            PendingRegistrationNotFound: No pending account for this email
                (including a second call after a successful verification)
            InvalidOrExpiredOtp: Digest mismatch or expired
        """
        normalized_email = normalize_email(email)
        credentials = self.repository.find_credentials_by_email(
            normalized_email, status=RegistrationStatus.PENDING_VERIFICATION
        )
        if credentials is None:
            raise PendingRegistrationNotFound()

        now = self.clock()
        if not check_secret(
            otp, credentials.verification_otp_hash, credentials.verification_otp_expires_at, now
        ):
            logger.info("Rejected registration OTP for %s", normalized_email)
            raise InvalidOrExpiredOtp()

        credentials.activate(now)
        self.guard.record_success(credentials)
        self.repository.save_credentials(credentials)
        logger.info("Account activated: %s (%s)", normalized_email, credentials.id)

        session = self._open_session(credentials.id, self.session_ttl)
        self.notifications.enqueue(
            Notification(
                kind=NotificationKind.WELCOME,
                to=normalized_email,
                context={"first_name": session.account.first_name or session.account.full_name},
            )
        )
        return session

    def resend_registration_otp(self, email: str) -> RegistrationReceipt:
        """
        Replace the verification OTP of a pending account and resend it.

        Raises:
            PendingRegistrationNotFound: No pending account for this email
        """
        normalized_email = normalize_email(email)
        credentials = self.repository.find_credentials_by_email(
            normalized_email, status=RegistrationStatus.PENDING_VERIFICATION
        )
        if credentials is None:
            raise PendingRegistrationNotFound()

        otp = issue_otp(SecretPurpose.VERIFICATION_OTP, self.clock(), self.otp_ttl)
        credentials.verification_otp_hash = otp.digest
        credentials.verification_otp_expires_at = otp.expires_at
        self.repository.save_credentials(credentials)

        profile = self.repository.find_profile_by_id(credentials.id)
        self.notifications.enqueue(
            Notification(
                kind=NotificationKind.VERIFICATION_OTP,
                to=normalized_email,
                context={
                    "first_name": profile.first_name if profile else None,
                    "otp": otp.value,
                },
            )
        )
        return RegistrationReceipt(
            account_id=credentials.id,
            email=normalized_email,
            expires_in_seconds=int(self.otp_ttl.total_seconds()),
        )

    # ------------------------------------------------------------------
    # Login / session
    # ------------------------------------------------------------------

    def login(
        self,
        email: str,
        password: str,
        ip: str | None = None,
        user_agent: str | None = None,
        remember_me: bool = False,
    ) -> AuthenticatedSession:
        """
        Check a local password and open a session.

        Raises:
            InvalidCredentials: Unknown email or wrong password
            AccountLocked: Lockout window still running; no attempt consumed
            ExternalProviderAccount: Account signs in through a provider
            EmailNotVerified: Registration OTP never verified
        """
        normalized_email = normalize_email(email)
        credentials = self.repository.find_credentials_by_email(normalized_email)
        if credentials is None:
            check_password(password, None)
            raise InvalidCredentials()

        now = self.clock()
        if self.guard.is_locked(credentials, now):
            raise AccountLocked(credentials.locked_until)

        if credentials.account_type != AccountType.LOCAL:
            raise ExternalProviderAccount(credentials.account_type.value)

        if not credentials.is_email_verified:
            raise EmailNotVerified(credentials.email)

        if not credentials.uses_local_password or not check_password(
            password, credentials.password_hash
        ):
            attempts = self.guard.record_failure(credentials, now)
            self.repository.save_credentials(credentials)
            if credentials.locked_until is not None:
                logger.warning(
                    "Account locked after %d failed logins: %s", attempts, normalized_email
                )
            raise InvalidCredentials()

        self.guard.record_success(credentials)
        self.repository.save_credentials(credentials)
        self.repository.record_login(credentials.id, ip, now)

        ttl = self.remember_me_ttl if remember_me else self.session_ttl
        session = self._open_session(credentials.id, ttl)

        if session.account.preferences.login_alerts:
            self.notifications.enqueue(
                Notification(
                    kind=NotificationKind.LOGIN_ALERT,
                    to=normalized_email,
                    context={
                        "first_name": session.account.first_name or session.account.full_name,
                        "ip": ip,
                        "user_agent": user_agent,
                        "timestamp": now,
                    },
                )
            )
        return session

    def logout(self, session_token: str | None) -> None:
        """Destroy a session; unknown or missing tokens are ignored."""
        if session_token:
            self.sessions.destroy(session_token)

    def current_account(self, session_token: str | None) -> AccountProfile:
        """
        Resolve the account behind a session token.

        Raises:
            NotAuthenticated: Missing, unknown or expired session
        """
        if not session_token:
            raise NotAuthenticated()
        account_id = self.sessions.resolve(session_token)
        if account_id is None:
            raise NotAuthenticated()
        profile = self.repository.find_profile_by_id(account_id)
        if profile is None:
            self.sessions.destroy(session_token)
            raise NotAuthenticated()
        return profile

    def sign_in_with_provider(self, identity: ExternalIdentity) -> AuthenticatedSession:
        """
        Find, merge or create the account for an external identity and log it in.

        Lookup order: provider id, then email (the provider id is linked to
        that account), otherwise a new verified provider account is created.

        Linking onto an unverified local registration completes it: the
        provider has vouched for the email, so the unconfirmed password and
        its OTP are dropped and a later ``register`` cannot discard the
        account.
        """
        normalized_email = normalize_email(identity.email)
        profile = self.repository.find_profile_by_provider_id(identity.provider_user_id)

        if profile is None and normalized_email:
            existing = self.repository.find_profile_by_email(normalized_email)
            if existing is not None:
                self._complete_pending(normalized_email)
                profile = self.repository.link_provider(existing.id, identity)
                logger.info("Linked %s identity to %s", identity.provider.value, normalized_email)

        if profile is None:
            account_id = self.repository.create_external(identity, self.clock())
            logger.info("Created %s account: %s (%s)", identity.provider.value, normalized_email, account_id)
            return self._open_session(account_id, self.session_ttl)

        return self._open_session(profile.id, self.session_ttl)

    def _complete_pending(self, normalized_email: str) -> None:
        credentials = self.repository.find_credentials_by_email(normalized_email)
        if credentials is None or not credentials.is_pending:
            return
        credentials.activate(self.clock())
        credentials.password_hash = None
        credentials.clear_secrets()
        self.guard.record_success(credentials)
        self.repository.save_credentials(credentials)
        logger.info("Completed pending registration for %s via provider", normalized_email)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def forgot_password(self, email: str) -> None:
        """
        Send a reset OTP when the account is local and verified.

        Returns nothing either way so callers answer identically whether or
        not the account exists.
        """
        normalized_email = normalize_email(email)
        credentials = self.repository.find_credentials_by_email(normalized_email)
        if (
            credentials is None
            or credentials.account_type != AccountType.LOCAL
            or not credentials.is_email_verified
        ):
            logger.info("Password reset not issued for %s", normalized_email)
            return

        otp = issue_otp(SecretPurpose.RESET_OTP, self.clock(), self.otp_ttl)
        credentials.reset_otp_hash = otp.digest
        credentials.reset_otp_expires_at = otp.expires_at
        self.repository.save_credentials(credentials)

        profile = self.repository.find_profile_by_id(credentials.id)
        self.notifications.enqueue(
            Notification(
                kind=NotificationKind.PASSWORD_RESET_OTP,
                to=normalized_email,
                context={
                    "first_name": profile.full_name if profile else normalized_email,
                    "otp": otp.value,
                },
            )
        )

    def verify_reset_otp(self, email: str, otp: str) -> ResetTicket:
        """
        Check a reset OTP and hand out an advisory reset token.

        The token is not stored; reset_password re-validates the OTP itself.

        Raises:
            InvalidOrExpiredOtp: Unknown account, digest mismatch or expired
        """
        normalized_email = normalize_email(email)
        credentials = self.repository.find_credentials_by_email(normalized_email)
        if credentials is None or not check_secret(
            otp, credentials.reset_otp_hash, credentials.reset_otp_expires_at, self.clock()
        ):
            raise InvalidOrExpiredOtp()

        return ResetTicket(
            reset_token=generate_token(),
            expires_in_seconds=int(self.otp_ttl.total_seconds()),
        )

    def reset_password(
        self, email: str, new_password: str, reset_token: str | None = None
    ) -> None:
        """
        Replace the password while a reset OTP is outstanding and unexpired.

        ``reset_token`` is accepted for API compatibility and ignored; the
        stored reset OTP is what authorizes the change.

        Only the presence and expiry of the stored OTP are checked, not the
        code. Anyone who knows the email can therefore set a new password
        once ``forgot_password`` has run for it and until ``otp_ttl`` runs
        out. Callers are trusted to reach this only after
        ``verify_reset_otp`` succeeded.

        Raises:
            ResetNotRequested: No reset OTP stored for this account
            InvalidOrExpiredOtp: The stored reset OTP has expired
            PasswordReuse: New password equals the current one
        """
        normalized_email = normalize_email(email)
        credentials = self.repository.find_credentials_by_email(normalized_email)
        if (
            credentials is None
            or credentials.reset_otp_hash is None
            or credentials.reset_otp_expires_at is None
        ):
            raise ResetNotRequested()

        now = self.clock()
        if credentials.reset_otp_expires_at <= now:
            raise InvalidOrExpiredOtp("OTP has expired. Please request a new one.")

        if credentials.password_hash is not None and check_password(
            new_password, credentials.password_hash
        ):
            raise PasswordReuse()

        credentials.password_hash = hash_password(new_password, self.bcrypt_cost)
        credentials.clear_secrets()
        self.guard.record_success(credentials)
        credentials.last_password_change_at = now
        self.repository.save_credentials(credentials)
        logger.info("Password reset completed for %s", normalized_email)

        profile = self.repository.find_profile_by_id(credentials.id)
        self.notifications.enqueue(
            Notification(
                kind=NotificationKind.PASSWORD_CHANGED,
                to=normalized_email,
                context={
                    "first_name": profile.full_name if profile else normalized_email,
                    "timestamp": now,
                },
            )
        )

    # ------------------------------------------------------------------
    # Account queries and profile
    # ------------------------------------------------------------------

    def check_account(self, email: str) -> AccountStatus:
        normalized_email = normalize_email(email)
        credentials = self.repository.find_credentials_by_email(normalized_email)
        if credentials is None:
            return AccountStatus(exists=False)
        return AccountStatus(
            exists=True,
            account_type=credentials.account_type,
            is_email_verified=credentials.is_email_verified,
            is_locked=self.guard.is_locked(credentials, self.clock()),
            registration_status=credentials.registration_status,
        )

    def update_profile(
        self,
        account_id: str,
        first_name: str | None = None,
        last_name: str | None = None,
        profile_image: str | None = None,
    ) -> AccountProfile:
        """
        Update names and/or profile image.

        Raises:
            ValidationFailed: Nothing to update, short name or non-http image URL
            AccountNotFound: Account vanished
        """
        errors: list[str] = []
        if profile_image is not None and not profile_image.startswith(("http://", "https://")):
            errors.append("Invalid image URL")
        if first_name is not None:
            first_name = first_name.strip()
            if len(first_name) < MIN_PROFILE_NAME_LENGTH:
                errors.append("First name must be at least 2 characters")
        if last_name is not None:
            last_name = last_name.strip()
            if len(last_name) < MIN_PROFILE_NAME_LENGTH:
                errors.append("Last name must be at least 2 characters")
        if first_name is None and last_name is None and profile_image is None:
            errors.append("No data provided for update")
        if errors:
            raise ValidationFailed(errors, message=errors[0])

        profile = self.repository.update_profile(
            account_id,
            first_name=first_name,
            last_name=last_name,
            profile_image=profile_image,
        )
        if profile is None:
            raise AccountNotFound()
        return profile

    # ------------------------------------------------------------------

    def _open_session(self, account_id: str, ttl: timedelta) -> AuthenticatedSession:
        profile = self.repository.find_profile_by_id(account_id)
        if profile is None:
            raise AccountNotFound()
        token = self.sessions.create(account_id, ttl)
        return AuthenticatedSession(account=profile, session_token=token, expires_in=ttl)
