"""
Login-attempt guard.

Pure transitions on an account's failure counter and lockout timestamp.
Counter and lock are cleared together, and only by a successful password
check (or an activation / password reset, which the controller routes
through ``record_success``). OTP failures never touch these fields.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from .account import AccountCredentials

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_LOCKOUT = timedelta(minutes=15)


@dataclass(frozen=True)
class LoginGuard:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    lockout: timedelta = DEFAULT_LOCKOUT

    def is_locked(self, credentials: AccountCredentials, now: datetime) -> bool:
        return credentials.locked_until is not None and credentials.locked_until > now

    def record_failure(self, credentials: AccountCredentials, now: datetime) -> int:
        """
        Count a failed password check, locking once the threshold is reached.

        Returns:
            The new consecutive failure count
        """
        credentials.failed_login_attempts += 1
        if credentials.failed_login_attempts >= self.max_attempts:
            credentials.locked_until = now + self.lockout
        return credentials.failed_login_attempts

    def record_success(self, credentials: AccountCredentials) -> None:
        credentials.failed_login_attempts = 0
        credentials.locked_until = None
