"""
One-time codes and random tokens.

Human-entered codes are 6-digit OTPs; link-based flows use 256-bit hex
tokens. Only salted SHA-256 digests of either are ever persisted, in the
form ``"<salt>$<digest>"``.

Expiry windows:
- registration verification OTP: 10 minutes
- password reset OTP: 10 minutes
- email verification link token: 24 hours
- password reset link token: 30 minutes
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

OTP_LENGTH = 6
TOKEN_BYTES = 32


class SecretPurpose(str, Enum):
    """What a generated secret unlocks; determines its lifetime."""

    VERIFICATION_OTP = "verification_otp"
    RESET_OTP = "reset_otp"
    EMAIL_VERIFICATION_TOKEN = "email_verification_token"
    PASSWORD_RESET_TOKEN = "password_reset_token"


SECRET_TTLS: dict[SecretPurpose, timedelta] = {
    SecretPurpose.VERIFICATION_OTP: timedelta(minutes=10),
    SecretPurpose.RESET_OTP: timedelta(minutes=10),
    SecretPurpose.EMAIL_VERIFICATION_TOKEN: timedelta(hours=24),
    SecretPurpose.PASSWORD_RESET_TOKEN: timedelta(minutes=30),
}


@dataclass(frozen=True)
class IssuedSecret:
    """A freshly generated secret together with its storable form."""

    value: str
    digest: str
    expires_at: datetime


def generate_otp() -> str:
    """Return a 6-digit code, uniform over 100000-999999."""
    return str(100000 + secrets.randbelow(900000))


def generate_token() -> str:
    """Return 32 random bytes as 64 hex characters."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_secret(value: str, salt: str | None = None) -> str:
    """
    Salted SHA-256 of an OTP or token.

    Args:
        value: Plain secret
        salt: Hex salt; a new random one is drawn when omitted

    Returns:
        ``"<salt>$<hex digest>"``
    """
    if salt is None:
        salt = secrets.token_hex(16)
    digest = hashlib.sha256(f"{salt}{value}".encode()).hexdigest()
    return f"{salt}${digest}"


def verify_secret(candidate: str, stored: str) -> bool:
    """Constant-time comparison of a candidate against a stored digest."""
    salt, sep, _ = stored.partition("$")
    if not sep:
        return False
    return secrets.compare_digest(hash_secret(candidate, salt).encode(), stored.encode())


def check_secret(
    candidate: str,
    stored: str | None,
    expires_at: datetime | None,
    now: datetime,
) -> bool:
    """
    Accept a candidate only if it matches the stored digest AND has not expired.

    A missing digest or expiry is a rejection. The digest comparison always
    runs when a digest exists so a stale code costs the same as a wrong one.
    """
    if stored is None or expires_at is None:
        return False
    matches = verify_secret(candidate, stored)
    return matches and now < expires_at


def issue_otp(purpose: SecretPurpose, now: datetime, ttl: timedelta | None = None) -> IssuedSecret:
    """Generate an OTP for ``purpose`` and its digest/expiry."""
    value = generate_otp()
    lifetime = ttl if ttl is not None else SECRET_TTLS[purpose]
    return IssuedSecret(value=value, digest=hash_secret(value), expires_at=now + lifetime)


def issue_token(purpose: SecretPurpose, now: datetime, ttl: timedelta | None = None) -> IssuedSecret:
    """Generate a link token for ``purpose`` and its digest/expiry."""
    value = generate_token()
    lifetime = ttl if ttl is not None else SECRET_TTLS[purpose]
    return IssuedSecret(value=value, digest=hash_secret(value), expires_at=now + lifetime)
