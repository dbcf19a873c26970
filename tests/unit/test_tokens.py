"""
Unit tests for OTP and link-token generation.

Tests verify:
- OTP format and range
- Token length and alphabet
- Salted hashing never stores the plaintext
- Expiry and digest must both pass
"""

import re
from datetime import datetime, timedelta, timezone

from shoecreatify.domain.tokens import (
    SECRET_TTLS,
    SecretPurpose,
    check_secret,
    generate_otp,
    generate_token,
    hash_secret,
    issue_otp,
    issue_token,
    verify_secret,
)

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestGenerateOtp:
    """Tests for 6-digit OTP generation."""

    def test_otp_is_six_digits(self) -> None:
        for _ in range(50):
            otp = generate_otp()
            assert re.fullmatch(r"\d{6}", otp)

    def test_otp_never_has_leading_zero(self) -> None:
        """Range is 100000-999999."""
        for _ in range(200):
            assert 100000 <= int(generate_otp()) <= 999999

    def test_otps_vary(self) -> None:
        """OTPs are not always the same (randomness check)."""
        assert len({generate_otp() for _ in range(20)}) > 1


class TestGenerateToken:
    def test_token_is_64_hex_characters(self) -> None:
        token = generate_token()
        assert re.fullmatch(r"[0-9a-f]{64}", token)

    def test_tokens_are_unique(self) -> None:
        assert generate_token() != generate_token()


class TestHashSecret:
    """Tests for salted SHA-256 hashing."""

    def test_digest_never_equals_plaintext(self) -> None:
        otp = generate_otp()
        digest = hash_secret(otp)
        assert digest != otp
        assert otp not in digest

    def test_digest_has_salt_prefix(self) -> None:
        salt, sep, digest = hash_secret("123456").partition("$")
        assert sep == "$"
        assert re.fullmatch(r"[0-9a-f]{32}", salt)
        assert re.fullmatch(r"[0-9a-f]{64}", digest)

    def test_same_value_hashes_differently_with_fresh_salt(self) -> None:
        assert hash_secret("123456") != hash_secret("123456")

    def test_explicit_salt_is_deterministic(self) -> None:
        assert hash_secret("123456", "abc") == hash_secret("123456", "abc")

    def test_verify_secret_accepts_match(self) -> None:
        assert verify_secret("123456", hash_secret("123456")) is True

    def test_verify_secret_rejects_single_wrong_digit(self) -> None:
        assert verify_secret("123457", hash_secret("123456")) is False

    def test_verify_secret_rejects_malformed_digest(self) -> None:
        """A stored value without a salt separator never matches."""
        assert verify_secret("123456", "123456") is False


class TestCheckSecret:
    """Tests for the combined digest + expiry check."""

    def test_accepts_correct_secret_before_expiry(self) -> None:
        stored = hash_secret("123456")
        assert check_secret("123456", stored, NOW + timedelta(minutes=1), NOW) is True

    def test_rejects_correct_secret_at_expiry(self) -> None:
        stored = hash_secret("123456")
        assert check_secret("123456", stored, NOW, NOW) is False

    def test_rejects_correct_secret_after_expiry(self) -> None:
        stored = hash_secret("123456")
        assert check_secret("123456", stored, NOW - timedelta(seconds=1), NOW) is False

    def test_rejects_wrong_secret_before_expiry(self) -> None:
        stored = hash_secret("123456")
        assert check_secret("654321", stored, NOW + timedelta(minutes=5), NOW) is False

    def test_rejects_missing_digest_or_expiry(self) -> None:
        assert check_secret("123456", None, NOW + timedelta(minutes=5), NOW) is False
        assert check_secret("123456", hash_secret("123456"), None, NOW) is False


class TestIssue:
    """Tests for issue_otp / issue_token lifetimes."""

    def test_issue_otp_defaults_to_ten_minutes(self) -> None:
        issued = issue_otp(SecretPurpose.VERIFICATION_OTP, NOW)
        assert issued.expires_at == NOW + timedelta(minutes=10)
        assert verify_secret(issued.value, issued.digest)

    def test_issue_otp_honours_explicit_ttl(self) -> None:
        issued = issue_otp(SecretPurpose.RESET_OTP, NOW, timedelta(minutes=2))
        assert issued.expires_at == NOW + timedelta(minutes=2)

    def test_link_token_lifetimes(self) -> None:
        verification = issue_token(SecretPurpose.EMAIL_VERIFICATION_TOKEN, NOW)
        reset = issue_token(SecretPurpose.PASSWORD_RESET_TOKEN, NOW)
        assert verification.expires_at == NOW + timedelta(hours=24)
        assert reset.expires_at == NOW + timedelta(minutes=30)
        assert len(verification.value) == 64

    def test_every_purpose_has_a_ttl(self) -> None:
        assert set(SECRET_TTLS) == set(SecretPurpose)
