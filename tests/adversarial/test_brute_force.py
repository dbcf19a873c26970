"""
Adversarial tests for brute force attack prevention.

Two layers stop credential guessing:

- Per-account lockout: five consecutive wrong passwords lock the account
  for 15 minutes, no matter how many addresses the attacker spreads the
  guesses over. A locked account rejects even the correct password.
- Per-client rate limits: one address gets five failed logins, five OTP
  guesses and three OTP sends per window before every further request
  is answered with 429. The address is the hop the trusted proxy
  appended to X-Forwarded-For; entries the client writes itself are
  ignored.

A 6-digit OTP has 10^6 values; five guesses per window keeps the success
chance of a single client at 0.0005%.
"""

import pytest
from fastapi.testclient import TestClient

from shoecreatify.api.limiter import LOGIN_MESSAGE, OTP_REQUEST_MESSAGE, OTP_VERIFY_MESSAGE
from shoecreatify.domain.ports import NotificationKind

pytestmark = pytest.mark.adversarial


def proxied(n: int) -> dict[str, str]:
    """Headers the trusted proxy adds for a request from client ``n``."""
    return {"X-Forwarded-For": f"203.0.113.{n}"}


def wrong_otp(otp: str) -> str:
    return otp[:-1] + str((int(otp[-1]) + 1) % 10)


class TestDistributedPasswordGuessing:
    """Attacker rotates source addresses to dodge the rate limiter."""

    def test_account_locks_after_five_failures(
        self, attacker: TestClient, make_verified
    ) -> None:
        make_verified(email="victim@example.com", password="secret1")

        for n in range(5):
            response = attacker.post(
                "/v1/auth/login",
                json={"email": "victim@example.com", "password": f"guess{n}"},
                headers=proxied(n),
            )
            assert response.status_code == 401

        response = attacker.post(
            "/v1/auth/login",
            json={"email": "victim@example.com", "password": "secret1"},
            headers=proxied(99),
        )
        assert response.status_code == 423
        assert "sid" not in response.cookies

    def test_lock_expires_after_window(
        self, attacker: TestClient, make_verified, clock
    ) -> None:
        make_verified(email="victim@example.com", password="secret1")
        for n in range(5):
            attacker.post(
                "/v1/auth/login",
                json={"email": "victim@example.com", "password": "nope"},
                headers=proxied(n),
            )

        clock.advance(minutes=15, seconds=1)
        response = attacker.post(
            "/v1/auth/login",
            json={"email": "victim@example.com", "password": "secret1"},
            headers=proxied(42),
        )

        assert response.status_code == 200

    def test_attempts_while_locked_do_not_extend_lock(
        self, attacker: TestClient, make_verified, clock, repository
    ) -> None:
        make_verified(email="victim@example.com", password="secret1")
        for n in range(5):
            attacker.post(
                "/v1/auth/login",
                json={"email": "victim@example.com", "password": "nope"},
                headers=proxied(n),
            )
        locked_until = repository.by_email("victim@example.com").locked_until

        clock.advance(minutes=10)
        attacker.post(
            "/v1/auth/login",
            json={"email": "victim@example.com", "password": "nope"},
            headers=proxied(50),
        )

        assert repository.by_email("victim@example.com").locked_until == locked_until


class TestSingleClientRateLimits:
    """One address hammering the same endpoint."""

    def test_failed_logins_are_limited_across_emails(
        self, attacker: TestClient, make_verified
    ) -> None:
        for n in range(5):
            response = attacker.post(
                "/v1/auth/login", json={"email": f"user{n}@example.com", "password": "x"}
            )
            assert response.status_code == 401

        make_verified(email="real@example.com", password="secret1")
        response = attacker.post(
            "/v1/auth/login", json={"email": "real@example.com", "password": "secret1"}
        )

        assert response.status_code == 429
        assert response.json() == {"success": False, "message": LOGIN_MESSAGE}

    def test_successful_logins_do_not_consume_budget(
        self, attacker: TestClient, make_verified
    ) -> None:
        make_verified(email="real@example.com", password="secret1")
        for _ in range(8):
            response = attacker.post(
                "/v1/auth/login", json={"email": "real@example.com", "password": "secret1"}
            )
            assert response.status_code == 200

    def test_registration_otp_guessing_is_limited(
        self, attacker: TestClient, notifications
    ) -> None:
        attacker.post(
            "/v1/auth/register",
            json={
                "firstName": "Ann",
                "lastName": "Lee",
                "email": "ann@example.com",
                "password": "secret1",
            },
        )
        otp = notifications.last_otp()

        for _ in range(5):
            response = attacker.post(
                "/v1/auth/verify-registration-otp",
                json={"email": "ann@example.com", "otp": wrong_otp(otp)},
            )
            assert response.status_code == 400

        response = attacker.post(
            "/v1/auth/verify-registration-otp", json={"email": "ann@example.com", "otp": otp}
        )
        assert response.status_code == 429
        assert response.json()["message"] == OTP_VERIFY_MESSAGE

    def test_forged_forwarding_entries_share_one_window(
        self, attacker: TestClient, notifications
    ) -> None:
        attacker.post(
            "/v1/auth/register",
            json={
                "firstName": "Ann",
                "lastName": "Lee",
                "email": "ann@example.com",
                "password": "secret1",
            },
        )
        otp = notifications.last_otp()

        statuses = [
            attacker.post(
                "/v1/auth/verify-registration-otp",
                json={"email": "ann@example.com", "otp": wrong_otp(otp)},
                headers={"X-Forwarded-For": f"10.0.0.{n}, 198.51.100.9"},
            ).status_code
            for n in range(20)
        ]

        assert statuses[:5] == [400] * 5
        assert statuses[5:] == [429] * 15

    def test_otp_guesses_never_lock_the_login(
        self, attacker: TestClient, make_verified, notifications, repository
    ) -> None:
        make_verified(email="victim@example.com", password="secret1")
        attacker.post("/v1/auth/forgot-password", json={"email": "victim@example.com"})
        otp = notifications.last_otp(NotificationKind.PASSWORD_RESET_OTP)

        for n in range(5):
            attacker.post(
                "/v1/auth/verify-reset-otp",
                json={"email": "victim@example.com", "otp": wrong_otp(otp)},
                headers=proxied(n),
            )

        account = repository.by_email("victim@example.com")
        assert account.failed_login_attempts == 0
        assert account.locked_until is None

    def test_otp_sends_are_limited(self, attacker: TestClient, make_verified) -> None:
        make_verified(email="victim@example.com", password="secret1")

        statuses = [
            attacker.post(
                "/v1/auth/forgot-password", json={"email": "victim@example.com"}
            ).status_code
            for _ in range(4)
        ]

        assert statuses == [200, 200, 200, 429]

    def test_resend_limit_reports_otp_message(
        self, attacker: TestClient, notifications
    ) -> None:
        attacker.post(
            "/v1/auth/register",
            json={
                "firstName": "Ann",
                "lastName": "Lee",
                "email": "ann@example.com",
                "password": "secret1",
            },
        )
        for _ in range(3):
            attacker.post("/v1/auth/resend-registration-otp", json={"email": "ann@example.com"})

        response = attacker.post(
            "/v1/auth/resend-registration-otp", json={"email": "ann@example.com"}
        )

        assert response.status_code == 429
        assert response.json()["message"] == OTP_REQUEST_MESSAGE
        assert len(notifications.notifications) == 4
