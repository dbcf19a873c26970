"""
Per-client rate limiting built on the ``limits`` package.

Windows are fixed and keyed by route path plus client IP. Counters live
in process memory, so each worker enforces its own budget.
"""

import logging
from collections.abc import Callable, Iterator

from fastapi import Request
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from shoecreatify.domain.exceptions import IdentityError

from .dependencies import client_ip
from .errors import RateLimitExceeded

logger = logging.getLogger(__name__)

REGISTRATION_MESSAGE = "Too many registration OTP requests. Please try again later."
OTP_REQUEST_MESSAGE = "Too many OTP requests. Please try again later."
OTP_VERIFY_MESSAGE = "Too many verification attempts. Please request a new OTP."
LOGIN_MESSAGE = "Too many attempts, please try again later."


class RateLimiter:
    """Fixed-window limiter over in-memory storage."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self.storage = MemoryStorage()
        self.strategy = FixedWindowRateLimiter(self.storage)

    def allows(self, limit: str, *identifiers: str) -> bool:
        """True while the window for ``identifiers`` has room left."""
        return self.strategy.test(parse(limit), *identifiers)

    def hit(self, limit: str, *identifiers: str) -> bool:
        """Consume one unit; False when the window was already exhausted."""
        return self.strategy.hit(parse(limit), *identifiers)

    def reset(self) -> None:
        self.storage.reset()


def rate_limit(
    setting: str, message: str, failures_only: bool = False
) -> Callable[[Request], Iterator[None]]:
    """
    Build a dependency enforcing the limit named by ``setting``.

    Args:
        setting: Attribute of Settings holding the limit string
            (e.g. ``"5 per 15 minutes"``)
        message: Client message for the 429 response
        failures_only: Count only requests that end in a domain error,
            so successful logins never eat into the budget
    """

    def dependency(request: Request) -> Iterator[None]:
        limiter: RateLimiter = request.app.state.rate_limiter
        if not limiter.enabled:
            yield
            return

        limit = getattr(request.app.state.settings, setting)
        identifiers = (request.url.path, client_ip(request))
        if not limiter.allows(limit, *identifiers):
            logger.info("Rejecting %s from %s: window exhausted", *identifiers)
            raise RateLimitExceeded(message)

        if not failures_only:
            limiter.hit(limit, *identifiers)
            yield
            return

        try:
            yield
        except IdentityError:
            limiter.hit(limit, *identifiers)
            raise

    return dependency


registration_limit = rate_limit("registration_rate_limit", REGISTRATION_MESSAGE)
otp_request_limit = rate_limit("otp_request_rate_limit", OTP_REQUEST_MESSAGE)
otp_verify_limit = rate_limit("otp_verify_rate_limit", OTP_VERIFY_MESSAGE)
login_limit = rate_limit("login_rate_limit", LOGIN_MESSAGE, failures_only=True)
