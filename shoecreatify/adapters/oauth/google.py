"""
Google OAuth adapter built on Authlib's Starlette client.

The client keeps its CSRF state in ``request.session``, so the app must
install Starlette's SessionMiddleware whenever Google sign-in is enabled.
"""

import logging
from typing import Any

from authlib.integrations.starlette_client import OAuth

from shoecreatify.domain.account import AccountType, ExternalIdentity

logger = logging.getLogger(__name__)

GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"


def build_google_client(client_id: str, client_secret: str) -> Any:
    """Register and return the Authlib client for Google."""
    oauth = OAuth()
    client = oauth.register(
        name="google",
        client_id=client_id,
        client_secret=client_secret,
        server_metadata_url=GOOGLE_METADATA_URL,
        client_kwargs={
            "scope": "openid email profile",
            "prompt": "select_account",
        },
    )
    logger.info("Google OAuth client initialized")
    return client


def identity_from_google(userinfo: dict[str, Any]) -> ExternalIdentity:
    """
    Map Google's OpenID userinfo claims onto an ExternalIdentity.

    Raises:
        ValueError: Required ``sub`` or ``email`` claim missing
    """
    subject = userinfo.get("sub")
    email = (userinfo.get("email") or "").strip().lower()
    if not subject or not email:
        raise ValueError("Google userinfo is missing 'sub' or 'email'")
    return ExternalIdentity(
        provider=AccountType.GOOGLE,
        provider_user_id=str(subject),
        email=email,
        first_name=userinfo.get("given_name") or "",
        last_name=userinfo.get("family_name") or "",
        display_name=userinfo.get("name") or "",
        picture=userinfo.get("picture") or "",
    )
