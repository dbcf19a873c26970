"""External identity provider adapters."""

from .google import build_google_client, identity_from_google

__all__ = ["build_google_client", "identity_from_google"]
