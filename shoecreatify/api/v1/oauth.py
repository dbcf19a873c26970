"""
API v1 Google sign-in routes.

Browser-facing: both endpoints answer with redirects, never JSON bodies,
except when Google sign-in is not configured at all.
"""

import logging
from typing import Any

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from shoecreatify.adapters.oauth import identity_from_google
from shoecreatify.api.dependencies import get_app_settings, get_identity_service
from shoecreatify.api.v1.routes import set_session_cookie
from shoecreatify.config.settings import Settings
from shoecreatify.domain.exceptions import IdentityError
from shoecreatify.domain.identity import IdentityService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])


def _google_client(request: Request) -> Any:
    client = getattr(request.app.state, "google_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Google sign-in is not configured",
        )
    return client


@router.get("/google", summary="Start Google sign-in")
async def google_login(request: Request) -> RedirectResponse:
    client = _google_client(request)
    redirect_uri = request.url_for("google_callback")
    return await client.authorize_redirect(request, str(redirect_uri))


@router.get("/google/callback", name="google_callback", summary="Finish Google sign-in")
async def google_callback(
    request: Request,
    service: IdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_app_settings),
) -> RedirectResponse:
    """
    Exchange the authorization code, then find, link or create the account.

    Success redirects to the dashboard with a session cookie; any failure
    redirects to the login page with an error flag.
    """
    client = _google_client(request)
    failure = RedirectResponse(
        f"{settings.frontend_url}/login?error=google_auth_failed",
        status_code=status.HTTP_302_FOUND,
    )
    try:
        token = await client.authorize_access_token(request)
        userinfo = token.get("userinfo") or await client.userinfo(token=token)
        identity = identity_from_google(dict(userinfo))
    except (OAuthError, ValueError) as e:
        logger.warning("Google sign-in rejected: %s", e)
        return failure

    try:
        session = await run_in_threadpool(service.sign_in_with_provider, identity)
    except IdentityError as e:
        logger.warning("Google sign-in failed for %s: %s", identity.email, e.message)
        return failure

    response = RedirectResponse(
        f"{settings.frontend_url}/dashboard?login=success",
        status_code=status.HTTP_302_FOUND,
    )
    set_session_cookie(response, settings, session)
    return response
