"""
API v1 package.

Contains versioned auth routes, mounted by the app under ``/v1/auth``.
"""

from fastapi import APIRouter

from shoecreatify.api.v1.oauth import router as oauth_router
from shoecreatify.api.v1.routes import router as auth_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(oauth_router)

__all__ = ["router"]
