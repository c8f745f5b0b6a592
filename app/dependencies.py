# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
# =============================================================================

from typing import Annotated

from fastapi import Depends, Request

from app.auth import AuthUser, get_current_user
from app.config import settings


def get_request_origin(request: Request) -> str:
    """
    Origin the browser called us from.

    Used to build Stripe redirect URLs that land back on the same frontend.
    Falls back to FRONTEND_URL for server-to-server calls.
    """
    return request.headers.get("origin") or settings.FRONTEND_URL


# Type aliases for dependency injection
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
RequestOrigin = Annotated[str, Depends(get_request_origin)]
