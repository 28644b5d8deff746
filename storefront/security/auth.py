"""Admin authentication: credential check and session-cookie gate."""

from __future__ import annotations

import hmac
import logging

from fastapi import Request, Response

from storefront.config import Settings
from storefront.errors import NotAuthorized
from storefront.sessions.models import AdminSession

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "storefront_session"


def check_credentials(settings: Settings, username: str, password: str) -> bool:
    """Constant-time credential check against the configured admin."""
    username_ok = hmac.compare_digest(username.encode(), settings.admin_username.encode())
    password_ok = hmac.compare_digest(password.encode(), settings.admin_password.encode())
    return username_ok and password_ok


def get_session_token(request: Request) -> str | None:
    """Extract the session token from request cookies."""
    return request.cookies.get(SESSION_COOKIE_NAME)


def set_session_cookie(response: Response, session: AdminSession, settings: Settings) -> None:
    response.set_cookie(
        SESSION_COOKIE_NAME,
        session.session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="none" if settings.cookie_secure else "lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="none" if settings.cookie_secure else "lax",
    )


def require_admin(request: Request) -> AdminSession:
    """FastAPI dependency: the caller must hold an active admin session."""
    session = request.app.state.sessions.get(get_session_token(request))
    if session is None:
        logger.debug("Rejected unauthenticated %s %s", request.method, request.url.path)
        raise NotAuthorized()
    return session
