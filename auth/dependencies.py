"""
auth/dependencies.py -- FastAPI Depends() helpers and session cookie helpers.

Two ways to present a session token, checked in priority order:
  1. Session cookie (name from Settings.session_cookie_name, default
     "session_id") -- set by signup/login.
  2. Authorization: Bearer <session id> header -- non-browser clients.

The token is opaque: it is looked up in the sessions table on every request,
so logout and expiry take effect immediately.

try_get_current_account() is the soft variant (returns None on failure).
get_current_account() wraps it and raises Unauthorized, which api/main.py
turns into a 401 envelope.

Layer rule: no imports from sellers/. This module may import from fastapi
because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request, Response

from auth.models import Account
from auth.service import AuthService
from core.config import Settings
from core.errors import Unauthorized


def session_token_from_request(request: Request) -> str | None:
    """Return the raw session token from the cookie or Bearer header, if any."""
    settings: Settings = request.app.state.settings
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


def try_get_current_account(request: Request) -> Account | None:
    """Resolve the request's session to an Account. Never raises Unauthorized."""
    auth_service: AuthService = request.app.state.auth_service
    return auth_service.resolve_session(session_token_from_request(request))


def get_current_account(request: Request) -> Account:
    """Require a live session.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(account: Account = Depends(get_current_account)): ...
    """
    account = try_get_current_account(request)
    if account is None:
        raise Unauthorized()
    return account


def set_session_cookie(response: Response, session_id: str, settings: Settings) -> None:
    """Write the session id as an httpOnly cookie that lives as long as the session.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation.
    secure: HTTPS-only when SECURE_COOKIES=true.
    """
    response.set_cookie(
        settings.session_cookie_name,
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
