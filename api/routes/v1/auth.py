"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/auth/signup            -- create account; sets session cookie
  POST /api/v1/auth/login             -- password login; sets session cookie
  POST /api/v1/auth/logout            -- destroys the session; clears cookie
  GET  /api/v1/auth/me                -- current account (requires auth)
  POST /api/v1/auth/change-password   -- requires auth + current password

Security:
  [C1] AuthService.login() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on responses that carry a fresh session.
  Unknown email and wrong password return the same bad_credentials error.

Handlers are plain `def` so FastAPI runs them in the threadpool; PBKDF2 is
deliberately slow and must not block the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AccountResponse, AuthResponse, ChangePasswordRequest, LoginRequest, MessageResponse, SignupRequest
from auth.dependencies import (
    clear_session_cookie,
    get_current_account,
    session_token_from_request,
    set_session_cookie,
)
from auth.models import Account
from auth.service import AuthService

# Auth policy:
# - POST /api/v1/auth/signup:           public
# - POST /api/v1/auth/login:            public
# - POST /api/v1/auth/logout:           public -- destroying an unknown session is a no-op
# - GET  /api/v1/auth/me:               requires auth (get_current_account)
# - POST /api/v1/auth/change-password:  requires auth (get_current_account)
router = APIRouter()


def _session_response(request: Request, account: Account, session_id: str, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(account=AccountResponse.from_account(account)).model_dump(),
    )
    set_session_cookie(resp, session_id, request.app.state.settings)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/signup", response_model=AuthResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Register a new operator account and log it in.

    409 duplicate_email if the (case-insensitive) address is already taken.
    """
    auth_service: AuthService = request.app.state.auth_service
    account, session_id = auth_service.signup(body.email, body.password)
    return _session_response(request, account, session_id, 201)


@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the session cookie."""
    auth_service: AuthService = request.app.state.auth_service
    account, session_id = auth_service.login(body.email, body.password)
    return _session_response(request, account, session_id, 200)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Destroy the presented session (if any) and clear the cookie. Always 200."""
    auth_service: AuthService = request.app.state.auth_service
    auth_service.logout(session_token_from_request(request))
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    clear_session_cookie(resp, request.app.state.settings)
    return resp


@router.get("/auth/me", response_model=AuthResponse)
def me(current_account: Account = Depends(get_current_account)) -> AuthResponse:
    return AuthResponse(account=AccountResponse.from_account(current_account))


@router.post("/auth/change-password", response_model=MessageResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    current_account: Account = Depends(get_current_account),
) -> MessageResponse:
    """Replace the password after verifying the current one.

    Other sessions of the account stay valid.
    """
    auth_service: AuthService = request.app.state.auth_service
    auth_service.change_password(current_account.id, body.current_password, body.new_password)
    return MessageResponse(message="Password changed.")
