"""
api/routes/v1/auth.py -- Account registration, login, and identity endpoints.

Routes:
  POST /api/v1/auth/register  -- create an account (public)
  POST /api/v1/auth/login     -- password login; returns JWT and sets cookie (public)
  POST /api/v1/auth/logout    -- clears cookie (public)
  GET  /api/v1/auth/me        -- current account info (requires auth)

Security:
  POST /login is rate-limited per IP on top of the per-account lockout.
  Unknown username and wrong password produce the identical 401 body --
  public_error() collapses both so usernames cannot be enumerated.
  A locked account gets 423 with a generic message; the unlock time is not sent.
  Cache-Control: no-store on login responses.

Login and register are plain `def` routes: bcrypt and the store block, so
FastAPI runs them in its thread pool instead of on the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import (
    ErrorDetail,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
)
from auth.dependencies import get_current_account
from auth.errors import AuthErrorKind, public_error
from auth.guard import AccountGuard
from auth.models import Account
from auth.tokens import set_auth_cookie

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public, rate limited
# - POST /api/v1/auth/logout:   public -- clearing a cookie needs no prior auth
# - GET  /api/v1/auth/me:       requires auth (get_current_account)
router = APIRouter()


def _error_response(kind: AuthErrorKind, detail: str | None = None) -> JSONResponse:
    err = public_error(kind, detail)
    return JSONResponse(
        status_code=err.status_code,
        content=ErrorResponse(error=ErrorDetail(code=err.code, message=err.message)).model_dump(),
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account. Validation and duplicate errors carry a specific code and message."""
    guard: AccountGuard = request.app.state.guard
    result = guard.register_account(body.username, body.email, body.password)
    if not result.ok:
        return _error_response(result.error, result.message)
    return JSONResponse(
        status_code=201,
        content=RegisterResponse(
            message=result.message,
            user_id=result.account.id,
            username=result.account.username,
        ).model_dump(),
    )


@limiter.limit(LOGIN_RATE_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a JWT and set the cookie."""
    guard: AccountGuard = request.app.state.guard
    result = guard.attempt_login(body.username, body.password)
    if not result.ok:
        resp = _error_response(result.error)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    expires_in = request.app.state.token_issuer.expire_seconds
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=result.token,
            user_id=result.account.id,
            username=result.account.username,
            email=result.account.email,
            expires_in=expires_in,
        ).model_dump(),
    )
    set_auth_cookie(resp, result.token, expires_in)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
async def logout() -> JSONResponse:
    """Clear the JWT cookie. Bearer tokens held by the extension simply expire."""
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    resp.delete_cookie("access_token")
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(account: Account = Depends(get_current_account)) -> MeResponse:
    """Return identity information for the authenticated account."""
    return MeResponse(
        user_id=account.id,
        username=account.username,
        email=account.email,
        last_login=account.last_login.isoformat() if account.last_login else None,
    )
