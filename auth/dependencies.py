"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two token sources are checked in priority order:
  1. Authorization: Bearer <token> header -- the browser extension.
  2. JWT cookie ("access_token") -- set by POST /auth/login for same-site pages.

The resolved Account is returned to the route as a dependency value. There is
no request-global "current user"; routes that need the identity declare it.

try_get_current_account() is the soft variant (returns None on failure).
get_current_account() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: no imports from api/. This module may import from fastapi
because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Account


def _extract_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get("access_token") or None


def try_get_current_account(request: Request) -> Account | None:
    """Authenticate the request from its bearer header or cookie.

    Returns the Account on success, None on any failure. The token's
    username must still match the stored account, so a token minted for a
    since-replaced row is not accepted.
    """
    token = _extract_token(request)
    if not token:
        return None
    claims = request.app.state.token_issuer.validate(token)
    if claims is None:
        return None
    account = request.app.state.guard.get_account(claims.account_id)
    if account is None or account.username != claims.username:
        return None
    return account


def get_current_account(request: Request) -> Account:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(account: Account = Depends(get_current_account)): ...
    """
    account = try_get_current_account(request)
    if account is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return account
