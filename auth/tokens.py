"""
auth/tokens.py -- Password hashing and JWT session tokens.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). The cost factor is
       fixed per deployment (Settings.bcrypt_rounds, default 12). bcrypt's
       checkpw compares digests in constant time, so verification time does
       not depend on how much of the secret matched.

  JWT: python-jose with HS256. Tokens carry the account id, username,
       issued-at, and expiry. validate() returns None on any failure -- the
       route layer turns that into a 401.

  Both capabilities are small classes so AccountGuard receives them as
  constructor arguments. get_password_hasher() / get_token_issuer() build
  the configured instances once for the running app.

Layer rule: no imports from api/. Import from core/ is allowed -- core/ is
the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

logger = logging.getLogger("textura.auth")

_ALGORITHM = "HS256"
_BCRYPT_MAX_BYTES = 72


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


class PasswordHasher:
    """Adaptive one-way hashing of account passwords with bcrypt.

    bcrypt only reads the first 72 bytes of a secret. Secrets are cut to
    that length here before hashing and checking, so a long or multi-byte
    password hashes the same on every bcrypt release (newer releases raise
    instead of truncating) and hashes stored earlier keep verifying.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Verified against when a username does not exist, so a miss costs
        # the same bcrypt work as a wrong password.
        self.dummy_hash = self.hash("textura_timing_dummy")

    @staticmethod
    def _encode(secret: str) -> bytes:
        return secret.encode("utf-8")[:_BCRYPT_MAX_BYTES]

    def hash(self, secret: str) -> str:
        return bcrypt.hashpw(self._encode(secret), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, secret: str, hashed: str) -> bool:
        """Return True if secret matches hashed. Malformed hashes never match."""
        try:
            return bcrypt.checkpw(self._encode(secret), hashed.encode("utf-8"))
        except ValueError:
            logger.warning("bcrypt rejected the password check; treating as mismatch")
            return False


# ---------------------------------------------------------------------------
# JWT issue / validate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenClaims:
    account_id: int
    username: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Signs and checks session tokens.

    Usage:
        issuer = TokenIssuer(secret_key, expire_seconds=3600)
        token = issuer.issue(account.id, account.username)
        claims = issuer.validate(token)  # TokenClaims or None
    """

    def __init__(self, secret_key: str, expire_seconds: int = 86400) -> None:
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds

    def issue(self, account_id: int, username: str, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": username,
            "user_id": account_id,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(seconds=self.expire_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def validate(self, token: str) -> TokenClaims | None:
        """Decode and verify a JWT. Returns None on any failure, including expiry."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError:
            return None
        if not isinstance(payload.get("user_id"), int) or not payload.get("sub"):
            return None
        return TokenClaims(
            account_id=payload["user_id"],
            username=payload["sub"],
            issued_at=datetime.fromtimestamp(payload.get("iat", 0), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


# ---------------------------------------------------------------------------
# Configured instances
# ---------------------------------------------------------------------------


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=get_settings().bcrypt_rounds)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    settings = get_settings()
    return TokenIssuer(settings.secret_key, expire_seconds=settings.token_expire_seconds)


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the JWT as an httpOnly cookie on the response.

    httponly=True keeps the token away from page scripts. samesite="lax"
    blocks the cookie on cross-site POSTs. secure is enabled when
    SECURE_COOKIES=true. max_age matches the JWT expiry so both expire together.
    """
    settings = get_settings()
    duration = expire_seconds if expire_seconds > 0 else settings.token_expire_seconds
    response.set_cookie(
        "access_token",
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=duration,
    )
