"""
auth/errors.py -- Outcome taxonomy for login and registration.

Login and registration failures are returned as AuthErrorKind values on
LoginResult / RegistrationResult rather than raised. Only infrastructure
faults are exceptions (StoreError), so a broken database can never be
mistaken for a wrong password.

public_error() is the one place where internal kinds are translated for the
outside world. NOT_FOUND and INVALID_CREDENTIALS collapse to the same
response so the login endpoint cannot be used to enumerate usernames.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AuthErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_LOCKED = "account_locked"
    DUPLICATE_IDENTIFIER = "duplicate_identifier"
    DUPLICATE_EMAIL = "duplicate_email"
    WEAK_SECRET = "weak_secret"
    INVALID_FORMAT = "invalid_format"


class StoreError(Exception):
    """The credential store could not complete an operation (unreachable, I/O, schema)."""


class DuplicateAccountError(Exception):
    """A save hit the UNIQUE constraint on username or email."""


@dataclass(frozen=True)
class PublicError:
    """HTTP-facing rendering of an AuthErrorKind."""

    status_code: int
    code: str
    message: str


BAD_CREDENTIALS_MESSAGE = "Invalid username or password."
ACCOUNT_LOCKED_MESSAGE = (
    "Account is temporarily locked due to multiple failed login attempts. Please try again later."
)

_PUBLIC_ERRORS: dict[AuthErrorKind, PublicError] = {
    AuthErrorKind.NOT_FOUND: PublicError(401, "bad_credentials", BAD_CREDENTIALS_MESSAGE),
    AuthErrorKind.INVALID_CREDENTIALS: PublicError(401, "bad_credentials", BAD_CREDENTIALS_MESSAGE),
    # The unlock time is deliberately not part of the message.
    AuthErrorKind.ACCOUNT_LOCKED: PublicError(423, "account_locked", ACCOUNT_LOCKED_MESSAGE),
    AuthErrorKind.DUPLICATE_IDENTIFIER: PublicError(409, "duplicate_username", "Username is already taken!"),
    AuthErrorKind.DUPLICATE_EMAIL: PublicError(409, "duplicate_email", "Email is already in use!"),
    AuthErrorKind.WEAK_SECRET: PublicError(400, "weak_password", "Password does not meet the strength requirements."),
    AuthErrorKind.INVALID_FORMAT: PublicError(400, "invalid_format", "Invalid input format."),
}


def public_error(kind: AuthErrorKind, detail: str | None = None) -> PublicError:
    """Map an internal error kind to its external status, code, and message.

    detail replaces the default message for registration errors, where the
    validation message tells the user what to fix. It is ignored for the
    login kinds so nothing about the account leaks through it.
    """
    err = _PUBLIC_ERRORS[kind]
    if detail and kind not in (
        AuthErrorKind.NOT_FOUND,
        AuthErrorKind.INVALID_CREDENTIALS,
        AuthErrorKind.ACCOUNT_LOCKED,
    ):
        return PublicError(err.status_code, err.code, detail)
    return err
