"""
auth/validation.py -- Registration input rules.

The patterns below are the exact rules existing Textura accounts were
created under. Changing them would make some stored usernames or passwords
unreachable through registration, so treat them as a compatibility contract.

All checks use re.fullmatch(): the rules describe the whole value, not a
substring of it. The first failing rule wins and its message is returned.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from auth.errors import AuthErrorKind

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 8

_USERNAME_RE = re.compile(r"[a-zA-Z0-9_.-]+")
_EMAIL_RE = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
# One digit, one lowercase, one uppercase, one listed special character.
_PASSWORD_RE = re.compile(r"""^(?=.*[0-9])(?=.*[a-z])(?=.*[A-Z])(?=.*[!@#$%^&*()_+\-=\[\]{};':"\\|,.<>\/?]).{8,}$""")


@dataclass(frozen=True)
class ValidationFailure:
    kind: AuthErrorKind
    message: str


def normalize_username(username: str) -> str:
    return username.strip()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return len(email) <= EMAIL_MAX_LENGTH and _EMAIL_RE.fullmatch(email) is not None


def is_strong_password(password: str) -> bool:
    return len(password) >= PASSWORD_MIN_LENGTH and _PASSWORD_RE.fullmatch(password) is not None


def validate_registration(username: str | None, email: str | None, password: str | None) -> ValidationFailure | None:
    """Check a registration request. Returns None when every rule passes.

    The username is trimmed before any check. The email is checked as
    submitted and only normalized (trimmed, lower-cased) for storage.
    """
    if username is None or len(normalize_username(username)) < USERNAME_MIN_LENGTH:
        return ValidationFailure(AuthErrorKind.INVALID_FORMAT, "Username must be at least 3 characters long")
    name = normalize_username(username)
    if len(name) > USERNAME_MAX_LENGTH:
        return ValidationFailure(AuthErrorKind.INVALID_FORMAT, "Username must not exceed 50 characters")
    if _USERNAME_RE.fullmatch(name) is None:
        return ValidationFailure(
            AuthErrorKind.INVALID_FORMAT,
            "Username can only contain letters, numbers, dots, dashes, and underscores",
        )

    if email is None or not is_valid_email(email):
        return ValidationFailure(AuthErrorKind.INVALID_FORMAT, "Invalid email format")

    if password is None or len(password) < PASSWORD_MIN_LENGTH:
        return ValidationFailure(AuthErrorKind.WEAK_SECRET, "Password must be at least 8 characters long")
    if not is_strong_password(password):
        return ValidationFailure(
            AuthErrorKind.WEAK_SECRET,
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character",
        )
    return None
