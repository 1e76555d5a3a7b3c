"""
tests/test_errors.py -- public_error() mapping of internal kinds to HTTP responses.
"""

from __future__ import annotations

import pytest

from auth.errors import (
    ACCOUNT_LOCKED_MESSAGE,
    BAD_CREDENTIALS_MESSAGE,
    AuthErrorKind,
    public_error,
)


def test_not_found_and_bad_password_are_indistinguishable() -> None:
    assert public_error(AuthErrorKind.NOT_FOUND) == public_error(AuthErrorKind.INVALID_CREDENTIALS)
    assert public_error(AuthErrorKind.NOT_FOUND).message == BAD_CREDENTIALS_MESSAGE


def test_locked_is_its_own_response() -> None:
    err = public_error(AuthErrorKind.ACCOUNT_LOCKED)
    assert err.status_code == 423
    assert err.code == "account_locked"
    assert err.message == ACCOUNT_LOCKED_MESSAGE


@pytest.mark.parametrize(
    "kind", [AuthErrorKind.NOT_FOUND, AuthErrorKind.INVALID_CREDENTIALS, AuthErrorKind.ACCOUNT_LOCKED]
)
def test_login_kinds_ignore_detail(kind: AuthErrorKind) -> None:
    assert public_error(kind, "user alice locked until 12:30") == public_error(kind)


@pytest.mark.parametrize(
    "kind,status,code",
    [
        (AuthErrorKind.DUPLICATE_IDENTIFIER, 409, "duplicate_username"),
        (AuthErrorKind.DUPLICATE_EMAIL, 409, "duplicate_email"),
        (AuthErrorKind.WEAK_SECRET, 400, "weak_password"),
        (AuthErrorKind.INVALID_FORMAT, 400, "invalid_format"),
    ],
)
def test_registration_kinds(kind: AuthErrorKind, status: int, code: str) -> None:
    err = public_error(kind, "custom message")
    assert (err.status_code, err.code, err.message) == (status, code, "custom message")


def test_every_kind_is_mapped() -> None:
    for kind in AuthErrorKind:
        assert public_error(kind).status_code in (400, 401, 409, 423)
