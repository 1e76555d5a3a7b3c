"""
auth/guard.py -- Account protection: login attempts, lockout, registration.

AccountGuard is the only code that decides whether a login may proceed and
the only code that changes an account's security fields. Its collaborators
are passed in explicitly:

  store   -- CredentialStore (auth.store.AccountStore in production)
  hasher  -- SecretHasher    (auth.tokens.PasswordHasher)
  issuer  -- SessionIssuer   (auth.tokens.TokenIssuer)

Per-account lockout state machine (threshold T, duration D):

  Unlocked(c) --success-->                Unlocked(0)
  Unlocked(c) --failure, c+1 <  T-->      Unlocked(c+1)
  Unlocked(c) --failure, c+1 >= T-->      Locked(now + D)
  Locked(u)   --now <  u, any attempt-->  rejected, no transition
  Locked(u)   --now >= u, success-->      Unlocked(0)
  Locked(u)   --now >= u, failure-->      Unlocked(1)

Expiry is lazy: nothing rewrites an expired lock until the next attempt.
The failure and success transitions are applied inside the store as single
atomic updates (see AccountStore.record_failure).

Outcomes are returned as LoginResult / RegistrationResult carrying an
AuthErrorKind. StoreError is the only exception that escapes, and it means
the outcome is unknown, never that the password was wrong.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Protocol

from auth.errors import AuthErrorKind, DuplicateAccountError
from auth.models import Account, lock_state
from auth.tokens import get_password_hasher, get_token_issuer
from auth.validation import normalize_email, normalize_username, validate_registration

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("textura.auth")

DEFAULT_MAX_FAILED_ATTEMPTS = 5
DEFAULT_LOCKOUT_DURATION = timedelta(minutes=30)


# ---------------------------------------------------------------------------
# Collaborator contracts
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    def get_by_username(self, username: str) -> Account | None: ...

    def get_by_id(self, account_id: int) -> Account | None: ...

    def exists_by_username(self, username: str) -> bool: ...

    def exists_by_email(self, email: str) -> bool: ...

    def save(self, account: Account) -> Account: ...

    def record_failure(
        self, account_id: int, now: datetime, threshold: int, lockout: timedelta
    ) -> Account | None: ...

    def record_success(self, account_id: int, now: datetime) -> Account | None: ...


class SecretHasher(Protocol):
    dummy_hash: str

    def hash(self, secret: str) -> str: ...

    def verify(self, secret: str, hashed: str) -> bool: ...


class SessionIssuer(Protocol):
    def issue(self, account_id: int, username: str, now: datetime | None = None) -> str: ...


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoginResult:
    error: AuthErrorKind | None = None
    token: str | None = None
    account: Account | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RegistrationResult:
    error: AuthErrorKind | None = None
    message: str = ""
    account: Account | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------------


class AccountGuard:
    """Enforces the lockout policy around password verification and token issue."""

    def __init__(
        self,
        store: CredentialStore,
        hasher: SecretHasher,
        issuer: SessionIssuer,
        max_failed_attempts: int = DEFAULT_MAX_FAILED_ATTEMPTS,
        lockout_duration: timedelta = DEFAULT_LOCKOUT_DURATION,
    ) -> None:
        if max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be at least 1")
        if lockout_duration <= timedelta(0):
            raise ValueError("lockout_duration must be positive")
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.max_failed_attempts = max_failed_attempts
        self.lockout_duration = lockout_duration

    @classmethod
    def from_settings(cls, store: CredentialStore, settings: Settings) -> AccountGuard:
        """Build a guard with the configured hasher, issuer, and lockout policy."""
        return cls(
            store,
            get_password_hasher(),
            get_token_issuer(),
            max_failed_attempts=settings.max_failed_attempts,
            lockout_duration=settings.lockout_duration,
        )

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def attempt_login(self, username: str, password: str, now: datetime | None = None) -> LoginResult:
        """Run one login attempt and persist its outcome.

        Returns LoginResult with a token on success, otherwise with one of
        NOT_FOUND, ACCOUNT_LOCKED, INVALID_CREDENTIALS, or INVALID_FORMAT.
        A wrong password that brings the counter to the threshold locks the
        account and is itself answered with ACCOUNT_LOCKED.
        NOT_FOUND is for internal callers only; the HTTP layer reports it
        exactly like INVALID_CREDENTIALS.
        """
        if not username or not password:
            return LoginResult(error=AuthErrorKind.INVALID_FORMAT)
        now = now or datetime.now(timezone.utc)

        account = self.store.get_by_username(username)
        if account is None:
            # Same bcrypt cost as a real check so timing does not reveal the miss.
            self.hasher.verify(password, self.hasher.dummy_hash)
            logger.info("Login failed for unknown username")
            return LoginResult(error=AuthErrorKind.NOT_FOUND)

        if lock_state(account, now).locked:
            logger.warning("Login attempt on locked account: %s", username)
            return LoginResult(error=AuthErrorKind.ACCOUNT_LOCKED, account=account)

        if not self.hasher.verify(password, account.hashed_password):
            return self._fail(account, now)

        updated = self.store.record_success(account.id, now)
        if updated is None:
            # Row deleted between lookup and write.
            return LoginResult(error=AuthErrorKind.NOT_FOUND)
        token = self.issuer.issue(updated.id, updated.username, now=now)
        logger.info("User authenticated successfully: %s", username)
        return LoginResult(token=token, account=updated)

    def _fail(self, account: Account, now: datetime) -> LoginResult:
        updated = self.store.record_failure(account.id, now, self.max_failed_attempts, self.lockout_duration)
        if updated is None:
            return LoginResult(error=AuthErrorKind.NOT_FOUND)
        state = lock_state(updated, now)
        if state.locked:
            # The attempt that trips the threshold already reports the lock.
            logger.warning(
                "Account locked due to %d failed login attempts: %s", updated.failed_login_attempts, account.username
            )
            return LoginResult(error=AuthErrorKind.ACCOUNT_LOCKED, account=updated)
        logger.info("Authentication failed for user: %s (%d failed)", account.username, state.count)
        return LoginResult(error=AuthErrorKind.INVALID_CREDENTIALS, account=updated)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_account(self, username: str, email: str, password: str) -> RegistrationResult:
        """Validate and create a new account with a fresh security state."""
        failure = validate_registration(username, email, password)
        if failure is not None:
            return RegistrationResult(error=failure.kind, message=failure.message)

        name = normalize_username(username)
        address = normalize_email(email)
        if self.store.exists_by_username(name):
            return RegistrationResult(error=AuthErrorKind.DUPLICATE_IDENTIFIER, message="Username is already taken!")
        if self.store.exists_by_email(address):
            return RegistrationResult(error=AuthErrorKind.DUPLICATE_EMAIL, message="Email is already in use!")

        try:
            account = self.store.save(
                Account(username=name, email=address, hashed_password=self.hasher.hash(password))
            )
        except DuplicateAccountError:
            # Lost a race with a concurrent registration.
            if self.store.exists_by_username(name):
                return RegistrationResult(
                    error=AuthErrorKind.DUPLICATE_IDENTIFIER, message="Username is already taken!"
                )
            return RegistrationResult(error=AuthErrorKind.DUPLICATE_EMAIL, message="Email is already in use!")

        logger.info("User registered successfully: %s", name)
        return RegistrationResult(message="User registered successfully!", account=account)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_account(self, username: str) -> Account | None:
        return self.store.get_by_username(username)

    def get_account(self, account_id: int) -> Account | None:
        return self.store.get_by_id(account_id)
