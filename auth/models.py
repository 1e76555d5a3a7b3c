"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container). Stores and the guard do the work;
the only logic here is lock_state(), a pure function over an Account and a
point in time.

All timestamps are timezone-aware UTC datetimes. The store converts to and
from the database representation at the mapper boundary.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Account:
    """A registered Textura user and its account-protection state.

    Security fields (failed_login_attempts, locked_until, last_login) are
    owned by AccountGuard and change only through its login outcome paths.
    username is case-sensitive and immutable after creation; email is stored
    lower-cased.
    """

    username: str
    email: str
    hashed_password: str
    id: int | None = None
    failed_login_attempts: int = 0
    locked_until: datetime | None = None  # None = never locked or lock cleared
    last_login: datetime | None = None  # last successful verification
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class LockState:
    """Derived view of an account's position in the lockout state machine.

    locked=False -> Unlocked(count); locked=True -> Locked(until).
    A stale locked_until in the past reads as unlocked: expiry is lazy and
    nothing rewrites the row until the next login attempt.
    """

    locked: bool
    count: int
    until: datetime | None = None


def lock_state(account: Account, now: datetime) -> LockState:
    """Return the lockout state of account as of now."""
    if account.locked_until is not None and account.locked_until > now:
        return LockState(locked=True, count=account.failed_login_attempts, until=account.locked_until)
    return LockState(locked=False, count=account.failed_login_attempts)
