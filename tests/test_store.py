"""
tests/test_store.py -- Unit tests for auth/store.py.

Covers:
  - save() insert/update round trip, timestamps come back timezone-aware
  - save() duplicate username / email -> DuplicateAccountError
  - exists_by_username / exists_by_email
  - record_failure() transitions evaluated in SQL (increment, lock, keep lock, expired reset)
  - record_success() resets counter and lock, stamps last_login
  - Concurrent failures on a file-backed DB lose no updates
  - SQLAlchemy faults surface as StoreError
"""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest
from sqlalchemy import text

from auth.errors import AuthErrorKind, DuplicateAccountError, StoreError
from auth.guard import AccountGuard
from auth.models import Account
from auth.store import AccountStore
from tests.helpers import ALICE_PASSWORD, T0

LOCKOUT = timedelta(minutes=30)


@pytest.fixture
def account(store: AccountStore) -> Account:
    return store.save(Account(username="bob", email="bob@x.com", hashed_password="$2b$04$notarealhash"))


class TestSave:
    def test_insert_assigns_id_and_defaults(self, account: Account) -> None:
        assert account.id is not None
        assert account.failed_login_attempts == 0
        assert account.locked_until is None
        assert account.last_login is None
        assert account.created_at is not None
        assert account.created_at.tzinfo is not None

    def test_update_existing_row(self, store: AccountStore, account: Account) -> None:
        account.email = "robert@x.com"
        saved = store.save(account)
        assert saved.id == account.id
        assert store.get_by_id(account.id).email == "robert@x.com"

    def test_duplicate_username(self, store: AccountStore, account: Account) -> None:
        with pytest.raises(DuplicateAccountError):
            store.save(Account(username="bob", email="other@x.com", hashed_password="h"))

    def test_duplicate_email(self, store: AccountStore, account: Account) -> None:
        with pytest.raises(DuplicateAccountError):
            store.save(Account(username="bobby", email="bob@x.com", hashed_password="h"))

    def test_exists(self, store: AccountStore, account: Account) -> None:
        assert store.exists_by_username("bob")
        assert not store.exists_by_username("Bob")
        assert store.exists_by_email("bob@x.com")
        assert not store.exists_by_email("nobody@x.com")

    def test_missing_lookups_return_none(self, store: AccountStore) -> None:
        assert store.get_by_username("ghost") is None
        assert store.get_by_id(999) is None

    def test_naive_timestamp_rejected(self, store: AccountStore, account: Account) -> None:
        with pytest.raises(ValueError):
            store.record_success(account.id, T0.replace(tzinfo=None))


class TestRecordFailure:
    def test_increments_without_locking_below_threshold(self, store: AccountStore, account: Account) -> None:
        for expected in range(1, 5):
            updated = store.record_failure(account.id, T0, threshold=5, lockout=LOCKOUT)
            assert updated.failed_login_attempts == expected
            assert updated.locked_until is None

    def test_locks_at_threshold(self, store: AccountStore, account: Account) -> None:
        for _ in range(5):
            updated = store.record_failure(account.id, T0, threshold=5, lockout=LOCKOUT)
        assert updated.failed_login_attempts == 5
        assert updated.locked_until == T0 + LOCKOUT

    def test_active_lock_is_kept_not_extended(self, store: AccountStore, account: Account) -> None:
        for _ in range(5):
            store.record_failure(account.id, T0, threshold=5, lockout=LOCKOUT)
        later = T0 + timedelta(minutes=5)
        updated = store.record_failure(account.id, later, threshold=5, lockout=LOCKOUT)
        assert updated.failed_login_attempts == 6
        assert updated.locked_until == T0 + LOCKOUT

    def test_expired_lock_restarts_at_one(self, store: AccountStore, account: Account) -> None:
        for _ in range(5):
            store.record_failure(account.id, T0, threshold=5, lockout=LOCKOUT)
        updated = store.record_failure(account.id, T0 + LOCKOUT, threshold=5, lockout=LOCKOUT)
        assert updated.failed_login_attempts == 1
        assert updated.locked_until is None

    def test_unknown_account_returns_none(self, store: AccountStore) -> None:
        assert store.record_failure(12345, T0, threshold=5, lockout=LOCKOUT) is None


class TestRecordSuccess:
    def test_resets_state_and_stamps_last_login(self, store: AccountStore, account: Account) -> None:
        for _ in range(5):
            store.record_failure(account.id, T0, threshold=5, lockout=LOCKOUT)
        later = T0 + timedelta(hours=1)
        updated = store.record_success(account.id, later)
        assert updated.failed_login_attempts == 0
        assert updated.locked_until is None
        assert updated.last_login == later

    def test_unknown_account_returns_none(self, store: AccountStore) -> None:
        assert store.record_success(12345, T0) is None


class TestConcurrency:
    @pytest.mark.parametrize("callers", [2, 4])
    def test_parallel_failures_lose_no_updates(self, tmp_path, hasher, issuer, callers: int) -> None:
        file_store = AccountStore(f"sqlite:///{tmp_path / 'concurrency.db'}")
        guard = AccountGuard(file_store, hasher, issuer)
        assert guard.register_account("carol", "carol@x.com", ALICE_PASSWORD).ok

        barrier = threading.Barrier(callers)
        outcomes: list = []
        errors: list = []

        def attempt() -> None:
            try:
                barrier.wait()
                outcomes.append(guard.attempt_login("carol", "wrong", now=T0).error)
            except Exception as exc:  # surfaced by the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=attempt) for _ in range(callers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        try:
            assert errors == []
            assert outcomes == [AuthErrorKind.INVALID_CREDENTIALS] * callers
            assert file_store.get_by_username("carol").failed_login_attempts == callers
        finally:
            file_store.close()


class TestStoreErrors:
    def test_missing_table_raises_store_error(self, store: AccountStore) -> None:
        with store.engine.begin() as conn:
            conn.execute(text("DROP TABLE users"))
        with pytest.raises(StoreError):
            store.get_by_username("bob")

    def test_ping(self, store: AccountStore) -> None:
        assert store.ping() is True
