"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository;
_row_to_account is the mapper. The guard and routes never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Atomic login outcomes:
  record_failure() and record_success() are each a single UPDATE whose SET
  clause is computed from the row's current values inside the database.
  Two concurrent failures both increment the counter (no read-modify-write
  in Python, so no lost update), and a failure racing a lock that another
  request just set never extends that lock. The row is re-read in the same
  transaction so the caller sees exactly the state it produced.

Timestamps:
  Stored as naive UTC DATETIME columns and converted to aware UTC datetimes
  by the mapper. Naive UTC keeps the CASE comparisons in record_failure()
  correct on SQLite, which has no timezone-aware type.

Errors:
  Unique-constraint violations on save() raise DuplicateAccountError. Every
  other SQLAlchemy failure is re-raised as StoreError so callers can tell an
  infrastructure fault apart from a login outcome.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    and_,
    case,
    create_engine,
    event,
    literal,
    null,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateAccountError, StoreError
from auth.models import Account

logger = logging.getLogger("textura.store")

_DEFAULT_DB_URL = "sqlite:///./textura_auth.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True, index=True),
    Column("email", String(100), nullable=False, unique=True, index=True),
    Column("password", String(255), nullable=False),  # bcrypt hash
    Column("failed_login_attempts", Integer, nullable=False, server_default="0"),
    Column("account_locked_until", DateTime),  # NULL = unlocked
    Column("last_login", DateTime),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block the single writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        raise ValueError("timestamps passed to the store must be timezone-aware")
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(value: datetime | None) -> datetime | None:
    return value.replace(tzinfo=timezone.utc) if value is not None else None


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Account store failure during %s: %s", operation, exc.__class__.__name__)
        raise StoreError(f"account store unavailable during {operation}") from exc


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore("sqlite:///:memory:")
        account = store.save(Account(username="alice", email="alice@x.com", hashed_password=h))
        store.record_failure(account.id, now, threshold=5, lockout=timedelta(minutes=30))
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            # Seconds a writer waits for the database lock before erroring.
            connect_args["timeout"] = 30
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        with _store_errors("schema setup"):
            _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_username(self, username: str) -> Account | None:
        """Look up an account by exact username (case-sensitive). Returns None if not found."""
        with _store_errors("lookup"), self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.username == username)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: int) -> Account | None:
        with _store_errors("lookup"), self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def exists_by_username(self, username: str) -> bool:
        with _store_errors("lookup"), self.engine.connect() as conn:
            found = conn.execute(select(_accounts.c.id).where(_accounts.c.username == username)).first()
        return found is not None

    def exists_by_email(self, email: str) -> bool:
        """Email is compared as given; callers pass the lower-cased form."""
        with _store_errors("lookup"), self.engine.connect() as conn:
            found = conn.execute(select(_accounts.c.id).where(_accounts.c.email == email)).first()
        return found is not None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, account: Account) -> Account:
        """Insert account if it has no id yet, otherwise overwrite its row.

        Returns the stored account as re-read from the database. Raises
        DuplicateAccountError if username or email is already taken.

        Not for login outcomes: a read-modify-write through save() can lose
        a concurrent update. Use record_failure() / record_success().
        """
        now = _to_db(_utcnow())
        values = {
            "username": account.username,
            "email": account.email,
            "password": account.hashed_password,
            "failed_login_attempts": account.failed_login_attempts,
            "account_locked_until": _to_db(account.locked_until),
            "last_login": _to_db(account.last_login),
            "updated_at": now,
        }
        try:
            with self.engine.begin() as conn:
                if account.id is None:
                    values["created_at"] = _to_db(account.created_at) or now
                    result = conn.execute(_accounts.insert().values(**values))
                    account_id = result.inserted_primary_key[0]
                else:
                    account_id = account.id
                    conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(**values))
                row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        except IntegrityError as exc:
            raise DuplicateAccountError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            logger.error("Account store failure during save: %s", exc.__class__.__name__)
            raise StoreError("account store unavailable during save") from exc
        if row is None:
            raise StoreError(f"account {account_id} vanished during save")
        return _row_to_account(row)

    def record_failure(self, account_id: int, now: datetime, threshold: int, lockout: timedelta) -> Account | None:
        """Atomically apply one failed login to the account's security fields.

        Transition, evaluated on the row's current values:
          - lock still active (locked_until > now): counter +1, lock kept as is
          - lock expired (locked_until <= now):     counter = 1, lock cleared
          - otherwise:                              counter +1
          - if the new counter reaches threshold and no lock is active,
            locked_until = now + lockout

        Returns the updated account, or None if account_id does not exist.
        """
        c = _accounts.c
        now_db = _to_db(now)
        lock_active = and_(c.account_locked_until.is_not(None), c.account_locked_until > now_db)
        lock_expired = and_(c.account_locked_until.is_not(None), c.account_locked_until <= now_db)
        new_count = case((lock_expired, 1), else_=c.failed_login_attempts + 1)
        new_lock = case(
            (lock_active, c.account_locked_until),
            (new_count >= threshold, literal(_to_db(now + lockout), DateTime())),
            else_=null(),
        )
        with _store_errors("record_failure"), self.engine.begin() as conn:
            result = conn.execute(
                _accounts.update()
                .where(c.id == account_id)
                .values(failed_login_attempts=new_count, account_locked_until=new_lock, updated_at=now_db)
            )
            if result.rowcount == 0:
                return None
            row = conn.execute(_accounts.select().where(c.id == account_id)).fetchone()
        return _row_to_account(row)

    def record_success(self, account_id: int, now: datetime) -> Account | None:
        """Atomically reset the counter, clear any lock, and stamp last_login.

        Returns the updated account, or None if account_id does not exist.
        """
        now_db = _to_db(now)
        with _store_errors("record_success"), self.engine.begin() as conn:
            result = conn.execute(
                _accounts.update()
                .where(_accounts.c.id == account_id)
                .values(failed_login_attempts=0, account_locked_until=None, last_login=now_db, updated_at=now_db)
            )
            if result.rowcount == 0:
                return None
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.password,
        failed_login_attempts=row.failed_login_attempts or 0,
        locked_until=_from_db(row.account_locked_until),
        last_login=_from_db(row.last_login),
        created_at=_from_db(row.created_at),
        updated_at=_from_db(row.updated_at),
    )
