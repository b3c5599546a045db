"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts and sessions.

Pattern: Repository + Data Mapper. AccountStore and SessionStore are the
repositories; _row_to_account is the mapper. Service and
route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE index on the normalized (trimmed, lower-cased)
  value. AuthService checks first for a clean error, but the index is what
  closes the race between two concurrent signups; its IntegrityError is
  translated into DuplicateEmail here.

  Session expiry is checked on every lookup (expires_at > now in the WHERE
  clause). sweep_expired() only reclaims space -- resolve() is correct even
  if the sweep never runs.

Layer rule: no imports from api/ or sellers/.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import Column, Index, Integer, String, Table, Text, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Account, Role, Session
from auth.passwords import generate_session_id
from core.db import metadata, storage_errors, to_iso, utcnow
from core.errors import DuplicateEmail

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_accounts = Table(
    "accounts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),  # normalized
    Column("password_hash", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.operator.value),
    Column("created_at", String(32), nullable=False),
)

_sessions = Table(
    "sessions",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("account_id", String(36), nullable=False),
    Column("issued_at", Integer, nullable=False),  # epoch seconds
    Column("expires_at", Integer, nullable=False),  # epoch seconds
    Index("idx_sessions_account_id", "account_id"),
    Index("idx_sessions_expires_at", "expires_at"),
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        engine = create_db_engine("sqlite:///sellerhub.db")
        accounts = AccountStore(engine)
        account = accounts.create(Account(email="a@x.com", password_hash=hash_password("pw12345678")))
        accounts.get_by_email("A@X.com")
    """

    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utcnow) -> None:
        self.engine = engine
        self._clock = clock
        with storage_errors("create account tables"):
            metadata.create_all(self.engine, tables=[_accounts])

    def create(self, account: Account) -> Account:
        """Insert a new account and return it with id and created_at filled in.

        Raises DuplicateEmail if the normalized email is already registered,
        including when a concurrent signup won the race for the same address.
        """
        new = Account(
            id=str(uuid.uuid4()),
            email=normalize_email(account.email),
            password_hash=account.password_hash,
            role=Role(account.role),
            created_at=to_iso(self._clock()),
        )
        with storage_errors("create account"):
            try:
                with self.engine.begin() as conn:
                    conn.execute(
                        _accounts.insert().values(
                            id=new.id,
                            email=new.email,
                            password_hash=new.password_hash,
                            role=new.role.value,
                            created_at=new.created_at,
                        )
                    )
            except IntegrityError as exc:
                raise DuplicateEmail() from exc
        return new

    def get_by_email(self, email: str) -> Account | None:
        """Case-insensitive lookup. Returns None if not found."""
        with storage_errors("get account by email"):
            with self.engine.connect() as conn:
                row = conn.execute(_accounts.select().where(_accounts.c.email == normalize_email(email))).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: str) -> Account | None:
        with storage_errors("get account by id"):
            with self.engine.connect() as conn:
                row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def email_exists(self, email: str) -> bool:
        with storage_errors("check email"):
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(_accounts.c.id).where(_accounts.c.email == normalize_email(email)).limit(1)
                ).fetchone()
        return row is not None

    def update_password(self, account_id: str, password_hash: str) -> bool:
        """Replace the stored hash. Returns False if account_id was not found."""
        with storage_errors("update password"):
            with self.engine.begin() as conn:
                result = conn.execute(
                    _accounts.update().where(_accounts.c.id == account_id).values(password_hash=password_hash)
                )
                updated = result.rowcount
        return updated > 0


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class SessionStore:
    """Repository for Session entities.

    ttl_seconds is fixed per store (7 days in production). clock is injectable
    so tests can move time past the TTL without sleeping.
    """

    def __init__(self, engine: Engine, ttl_seconds: int, clock: Callable[[], datetime] = utcnow) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.engine = engine
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        with storage_errors("create session tables"):
            metadata.create_all(self.engine, tables=[_accounts, _sessions])

    def _now(self) -> int:
        return int(self._clock().timestamp())

    def create(self, account_id: str) -> Session:
        """Issue a new session for account_id, valid for ttl_seconds from now."""
        now = self._now()
        session = Session(
            id=generate_session_id(),
            account_id=account_id,
            issued_at=now,
            expires_at=now + self.ttl_seconds,
        )
        with storage_errors("create session"):
            with self.engine.begin() as conn:
                conn.execute(
                    _sessions.insert().values(
                        id=session.id,
                        account_id=session.account_id,
                        issued_at=session.issued_at,
                        expires_at=session.expires_at,
                    )
                )
        return session

    def resolve(self, session_id: str) -> Account | None:
        """Return the owning Account of a live session, or None.

        None covers: unknown id, expired session (expires_at <= now, even if
        the row has not been swept yet), and a session whose account is gone.
        """
        if not session_id:
            return None
        with storage_errors("resolve session"):
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(_accounts)
                    .select_from(_sessions.join(_accounts, _sessions.c.account_id == _accounts.c.id))
                    .where((_sessions.c.id == session_id) & (_sessions.c.expires_at > self._now()))
                ).fetchone()
        return _row_to_account(row) if row is not None else None

    def destroy(self, session_id: str) -> None:
        """Delete a session. Unknown ids are not an error."""
        if not session_id:
            return
        with storage_errors("destroy session"):
            with self.engine.begin() as conn:
                conn.execute(_sessions.delete().where(_sessions.c.id == session_id))

    def sweep_expired(self) -> int:
        """Delete every session with expires_at <= now. Returns rows removed."""
        with storage_errors("sweep sessions"):
            with self.engine.begin() as conn:
                result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= self._now()))
                removed = result.rowcount
        return removed


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        role=Role(row.role),
        created_at=row.created_at,
    )

