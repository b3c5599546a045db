"""
core/db.py -- Shared SQLAlchemy Core engine, metadata and error boundary.

auth/store.py and sellers/store.py register their tables on the single
`metadata` below and share one Engine, so accounts, sessions and Global
Seller records live in the same database.

storage_errors() is the store-side error boundary: any SQLAlchemyError that
escapes a store method is logged and re-raised as core.errors.StorageError.
Integrity violations the store understands (duplicate email, duplicate
external account) must be caught and translated inside the block -- only
the unexpected ones reach the boundary.

Layer rule: no imports from api/, auth/, or sellers/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import StorageError

logger = logging.getLogger("sellerhub.db")

metadata = MetaData()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_db_engine(db_url: str) -> Engine:
    """Build the Engine for db_url; SQLite gets cross-thread access and WAL."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Wrap unexpected SQLAlchemy failures in StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Storage failure during %s: %s", operation, exc)
        raise StorageError() from exc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    # Fixed microsecond precision keeps ISO strings lexicographically sortable.
    return moment.isoformat(timespec="microseconds")
