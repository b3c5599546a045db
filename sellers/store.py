"""
sellers/store.py -- SQLAlchemy Core persistence layer for Global Seller records.

Pattern: Repository + Data Mapper (same as auth/store.py).
GlobalSellerStore is the repository; _row_to_record is the mapper.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(account_id, ml_user_id) is enforced in SQL. The service runs a
  courtesy lookup first so the common case gets a clean error, but only the
  constraint can close the race between two concurrent creates; its
  IntegrityError is translated into DuplicateExternalAccount here.

  Every mutating statement carries account_id in its WHERE clause, so a
  record owned by another account behaves exactly like a missing one
  (IDOR guard). The access token column is excluded from list queries.

Schema:
  Enrichment fields are stored one column each with the ml_ prefix
  (ml_nickname, ml_email, ...), plus ml_info_updated_at for the time of the
  last successful fetch.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Index, String, Table, Text, UniqueConstraint, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.db import metadata, storage_errors, to_iso, utcnow
from core.errors import DuplicateExternalAccount
from sellers.models import GlobalSellerRecord, ProfileInfo

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

# ProfileInfo field -> column name
_PROFILE_COLUMNS: dict[str, str] = {name: f"ml_{name}" for name in ProfileInfo.field_names()}

_global_sellers = Table(
    "global_sellers",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("account_id", String(36), nullable=False),
    Column("ml_user_id", String(64), nullable=False),
    Column("ml_access_token", Text, nullable=False),
    Column("name", String(255)),
    *[Column(column, Text) for column in _PROFILE_COLUMNS.values()],
    Column("ml_info_updated_at", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    UniqueConstraint("account_id", "ml_user_id", name="uq_account_ml_user"),
    Index("idx_global_sellers_account_id", "account_id"),
)

# Every column except the access token -- used by reads that must not load it.
_PUBLIC_COLUMNS = [c for c in _global_sellers.c if c.name != "ml_access_token"]


def _profile_values(profile: ProfileInfo) -> dict[str, Optional[str]]:
    return {column: getattr(profile, name) for name, column in _PROFILE_COLUMNS.items()}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class GlobalSellerStore:
    """Repository for GlobalSellerRecord entities.

    Usage:
        store = GlobalSellerStore(create_db_engine(url))
        record = store.create(GlobalSellerRecord(account_id=..., external_id="123",
                                                 external_token="APP_USR-...", profile=profile))
        store.list_by_account(account_id)
        store.delete(record.id, account_id)
    """

    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utcnow) -> None:
        self.engine = engine
        self._clock = clock
        with storage_errors("create global seller tables"):
            metadata.create_all(self.engine, tables=[_global_sellers])

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, record_id: str) -> GlobalSellerRecord | None:
        """Raw fetch by primary key, token included. No ownership check."""
        with storage_errors("get global seller"):
            with self.engine.connect() as conn:
                row = conn.execute(_global_sellers.select().where(_global_sellers.c.id == record_id)).fetchone()
        return _row_to_record(row) if row is not None else None

    def list_by_account(self, account_id: str) -> list[GlobalSellerRecord]:
        """All records owned by account_id, newest first, without the token."""
        with storage_errors("list global sellers"):
            with self.engine.connect() as conn:
                rows = conn.execute(
                    select(*_PUBLIC_COLUMNS)
                    .where(_global_sellers.c.account_id == account_id)
                    .order_by(_global_sellers.c.created_at.desc(), _global_sellers.c.id)
                ).fetchall()
        return [_row_to_record(r) for r in rows]

    def find_by_external_id(self, account_id: str, external_id: str) -> GlobalSellerRecord | None:
        """Look up the account's record for one Mercado Libre user id, without the token."""
        with storage_errors("find global seller by ml_user_id"):
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(*_PUBLIC_COLUMNS).where(
                        (_global_sellers.c.account_id == account_id) & (_global_sellers.c.ml_user_id == external_id)
                    )
                ).fetchone()
        return _row_to_record(row) if row is not None else None

    def owns(self, account_id: str, record_id: str) -> bool:
        with storage_errors("check global seller ownership"):
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(_global_sellers.c.id)
                    .where((_global_sellers.c.id == record_id) & (_global_sellers.c.account_id == account_id))
                    .limit(1)
                ).fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, record: GlobalSellerRecord) -> GlobalSellerRecord:
        """Insert a fully enriched record. id and all timestamps are assigned here.

        Raises DuplicateExternalAccount on a UNIQUE(account_id, ml_user_id)
        violation.
        """
        now = to_iso(self._clock())
        new = GlobalSellerRecord(
            id=str(uuid.uuid4()),
            account_id=record.account_id,
            external_id=record.external_id,
            external_token=record.external_token,
            name=record.name,
            profile=record.profile,
            enriched_at=now,
            created_at=now,
            updated_at=now,
        )
        with storage_errors("create global seller"):
            try:
                with self.engine.begin() as conn:
                    conn.execute(
                        _global_sellers.insert().values(
                            id=new.id,
                            account_id=new.account_id,
                            ml_user_id=new.external_id,
                            ml_access_token=new.external_token,
                            name=new.name,
                            ml_info_updated_at=new.enriched_at,
                            created_at=new.created_at,
                            updated_at=new.updated_at,
                            **_profile_values(new.profile),
                        )
                    )
            except IntegrityError as exc:
                raise DuplicateExternalAccount() from exc
        return new

    def replace(
        self,
        record_id: str,
        account_id: str,
        external_id: str,
        external_token: str,
        name: Optional[str],
        profile: ProfileInfo,
    ) -> GlobalSellerRecord | None:
        """Overwrite credentials, name and the whole profile of an owned record.

        Every profile column is written, including the ones that are now None
        -- nothing from the previous profile survives. Returns the updated
        record, or None if no row matched (id, account_id).
        """
        now = to_iso(self._clock())
        with storage_errors("update global seller"):
            try:
                with self.engine.begin() as conn:
                    result = conn.execute(
                        _global_sellers.update()
                        .where((_global_sellers.c.id == record_id) & (_global_sellers.c.account_id == account_id))
                        .values(
                            ml_user_id=external_id,
                            ml_access_token=external_token,
                            name=name,
                            ml_info_updated_at=now,
                            updated_at=now,
                            **_profile_values(profile),
                        )
                    )
                    updated = result.rowcount
            except IntegrityError as exc:
                raise DuplicateExternalAccount() from exc
        if not updated:
            return None
        return self.get_by_id(record_id)

    def delete(self, record_id: str, account_id: str) -> bool:
        """Delete an owned record. False if not found OR owned by someone else."""
        with storage_errors("delete global seller"):
            with self.engine.begin() as conn:
                result = conn.execute(
                    _global_sellers.delete().where(
                        (_global_sellers.c.id == record_id) & (_global_sellers.c.account_id == account_id)
                    )
                )
                deleted = result.rowcount
        return deleted > 0


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_record(row) -> GlobalSellerRecord:
    # Rows from list queries carry no ml_access_token column.
    mapping = row._mapping
    return GlobalSellerRecord(
        id=row.id,
        account_id=row.account_id,
        external_id=row.ml_user_id,
        external_token=mapping.get("ml_access_token"),
        name=row.name,
        profile=ProfileInfo(**{name: mapping[column] for name, column in _PROFILE_COLUMNS.items()}),
        enriched_at=row.ml_info_updated_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
