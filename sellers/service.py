"""
sellers/service.py -- Global Seller workflow: validate, enrich, persist.

Create and update follow the same three phases:

  1. Local checks (ownership for update, non-empty credentials, courtesy
     uniqueness lookup). Fail fast, before any network I/O.
  2. Enrichment: fetch the Mercado Libre profile with the supplied token.
     A failure aborts the operation as EnrichmentFailed -- a record is never
     written with a token that could not be verified, and a failed update
     leaves the stored row exactly as it was.
  3. Persist: one INSERT / UPDATE with the whole profile. The store's UNIQUE
     constraint backs the courtesy check from phase 1.

Ownership and existence are deliberately conflated: every "not yours" case
raises NotFoundOrForbidden, the same error as "no such record".

Layer rule: no imports from api/ or auth/.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.errors import (
    DuplicateExternalAccount,
    EnrichmentFailed,
    ExternalServiceError,
    NotFoundOrForbidden,
    ValidationError,
)
from sellers.fetcher import ProfileFetcher
from sellers.models import GlobalSellerRecord, ProfileInfo
from sellers.store import GlobalSellerStore

logger = logging.getLogger("sellerhub.sellers")


def derive_display_name(explicit: Optional[str], profile: ProfileInfo) -> Optional[str]:
    """Caller-supplied name, else the fetched full name, else the nickname."""
    if explicit and explicit.strip():
        return explicit.strip()
    return profile.full_name or profile.nickname


def _require_credentials(external_id: Optional[str], external_token: Optional[str]) -> tuple[str, str]:
    ml_user_id = (external_id or "").strip()
    token = (external_token or "").strip()
    if not ml_user_id:
        raise ValidationError("Mercado Libre User ID is required.")
    if not token:
        raise ValidationError("Mercado Libre Access Token is required.")
    return ml_user_id, token


class GlobalSellerService:
    def __init__(self, store: GlobalSellerStore, fetcher: ProfileFetcher) -> None:
        self.store = store
        self.fetcher = fetcher

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_user_id(self, account_id: str) -> list[GlobalSellerRecord]:
        """Records owned by account_id, newest first. external_token is never loaded."""
        return self.store.list_by_account(account_id)

    def get_by_id(self, record_id: str) -> GlobalSellerRecord | None:
        """Raw fetch. Callers must check ownership before exposing the result."""
        return self.store.get_by_id(record_id)

    def get_owned(self, record_id: str, account_id: str) -> GlobalSellerRecord:
        record = self.store.get_by_id(record_id)
        if record is None or record.account_id != account_id:
            raise NotFoundOrForbidden()
        return record

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        account_id: str,
        external_id: str,
        external_token: str,
        name: Optional[str] = None,
    ) -> GlobalSellerRecord:
        ml_user_id, token = _require_credentials(external_id, external_token)

        if self.store.find_by_external_id(account_id, ml_user_id) is not None:
            raise DuplicateExternalAccount()

        profile = self._enrich(token, ml_user_id)
        record = self.store.create(
            GlobalSellerRecord(
                account_id=account_id,
                external_id=ml_user_id,
                external_token=token,
                name=derive_display_name(name, profile),
                profile=profile,
            )
        )
        logger.info("Global Seller %s created for account %s (ml_user_id=%s)", record.id, account_id, ml_user_id)
        return record

    def update(
        self,
        record_id: str,
        account_id: str,
        external_id: str,
        external_token: str,
        name: Optional[str] = None,
    ) -> GlobalSellerRecord:
        if not self.store.owns(account_id, record_id):
            raise NotFoundOrForbidden()

        ml_user_id, token = _require_credentials(external_id, external_token)

        existing = self.store.find_by_external_id(account_id, ml_user_id)
        if existing is not None and existing.id != record_id:
            raise DuplicateExternalAccount()

        profile = self._enrich(token, ml_user_id)
        record = self.store.replace(
            record_id,
            account_id,
            external_id=ml_user_id,
            external_token=token,
            name=derive_display_name(name, profile),
            profile=profile,
        )
        if record is None:
            # Deleted between the ownership check and the write.
            raise NotFoundOrForbidden()
        logger.info("Global Seller %s updated for account %s", record_id, account_id)
        return record

    def delete(self, record_id: str, account_id: str) -> None:
        if not self.store.delete(record_id, account_id):
            raise NotFoundOrForbidden()
        logger.info("Global Seller %s deleted by account %s", record_id, account_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enrich(self, token: str, ml_user_id: str) -> ProfileInfo:
        try:
            return self.fetcher.fetch_profile(token)
        except ExternalServiceError as exc:
            logger.warning(
                "Enrichment failed for ml_user_id=%s (upstream status=%s): %s",
                ml_user_id,
                exc.status,
                exc.message,
            )
            raise EnrichmentFailed(exc.status, exc.message) from exc
