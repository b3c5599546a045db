"""Unit tests for sellers/service.py and sellers/store.py.

The FakeFetcher fixture replaces Mercado Libre, so enrichment success and
failure are both deterministic. Records are checked through the store to
prove what was (or was not) persisted.
"""

from unittest.mock import MagicMock

import pytest

from core.errors import DuplicateExternalAccount, EnrichmentFailed, NotFoundOrForbidden, ValidationError
from sellers.fetcher import MercadoLibreClient
from sellers.models import GlobalSellerRecord, ProfileInfo
from sellers.service import GlobalSellerService, derive_display_name

OWNER = "account-owner"
OTHER = "account-other"


class TestDeriveDisplayName:
    def test_explicit_name_wins(self):
        profile = ProfileInfo(first_name="Ana", last_name="Silva", nickname="ANA1")
        assert derive_display_name("  Shop A ", profile) == "Shop A"

    def test_full_name_then_nickname(self):
        assert derive_display_name(None, ProfileInfo(first_name="Ana", last_name="Silva")) == "Ana Silva"
        assert derive_display_name("", ProfileInfo(first_name="Ana")) == "Ana"
        assert derive_display_name("   ", ProfileInfo(nickname="ANA1")) == "ANA1"

    def test_nothing_available(self):
        assert derive_display_name(None, ProfileInfo()) is None


class TestCreate:
    def test_create_enriches_and_stores(self, seller_service, fetcher):
        record = seller_service.create(OWNER, " 123 ", " APP_USR-1 ")
        assert record.id
        assert record.external_id == "123"
        assert record.external_token == "APP_USR-1"
        assert record.profile == fetcher.profile
        assert record.name == "Ana Silva"
        assert record.enriched_at == record.created_at == record.updated_at
        assert fetcher.tokens == ["APP_USR-1"]

    def test_create_with_explicit_name(self, seller_service):
        assert seller_service.create(OWNER, "123", "tok", "My Shop").name == "My Shop"

    @pytest.mark.parametrize("ml_user_id,token", [("", "tok"), ("123", ""), ("  ", "tok"), ("123", "   ")])
    def test_missing_credentials_fail_before_fetch(self, seller_service, fetcher, ml_user_id, token):
        with pytest.raises(ValidationError):
            seller_service.create(OWNER, ml_user_id, token)
        assert fetcher.tokens == []

    def test_duplicate_for_same_account(self, seller_service, fetcher):
        seller_service.create(OWNER, "123", "tok")
        with pytest.raises(DuplicateExternalAccount):
            seller_service.create(OWNER, "123", "tok-2")
        # Rejected before any network call.
        assert fetcher.tokens == ["tok"]

    def test_same_ml_user_for_different_accounts(self, seller_service):
        seller_service.create(OWNER, "123", "tok")
        seller_service.create(OTHER, "123", "tok")
        assert len(seller_service.get_by_user_id(OWNER)) == 1
        assert len(seller_service.get_by_user_id(OTHER)) == 1

    def test_enrichment_failure_persists_nothing(self, seller_service, fetcher):
        fetcher.fail_with(401, "invalid access token")
        with pytest.raises(EnrichmentFailed) as exc_info:
            seller_service.create(OWNER, "123", "bad-token")
        assert exc_info.value.upstream_status == 401
        assert "invalid access token" in exc_info.value.upstream_message
        assert seller_service.get_by_user_id(OWNER) == []

    def test_network_failure_has_no_status(self, seller_service, fetcher):
        fetcher.fail_with(None, "connection refused")
        with pytest.raises(EnrichmentFailed) as exc_info:
            seller_service.create(OWNER, "123", "tok")
        assert exc_info.value.upstream_status is None

    def test_partial_profile_accepted(self, seller_service, fetcher):
        fetcher.profile = ProfileInfo(nickname="ONLYNICK")
        record = seller_service.create(OWNER, "123", "tok")
        assert record.name == "ONLYNICK"
        assert record.profile.email is None

    def test_store_constraint_backs_the_lookup(self, seller_store):
        """Two inserts that both passed the courtesy check still collide in SQL."""
        seller_store.create(GlobalSellerRecord(account_id=OWNER, external_id="123", external_token="a"))
        with pytest.raises(DuplicateExternalAccount):
            seller_store.create(GlobalSellerRecord(account_id=OWNER, external_id="123", external_token="b"))


class TestReads:
    def test_list_newest_first_without_token(self, seller_service, clock):
        first = seller_service.create(OWNER, "1", "tok-1")
        clock.advance(1)
        second = seller_service.create(OWNER, "2", "tok-2")
        clock.advance(1)
        third = seller_service.create(OWNER, "3", "tok-3")

        records = seller_service.get_by_user_id(OWNER)
        assert [r.id for r in records] == [third.id, second.id, first.id]
        assert all(r.external_token is None for r in records)

    def test_list_is_scoped_to_account(self, seller_service):
        seller_service.create(OWNER, "1", "tok")
        assert seller_service.get_by_user_id(OTHER) == []

    def test_get_by_id_is_raw(self, seller_service):
        created = seller_service.create(OWNER, "1", "tok")
        raw = seller_service.get_by_id(created.id)
        assert raw.account_id == OWNER
        assert raw.external_token == "tok"
        assert seller_service.get_by_id("missing") is None

    def test_get_owned_conflates_missing_and_foreign(self, seller_service):
        created = seller_service.create(OWNER, "1", "tok")
        assert seller_service.get_owned(created.id, OWNER).id == created.id
        with pytest.raises(NotFoundOrForbidden):
            seller_service.get_owned(created.id, OTHER)
        with pytest.raises(NotFoundOrForbidden):
            seller_service.get_owned("missing", OWNER)

    def test_token_hidden_from_repr(self, seller_service):
        created = seller_service.create(OWNER, "1", "secret-token")
        assert "secret-token" not in repr(created)


class TestUpdate:
    def test_update_replaces_whole_profile(self, seller_service, fetcher, clock):
        created = seller_service.create(OWNER, "123", "tok-1")
        clock.advance(60)
        fetcher.profile = ProfileInfo(nickname="RENAMED")

        updated = seller_service.update(created.id, OWNER, "123", "tok-2", "Shop A")

        assert updated.name == "Shop A"
        assert updated.external_token == "tok-2"
        assert updated.profile == ProfileInfo(nickname="RENAMED")
        assert updated.profile.first_name is None
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at
        assert updated.enriched_at == updated.updated_at

    def test_update_can_change_ml_user_id(self, seller_service):
        created = seller_service.create(OWNER, "123", "tok")
        assert seller_service.update(created.id, OWNER, "456", "tok").external_id == "456"

    def test_update_to_own_other_ml_user_id_conflicts(self, seller_service):
        seller_service.create(OWNER, "111", "tok")
        second = seller_service.create(OWNER, "222", "tok")
        with pytest.raises(DuplicateExternalAccount):
            seller_service.update(second.id, OWNER, "111", "tok")

    def test_update_foreign_record(self, seller_service, fetcher):
        created = seller_service.create(OWNER, "123", "tok")
        with pytest.raises(NotFoundOrForbidden):
            seller_service.update(created.id, OTHER, "123", "tok-x")
        assert fetcher.tokens == ["tok"]
        assert seller_service.get_by_id(created.id).external_token == "tok"

    def test_update_missing_record(self, seller_service):
        with pytest.raises(NotFoundOrForbidden):
            seller_service.update("missing", OWNER, "123", "tok")

    def test_failed_enrichment_leaves_record_unchanged(self, seller_service, fetcher):
        created = seller_service.create(OWNER, "123", "tok-1", "Original")
        fetcher.fail_with(403, "forbidden")
        with pytest.raises(EnrichmentFailed):
            seller_service.update(created.id, OWNER, "123", "tok-2", "Changed")

        stored = seller_service.get_by_id(created.id)
        assert stored.name == "Original"
        assert stored.external_token == "tok-1"
        assert stored.profile == created.profile
        assert stored.updated_at == created.updated_at


class TestDelete:
    def test_delete_owned(self, seller_service):
        created = seller_service.create(OWNER, "123", "tok")
        seller_service.delete(created.id, OWNER)
        assert seller_service.get_by_id(created.id) is None

    def test_delete_foreign_or_missing(self, seller_service):
        created = seller_service.create(OWNER, "123", "tok")
        with pytest.raises(NotFoundOrForbidden):
            seller_service.delete(created.id, OTHER)
        with pytest.raises(NotFoundOrForbidden):
            seller_service.delete("missing", OWNER)
        assert seller_service.get_by_id(created.id) is not None

    def test_delete_frees_ml_user_id(self, seller_service):
        created = seller_service.create(OWNER, "123", "tok")
        seller_service.delete(created.id, OWNER)
        assert seller_service.create(OWNER, "123", "tok").id != created.id


class TestWithMercadoLibreClient:
    """GlobalSellerService over the real client, with requests.Session mocked."""

    @staticmethod
    def _service(seller_store, body):
        resp = MagicMock(status_code=200, ok=True, reason="OK")
        resp.json.return_value = body
        session = MagicMock()
        session.get.return_value = resp
        return GlobalSellerService(seller_store, MercadoLibreClient(session=session))

    def test_wrong_shaped_nested_fields_are_stored_as_empty(self, seller_store):
        service = self._service(seller_store, {"nickname": "X", "address": ["a"], "phone": "5511999"})
        record = service.create(OWNER, "123", "tok")
        assert record.name == "X"
        assert record.profile == ProfileInfo(nickname="X")
        assert len(service.get_by_user_id(OWNER)) == 1

    def test_unexpected_body_fails_enrichment_and_persists_nothing(self, seller_store):
        service = self._service(seller_store, ["not", "an", "object"])
        with pytest.raises(EnrichmentFailed) as exc_info:
            service.create(OWNER, "123", "tok")
        assert exc_info.value.upstream_status == 200
        assert service.get_by_user_id(OWNER) == []
