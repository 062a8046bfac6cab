"""
Tests for DraftStore and CurrencyPreferenceStore.

Storage is best-effort: nothing here may raise into the caller.
"""

import json
import pytest
from decimal import Decimal
from unittest import mock

from django.core.cache import caches

from cart.drafts import DraftLine, EMPTY_DRAFT, OrderDraft
from cart.storage import CurrencyPreferenceStore, DraftStore
from core_backend.infrastructure.cache import DraftCacheManager


@pytest.fixture
def draft():
    return OrderDraft(
        items=[DraftLine(menu_item_id="item-a", name="Burger", unit_price=Decimal("25000.50"),
                         quantity=2, currency="SYP", extras={"size": ["L"]}, line_id="line-1")],
        customer_name="Rami",
        customer_phone="0912345678",
        customer_address="Mezzeh",
        notes="ring twice",
    )


@pytest.fixture
def broken_cache():
    cache = mock.Mock()
    cache.set.side_effect = OSError("disk full")
    cache.get.side_effect = OSError("disk gone")
    cache.delete.side_effect = OSError("disk gone")
    with mock.patch.object(DraftCacheManager, "get_cache", return_value=cache):
        yield cache


class TestDraftStore:

    def test_save_and_load_round_trip(self, draft):
        store = DraftStore()

        assert store.save("rest-1", "12", draft) is True
        loaded = store.load("rest-1", "12")

        assert json.dumps(loaded.to_dict(), sort_keys=True) == json.dumps(draft.to_dict(), sort_keys=True)

    def test_drafts_are_keyed_by_restaurant_and_table(self, draft):
        store = DraftStore()
        store.save("rest-1", "12", draft)

        assert store.load("rest-1", "13").is_empty
        assert store.load("rest-2", "12").is_empty

    def test_stored_as_plain_data(self, draft):
        store = DraftStore()
        store.save("rest-1", "12", draft)

        raw = caches["drafts"].get(store.key_for("rest-1", "12"))

        assert raw["customerName"] == "Rami"
        assert raw["items"][0]["price"] == "25000.50"

    def test_key_is_versioned(self):
        assert DraftStore().key_for("rest-1", "12") == "v1:cart:draft:rest-1:12"

    def test_load_absent_is_empty(self):
        assert DraftStore().load("rest-1", "nope") == EMPTY_DRAFT

    @pytest.mark.parametrize("garbage", [
        "not a dict",
        {"items": "nope"},
        {"items": [{"name": "missing menu id", "price": "1"}]},
        {"items": [{"menuItemId": "x", "price": "abc"}]},
        {"items": [{"menuItemId": "x", "price": "1", "quantity": 0}]},
    ])
    def test_malformed_data_loads_as_empty(self, garbage):
        store = DraftStore()
        caches["drafts"].set(store.key_for("rest-1", "12"), garbage)

        assert store.load("rest-1", "12") == EMPTY_DRAFT

    def test_clear(self, draft):
        store = DraftStore()
        store.save("rest-1", "12", draft)

        store.clear("rest-1", "12")

        assert store.load("rest-1", "12").is_empty

    def test_backend_failures_are_swallowed(self, draft, broken_cache):
        store = DraftStore()

        with mock.patch("cart.storage.logger") as logger:
            assert store.save("rest-1", "12", draft) is False
            assert store.load("rest-1", "12") == EMPTY_DRAFT
            assert store.clear("rest-1", "12") is False

        assert logger.error.call_count == 3

    def test_failures_open_the_circuit(self, draft, broken_cache):
        store = DraftStore()
        for _ in range(5):
            store.save("rest-1", "12", draft)

        assert DraftCacheManager.get_cache_stats("drafts")["circuit_state"]["failures"] == 5

    def test_missing_cache_alias_is_swallowed(self, draft):
        store = DraftStore(cache_alias="does-not-exist")

        assert store.save("rest-1", "12", draft) is False
        assert store.load("rest-1", "12") == EMPTY_DRAFT


class TestCurrencyPreferenceStore:

    def test_save_and_load(self):
        store = CurrencyPreferenceStore()

        store.save("rest-1", "usd")

        assert store.load("rest-1") == "USD"
        assert store.load("rest-2") is None

    def test_saving_nothing_clears(self):
        store = CurrencyPreferenceStore()
        store.save("rest-1", "USD")

        store.save("rest-1", None)

        assert store.load("rest-1") is None

    def test_malformed_preference_is_none(self):
        store = CurrencyPreferenceStore()
        caches["drafts"].set(store._key("rest-1"), {"currency": "USD"})

        assert store.load("rest-1") is None

    def test_does_not_collide_with_drafts(self, draft):
        DraftStore().save("rest-1", "-", draft)
        CurrencyPreferenceStore().save("rest-1", "TRY")

        assert not DraftStore().load("rest-1", None).is_empty

    def test_backend_failures_are_swallowed(self, broken_cache):
        store = CurrencyPreferenceStore()

        assert store.save("rest-1", "USD") is False
        assert store.load("rest-1") is None


class TestWithoutCache:

    def test_dummy_backend_keeps_nothing(self, draft, disable_cache):
        store = DraftStore()

        store.save("rest-1", "12", draft)

        assert store.load("rest-1", "12").is_empty
