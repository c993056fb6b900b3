"""
Tests for PromotionEngine.validate_and_price.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from conftest import NOW, build_engine, make_promotion
from storefront.services.catalog_lookups import CatalogLookupError
from storefront.services.promotion_service import (
    PromotionScope,
    RejectionReason,
    compute_discount,
    resolve_scope,
)
from storefront.services.records import Cart, CartLine, Shopper


def cart_of(*lines, subtotal=None):
    items = tuple(CartLine(product_id=p, unit_price_paise=price, quantity=qty) for p, price, qty in lines)
    if subtotal is None:
        subtotal = sum(line.total_paise for line in items)
    return Cart(subtotal_paise=subtotal, items=items)


class TestCheckoutScenarios:
    def test_percentage_whole_cart(self, catalog, engine):
        catalog.add_promotion(make_promotion("SAVE10", percent_off=Decimal("10"), min_order_paise=50000))

        result = engine.validate_and_price("SAVE10", cart_of(("p1", 100000, 1)))

        assert result.valid
        assert result.discount_paise == 10000
        assert result.discount == Decimal("100.00")
        assert result.promotion_code == "SAVE10"
        assert result.scope is PromotionScope.CART

    def test_flat_below_minimum(self, catalog, engine):
        catalog.add_promotion(make_promotion(
            "FLAT200", type="flat", is_percentage=False, amount_off_paise=20000, min_order_paise=100000,
        ))

        result = engine.validate_and_price("FLAT200", cart_of(("p1", 90000, 1)))

        assert not result.valid
        assert result.reason is RejectionReason.BELOW_MINIMUM
        assert result.context == {"min_order_value": 1000.0, "shortfall": 100.0}
        assert "₹1000.00" in result.message

    def test_category_scope_with_cap(self, catalog, engine):
        catalog.add_promotion(make_promotion(
            "CATDOGFOOD", percent_off=Decimal("20"), max_discount_paise=15000,
            applicable_category_ids=frozenset({"dog-food"}),
        ))
        catalog.add_product("kibble", "dog-food")
        catalog.add_product("ball", "toys")

        result = engine.validate_and_price("CATDOGFOOD", cart_of(("kibble", 100000, 1), ("ball", 50000, 1)))

        assert result.valid
        assert result.applicable_subtotal_paise == 100000
        assert result.discount_paise == 15000
        assert result.matched_item_ids == ("kibble",)

    def test_per_user_limit_reached_regardless_of_cart(self, catalog, engine):
        catalog.add_promotion(make_promotion("VIP5", id="7", per_user_limit=1))
        catalog.usage[("user-1", "7")] = 1

        result = engine.validate_and_price("VIP5", cart_of(), Shopper(id="user-1"))

        assert not result.valid
        assert result.reason is RejectionReason.USAGE_LIMIT_REACHED


class TestValidationOrder:
    @pytest.mark.parametrize("code", ["", None])
    def test_code_required(self, catalog, engine, code):
        result = engine.validate_and_price(code, cart_of(("p1", 1000, 1)))

        assert result.reason is RejectionReason.CODE_REQUIRED
        assert catalog.calls == []

    def test_unknown_code(self, engine):
        assert engine.validate_and_price("NOPE", cart_of()).reason is RejectionReason.INVALID_CODE

    def test_inactive_code_is_invalid(self, catalog, engine):
        catalog.add_promotion(make_promotion("OFF", is_active=False))

        assert engine.validate_and_price("OFF", cart_of()).reason is RejectionReason.INVALID_CODE

    def test_codes_are_case_sensitive(self, catalog, engine):
        catalog.add_promotion(make_promotion("SAVE10"))

        assert engine.validate_and_price("save10", cart_of()).reason is RejectionReason.INVALID_CODE

    def test_not_started(self, catalog, engine):
        catalog.add_promotion(make_promotion("SOON", start_date=NOW + timedelta(seconds=1)))

        result = engine.validate_and_price("SOON", cart_of())

        assert result.reason is RejectionReason.EXPIRED_OR_NOT_STARTED
        assert "start_date" in result.context

    def test_expired(self, catalog, engine):
        catalog.add_promotion(make_promotion("GONE", end_date=NOW - timedelta(seconds=1)))

        assert engine.validate_and_price("GONE", cart_of()).reason is RejectionReason.EXPIRED_OR_NOT_STARTED

    @pytest.mark.parametrize("edge", ["start_date", "end_date"])
    def test_window_is_inclusive(self, catalog, engine, edge):
        catalog.add_promotion(make_promotion("EDGE", **{edge: NOW}))

        assert engine.validate_and_price("EDGE", cart_of(("p1", 1000, 1))).valid

    def test_naive_dates_are_utc(self, catalog, engine):
        catalog.add_promotion(make_promotion(
            "NAIVE",
            start_date=datetime(2026, 10, 18, 12, 0),
            end_date=datetime(2026, 10, 18, 12, 0),
        ))

        assert engine.validate_and_price("NAIVE", cart_of(("p1", 1000, 1))).valid

    def test_expiry_checked_before_minimum(self, catalog, engine):
        catalog.add_promotion(make_promotion("GONE", min_order_paise=10 ** 9, end_date=NOW - timedelta(days=1)))

        assert engine.validate_and_price("GONE", cart_of()).reason is RejectionReason.EXPIRED_OR_NOT_STARTED

    def test_minimum_is_inclusive(self, catalog, engine):
        catalog.add_promotion(make_promotion("MIN", min_order_paise=50000))

        assert engine.validate_and_price("MIN", cart_of(("p1", 50000, 1))).valid

    def test_usage_not_checked_for_guests(self, catalog, engine):
        catalog.add_promotion(make_promotion("VIP5", per_user_limit=1))

        assert engine.validate_and_price("VIP5", cart_of(("p1", 1000, 1))).valid
        assert catalog.called("get_user_promotion_usage_count") == []

    def test_usage_not_checked_when_unlimited(self, catalog, engine):
        catalog.add_promotion(make_promotion("ANY", per_user_limit=0))

        assert engine.validate_and_price("ANY", cart_of(("p1", 1000, 1)), Shopper(id="u")).valid
        assert catalog.called("get_user_promotion_usage_count") == []

    def test_under_usage_limit(self, catalog, engine):
        catalog.add_promotion(make_promotion("TWICE", id="3", per_user_limit=2))
        catalog.usage[("u", "3")] = 1

        assert engine.validate_and_price("TWICE", cart_of(("p1", 1000, 1)), Shopper(id="u")).valid
        assert catalog.called("get_user_promotion_usage_count") == [("get_user_promotion_usage_count", "u", "3")]


class TestScope:
    def test_product_scope_beats_category_scope(self, catalog, engine):
        catalog.add_promotion(make_promotion(
            "BOTH",
            applicable_product_ids=frozenset({"ball"}),
            applicable_category_ids=frozenset({"dog-food"}),
        ))
        catalog.add_product("kibble", "dog-food")
        catalog.add_product("ball", "toys")

        result = engine.validate_and_price("BOTH", cart_of(("kibble", 100000, 1), ("ball", 50000, 2)))

        assert result.scope is PromotionScope.PRODUCTS
        assert result.matched_item_ids == ("ball",)
        assert result.applicable_subtotal_paise == 100000
        assert result.discount_paise == 10000
        assert catalog.called("get_products_by_ids") == []

    def test_product_scope_without_match(self, catalog, engine):
        catalog.add_promotion(make_promotion("ONLYBALL", applicable_product_ids=frozenset({"ball"})))

        result = engine.validate_and_price("ONLYBALL", cart_of(("kibble", 100000, 1)))

        assert result.reason is RejectionReason.NOT_APPLICABLE_TO_CART

    def test_category_scope_ignores_unknown_products(self, catalog, engine):
        catalog.add_promotion(make_promotion("DOGS", applicable_category_ids=frozenset({"dog-food"})))

        result = engine.validate_and_price("DOGS", cart_of(("ghost", 100000, 1)))

        assert result.reason is RejectionReason.NOT_APPLICABLE_TO_CART

    def test_category_scope_looks_up_each_product_once(self, catalog, engine):
        catalog.add_promotion(make_promotion("DOGS", applicable_category_ids=frozenset({"dog-food"})))
        catalog.add_product("kibble", "dog-food")

        result = engine.validate_and_price("DOGS", cart_of(("kibble", 1000, 1), ("kibble", 1000, 2)))

        assert catalog.called("get_products_by_ids") == [("get_products_by_ids", ("kibble",))]
        assert result.applicable_subtotal_paise == 3000
        assert result.matched_item_ids == ("kibble",)

    def test_whole_cart_uses_cart_subtotal(self, catalog, engine):
        catalog.add_promotion(make_promotion("SAVE10"))

        # Subtotal supplied by the checkout can include lines priced elsewhere
        result = engine.validate_and_price("SAVE10", cart_of(("a", 1000, 1), ("b", 2000, 1), subtotal=5000))

        assert result.applicable_subtotal_paise == 5000
        assert result.discount_paise == 500
        assert result.matched_item_ids == ("a", "b")

    def test_resolve_scope(self):
        assert resolve_scope(make_promotion()) is PromotionScope.CART
        assert resolve_scope(make_promotion(applicable_category_ids=frozenset({"c"}))) is PromotionScope.CATEGORIES
        assert resolve_scope(make_promotion(applicable_product_ids=frozenset({"p"}))) is PromotionScope.PRODUCTS


class TestDiscount:
    def test_flat_is_not_scaled(self, catalog, engine):
        catalog.add_promotion(make_promotion(
            "FLAT50", is_percentage=False, amount_off_paise=5000, applicable_product_ids=frozenset({"a", "b"}),
        ))

        result = engine.validate_and_price("FLAT50", cart_of(("a", 100000, 3), ("b", 100, 1)))

        assert result.discount_paise == 5000

    def test_flat_is_capped(self):
        promotion = make_promotion(is_percentage=False, amount_off_paise=30000, max_discount_paise=25000)

        assert compute_discount(promotion, 10 ** 6) == 25000

    def test_zero_cap_means_uncapped(self):
        promotion = make_promotion(percent_off=Decimal("50"), max_discount_paise=0)

        assert compute_discount(promotion, 100000) == 50000

    def test_percentage_rounds_half_up_to_paisa(self):
        promotion = make_promotion(percent_off=Decimal("12.5"))

        # 12.5% of ₹0.99 is 12.375 paise
        assert compute_discount(promotion, 99) == 12
        # 12.5% of ₹1.00 is 12.5 paise
        assert compute_discount(promotion, 100) == 13


class TestFailuresAndPurity:
    def test_lookup_failure_propagates(self, catalog, engine):
        catalog.fail = True

        with pytest.raises(CatalogLookupError):
            engine.validate_and_price("SAVE10", cart_of(("p1", 1000, 1)))

    def test_usage_lookup_failure_propagates(self, catalog):
        catalog.add_promotion(make_promotion("VIP5", per_user_limit=1))

        def broken(user_id, promotion_id):
            raise CatalogLookupError("usage store down")

        catalog.get_user_promotion_usage_count = broken
        engine = build_engine(catalog)

        with pytest.raises(CatalogLookupError):
            engine.validate_and_price("VIP5", cart_of(("p1", 1000, 1)), Shopper(id="u"))

    def test_same_inputs_same_result(self, catalog, engine):
        catalog.add_promotion(make_promotion("DOGS", applicable_category_ids=frozenset({"dog-food"})))
        catalog.add_product("kibble", "dog-food")
        cart = cart_of(("kibble", 123456, 2))

        first = engine.validate_and_price("DOGS", cart, Shopper(id="u"))
        second = engine.validate_and_price("DOGS", cart, Shopper(id="u"))

        assert first == second
