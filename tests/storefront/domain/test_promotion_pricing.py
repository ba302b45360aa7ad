import pytest

from storefront.cart.pricing import (
    PromotionType,
    base_unit_price,
    calculate_promotion_price,
    price_for,
)


class TestBaseUnitPrice:
    def test_no_discount_keeps_price(self):
        assert base_unit_price(1000.0, 0.0) == 1000.0

    def test_missing_discount_keeps_price(self):
        assert base_unit_price(1000.0, None) == 1000.0

    def test_discount_reduces_price(self):
        assert base_unit_price(1000.0, 0.2) == pytest.approx(800.0)


class TestWithoutPromotion:
    def test_discounted_quantity(self):
        assert calculate_promotion_price(1000.0, 0.2, None, 4) == pytest.approx(3200.0)

    def test_plain_quantity(self):
        assert calculate_promotion_price(1500.0, 0.0, None, 3) == pytest.approx(4500.0)

    def test_zero_quantity_costs_nothing(self):
        assert calculate_promotion_price(1000.0, 0.2, None, 0) == 0.0

    def test_unknown_tier_prices_every_unit(self):
        assert calculate_promotion_price(1000.0, 0.0, "buy_five_get_nine", 4) == pytest.approx(4000.0)


class TestBuyOneGetOne:
    @pytest.mark.parametrize(
        "quantity, expected",
        [
            (0, 0.0),
            (1, 1000.0),
            (2, 1000.0),
            (3, 2000.0),
            (4, 2000.0),
            (5, 3000.0),
        ],
    )
    def test_every_second_unit_is_free(self, quantity, expected):
        assert calculate_promotion_price(1000.0, 0.0, "buy_one_get_one", quantity) == pytest.approx(expected)

    def test_accepts_enum_member(self):
        assert calculate_promotion_price(1000.0, 0.0, PromotionType.BUY_ONE_GET_ONE, 3) == pytest.approx(2000.0)

    def test_discount_applies_before_promotion(self):
        assert calculate_promotion_price(1000.0, 0.1, "buy_one_get_one", 2) == pytest.approx(900.0)


class TestBuyTwoGetOne:
    @pytest.mark.parametrize(
        "quantity, expected",
        [
            (0, 0.0),
            (1, 900.0),
            (2, 1800.0),
            (3, 1800.0),
            (5, 3600.0),
            (6, 3600.0),
            (7, 4500.0),
        ],
    )
    def test_every_third_unit_is_free(self, quantity, expected):
        assert calculate_promotion_price(900.0, 0.0, "buy_two_get_one", quantity) == pytest.approx(expected)


def test_price_for_reads_the_store_snapshot(entry_factory):
    entry = entry_factory("chips", price=2000.0, promotion_type="buy_one_get_one")
    assert price_for(entry.store_product, 3) == pytest.approx(4000.0)
