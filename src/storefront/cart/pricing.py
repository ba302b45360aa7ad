"""Promotion pricing — the price of a quantity of one store product.

Promotions are applied on top of the store's discount rate:

    buy_one_get_one  pay for 1 of every 2 (an unpaired trailing unit is full price)
    buy_two_get_one  pay for 2 of every 3

Everything here is pure; the cart calls it whenever an item's quantity or
store snapshot changes.
"""

from enum import Enum


class PromotionType(Enum):
    BUY_ONE_GET_ONE = "buy_one_get_one"
    BUY_TWO_GET_ONE = "buy_two_get_one"


# Group size and paid units per group for each promotion tier
_PROMOTION_GROUPS = {
    PromotionType.BUY_ONE_GET_ONE: (2, 1),
    PromotionType.BUY_TWO_GET_ONE: (3, 2),
}


def base_unit_price(unit_price: float, discount_rate: float | None) -> float:
    """Unit price after the store discount rate."""
    if discount_rate and discount_rate > 0:
        return unit_price * (1 - discount_rate)
    return unit_price


def calculate_promotion_price(
    unit_price: float,
    discount_rate: float | None,
    promotion_type: PromotionType | str | None,
    quantity: int,
) -> float:
    """Subtotal for ``quantity`` units under the given discount and promotion tier.

    An absent or unrecognised promotion tier prices every unit at the
    discounted base price.
    """
    base_price = base_unit_price(unit_price, discount_rate)

    if not promotion_type:
        return base_price * quantity

    try:
        tier = PromotionType(promotion_type)
    except ValueError:
        return base_price * quantity

    group_size, paid_per_group = _PROMOTION_GROUPS[tier]
    groups, remainder = divmod(quantity, group_size)
    return base_price * paid_per_group * groups + base_price * remainder


def price_for(store_product, quantity: int) -> float:
    """Subtotal for ``quantity`` units of a store-scoped product snapshot."""
    return calculate_promotion_price(
        store_product.price,
        store_product.discount_rate,
        store_product.promotion_type,
        quantity,
    )
