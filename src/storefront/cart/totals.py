"""Totals for a cart: subtotal, tax, delivery fee and grand total.

Totals are always recomputed from the full list of item subtotals; there is
no incremental update path.
"""

from dataclasses import dataclass
from enum import Enum

from storefront.settings import Config


class OrderType(Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


@dataclass(frozen=True)
class CartTotals:
    subtotal: float = 0.0
    tax_amount: float = 0.0
    delivery_fee: float = 0.0
    total_amount: float = 0.0


def delivery_fee_for(subtotal: float, order_type: OrderType | str, config=Config) -> float:
    """Pickup is free; delivery is free at or above the free-shipping threshold."""
    if OrderType(order_type) == OrderType.PICKUP:
        return 0.0
    if subtotal >= config.FREE_SHIPPING_THRESHOLD:
        return 0.0
    return float(config.DELIVERY_FEE)


def calculate_totals(item_subtotals, order_type: OrderType | str, config=Config) -> CartTotals:
    subtotal = sum(item_subtotals, 0.0)
    tax_amount = subtotal * config.TAX_RATE
    delivery_fee = delivery_fee_for(subtotal, order_type, config)
    return CartTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        delivery_fee=delivery_fee,
        total_amount=subtotal + tax_amount + delivery_fee,
    )
