"""Cart snapshots — the serializable form of a cart used by persistence adapters.

A snapshot holds exactly::

    items, store_id, store_name, order_type,
    subtotal, tax_amount, delivery_fee, total_amount,
    reorder_history

Totals are stored so a client can render a cold start without computing
anything, but they are never trusted on restore: item subtotals and cart
totals are recomputed from the items, and any drift is logged.
"""

import json
import math
from datetime import UTC, datetime

import structlog
from protean import atomic_change

from storefront.cart.cart import (
    Cart,
    CartItem,
    ProductInfo,
    ReorderHistoryEntry,
    StoreProduct,
    is_resolved_order_identity,
)
from storefront.cart.pricing import price_for
from storefront.cart.totals import OrderType

logger = structlog.get_logger(__name__)

SNAPSHOT_FIELDS = (
    "items",
    "store_id",
    "store_name",
    "order_type",
    "subtotal",
    "tax_amount",
    "delivery_fee",
    "total_amount",
    "reorder_history",
)

_TOTAL_FIELDS = ("subtotal", "tax_amount", "delivery_fee", "total_amount")


def _isoformat(value):
    return value.isoformat() if value else None


def _parse_datetime(value):
    if not value:
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    # Older snapshots were written without an offset; they are UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_snapshot(cart: Cart) -> dict:
    """Serialize the cart into a JSON-compatible dict."""
    return {
        "items": [
            {
                "id": str(item.id),
                "product": item.product.to_dict(),
                "store_product": item.store_product.to_dict(),
                "quantity": item.quantity,
                "subtotal": item.subtotal,
                "options": item.option_values,
                "added_at": _isoformat(item.added_at),
            }
            for item in cart.items
        ],
        "store_id": str(cart.store_id) if cart.store_id is not None else None,
        "store_name": cart.store_name,
        "order_type": cart.order_type,
        "subtotal": cart.subtotal,
        "tax_amount": cart.tax_amount,
        "delivery_fee": cart.delivery_fee,
        "total_amount": cart.total_amount,
        "reorder_history": [
            {
                "order_id": str(entry.order_id),
                "order_number": entry.order_number,
                "reordered_at": _isoformat(entry.reordered_at),
                "item_count": entry.item_count,
                "total_amount": entry.total_amount,
            }
            for entry in cart.reorder_history
        ],
    }


def from_snapshot(snapshot: dict | None, customer_id=None) -> Cart:
    """Rebuild a cart from a snapshot, recomputing everything derived.

    History entries without a resolved order identity are dropped.
    """
    cart = Cart.create(customer_id=customer_id)
    if not snapshot:
        return cart

    items = [_item_from_dict(data) for data in snapshot.get("items") or []]
    history = []
    for data in snapshot.get("reorder_history") or []:
        if not is_resolved_order_identity(data.get("order_id"), data.get("order_number")):
            logger.warning(
                "Dropping reorder history entry without a resolved order",
                order_id=data.get("order_id"),
                order_number=data.get("order_number"),
            )
            continue
        history.append(
            ReorderHistoryEntry(
                order_id=str(data["order_id"]),
                order_number=str(data["order_number"]),
                reordered_at=_parse_datetime(data.get("reordered_at")) or datetime.now(UTC),
                item_count=data.get("item_count") or 0,
                total_amount=data.get("total_amount") or 0.0,
            )
        )

    store_id = snapshot.get("store_id")
    with atomic_change(cart):
        cart.store_id = str(store_id) if store_id is not None else None
        cart.store_name = snapshot.get("store_name")
        cart.order_type = OrderType(snapshot.get("order_type") or OrderType.PICKUP.value).value
        for item in items:
            cart.add_items(item)
        for entry in history:
            cart.add_reorder_history(entry)
        cart._recalculate_totals()

    _log_total_drift(snapshot, cart)
    return cart


def _item_from_dict(data: dict) -> CartItem:
    store_product = StoreProduct(**data["store_product"])
    quantity = data["quantity"]
    stored_subtotal = data.get("subtotal")
    subtotal = price_for(store_product, quantity)
    if stored_subtotal is not None and not math.isclose(stored_subtotal, subtotal, abs_tol=1e-6):
        logger.warning(
            "Recomputed cart item subtotal differs from snapshot",
            product_id=store_product.product_id,
            stored=stored_subtotal,
            recomputed=subtotal,
        )

    options = data.get("options")
    item_kwargs = {
        "product": ProductInfo(**data["product"]),
        "store_product": store_product,
        "quantity": quantity,
        "subtotal": subtotal,
        "options": json.dumps(options if isinstance(options, dict) else {}),
        "added_at": _parse_datetime(data.get("added_at")),
    }
    if data.get("id"):
        item_kwargs["id"] = data["id"]
    return CartItem(**item_kwargs)


def _log_total_drift(snapshot: dict, cart: Cart) -> None:
    drifted = {
        name: snapshot[name]
        for name in _TOTAL_FIELDS
        if snapshot.get(name) is not None and not math.isclose(snapshot[name], getattr(cart, name), abs_tol=1e-6)
    }
    if drifted:
        logger.warning(
            "Snapshot totals were stale and have been recomputed",
            stored=drifted,
            subtotal=cart.subtotal,
            total_amount=cart.total_amount,
        )
