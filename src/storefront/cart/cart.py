"""Cart aggregate — the customer's in-progress order at exactly one store.

The cart keeps a denormalized view of its lines: every item carries the
store-scoped product snapshot it was priced with, its quantity and its
promotion-priced subtotal. Cart totals are derived from the items and are
recomputed in full after every mutation.

Invariants, checked after every settled change:
    - every item belongs to the store the cart is bound to
    - no item quantity exceeds the last observed stock for that product
    - subtotal is the sum of item subtotals, and the total is
      subtotal + tax + delivery fee

Expected outcomes (insufficient stock, a product from another store, an
unknown line) are returned as ``CartMutation`` results and leave the cart
untouched. Malformed input raises ``ValidationError``.
"""

import json
import math
from dataclasses import dataclass
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartRefilledFromOrder,
    CartStoreSwitched,
    OrderTypeChanged,
)
from storefront.cart.pricing import PromotionType, price_for
from storefront.cart.results import CartMutation, CrossStoreConflict, MutationStatus, StockInsufficient
from storefront.cart.totals import OrderType, calculate_totals
from storefront.domain import storefront

# Placeholder identities written by older clients when a reorder had no order attached
_UNRESOLVED_ORDER_IDENTITIES = frozenset({"", "unknown", "none", "null"})


def is_resolved_order_identity(order_id, order_number) -> bool:
    """True when both the order id and the order number identify a real order."""
    for value in (order_id, order_number):
        if value is None or str(value).strip().lower() in _UNRESOLVED_ORDER_IDENTITIES:
            return False
    return True


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Cart")
class ProductInfo:
    """Catalog product reference. Owned by the catalog; read-only in the cart."""

    product_id = String(required=True, max_length=100)
    name = String(required=True, max_length=255)
    brand = String(max_length=100)
    unit = String(max_length=50)
    image_url = String(max_length=1024)


@storefront.value_object(part_of="Cart")
class StoreProduct:
    """A product as sold by one store: price, discount, stock and promotion.

    The stock quantity is the level observed when the snapshot was taken. The
    cart never changes it; a fresh observation replaces the whole snapshot.
    """

    store_product_id = String(max_length=100)
    store_id = String(required=True, max_length=100)
    product_id = String(required=True, max_length=100)
    price = Float(required=True, min_value=0.0)
    stock_quantity = Integer(default=0, min_value=0)
    discount_rate = Float(default=0.0, min_value=0.0, max_value=1.0)
    is_available = Boolean(default=True)
    promotion_type = String(choices=PromotionType)
    promotion_label = String(max_length=100)


@dataclass(frozen=True)
class CartLine:
    """A line to place into the cart wholesale, see ``Cart.replace_contents``."""

    product: ProductInfo
    store_product: StoreProduct
    quantity: int
    options: dict | None = None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Cart")
class CartItem:
    """One cart line. Its id is the line's own identity, not the product id."""

    product = ValueObject(ProductInfo, required=True)
    store_product = ValueObject(StoreProduct, required=True)
    quantity = Integer(required=True, min_value=1)
    subtotal = Float(default=0.0)
    options = Text()  # JSON object of variant selections, carried through untouched
    added_at = DateTime()

    @property
    def product_id(self):
        return self.product.product_id

    @property
    def option_values(self) -> dict:
        return json.loads(self.options) if self.options else {}


@storefront.entity(part_of="Cart")
class ReorderHistoryEntry:
    """A past order that was loaded back into the cart. Kept for recall only."""

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=100)
    reordered_at = DateTime(required=True)
    item_count = Integer(default=0)
    total_amount = Float(default=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Cart:
    customer_id = Identifier()
    store_id = Identifier()  # None while the cart has never been bound or was cleared
    store_name = String(max_length=255)
    order_type = String(choices=OrderType, default=OrderType.PICKUP.value)
    items = HasMany(CartItem)
    subtotal = Float(default=0.0)
    tax_amount = Float(default=0.0)
    delivery_fee = Float(default=0.0)
    total_amount = Float(default=0.0)
    reorder_history = HasMany(ReorderHistoryEntry)
    updated_at = DateTime()

    @invariant.post
    def items_must_belong_to_the_bound_store(self):
        for item in self.items:
            if self.store_id is None or str(item.store_product.store_id) != str(self.store_id):
                raise ValidationError({"items": ["All cart items must come from the store the cart is bound to"]})

    @invariant.post
    def quantities_cannot_exceed_observed_stock(self):
        for item in self.items:
            if item.quantity > item.store_product.stock_quantity:
                raise ValidationError({"items": [f"Quantity of {item.product_id} exceeds the available stock"]})

    @invariant.post
    def totals_must_match_items(self):
        expected_subtotal = sum((item.subtotal for item in self.items), 0.0)
        if not math.isclose(self.subtotal or 0.0, expected_subtotal, abs_tol=1e-6):
            raise ValidationError({"subtotal": ["Subtotal must equal the sum of item subtotals"]})

        expected_total = (self.subtotal or 0.0) + (self.tax_amount or 0.0) + (self.delivery_fee or 0.0)
        if not math.isclose(self.total_amount or 0.0, expected_total, abs_tol=1e-6):
            raise ValidationError({"total_amount": ["Total must equal subtotal plus tax and delivery fee"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None):
        return cls(
            customer_id=customer_id,
            order_type=OrderType.PICKUP.value,
            updated_at=datetime.now(UTC),
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def item_count(self) -> int:
        """Total number of units across all lines."""
        return sum(item.quantity for item in self.items)

    def find_item(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def is_bound_to(self, store_id) -> bool:
        return self.store_id is not None and str(self.store_id) == str(store_id)

    def history(self):
        """Reorder history, most recent first."""
        return sorted(self.reorder_history, key=lambda entry: entry.reordered_at, reverse=True)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product, store_product, quantity=1, options=None, store_name=None):
        """Add ``quantity`` units of a store product, merging into an existing line.

        A product from another store is reported as a cross-store conflict while
        the cart holds items; the caller decides whether to ``switch_store``.
        """
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        product_id = str(product.product_id)
        requested_store_id = str(store_product.store_id)

        if self.items and not self.is_bound_to(requested_store_id):
            return CartMutation(
                MutationStatus.CROSS_STORE_CONFLICT,
                product_id=product_id,
                quantity=quantity,
                conflict=CrossStoreConflict(
                    current_store_id=str(self.store_id),
                    requested_store_id=requested_store_id,
                ),
            )

        if not store_product.is_available:
            return CartMutation(MutationStatus.UNAVAILABLE, product_id=product_id, quantity=quantity)

        existing = self.find_item(product_id)
        new_quantity = quantity + (existing.quantity if existing else 0)
        if new_quantity > store_product.stock_quantity:
            return CartMutation(
                MutationStatus.STOCK_INSUFFICIENT,
                product_id=product_id,
                quantity=quantity,
                stock=StockInsufficient(
                    product_id=product_id,
                    product_name=product.name,
                    requested=new_quantity,
                    available=store_product.stock_quantity,
                ),
            )

        now = datetime.now(UTC)
        with atomic_change(self):
            if not self.is_bound_to(requested_store_id):
                self.store_id = requested_store_id
                self.store_name = store_name
            elif store_name:
                self.store_name = store_name

            if existing:
                previous_quantity = existing.quantity
                existing.store_product = store_product
                existing.quantity = new_quantity
                existing.subtotal = price_for(store_product, new_quantity)
                item = existing
            else:
                item = CartItem(
                    product=product,
                    store_product=store_product,
                    quantity=quantity,
                    subtotal=price_for(store_product, quantity),
                    options=json.dumps(options or {}),
                    added_at=now,
                )
                self.add_items(item)

            self._recalculate_totals(now)

        if existing:
            self.raise_(
                CartQuantityUpdated(
                    cart_id=str(self.id),
                    item_id=str(item.id),
                    product_id=product_id,
                    previous_quantity=previous_quantity,
                    new_quantity=new_quantity,
                    subtotal=item.subtotal,
                )
            )
        else:
            self.raise_(
                CartItemAdded(
                    cart_id=str(self.id),
                    item_id=str(item.id),
                    product_id=product_id,
                    store_id=requested_store_id,
                    quantity=quantity,
                    subtotal=item.subtotal,
                )
            )

        return CartMutation.applied(product_id, new_quantity)

    def update_quantity(self, product_id, quantity):
        """Set the quantity of a line. Zero or less removes the line."""
        if quantity is None or quantity <= 0:
            return self.remove_item(product_id)

        item = self.find_item(product_id)
        if item is None:
            return CartMutation(MutationStatus.NOT_IN_CART, product_id=str(product_id), quantity=quantity)

        if quantity > item.store_product.stock_quantity:
            return CartMutation(
                MutationStatus.STOCK_INSUFFICIENT,
                product_id=str(product_id),
                quantity=quantity,
                stock=StockInsufficient(
                    product_id=str(product_id),
                    product_name=item.product.name,
                    requested=quantity,
                    available=item.store_product.stock_quantity,
                ),
            )

        previous_quantity = item.quantity
        with atomic_change(self):
            item.quantity = quantity
            item.subtotal = price_for(item.store_product, quantity)
            self._recalculate_totals()

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
                subtotal=item.subtotal,
            )
        )
        return CartMutation.applied(str(product_id), quantity)

    def remove_item(self, product_id):
        """Drop a line. The store binding survives even if the cart becomes empty."""
        item = self.find_item(product_id)
        if item is None:
            return CartMutation(MutationStatus.NOT_IN_CART, product_id=str(product_id))

        with atomic_change(self):
            self.remove_items(item)
            self._recalculate_totals()

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product_id),
            )
        )
        return CartMutation.applied(str(product_id), 0)

    # -------------------------------------------------------------------
    # Cart-wide changes
    # -------------------------------------------------------------------
    def clear(self):
        """Reset items, store binding, order type and totals. Reorder history is kept."""
        previous_store_id = self.store_id
        cleared_item_count = len(self.items)

        with atomic_change(self):
            self._reset()

        if cleared_item_count or previous_store_id is not None:
            self.raise_(
                CartCleared(
                    cart_id=str(self.id),
                    previous_store_id=str(previous_store_id) if previous_store_id is not None else None,
                    cleared_item_count=cleared_item_count,
                )
            )

    def switch_store(self, store_id, store_name=None):
        """Empty the cart and bind it to ``store_id``."""
        previous_store_id = self.store_id

        with atomic_change(self):
            self._reset()
            self.store_id = str(store_id)
            self.store_name = store_name

        self.raise_(
            CartStoreSwitched(
                cart_id=str(self.id),
                previous_store_id=str(previous_store_id) if previous_store_id is not None else None,
                store_id=str(store_id),
            )
        )

    def set_order_type(self, order_type):
        try:
            mode = OrderType(order_type)
        except ValueError:
            raise ValidationError({"order_type": [f"Unknown order type: {order_type}"]}) from None

        with atomic_change(self):
            self.order_type = mode.value
            self._recalculate_totals()

        self.raise_(
            OrderTypeChanged(
                cart_id=str(self.id),
                order_type=mode.value,
                delivery_fee=self.delivery_fee,
            )
        )

    def replace_contents(self, store_id, store_name, order_type, lines):
        """Replace everything in the cart with ``lines`` from one store, in one step.

        All lines are checked before anything changes, so a rejected replacement
        leaves the cart exactly as it was.
        """
        mode = OrderType(order_type)
        seen = set()
        for line in lines:
            line_product_id = str(line.product.product_id)
            if str(line.store_product.store_id) != str(store_id):
                raise ValidationError({"items": [f"{line_product_id} is not sold by store {store_id}"]})
            if line_product_id in seen:
                raise ValidationError({"items": [f"{line_product_id} appears more than once"]})
            if line.quantity < 1 or line.quantity > line.store_product.stock_quantity:
                raise ValidationError({"items": [f"Invalid quantity {line.quantity} for {line_product_id}"]})
            seen.add(line_product_id)

        now = datetime.now(UTC)
        with atomic_change(self):
            self._reset()
            self.store_id = str(store_id)
            self.store_name = store_name
            self.order_type = mode.value
            for line in lines:
                self.add_items(
                    CartItem(
                        product=line.product,
                        store_product=line.store_product,
                        quantity=line.quantity,
                        subtotal=price_for(line.store_product, line.quantity),
                        options=json.dumps(line.options or {}),
                        added_at=now,
                    )
                )
            self._recalculate_totals(now)

    # -------------------------------------------------------------------
    # Reorder history
    # -------------------------------------------------------------------
    def record_reorder(self, order_id, order_number, reordered_at=None):
        """Append a history entry for a reorder that was just committed."""
        if not is_resolved_order_identity(order_id, order_number):
            raise ValidationError({"order_id": ["Reorder history requires a resolved order identity"]})

        reordered_at = reordered_at or datetime.now(UTC)
        entry = ReorderHistoryEntry(
            order_id=str(order_id),
            order_number=str(order_number),
            reordered_at=reordered_at,
            item_count=len(self.items),
            total_amount=self.total_amount,
        )
        self.add_reorder_history(entry)

        self.raise_(
            CartRefilledFromOrder(
                cart_id=str(self.id),
                order_id=str(order_id),
                order_number=str(order_number),
                store_id=str(self.store_id),
                item_count=entry.item_count,
                total_amount=entry.total_amount,
                reordered_at=reordered_at,
            )
        )
        return entry

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _reset(self):
        for item in list(self.items):
            self.remove_items(item)
        self.store_id = None
        self.store_name = None
        self.order_type = OrderType.PICKUP.value
        self._recalculate_totals()

    def _recalculate_totals(self, now=None):
        totals = calculate_totals([item.subtotal for item in self.items], self.order_type)
        self.subtotal = totals.subtotal
        self.tax_amount = totals.tax_amount
        self.delivery_fee = totals.delivery_fee
        self.total_amount = totals.total_amount
        self.updated_at = now or datetime.now(UTC)
