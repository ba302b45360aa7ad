"""Cart session — one customer's cart wired to its collaborators.

The session is the composition root for the cart engine. It owns a single
``Cart`` and connects it to inventory (through the stock validator and the
reorder reconciler), the confirmation capability, snapshot persistence and
the checkout handoff. Independent sessions share nothing.

Cart mutations are synchronous. ``add_item`` and ``reorder`` are coroutines
because they may wait on the customer's confirmation or on inventory.
After every settled change a snapshot is saved; a failed save is logged and
otherwise ignored.
"""

import structlog

from storefront.cart.cart import Cart
from storefront.cart.results import CartMutation, MutationStatus
from storefront.cart.snapshot import from_snapshot, to_snapshot
from storefront.confirmation import ask
from storefront.inventory.validation import StockValidator
from storefront.reorder.handoff import CheckoutHandoff
from storefront.reorder.reconciler import ReorderReconciler
from storefront.reorder.results import ReorderStatus

logger = structlog.get_logger(__name__)


class CartSession:
    def __init__(
        self,
        inventory,
        confirmation=None,
        store=None,
        handoff=None,
        customer_id=None,
        stock_timeout=None,
    ):
        self.inventory = inventory
        self.confirmation = confirmation
        self.store = store
        self.handoff = handoff or CheckoutHandoff()
        self.customer_id = customer_id
        self.validator = StockValidator(inventory, timeout=stock_timeout)
        self.reconciler = ReorderReconciler(self.validator, handoff=self.handoff)
        self.cart = Cart.create(customer_id=customer_id)

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    def load(self) -> Cart:
        """Restore the cart from the snapshot store, if there is one."""
        if self.store is None:
            return self.cart

        try:
            snapshot = self.store.load()
            self.cart = from_snapshot(snapshot, customer_id=self.customer_id)
        except Exception as exc:
            logger.warning("Could not restore cart snapshot; starting empty", error=str(exc))
            self.cart = Cart.create(customer_id=self.customer_id)
        return self.cart

    def save(self) -> bool:
        if self.store is None:
            return False
        try:
            self.store.save(to_snapshot(self.cart))
        except Exception as exc:
            logger.warning("Could not save cart snapshot", error=str(exc), store_id=self.cart.store_id)
            return False
        return True

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    async def add_item(self, product, store_product, quantity=1, options=None, store_name=None, confirmation=None):
        """Add a product, asking before a product from another store empties the cart."""
        result = self.cart.add_item(product, store_product, quantity, options=options, store_name=store_name)

        if result.status == MutationStatus.CROSS_STORE_CONFLICT:
            conflict = result.conflict
            logger.info(
                "Cross-store add needs confirmation",
                current_store_id=conflict.current_store_id,
                requested_store_id=conflict.requested_store_id,
            )
            confirmed = await ask(confirmation or self.confirmation, conflict.prompt)
            if not confirmed:
                return CartMutation(
                    MutationStatus.DECLINED,
                    product_id=result.product_id,
                    quantity=quantity,
                    conflict=conflict,
                )

            # The cart may have changed while the customer was deciding
            result = self.cart.add_item(product, store_product, quantity, options=options, store_name=store_name)
            if result.status == MutationStatus.CROSS_STORE_CONFLICT:
                self.cart.switch_store(store_product.store_id, store_name)
                result = self.cart.add_item(product, store_product, quantity, options=options, store_name=store_name)
                if not result.ok:
                    # The switch already emptied the cart
                    self.save()

        self._settle(result)
        return result

    def update_quantity(self, product_id, quantity) -> CartMutation:
        result = self.cart.update_quantity(product_id, quantity)
        self._settle(result)
        return result

    def remove_item(self, product_id) -> CartMutation:
        result = self.cart.remove_item(product_id)
        self._settle(result)
        return result

    def clear_cart(self) -> None:
        self.cart.clear()
        self.save()

    def set_order_type(self, order_type) -> None:
        self.cart.set_order_type(order_type)
        self.save()

    async def reorder(self, request, confirmation=None):
        result = await self.reconciler.reorder(self.cart, request, confirmation=confirmation or self.confirmation)
        if result.status == ReorderStatus.COMMITTED:
            self.save()
        return result

    async def verify_stock(self):
        return await self.validator.verify_cart(self.cart)

    # -------------------------------------------------------------------
    # Checkout surface
    # -------------------------------------------------------------------
    @property
    def item_count(self) -> int:
        return self.cart.item_count

    def reorder_history(self):
        return self.cart.history()

    def checkout_view(self) -> dict:
        """What checkout reads: lines, store, fulfillment mode and totals."""
        cart = self.cart
        return {
            "items": [
                {
                    "item_id": str(item.id),
                    "product_id": str(item.product_id),
                    "product_name": item.product.name,
                    "unit_price": item.store_product.price,
                    "discount_rate": item.store_product.discount_rate,
                    "promotion_type": item.store_product.promotion_type,
                    "promotion_label": item.store_product.promotion_label,
                    "quantity": item.quantity,
                    "subtotal": item.subtotal,
                    "options": item.option_values,
                }
                for item in cart.items
            ],
            "store_id": str(cart.store_id) if cart.store_id is not None else None,
            "store_name": cart.store_name,
            "order_type": cart.order_type,
            "item_count": cart.item_count,
            "subtotal": cart.subtotal,
            "tax_amount": cart.tax_amount,
            "delivery_fee": cart.delivery_fee,
            "total_amount": cart.total_amount,
            "delivery_address": self.handoff.pending_delivery_address,
        }

    def _settle(self, result: CartMutation) -> None:
        if result.ok:
            self.save()
        elif result.stock is not None:
            logger.info(
                "Cart change rejected: insufficient stock",
                product_id=result.stock.product_id,
                requested=result.stock.requested,
                available=result.stock.available,
            )


class SessionRegistry:
    """Cart sessions by key, created on first use."""

    def __init__(self, inventory, store_factory=None, confirmation=None):
        self.inventory = inventory
        self.store_factory = store_factory
        self.confirmation = confirmation
        self._sessions: dict[str, CartSession] = {}

    def get(self, key: str) -> CartSession:
        session = self._sessions.get(key)
        if session is None:
            store = self.store_factory(key) if self.store_factory else None
            session = CartSession(self.inventory, confirmation=self.confirmation, store=store)
            session.load()
            self._sessions[key] = session
        return session

    def __contains__(self, key) -> bool:
        return key in self._sessions
