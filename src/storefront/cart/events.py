"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Cart")
class CartItemAdded:
    """A store product was added to the cart as a new line."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    store_id = Identifier(required=True)
    quantity = Integer(required=True)
    subtotal = Float(required=True)


@storefront.event(part_of="Cart")
class CartQuantityUpdated:
    """The quantity of an existing cart line changed."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    subtotal = Float(required=True)


@storefront.event(part_of="Cart")
class CartItemRemoved:
    """A line was removed from the cart."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartCleared:
    """The cart was emptied and its store binding released."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    previous_store_id = Identifier()
    cleared_item_count = Integer(required=True)


@storefront.event(part_of="Cart")
class CartStoreSwitched:
    """The cart was emptied and bound to a different store."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    previous_store_id = Identifier()
    store_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class OrderTypeChanged:
    """The fulfillment mode switched between pickup and delivery."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    order_type = String(required=True)
    delivery_fee = Float(required=True)


@storefront.event(part_of="Cart")
class CartRefilledFromOrder:
    """The cart contents were replaced with the lines of a previous order."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_number = String(required=True)
    store_id = Identifier(required=True)
    item_count = Integer(required=True)
    total_amount = Float(required=True)
    reordered_at = DateTime(required=True)
