"""Checkout handoff: data a reorder passes to checkout outside the cart itself."""


class CheckoutHandoff:
    """Holds the delivery address restored by the latest delivery reorder."""

    def __init__(self):
        self._delivery_address: dict | None = None

    def publish_delivery_address(self, address: dict) -> None:
        self._delivery_address = dict(address)

    @property
    def pending_delivery_address(self) -> dict | None:
        return dict(self._delivery_address) if self._delivery_address is not None else None

    def take_delivery_address(self) -> dict | None:
        """Return the pending address and forget it; checkout consumes it once."""
        address, self._delivery_address = self._delivery_address, None
        return address
