"""Stock validation — compares desired quantities with live store inventory.

Every lookup is bounded by ``Config.STOCK_QUERY_TIMEOUT``. A lookup that
times out classifies its line as "validation failed" rather than blocking
the caller.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum

import structlog

from storefront.cart.results import FailureCode, StockInsufficient
from storefront.inventory.gateway import CatalogEntry
from storefront.settings import Config

logger = structlog.get_logger(__name__)


class UnavailableReason(Enum):
    MISSING = "missing"
    DISCONTINUED = "discontinued"
    STOCK_INSUFFICIENT = "stock_insufficient"
    VALIDATION_FAILED = "validation_failed"


@dataclass(frozen=True)
class UnavailableItem:
    """A requested line that cannot be placed in the cart, and why."""

    product_id: str
    product_name: str
    reason: UnavailableReason
    requested: int
    available: int | None = None

    def describe(self) -> str:
        if self.reason == UnavailableReason.MISSING:
            return f"{self.product_name} (product information not found)"
        if self.reason == UnavailableReason.DISCONTINUED:
            return f"{self.product_name} (no longer sold)"
        if self.reason == UnavailableReason.STOCK_INSUFFICIENT:
            return f"{self.product_name} (insufficient stock: {self.available}/{self.requested})"
        return f"{self.product_name} (stock could not be verified)"


@dataclass(frozen=True)
class StockCheck:
    product_id: str
    requested: int
    entry: CatalogEntry | None = None
    unavailable: UnavailableItem | None = None

    @property
    def available(self) -> bool:
        return self.unavailable is None


@dataclass(frozen=True)
class StockVerification:
    """Live stock compared against every line of a cart."""

    levels: dict = field(default_factory=dict)
    shortages: list[StockInsufficient] = field(default_factory=list)
    error: FailureCode | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.shortages


class StockValidator:
    def __init__(self, inventory, timeout: float | None = None):
        self.inventory = inventory
        self.timeout = Config.STOCK_QUERY_TIMEOUT if timeout is None else timeout

    async def check_line(self, store_id, product_id, product_name, quantity) -> StockCheck:
        """Classify one desired line against the store's current snapshot.

        Exceptions raised by the inventory collaborator propagate to the caller.
        """
        product_id = str(product_id)

        def unavailable(reason, available=None):
            return StockCheck(
                product_id=product_id,
                requested=quantity,
                unavailable=UnavailableItem(
                    product_id=product_id,
                    product_name=product_name,
                    reason=reason,
                    requested=quantity,
                    available=available,
                ),
            )

        try:
            entry = await asyncio.wait_for(
                self.inventory.get_store_product(str(store_id), product_id),
                timeout=self.timeout,
            )
        except TimeoutError:
            logger.warning(
                "Stock lookup timed out",
                store_id=str(store_id),
                product_id=product_id,
                timeout=self.timeout,
            )
            return unavailable(UnavailableReason.VALIDATION_FAILED)

        if entry is None:
            return unavailable(UnavailableReason.MISSING)

        store_product = entry.store_product
        if not store_product.is_available:
            return unavailable(UnavailableReason.DISCONTINUED, store_product.stock_quantity)
        if store_product.stock_quantity < quantity:
            return unavailable(UnavailableReason.STOCK_INSUFFICIENT, store_product.stock_quantity)

        return StockCheck(product_id=product_id, requested=quantity, entry=entry)

    async def check_lines(self, store_id, lines) -> list[StockCheck]:
        """Check every line concurrently. Results keep the order of ``lines``.

        If one lookup raises, the remaining lookups are cancelled and the error
        propagates inside an ``ExceptionGroup``.
        """
        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(self.check_line(store_id, line.product_id, line.product_name, line.quantity))
                for line in lines
            ]
        return [task.result() for task in tasks]

    async def verify_cart(self, cart) -> StockVerification:
        """Compare live stock with the quantity of every line in ``cart``."""
        if cart.store_id is None:
            return StockVerification(error=FailureCode.MISSING_STORE_BINDING)

        store_id = str(cart.store_id)
        product_ids = [str(item.product_id) for item in cart.items]
        if not product_ids:
            return StockVerification()

        try:
            levels = await asyncio.wait_for(
                self.inventory.get_stock(store_id, product_ids),
                timeout=self.timeout,
            )
        except TimeoutError:
            logger.warning("Stock verification timed out", store_id=store_id, timeout=self.timeout)
            return StockVerification(error=FailureCode.VALIDATION_FAILED)
        except Exception:
            logger.exception("Stock verification failed", store_id=store_id)
            return StockVerification(error=FailureCode.COLLABORATOR_ERROR)

        shortages = []
        for item in cart.items:
            available = levels.get(str(item.product_id), 0)
            if available < item.quantity:
                shortages.append(
                    StockInsufficient(
                        product_id=str(item.product_id),
                        product_name=item.product.name,
                        requested=item.quantity,
                        available=available,
                    )
                )

        if shortages:
            logger.info("Cart lines exceed live stock", store_id=store_id, shortage_count=len(shortages))
        return StockVerification(levels=dict(levels), shortages=shortages)
