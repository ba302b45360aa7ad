"""Reorder requests and outcomes."""

from dataclasses import dataclass, field
from enum import Enum

from protean.exceptions import ValidationError

from storefront.cart.cart import is_resolved_order_identity
from storefront.cart.results import FailureCode
from storefront.cart.totals import OrderType
from storefront.inventory.validation import UnavailableItem


class ReorderStatus(Enum):
    COMMITTED = "committed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class ReorderLine:
    """One line of a past order, as it was ordered."""

    product_id: str
    product_name: str
    quantity: int
    options: dict | None = None


@dataclass(frozen=True)
class ReorderRequest:
    """A past order to load back into the cart.

    The order identity is required up front so that a committed reorder can
    always be recorded in the history.
    """

    order_id: str
    order_number: str
    store_id: str | None
    store_name: str | None
    lines: tuple[ReorderLine, ...]
    order_type: OrderType = OrderType.PICKUP
    delivery_address: dict | None = None

    def __post_init__(self):
        if not is_resolved_order_identity(self.order_id, self.order_number):
            raise ValidationError({"order_id": ["A reorder needs the id and number of the original order"]})
        try:
            object.__setattr__(self, "order_type", OrderType(self.order_type))
        except ValueError:
            raise ValidationError({"order_type": [f"Unknown order type: {self.order_type}"]}) from None
        object.__setattr__(self, "lines", tuple(self.lines))
        if not self.lines:
            raise ValidationError({"lines": ["A reorder needs at least one line"]})
        if any(line.quantity < 1 for line in self.lines):
            raise ValidationError({"lines": ["Every reorder line needs a quantity of at least 1"]})

    def merged_lines(self) -> list[ReorderLine]:
        """Lines with repeated products folded into one, in first-seen order."""
        merged: dict[str, ReorderLine] = {}
        for line in self.lines:
            key = str(line.product_id)
            if key in merged:
                previous = merged[key]
                merged[key] = ReorderLine(
                    product_id=key,
                    product_name=previous.product_name,
                    quantity=previous.quantity + line.quantity,
                    options=previous.options,
                )
            else:
                merged[key] = ReorderLine(key, line.product_name, line.quantity, line.options)
        return list(merged.values())


@dataclass(frozen=True)
class ReorderResult:
    status: ReorderStatus
    message: str
    unavailable_items: list[UnavailableItem] = field(default_factory=list)
    item_count: int = 0
    total_amount: float = 0.0
    error: FailureCode | None = None

    @property
    def ok(self) -> bool:
        return self.status == ReorderStatus.COMMITTED

    def describe_unavailable(self) -> list[str]:
        return [item.describe() for item in self.unavailable_items]
