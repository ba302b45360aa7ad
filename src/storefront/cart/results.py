"""Outcomes of cart mutations.

Mutations never raise for expected business outcomes (insufficient stock,
a cross-store conflict, an item that is not in the cart). They return a
``CartMutation`` describing what happened so the caller can render it.
"""

from dataclasses import dataclass
from enum import Enum

from storefront.confirmation import STORE_SWITCH_PROMPT


class FailureCode(Enum):
    """Why an operation could not run at all."""

    MISSING_STORE_BINDING = "missing_store_binding"
    VALIDATION_FAILED = "validation_failed"
    COLLABORATOR_ERROR = "collaborator_error"


class MutationStatus(Enum):
    APPLIED = "applied"
    STOCK_INSUFFICIENT = "stock_insufficient"
    CROSS_STORE_CONFLICT = "cross_store_conflict"
    DECLINED = "declined"
    NOT_IN_CART = "not_in_cart"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class StockInsufficient:
    product_id: str
    product_name: str
    requested: int
    available: int

    @property
    def message(self) -> str:
        return f"{self.product_name}: insufficient stock (requested {self.requested}, available {self.available})"


@dataclass(frozen=True)
class CrossStoreConflict:
    current_store_id: str
    requested_store_id: str

    @property
    def prompt(self) -> str:
        return STORE_SWITCH_PROMPT


@dataclass(frozen=True)
class CartMutation:
    status: MutationStatus
    product_id: str | None = None
    quantity: int | None = None
    stock: StockInsufficient | None = None
    conflict: CrossStoreConflict | None = None

    @property
    def ok(self) -> bool:
        return self.status == MutationStatus.APPLIED

    @property
    def message(self) -> str:
        if self.stock is not None:
            return self.stock.message
        if self.conflict is not None:
            return self.conflict.prompt
        if self.status == MutationStatus.DECLINED:
            return "Cart left unchanged."
        if self.status == MutationStatus.NOT_IN_CART:
            return f"Product {self.product_id} is not in the cart."
        if self.status == MutationStatus.UNAVAILABLE:
            return f"Product {self.product_id} is not currently sold at this store."
        return "Cart updated."

    @classmethod
    def applied(cls, product_id, quantity):
        return cls(MutationStatus.APPLIED, product_id=product_id, quantity=quantity)
