"""Pydantic request/response schemas for the Storefront cart API.

These are external contracts, kept apart from the Cart aggregate and the
session result values.
"""

from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    store_id: str
    product_id: str
    quantity: int = Field(ge=1, default=1)
    store_name: str | None = None
    options: dict | None = None
    confirm_store_switch: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "store_id": "store-gangnam",
                    "product_id": "prod-cola-500",
                    "quantity": 2,
                    "confirm_store_switch": False,
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int


class SetOrderTypeRequest(BaseModel):
    order_type: Literal["pickup", "delivery"]


class ReorderLineSchema(BaseModel):
    product_id: str
    product_name: str
    quantity: int = Field(ge=1)
    options: dict | None = None


class ReorderRequestSchema(BaseModel):
    order_id: str
    order_number: str
    store_id: str | None = None
    store_name: str | None = None
    order_type: Literal["pickup", "delivery"] = "pickup"
    delivery_address: dict | None = None
    lines: list[ReorderLineSchema] = Field(min_length=1)
    confirm_store_switch: bool = False


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartItemSchema(BaseModel):
    item_id: str
    product_id: str
    product_name: str
    unit_price: float
    discount_rate: float | None = None
    promotion_type: str | None = None
    promotion_label: str | None = None
    quantity: int
    subtotal: float
    options: dict = Field(default_factory=dict)


class CartResponse(BaseModel):
    items: list[CartItemSchema] = Field(default_factory=list)
    store_id: str | None = None
    store_name: str | None = None
    order_type: str
    item_count: int = 0
    subtotal: float = 0.0
    tax_amount: float = 0.0
    delivery_fee: float = 0.0
    total_amount: float = 0.0
    delivery_address: dict | None = None


class MutationResponse(BaseModel):
    status: str
    message: str
    cart: CartResponse


class UnavailableItemSchema(BaseModel):
    product_id: str
    product_name: str
    reason: str
    requested: int
    available: int | None = None
    description: str


class ReorderResponse(BaseModel):
    status: str
    message: str
    unavailable_items: list[UnavailableItemSchema] = Field(default_factory=list)
    item_count: int = 0
    total_amount: float = 0.0
    error: str | None = None
    cart: CartResponse


class ReorderHistoryEntrySchema(BaseModel):
    order_id: str
    order_number: str
    reordered_at: str
    item_count: int
    total_amount: float


class StockShortageSchema(BaseModel):
    product_id: str
    product_name: str
    requested: int
    available: int


class StockCheckResponse(BaseModel):
    ok: bool
    shortages: list[StockShortageSchema] = Field(default_factory=list)
    error: str | None = None


class StatusResponse(BaseModel):
    status: str = "ok"
