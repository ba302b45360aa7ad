"""FastAPI routes for the Storefront cart.

Each cart is addressed by a session key. Business outcomes (insufficient
stock, a declined store switch, unavailable reorder lines) are returned as
200 responses with a ``status`` field; malformed input is rejected with 400.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from protean.exceptions import ValidationError

from storefront.api.schemas import (
    AddCartItemRequest,
    CartResponse,
    MutationResponse,
    ReorderHistoryEntrySchema,
    ReorderRequestSchema,
    ReorderResponse,
    SetOrderTypeRequest,
    StatusResponse,
    StockCheckResponse,
    StockShortageSchema,
    UnavailableItemSchema,
    UpdateCartItemRequest,
)
from storefront.confirmation import PresetConfirmation
from storefront.reorder.results import ReorderLine, ReorderRequest
from storefront.session import CartSession
from storefront.utils.logging import bind_cart_context, clear_cart_context


cart_router = APIRouter(prefix="/carts", tags=["carts"])


def get_session(session_key: str, request: Request) -> CartSession:
    clear_cart_context()
    bind_cart_context(session_key=session_key)
    return request.app.state.cart_sessions.get(session_key)


def _cart_response(session: CartSession) -> CartResponse:
    return CartResponse(**session.checkout_view())


def _mutation_response(session: CartSession, result) -> MutationResponse:
    return MutationResponse(status=result.status.value, message=result.message, cart=_cart_response(session))


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
@cart_router.get("/{session_key}", response_model=CartResponse)
async def get_cart(session: CartSession = Depends(get_session)) -> CartResponse:
    return _cart_response(session)


@cart_router.delete("/{session_key}", response_model=StatusResponse)
async def clear_cart(session: CartSession = Depends(get_session)) -> StatusResponse:
    session.clear_cart()
    return StatusResponse()


@cart_router.put("/{session_key}/order-type", response_model=CartResponse)
async def set_order_type(body: SetOrderTypeRequest, session: CartSession = Depends(get_session)) -> CartResponse:
    session.set_order_type(body.order_type)
    return _cart_response(session)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------
@cart_router.post("/{session_key}/items", response_model=MutationResponse)
async def add_cart_item(body: AddCartItemRequest, session: CartSession = Depends(get_session)) -> MutationResponse:
    """Add a product at the price, discount and stock the store reports right now."""
    entry = await session.inventory.get_store_product(body.store_id, body.product_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Product {body.product_id} is not sold at {body.store_id}")

    try:
        result = await session.add_item(
            entry.product,
            entry.store_product,
            body.quantity,
            options=body.options,
            store_name=body.store_name,
            confirmation=PresetConfirmation(body.confirm_store_switch),
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc
    return _mutation_response(session, result)


@cart_router.put("/{session_key}/items/{product_id}", response_model=MutationResponse)
async def update_cart_item(
    product_id: str,
    body: UpdateCartItemRequest,
    session: CartSession = Depends(get_session),
) -> MutationResponse:
    result = session.update_quantity(product_id, body.quantity)
    return _mutation_response(session, result)


@cart_router.delete("/{session_key}/items/{product_id}", response_model=MutationResponse)
async def remove_cart_item(product_id: str, session: CartSession = Depends(get_session)) -> MutationResponse:
    result = session.remove_item(product_id)
    return _mutation_response(session, result)


@cart_router.post("/{session_key}/stock-check", response_model=StockCheckResponse)
async def check_cart_stock(session: CartSession = Depends(get_session)) -> StockCheckResponse:
    verification = await session.verify_stock()
    return StockCheckResponse(
        ok=verification.ok,
        shortages=[
            StockShortageSchema(
                product_id=shortage.product_id,
                product_name=shortage.product_name,
                requested=shortage.requested,
                available=shortage.available,
            )
            for shortage in verification.shortages
        ],
        error=verification.error.value if verification.error else None,
    )


# ---------------------------------------------------------------------------
# Reorder
# ---------------------------------------------------------------------------
@cart_router.post("/{session_key}/reorder", response_model=ReorderResponse)
async def reorder(body: ReorderRequestSchema, session: CartSession = Depends(get_session)) -> ReorderResponse:
    try:
        request = ReorderRequest(
            order_id=body.order_id,
            order_number=body.order_number,
            store_id=body.store_id,
            store_name=body.store_name,
            lines=[
                ReorderLine(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    options=line.options,
                )
                for line in body.lines
            ],
            order_type=body.order_type,
            delivery_address=body.delivery_address,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc

    result = await session.reorder(request, confirmation=PresetConfirmation(body.confirm_store_switch))
    return ReorderResponse(
        status=result.status.value,
        message=result.message,
        unavailable_items=[
            UnavailableItemSchema(
                product_id=item.product_id,
                product_name=item.product_name,
                reason=item.reason.value,
                requested=item.requested,
                available=item.available,
                description=item.describe(),
            )
            for item in result.unavailable_items
        ],
        item_count=result.item_count,
        total_amount=result.total_amount,
        error=result.error.value if result.error else None,
        cart=_cart_response(session),
    )


@cart_router.get("/{session_key}/reorder-history", response_model=list[ReorderHistoryEntrySchema])
async def reorder_history(session: CartSession = Depends(get_session)) -> list[ReorderHistoryEntrySchema]:
    return [
        ReorderHistoryEntrySchema(
            order_id=str(entry.order_id),
            order_number=entry.order_number,
            reordered_at=entry.reordered_at.isoformat(),
            item_count=entry.item_count,
            total_amount=entry.total_amount,
        )
        for entry in session.reorder_history()
    ]
