"""Reorder reconciliation — loads a past order back into the cart.

Flow:
    1. Validating: every line of the past order is checked against the
       target store's live inventory (concurrently, each lookup bounded by
       the stock query timeout).
    2a. Some line unavailable → Rejected. Every unavailable line is
        reported with its reason; the cart is not touched.
    2b. All lines available and the cart is bound to another store →
        ConflictPending. The customer is asked through the confirmation
        capability; declining → Cancelled, cart not touched.
    3. Committed: the cart is replaced in one step with the lines priced at
       the store's current price, discount and promotion. A delivery
       address is handed to checkout, and the reorder is recorded in the
       cart's history.

Nothing in the cart changes until every lookup has resolved, so the cart is
either untouched or fully replaced. Failures are returned as results; an
exception from a collaborator becomes a FAILED result.
"""

import structlog
from protean.exceptions import ValidationError

from storefront.cart.cart import CartLine
from storefront.cart.results import FailureCode
from storefront.cart.totals import OrderType
from storefront.confirmation import STORE_SWITCH_PROMPT, ask
from storefront.reorder.results import ReorderResult, ReorderStatus

logger = structlog.get_logger(__name__)

GENERIC_FAILURE_MESSAGE = "Something went wrong while reordering. Please try again."


class ReorderReconciler:
    def __init__(self, validator, handoff=None):
        self.validator = validator
        self.handoff = handoff

    async def reorder(self, cart, request, confirmation=None) -> ReorderResult:
        log = logger.bind(
            order_id=request.order_id,
            order_number=request.order_number,
            store_id=request.store_id,
        )

        if not request.store_id:
            log.warning("Reorder has no target store")
            return ReorderResult(
                ReorderStatus.FAILED,
                "The store for this order is unknown.",
                error=FailureCode.MISSING_STORE_BINDING,
            )

        lines = request.merged_lines()
        log.info("Validating reorder", line_count=len(lines))

        try:
            checks = await self.validator.check_lines(request.store_id, lines)
        except Exception:
            log.exception("Inventory lookup failed during reorder")
            return ReorderResult(
                ReorderStatus.FAILED,
                GENERIC_FAILURE_MESSAGE,
                error=FailureCode.COLLABORATOR_ERROR,
            )

        unavailable = [check.unavailable for check in checks if not check.available]
        if unavailable:
            log.info(
                "Reorder rejected",
                unavailable=[item.product_id for item in unavailable],
            )
            return ReorderResult(
                ReorderStatus.REJECTED,
                "The following items cannot be reordered:\n\n" + "\n".join(item.describe() for item in unavailable),
                unavailable_items=unavailable,
            )

        if cart.store_id is not None and not cart.is_bound_to(request.store_id):
            log.info("Reorder targets another store", current_store_id=str(cart.store_id))
            try:
                confirmed = await ask(confirmation, STORE_SWITCH_PROMPT)
            except Exception:
                log.exception("Store switch confirmation failed")
                return ReorderResult(
                    ReorderStatus.FAILED,
                    GENERIC_FAILURE_MESSAGE,
                    error=FailureCode.COLLABORATOR_ERROR,
                )
            if not confirmed:
                log.info("Reorder cancelled by customer")
                return ReorderResult(ReorderStatus.CANCELLED, "The reorder was cancelled.")

        cart_lines = [
            CartLine(
                product=check.entry.product,
                store_product=check.entry.store_product,
                quantity=line.quantity,
                options=line.options,
            )
            for line, check in zip(lines, checks, strict=True)
        ]

        try:
            cart.replace_contents(request.store_id, request.store_name, request.order_type, cart_lines)
        except ValidationError as exc:
            log.error("Inventory returned lines the cart cannot hold", error=str(exc.messages))
            return ReorderResult(
                ReorderStatus.FAILED,
                GENERIC_FAILURE_MESSAGE,
                error=FailureCode.COLLABORATOR_ERROR,
            )

        delivery_restored = False
        if request.order_type == OrderType.DELIVERY and request.delivery_address and self.handoff is not None:
            self.handoff.publish_delivery_address(request.delivery_address)
            delivery_restored = True

        cart.record_reorder(request.order_id, request.order_number)

        item_count = len(cart.items)
        log.info("Reorder committed", item_count=item_count, total_amount=cart.total_amount)

        message = f"{item_count} items were added to the cart."
        if delivery_restored:
            message += " Delivery details were restored."
        return ReorderResult(
            ReorderStatus.COMMITTED,
            message,
            item_count=item_count,
            total_amount=cart.total_amount,
        )
