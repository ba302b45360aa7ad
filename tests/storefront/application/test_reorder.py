import asyncio

import pytest
from protean.exceptions import ValidationError

from storefront.cart.results import FailureCode
from storefront.cart.snapshot import to_snapshot
from storefront.confirmation import PresetConfirmation
from storefront.inventory.gateway import InMemoryInventory
from storefront.inventory.validation import UnavailableReason
from storefront.reorder.results import ReorderLine, ReorderRequest, ReorderStatus
from storefront.session import CartSession


class SlowInventory(InMemoryInventory):
    async def get_store_product(self, store_id, product_id):
        await asyncio.sleep(1)
        return await super().get_store_product(store_id, product_id)


class FailingInventory(InMemoryInventory):
    async def get_store_product(self, store_id, product_id):
        raise ConnectionError("inventory service unreachable")


class ExplodingConfirmation:
    def confirm(self, prompt):
        raise RuntimeError("dialog crashed")


def _request(store_id="store-b", lines=None, order_type="pickup", **kwargs):
    return ReorderRequest(
        order_id=kwargs.pop("order_id", "order-42"),
        order_number=kwargs.pop("order_number", "ORD-0042"),
        store_id=store_id,
        store_name=kwargs.pop("store_name", "Store B"),
        lines=lines or [ReorderLine("water", "Water 2L", 2), ReorderLine("cola", "Cola 500ml", 1)],
        order_type=order_type,
        **kwargs,
    )


def _reorder(session, request, confirmation=None):
    return asyncio.run(session.reorder(request, confirmation=confirmation))


def _fill(session, inventory, store_id, product_id, quantity=1):
    entry = asyncio.run(inventory.get_store_product(store_id, product_id))
    asyncio.run(session.add_item(entry.product, entry.store_product, quantity, store_name=store_id))


@pytest.fixture()
def session(inventory):
    return CartSession(inventory)


class TestReorderRequest:
    @pytest.mark.parametrize("order_id, order_number", [("", "ORD-1"), ("order-1", "unknown"), (None, "ORD-1")])
    def test_requires_resolved_identity(self, order_id, order_number):
        with pytest.raises(ValidationError):
            _request(order_id=order_id, order_number=order_number)

    def test_requires_lines(self):
        with pytest.raises(ValidationError):
            ReorderRequest("order-1", "ORD-1", "store-b", None, [])

    def test_rejects_non_positive_quantity(self):
        with pytest.raises(ValidationError):
            _request(lines=[ReorderLine("water", "Water 2L", 0)])

    def test_rejects_unknown_order_type(self):
        with pytest.raises(ValidationError):
            _request(order_type="drone")

    def test_merges_repeated_products(self):
        request = _request(
            lines=[
                ReorderLine("water", "Water 2L", 2),
                ReorderLine("cola", "Cola 500ml", 1),
                ReorderLine("water", "Water 2L", 3),
            ]
        )
        merged = request.merged_lines()

        assert [(line.product_id, line.quantity) for line in merged] == [("water", 5), ("cola", 1)]


class TestCommitted:
    def test_loads_order_into_empty_cart(self, session):
        result = _reorder(session, _request())

        assert result.status == ReorderStatus.COMMITTED
        assert result.ok
        assert result.item_count == 2
        assert result.message == "2 items were added to the cart."
        assert session.cart.store_id == "store-b"
        assert [item.product_id for item in session.cart.items] == ["water", "cola"]
        assert result.total_amount == pytest.approx(session.cart.total_amount)

    def test_prices_at_current_store_price(self, session):
        _reorder(session, _request())

        water = session.cart.find_item("water")
        assert water.store_product.price == 1200.0
        assert water.subtotal == pytest.approx(2400.0)

    def test_records_history(self, session):
        _reorder(session, _request())

        history = session.reorder_history()
        assert len(history) == 1
        assert history[0].order_id == "order-42"
        assert history[0].order_number == "ORD-0042"
        assert history[0].item_count == 2

    def test_replaces_existing_lines_from_same_store(self, session, inventory):
        _fill(session, inventory, "store-b", "cola", 5)
        result = _reorder(session, _request())

        assert result.ok
        assert session.cart.find_item("cola").quantity == 1

    def test_delivery_order_restores_address(self, session):
        address = {"street": "12 Harbor Rd", "city": "Busan"}
        result = _reorder(session, _request(order_type="delivery", delivery_address=address))

        assert result.message == "2 items were added to the cart. Delivery details were restored."
        assert session.cart.order_type == "delivery"
        assert session.checkout_view()["delivery_address"] == address
        assert session.handoff.take_delivery_address() == address
        assert session.handoff.pending_delivery_address is None

    def test_confirmed_switch_from_another_store(self, session, inventory):
        _fill(session, inventory, "store-a", "cola", 1)
        confirmation = PresetConfirmation(True)

        result = _reorder(session, _request(), confirmation=confirmation)

        assert result.ok
        assert len(confirmation.prompts) == 1
        assert session.cart.store_id == "store-b"


class TestRejected:
    def test_itemizes_unavailable_lines_and_leaves_cart_untouched(self, session, inventory, entry_factory):
        inventory.put(entry_factory("soda", store_id="store-b", name="Lemon Soda", stock=0))
        _fill(session, inventory, "store-a", "cola", 2)
        before = to_snapshot(session.cart)

        result = _reorder(
            session,
            _request(
                lines=[
                    ReorderLine("water", "Water 2L", 2),
                    ReorderLine("cola", "Cola 500ml", 1),
                    ReorderLine("soda", "Lemon Soda", 1),
                ]
            ),
            confirmation=PresetConfirmation(True),
        )

        assert result.status == ReorderStatus.REJECTED
        assert [item.product_id for item in result.unavailable_items] == ["soda"]
        assert result.unavailable_items[0].reason == UnavailableReason.STOCK_INSUFFICIENT
        assert "Lemon Soda (insufficient stock: 0/1)" in result.message
        assert to_snapshot(session.cart) == before

    def test_reports_every_reason(self, session, inventory, entry_factory):
        inventory.put(entry_factory("retired", store_id="store-b", name="Retired Snack", is_available=False))

        result = _reorder(
            session,
            _request(
                lines=[
                    ReorderLine("ghost", "Ghost Bar", 1),
                    ReorderLine("retired", "Retired Snack", 1),
                    ReorderLine("water", "Water 2L", 50),
                ]
            ),
        )

        assert [item.reason for item in result.unavailable_items] == [
            UnavailableReason.MISSING,
            UnavailableReason.DISCONTINUED,
            UnavailableReason.STOCK_INSUFFICIENT,
        ]
        assert result.describe_unavailable() == [
            "Ghost Bar (product information not found)",
            "Retired Snack (no longer sold)",
            "Water 2L (insufficient stock: 20/50)",
        ]
        assert session.cart.items == []

    def test_merged_quantity_is_checked(self, session):
        result = _reorder(
            session,
            _request(lines=[ReorderLine("water", "Water 2L", 15), ReorderLine("water", "Water 2L", 10)]),
        )

        assert result.status == ReorderStatus.REJECTED
        assert result.unavailable_items[0].requested == 25

    def test_timeout_is_a_validation_failure(self, inventory):
        slow = SlowInventory()
        slow.put(asyncio.run(inventory.get_store_product("store-b", "water")))
        session = CartSession(slow, stock_timeout=0.01)

        result = _reorder(session, _request(lines=[ReorderLine("water", "Water 2L", 1)]))

        assert result.status == ReorderStatus.REJECTED
        assert result.unavailable_items[0].reason == UnavailableReason.VALIDATION_FAILED
        assert session.cart.items == []


class TestCancelled:
    def test_declined_switch_leaves_cart_untouched(self, session, inventory):
        _fill(session, inventory, "store-a", "cola", 2)
        before = to_snapshot(session.cart)

        result = _reorder(session, _request(), confirmation=PresetConfirmation(False))

        assert result.status == ReorderStatus.CANCELLED
        assert to_snapshot(session.cart) == before
        assert session.reorder_history() == []

    def test_empty_cart_bound_elsewhere_still_asks(self, session, inventory):
        _fill(session, inventory, "store-a", "cola", 1)
        session.remove_item("cola")
        confirmation = PresetConfirmation(False)

        result = _reorder(session, _request(), confirmation=confirmation)

        assert result.status == ReorderStatus.CANCELLED
        assert len(confirmation.prompts) == 1


class TestFailed:
    def test_missing_store(self, session):
        result = _reorder(session, _request(store_id=None))

        assert result.status == ReorderStatus.FAILED
        assert result.error == FailureCode.MISSING_STORE_BINDING

    def test_inventory_error(self):
        session = CartSession(FailingInventory())

        result = _reorder(session, _request())

        assert result.status == ReorderStatus.FAILED
        assert result.error == FailureCode.COLLABORATOR_ERROR
        assert session.cart.items == []

    def test_confirmation_error(self, session, inventory):
        _fill(session, inventory, "store-a", "cola", 1)

        result = _reorder(session, _request(), confirmation=ExplodingConfirmation())

        assert result.status == ReorderStatus.FAILED
        assert session.cart.store_id == "store-a"
