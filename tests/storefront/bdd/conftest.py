"""Shared BDD fixtures and step definitions for the Storefront cart."""

import asyncio

import pytest
from pytest_bdd import given, parsers, then

from storefront.cart.snapshot import to_snapshot
from storefront.session import CartSession


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def session(inventory):
    return CartSession(inventory)


@pytest.fixture()
def snapshot():
    """Container for the cart as it looked before the step under test."""
    return {"before": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a cart bound to "{store_id}" holding one item'))
def cart_bound_to_store(session, inventory, snapshot, store_id):
    entry = asyncio.run(inventory.get_store_product(store_id, "cola"))
    asyncio.run(session.add_item(entry.product, entry.store_product, 1, store_name=store_id))
    session.cart._events.clear()
    snapshot["before"] = to_snapshot(session.cart)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the cart is unchanged")
def cart_is_unchanged(session, snapshot):
    assert to_snapshot(session.cart) == snapshot["before"]


@then(parsers.cfparse('the cart is bound to "{store_id}"'))
def cart_is_bound_to(session, store_id):
    assert session.cart.store_id == store_id
