import pytest

from storefront.cart.cart import ProductInfo, StoreProduct
from storefront.inventory.gateway import CatalogEntry, InMemoryInventory


@pytest.fixture(scope="session")
def _storefront_domain():
    """Initialize the storefront domain once per session."""
    from storefront.domain import storefront

    storefront.init()
    return storefront


@pytest.fixture(autouse=True)
def run_around_tests(_storefront_domain):
    """Push domain context before each test, pop it after."""
    ctx = _storefront_domain.domain_context()
    ctx.push()

    yield

    ctx.pop()


def make_entry(
    product_id,
    store_id="store-a",
    name=None,
    price=1000.0,
    stock=10,
    discount_rate=0.0,
    promotion_type=None,
    is_available=True,
):
    """A catalog product and one store's snapshot of it."""
    return CatalogEntry(
        product=ProductInfo(product_id=product_id, name=name or f"Product {product_id}"),
        store_product=StoreProduct(
            store_product_id=f"{store_id}:{product_id}",
            store_id=store_id,
            product_id=product_id,
            price=price,
            stock_quantity=stock,
            discount_rate=discount_rate,
            is_available=is_available,
            promotion_type=promotion_type,
        ),
    )


@pytest.fixture()
def entry_factory():
    return make_entry


@pytest.fixture()
def inventory():
    return InMemoryInventory(
        [
            make_entry("cola", name="Cola 500ml", price=1500.0, stock=10),
            make_entry("chips", name="Potato Chips", price=2000.0, stock=5, promotion_type="buy_one_get_one"),
            make_entry("gum", name="Mint Gum", price=900.0, stock=2),
            make_entry("cola", store_id="store-b", name="Cola 500ml", price=1400.0, stock=8),
            make_entry("water", store_id="store-b", name="Water 2L", price=1200.0, stock=20),
        ]
    )
