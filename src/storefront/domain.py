"""Storefront bounded context — the customer-owned cart and its pricing rules.

Holds the Cart aggregate, promotion pricing, stock validation against the
store inventory, and reorder reconciliation of past orders into the cart.
"""

import structlog
from protean.domain import Domain

from storefront.utils.logging import configure_logging

configure_logging()

logger = structlog.get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
