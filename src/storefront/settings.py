"""Configuration for cart pricing and inventory lookups.

Values are read from environment variables at import time.
"""

import os


class Config:
    """Cart configuration"""

    # Pricing
    TAX_RATE: float = float(os.getenv("CART_TAX_RATE", "0.10"))
    FREE_SHIPPING_THRESHOLD: float = float(os.getenv("CART_FREE_SHIPPING_THRESHOLD", "20000"))
    DELIVERY_FEE: float = float(os.getenv("CART_DELIVERY_FEE", "3000"))

    # Inventory collaborator
    STOCK_QUERY_TIMEOUT: float = float(os.getenv("CART_STOCK_QUERY_TIMEOUT", "5.0"))

    # Snapshot persistence
    SNAPSHOT_PATH: str = os.getenv("CART_SNAPSHOT_PATH", "cart-storage.json")
