"""
Error taxonomy for the eyewear shop core.

Services raise these; the API layer in main.py maps them onto HTTP status
codes. Reads that hit StoreUnavailable degrade to empty results inside the
services, so callers only ever see it from writes.
"""


class ShopError(Exception):
    """Base class for every error the shop core raises on purpose."""


class NotFound(ShopError):
    pass


class ProductNotFound(NotFound):
    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class OrderNotFound(NotFound):
    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class ValidationError(ShopError):
    """Input rejected before any store call (e.g. a non-positive quantity)."""


class EmptyCartError(ShopError):
    def __init__(self):
        super().__init__("Cannot place an order with an empty cart")


class StoreUnavailable(ShopError):
    """The record store could not be reached or failed mid-operation."""
